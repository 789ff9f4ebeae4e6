#!/usr/bin/env python3

import asyncio
import logging
import sys
from argparse import ArgumentParser, BooleanOptionalAction
from pathlib import Path

from tqdm.contrib.logging import logging_redirect_tqdm

from .batch import format_files
from .options import Options, load_options, merge_options
from .utils import abbrev_path, find_js_files

logger = logging.getLogger(__name__)

LINE_BREAKS = {'lf': '\n', 'crlf': '\r\n'}


def parse_indent(s: str) -> str:
	"""--indent 2 is two spaces, --indent tab is a tab, anything else is used as it is"""
	if s.isdigit():
		return ' ' * int(s)
	if s.lower() == 'tab':
		return '\t'
	return s


def get_options(config: Path | None, indent: str | None, line_break: str | None) -> Options:
	options = load_options(config) if config else merge_options()
	if indent is not None:
		options = options.model_copy(
			update={'indent': options.indent.model_copy(update={'value': indent})}
		)
	if line_break is not None:
		options = options.model_copy(
			update={'line_break': options.line_break.model_copy(update={'value': LINE_BREAKS[line_break]})}
		)
	return options


def main() -> None:
	argparser = ArgumentParser('es-reformatter', 'Reformat JavaScript source without changing what it does')
	argparser.add_argument('paths', type=Path, nargs='+', help='Files to format, or folders to find .js/.mjs/.cjs files in')
	argparser.add_argument('--config', type=Path, help='JSON file with options, merged over the defaults')
	argparser.add_argument(
		'--indent', type=parse_indent, help='Indent unit, a number of spaces, "tab", or the literal text to use'
	)
	argparser.add_argument('--line-break', choices=LINE_BREAKS.keys(), help='Line break to insert, defaults to lf')
	output = argparser.add_mutually_exclusive_group()
	output.add_argument(
		'--write',
		action=BooleanOptionalAction,
		help='Overwrite files with the formatted source, by default (--no-write) a single file is printed to stdout instead',
		default=False,
	)
	output.add_argument('--output-dir', type=Path, help='Folder to save formatted files to, keeping the folder structure')
	argparser.add_argument(
		'--check',
		action=BooleanOptionalAction,
		help='Only report files that would be changed, and exit with 1 if there are any',
		default=False,
	)
	argparser.add_argument(
		'--max-workers', type=int, help='Max files to format at once, defaults to 4', default=4
	)
	levels = logging.getLevelNamesMapping()
	argparser.add_argument(
		'--log-level',
		help='Log level, by default logging.INFO',
		default='INFO',
		choices=levels.keys(),
	)

	args = argparser.parse_args()

	logging.basicConfig(level=levels.get(args.log_level, args.log_level))

	paths = find_js_files(args.paths)
	if not paths:
		argparser.error('no JavaScript files found')
	to_stdout = not (args.write or args.output_dir or args.check)
	if to_stdout and len(paths) > 1:
		argparser.error('more than one file needs --write, --output-dir or --check')

	options = get_options(args.config, args.indent, args.line_break)
	root_dir = args.paths[0] if len(args.paths) == 1 and args.paths[0].is_dir() else None

	with logging_redirect_tqdm():
		results = asyncio.run(
			format_files(
				paths,
				options,
				write=args.write,
				output_dir=args.output_dir,
				root_dir=root_dir,
				check=args.check,
				max_workers=args.max_workers,
				progress=not to_stdout,
			)
		)

	if to_stdout:
		result = results.results[0]
		if result.formatted is not None:
			sys.stdout.write(result.formatted)

	if args.check:
		for result in results.changed:
			logger.warning('Would reformat %s', abbrev_path(result.path, root_dir or Path.cwd()))

	if results.failed or (args.check and results.changed):
		sys.exit(1)


if __name__ == '__main__':
	main()
