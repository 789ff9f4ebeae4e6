"""Formatting a whole bunch of files at once"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from tqdm.auto import tqdm

from .formatter import format as format_js
from .tree import ParseError
from .utils import read_text, write_text

if TYPE_CHECKING:
	from .options import Options

logger = logging.getLogger(__name__)


@dataclass
class FormatResult:
	path: Path
	changed: bool = False
	"""Whether formatting made any difference"""
	output_path: Path | None = None
	"""Where the formatted source was written, if it was"""
	error: Exception | None = None
	formatted: str | None = field(default=None, repr=False)


@dataclass
class BatchResults:
	results: list[FormatResult] = field(default_factory=list)

	@property
	def failed(self) -> list[FormatResult]:
		return [r for r in self.results if r.error is not None]

	@property
	def changed(self) -> list[FormatResult]:
		return [r for r in self.results if r.changed]


def get_output_path(path: Path, *, write: bool = False, output_dir: Path | None = None, root_dir: Path | None = None) -> Path | None:
	if write:
		return path
	if output_dir is None:
		return None
	if root_dir is not None and path.is_relative_to(root_dir):
		return output_dir / path.relative_to(root_dir)
	return output_dir / path.name


async def format_file(
	path: Path,
	options: 'Options',
	semaphore: asyncio.Semaphore | None = None,
	*,
	output_path: Path | None = None,
	check: bool = False,
) -> FormatResult:
	async with semaphore or asyncio.Semaphore(1):
		try:
			source = await read_text(path)
		except (OSError, UnicodeDecodeError) as ex:
			logger.error('Could not read %s: %s', path, ex)
			return FormatResult(path, error=ex)

		try:
			# each call gets its own context, so running them side by side is fine
			formatted = await asyncio.to_thread(format_js, source, options)
		except ParseError as ex:
			logger.error('Could not parse %s: %s', path, ex)
			return FormatResult(path, error=ex)
		except Exception as ex:
			logger.exception('Could not format %s', path)
			return FormatResult(path, error=ex)

		changed = formatted != source
		result = FormatResult(path, changed, formatted=formatted)
		if check or output_path is None:
			return result
		if changed or output_path != path:
			await write_text(output_path, formatted)
			result.output_path = output_path
		return result


async def format_files(
	paths: Iterable[Path],
	options: 'Options',
	*,
	write: bool = False,
	output_dir: Path | None = None,
	root_dir: Path | None = None,
	check: bool = False,
	max_workers: int = 4,
	progress: bool = True,
) -> BatchResults:
	semaphore = asyncio.Semaphore(max(max_workers, 1))
	futures = [
		format_file(
			path,
			options,
			semaphore,
			output_path=get_output_path(path, write=write, output_dir=output_dir, root_dir=root_dir),
			check=check,
		)
		for path in paths
	]

	results = BatchResults()
	with tqdm(
		asyncio.as_completed(futures),
		desc='Formatting',
		unit='file',
		total=len(futures),
		disable=not progress,
	) as t:
		for future in t:
			result = await future
			t.set_postfix(file=result.path.name)
			results.results.append(result)
	logger.info(
		'Formatted %d files, %d changed, %d failed',
		len(results.results),
		len(results.changed),
		len(results.failed),
	)
	return results
