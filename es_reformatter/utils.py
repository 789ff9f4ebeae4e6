from collections.abc import Iterable
from pathlib import Path

import aiofiles
import aiofiles.os

JS_SUFFIXES = frozenset({'.js', '.mjs', '.cjs'})


async def read_text(path: Path, encoding: str = 'utf-8'):
	async with aiofiles.open(path, encoding=encoding, newline='') as f:
		return await f.read()


async def write_text(path: Path, s: str, encoding: str = 'utf-8', errors: str = 'strict'):
	await aiofiles.os.makedirs(path.parent, exist_ok=True)
	# newline='' so \r\n line breaks from the options are written as they are
	async with aiofiles.open(path, 'w', encoding=encoding, errors=errors, newline='') as f:
		await f.write(s)


def find_js_files(paths: Iterable[Path]) -> list[Path]:
	"""Expands directories into the JavaScript files under them, files are kept as they are"""
	found: list[Path] = []
	for path in paths:
		if path.is_dir():
			found.extend(
				sorted(p for p in path.rglob('*') if p.suffix in JS_SUFFIXES and p.is_file())
			)
		else:
			found.append(path)
	return found


def abbrev_path(path: Path, root_dir: Path):
	return str(path.relative_to(root_dir) if path.is_relative_to(root_dir) else path)
