"""Reformatting JavaScript source by editing its tokens in place"""

from .batch import BatchResults, FormatResult, format_file, format_files
from .context import FormatContext
from .formatter import format
from .hooks import HOOKS, register_hook
from .options import DEFAULT_OPTIONS, Options, load_options, merge_options
from .tokens import Token, TokenStream
from .tree import Node, ParseError, parse_js
from .typedefs import JSSource, NodeType, PositionLabel

__all__ = [
	'DEFAULT_OPTIONS',
	'HOOKS',
	'BatchResults',
	'FormatContext',
	'FormatResult',
	'JSSource',
	'Node',
	'NodeType',
	'Options',
	'ParseError',
	'PositionLabel',
	'Token',
	'TokenStream',
	'format',
	'format_file',
	'format_files',
	'load_options',
	'merge_options',
	'parse_js',
	'register_hook',
]
