"""Non-destructive formatting: tokens are updated in place, only whitespace and line breaks are added or removed

Nothing is ever rebuilt by concatenating strings, so whatever the options are, the program stays the same program."""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .context import FormatContext, is_else_if
from .hooks import HOOKS
from .options import merge_options
from .tokens import (
	BLOCK_COMMENT,
	COMMENT_TYPES,
	LINE_BREAK,
	LINE_COMMENT,
	WHITE_SPACE,
	Token,
	TokenStream,
	is_at_line_start,
)
from .tree import parse_js

if TYPE_CHECKING:
	from .hooks import Hook
	from .options import Options
	from .tree import Node
	from .typedefs import JSSource, NodeType

logger = logging.getLogger(__name__)

# no need for spaces before/after these tokens
UNNECESSARY_WHITE_SPACE: frozenset[str] = frozenset(
	{BLOCK_COMMENT, LINE_BREAK, LINE_COMMENT, 'Punctuator', WHITE_SPACE}
)

# these break lines by themselves, and only for special reasons
BYPASS_AUTOMATIC_LINE_BREAK: frozenset['NodeType'] = frozenset(
	{'AssignmentExpression', 'CallExpression'}
)

# anything in here other than the body is on the same line as the keyword
INLINE_CHILD_PARENT_TYPES: frozenset['NodeType'] = frozenset(
	{'ExportStatement', 'ForInStatement', 'ForStatement'}
)

# punctuators that would turn into a different token if the space between them went away
_MERGING_PAIRS = frozenset({'++', '--', '//', '/*'})


def format(js: 'JSSource', options: 'Options | Mapping[str, Any] | None' = None, *, hooks: 'Mapping[NodeType, Hook] | None' = None) -> 'JSSource':
	"""Formats JavaScript source according to options (merged over the defaults)

	Arguments:
		js: Source text
		options: Partial options in the nested dict form (or an already merged Options)
		hooks: Hooks to use instead of HOOKS, by node type

	Raises:
		ParseError: If js is not valid JavaScript
		pydantic.ValidationError: If options has values of the wrong type

	Returns:
		Formatted source text"""
	ctx = FormatContext(merge_options(options))
	program = parse_js(js)
	tokens = program.tokens
	if tokens is None:
		raise ValueError('Program node has no token stream')

	# existing indentation and trailing whitespace are thrown away, everything is re-indented anyway
	remove_indentation(tokens)
	if ctx.options.white_space.remove_trailing:
		remove_trailing_white_space(tokens)
	if not ctx.options.line_break.keep_empty_lines:
		remove_empty_lines(tokens)
	sanitize_white_space(tokens)

	transform_tree(program, ctx, HOOKS if hooks is None else hooks)
	return str(tokens)


def transform_tree(program: 'Node', ctx: FormatContext, hooks: 'Mapping[NodeType, Hook]'):
	count = 0
	for node in program.walk_bottom_up():
		transform_node(node, ctx, hooks)
		count += 1
	indented = ctx.apply_indentation()
	logger.debug('Transformed %d nodes, indented %d lines', count, indented)


# pre-passes
# ----------


def remove_indentation(tokens: TokenStream):
	for token in tokens:
		if token.type == WHITE_SPACE and is_at_line_start(token):
			token.remove()


def remove_trailing_white_space(tokens: TokenStream):
	for token in tokens:
		if token.type == WHITE_SPACE and (token.next is None or token.next.type == LINE_BREAK):
			token.remove()


def remove_empty_lines(tokens: TokenStream):
	for token in tokens:
		if token.type != LINE_BREAK:
			continue
		prev = token.prev
		while prev and prev.type == WHITE_SPACE:
			prev = prev.prev
		# a line break right after another one (or at the very start) only ends an empty line
		if prev is None or prev.type == LINE_BREAK:
			token.remove()


def _keeps_tokens_apart(white_space: Token) -> bool:
	prev = white_space.prev
	next_token = white_space.next
	if prev is None or next_token is None:
		return False
	if prev.type == 'Numeric' and next_token.value.startswith('.'):
		return True
	return (prev.value[-1:] + next_token.value[:1]) in _MERGING_PAIRS


def sanitize_white_space(tokens: TokenStream):
	"""Removes whitespace next to punctuation, comments and line breaks, hooks put back whatever the options ask for"""
	for token in tokens:
		if token.type != WHITE_SPACE:
			continue
		prev = token.prev
		next_token = token.next
		if (
			(prev is not None and prev.type in UNNECESSARY_WHITE_SPACE)
			or (next_token is not None and next_token.type in UNNECESSARY_WHITE_SPACE)
		) and not _keeps_tokens_apart(token):
			token.remove()


# transform
# ---------


def skips_automatic_line_break(node: 'Node') -> bool:
	if node.type in BYPASS_AUTOMATIC_LINE_BREAK or is_else_if(node):
		return True
	parent = node.parent
	return parent is not None and parent.type in INLINE_CHILD_PARENT_TYPES and node is not parent.body


def transform_node(node: 'Node', ctx: FormatContext, hooks: 'Mapping[NodeType, Hook]'):
	ctx.resolve_indent(node)
	automatic_line_break = not skips_automatic_line_break(node)

	if automatic_line_break:
		ctx.line_break_before_if_needed(node.start_token, node.type)

	process_comments(node, ctx)

	ctx.indent_token(node.start_token, node.indent_level)

	hook = hooks.get(node.type)
	if hook:
		hook(node, ctx)

	if automatic_line_break:
		ctx.line_break_after_if_needed(node.end_token, node.type)


def _span(node: 'Node') -> tuple[Token | None, Token | None]:
	if node.tokens is not None:
		# the program starts and ends wherever the stream does, including anything hooks added
		return node.tokens.first, node.tokens.last
	return node.start_token, node.end_token


def process_comments(node: 'Node', ctx: FormatContext):
	"""Spaces and indents comments inside node which no node further down has claimed yet"""
	token, end_token = _span(node)
	if token is None or end_token is None:
		return
	level = None
	while token:
		if token.type in COMMENT_TYPES and not token.processed:
			ctx.space_before_if_needed(token, token.type)
			if level is None:
				# nested with the statements around it, which for the program or a statement is just its own level
				level = ctx.get_child_indent_level(node)
			ctx.indent_token(token, level)
			token.processed = True
		if token is end_token:
			break
		token = token.next
