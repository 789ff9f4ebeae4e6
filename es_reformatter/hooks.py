"""Formatting for specific kinds of node, for what the generic line break rules can't do by themselves

Each hook gets a node which already has its indent level worked out. Hooks are looked up by node type in HOOKS, which
other code can add to (or override) with register_hook."""

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from .context import is_else_if
from .tokens import (
	LINE_BREAK,
	LINE_COMMENT,
	TRIVIA_TYPES,
	WHITE_SPACE,
	Token,
	insert_space_after,
	remove_run_after,
	remove_run_before,
	tokens_between,
)

if TYPE_CHECKING:
	from .context import FormatContext
	from .tree import Node
	from .typedefs import NodeType, PositionLabel

logger = logging.getLogger(__name__)

Hook = Callable[['Node', 'FormatContext'], None]

HOOKS: dict['NodeType', Hook] = {}

STATEMENT_LIST_TYPES = frozenset({'Program', 'BlockStatement'})
LOOP_HEAD_PARENT_TYPES = frozenset({'ForStatement', 'ForInStatement'})


def register_hook(node_type: 'NodeType', hooks: dict['NodeType', Hook] | None = None) -> Callable[[Hook], Hook]:
	"""Decorator that makes a function the hook for node_type, replacing whatever was there before"""

	def decorator(hook: Hook) -> Hook:
		(HOOKS if hooks is None else hooks)[node_type] = hook
		return hook

	return decorator


# helpers
# -------


def _prev_significant(token: Token) -> Token | None:
	prev = token.prev
	while prev and prev.type in TRIVIA_TYPES:
		prev = prev.prev
	return prev


def _remove_line_breaks_before(token: Token | None):
	"""Takes out line breaks directly before token, unless that would pull it into a line comment"""
	if token is None:
		return
	prev = token.prev
	while prev and prev.type == LINE_BREAK:
		prev = prev.prev
	if prev and prev.type == LINE_COMMENT:
		return
	remove_run_before(token, LINE_BREAK)


def _remove_line_breaks_after(token: Token | None):
	if token is None:
		return
	remove_run_after(token, LINE_BREAK)


def _remove_line_breaks_between(start: Token, end: Token):
	between = list(tokens_between(start, end))
	if any(t.type == LINE_COMMENT for t in between):
		return
	for token in between:
		if token.type == LINE_BREAK:
			token.remove()


def _remove_line_breaks_until_separator(token: Token):
	"""Line breaks between the end of a property and its comma, never the ones before the closing brace"""
	between = []
	next_token = token.next
	while next_token and next_token.value not in {',', '}'}:
		if next_token.type == LINE_COMMENT:
			return
		between.append(next_token)
		next_token = next_token.next
	if next_token is None or next_token.value != ',':
		return
	for t in between:
		if t.type == LINE_BREAK:
			t.remove()


def _is_statement_expression(node: 'Node') -> bool:
	"""If node is the whole of a statement directly inside a block or the program"""
	parent = node.parent
	if parent is None or parent.type != 'ExpressionStatement':
		return False
	grandparent = parent.parent
	return grandparent is not None and grandparent.type in STATEMENT_LIST_TYPES


def _statement_end(node: 'Node') -> Token | None:
	end = node.end_token
	if end and end.next and end.next.value == ';':
		return end.next
	return end


def _isolate_statement(node: 'Node', ctx: 'FormatContext', label: 'PositionLabel'):
	if not _is_statement_expression(node):
		return
	ctx.line_break_before_if_needed(node.start_token, label)
	ctx.line_break_after_if_needed(_statement_end(node), label)


def _format_list(ctx: 'FormatContext', items: Iterable['Node'], list_label: 'PositionLabel', comma_label: 'PositionLabel'):
	items = list(items)
	if not items:
		return
	ctx.space_before_if_needed(items[0].start_token, list_label)
	for item in items:
		comma = item.end_token.next if item.end_token else None
		if comma and comma.value == ',':
			ctx.space_around_if_needed(comma, comma_label)
	ctx.space_after_if_needed(items[-1].end_token, list_label)


# hooks
# -----


@register_hook('FunctionDeclaration')
def format_function_declaration(node: 'Node', ctx: 'FormatContext'):
	if node.id:
		ctx.space_after_if_needed(node.id.end_token, 'FunctionName')

	_format_list(ctx, node.params, 'ParameterList', 'ParameterComma')

	body = node.body
	if body is None or body.start_token is None or body.end_token is None:
		return
	# only space it away from the signature if it stays on the same line, otherwise it gets indented
	if not ctx.needs_line_break_before('FunctionDeclarationOpeningBrace'):
		ctx.space_before_if_needed(body.start_token, 'FunctionDeclarationOpeningBrace')
	ctx.line_break_around_if_needed(body.start_token, 'FunctionDeclarationOpeningBrace')
	ctx.indent_token(body.start_token, node.indent_level)

	if not ctx.needs_line_break_before('FunctionDeclarationClosingBrace'):
		ctx.space_before_if_needed(body.end_token, 'FunctionDeclarationClosingBrace')
	ctx.line_break_around_if_needed(body.end_token, 'FunctionDeclarationClosingBrace')
	ctx.indent_token(body.end_token, node.indent_level)


@register_hook('BinaryExpression')
def format_binary_expression(node: 'Node', ctx: 'FormatContext'):
	ctx.space_around_if_needed(node.operator, 'BinaryExpressionOperator')


@register_hook('CallExpression')
def format_call_expression(node: 'Node', ctx: 'FormatContext'):
	_format_list(ctx, node.arguments, 'ArgumentList', 'ArgumentComma')
	_isolate_statement(node, ctx, 'CallExpression')


@register_hook('ObjectExpression')
def format_object_expression(node: 'Node', ctx: 'FormatContext'):
	if not node.properties:
		return

	ctx.line_break_around_if_needed(node.start_token, 'ObjectExpressionOpeningBrace')

	for prop in node.properties:
		ctx.line_break_before_if_needed(prop.start_token, 'Property')
		if prop.type == 'Property' and prop.operator and prop.value:
			key_end = _prev_significant(prop.operator)
			if key_end:
				_remove_line_breaks_between(key_end, prop.value.start_token)
				ctx.space_after_if_needed(key_end, 'PropertyName')
			ctx.space_before_if_needed(prop.value.start_token, 'PropertyValue')
		elif prop.method and prop.value and prop.value.body:
			body = prop.value.body
			ctx.space_before_if_needed(body.start_token, 'FunctionDeclarationOpeningBrace')
			ctx.indent_token(body.end_token, prop.indent_level)
		if prop.end_token:
			# TODO: comma-first style would want the line break kept here
			_remove_line_breaks_until_separator(prop.end_token)
			ctx.line_break_after_if_needed(prop.end_token, 'Property')

	ctx.line_break_around_if_needed(node.end_token, 'ObjectExpressionClosingBrace')
	ctx.indent_token(node.end_token, node.closing_indent_level)


@register_hook('VariableDeclaration')
def format_variable_declaration(node: 'Node', ctx: 'FormatContext'):
	# for (var i = 0, j = 1; ...) has to stay on one line
	in_loop_head = node.parent is not None and node.parent.type in LOOP_HEAD_PARENT_TYPES

	for i, declarator in enumerate(node.declarations):
		name = declarator.id
		if name is None or name.start_token is None:
			continue
		if not i:
			_remove_line_breaks_before(name.start_token)
		elif not in_loop_head:
			ctx.line_break_before_if_needed(name.start_token, 'VariableName')
			ctx.indent_token(name.start_token, (node.indent_level or 0) + 1)

		if declarator.init:
			ctx.space_after_if_needed(name.end_token, 'VariableName')
			_remove_line_breaks_before(declarator.init.start_token)
			ctx.line_break_before_if_needed(declarator.init.start_token, 'VariableValue')
			ctx.space_before_if_needed(declarator.init.start_token, 'VariableValue')

	keyword = node.start_token
	if keyword is None:
		return
	ctx.space_after_if_needed(keyword, 'VarToken')
	if keyword.next and keyword.next.type not in {WHITE_SPACE, LINE_BREAK}:
		# "var" and the name can't be glued together whatever the options say
		insert_space_after(keyword, ctx.white_space or ' ')


@register_hook('AssignmentExpression')
def format_assignment_expression(node: 'Node', ctx: 'FormatContext'):
	operator = node.operator
	if operator:
		_remove_line_breaks_before(operator)
		_remove_line_breaks_after(operator)
		ctx.space_before_if_needed(operator, 'AssignmentOperator')
		ctx.space_after_if_needed(operator, 'AssignmentOperator')
	_isolate_statement(node, ctx, 'AssignmentExpression')


def _remove_trivia_after(token: Token):
	next_token = token.next
	while next_token and next_token.type in TRIVIA_TYPES:
		after = next_token.next
		next_token.remove()
		next_token = after


@register_hook('IfStatement')
def format_if_statement(node: 'Node', ctx: 'FormatContext'):
	prefix = 'ElseIf' if is_else_if(node) else 'If'
	opening_label = f'{prefix}OpeningBrace'
	closing_label = f'{prefix}ClosingBrace'
	closing_level = ctx.get_indent_level(node)

	consequent = node.consequent
	block_consequent = consequent is not None and consequent.type == 'BlockStatement'
	if block_consequent:
		ctx.space_around_if_needed(consequent.start_token, opening_label)
		ctx.line_break_around_if_needed(consequent.start_token, opening_label)
		ctx.line_break_around_if_needed(consequent.end_token, closing_label)

	# only touch the parentheses, whatever is inside them is the test expression's business
	ctx.space_before_if_needed(node.open_paren, 'IfTest')
	ctx.space_after_if_needed(node.close_paren, 'IfTest')

	alternate = node.alternate
	if alternate is not None and alternate.start_token and alternate.end_token:
		if block_consequent:
			# easier to take out everything between "}" and "else" and put back what the options want
			_remove_trivia_after(consequent.end_token)

		if alternate.type == 'IfStatement':
			else_keyword = _prev_significant(alternate.start_token)
			if else_keyword and else_keyword.value == 'else':
				_remove_trivia_after(else_keyword)
				insert_space_after(else_keyword, ctx.white_space or ' ')
		elif alternate.type == 'BlockStatement':
			ctx.space_around_if_needed(alternate.start_token, 'ElseOpeningBrace')
			ctx.line_break_around_if_needed(alternate.start_token, 'ElseOpeningBrace')
			ctx.space_around_if_needed(alternate.end_token, 'ElseClosingBrace')
			ctx.line_break_around_if_needed(alternate.end_token, 'ElseClosingBrace')
			ctx.indent_token(alternate.end_token, closing_level)

	if block_consequent:
		# has to happen after the alternate, which took out the whitespace between "}" and "else"
		ctx.space_before_if_needed(consequent.end_token, closing_label)
		ctx.space_after_if_needed(consequent.end_token, 'IfClosingBrace' if alternate is not None else closing_label)
		ctx.indent_token(consequent.end_token, closing_level)
