"""Putting everything else related to tree-sitter here

Turns tree-sitter's concrete syntax tree into ESTree-named nodes which point into a token stream, so the formatter can mutate
whitespace between tokens without ever rebuilding the source from strings."""

import bisect
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import tree_sitter
import tree_sitter_javascript

from .tokens import (
	BLOCK_COMMENT,
	LINE_BREAK,
	LINE_COMMENT,
	TRIVIA_TYPES,
	WHITE_SPACE,
	Position,
	SourceLocation,
	Token,
	TokenStream,
)

if TYPE_CHECKING:
	from .typedefs import JSSource, NodeType

logger = logging.getLogger(__name__)

JS_LANGUAGE = tree_sitter.Language(tree_sitter_javascript.language())

# Parsed as one token, whatever they have inside is left exactly as it is
ATOMIC_NODE_TYPES = frozenset(
	{'comment', 'hash_bang_line', 'number', 'regex', 'string', 'template_string'}
)
# Only exist in the grammar, ESTree has no node for them, so their children belong to the parent
TRANSPARENT_NODE_TYPES = frozenset(
	{
		'arguments',
		'class_heritage',
		'computed_property_name',
		'else_clause',
		'finally_clause',
		'formal_parameters',
		'parenthesized_expression',
		'switch_body',
	}
)
SKIPPED_NODE_TYPES = frozenset({'comment', 'hash_bang_line'})
# ESTree puts a Property around these when they are in an object literal, tree-sitter doesn't
WRAPPED_PROPERTY_TYPES = frozenset({'method_definition', 'shorthand_property_identifier'})

FUNCTION_NODE_TYPES = frozenset(
	{
		'arrow_function',
		'function',
		'function_declaration',
		'function_expression',
		'generator_function',
		'generator_function_declaration',
		'method_definition',
	}
)

LOGICAL_OPERATORS = frozenset({'&&', '||', '??'})

_ESTREE_TYPES: dict[str, 'NodeType'] = {
	'program': 'Program',
	'statement_block': 'BlockStatement',
	'class_body': 'ClassBody',
	'object': 'ObjectExpression',
	'object_pattern': 'ObjectPattern',
	'array': 'ArrayExpression',
	'array_pattern': 'ArrayPattern',
	'pair': 'Property',
	'pair_pattern': 'Property',
	'generator_function_declaration': 'FunctionDeclaration',
	'function': 'FunctionExpression',
	'function_expression': 'FunctionExpression',
	'generator_function': 'FunctionExpression',
	'arrow_function': 'ArrowFunctionExpression',
	'class': 'ClassExpression',
	'lexical_declaration': 'VariableDeclaration',
	'augmented_assignment_expression': 'AssignmentExpression',
	'ternary_expression': 'ConditionalExpression',
	'subscript_expression': 'MemberExpression',
	'do_statement': 'DoWhileStatement',
	'switch_default': 'SwitchCase',
	'template_string': 'TemplateLiteral',
	'this': 'ThisExpression',
	'super': 'Super',
	'number': 'Literal',
	'string': 'Literal',
	'regex': 'Literal',
	'true': 'Literal',
	'false': 'Literal',
	'null': 'Literal',
	'identifier': 'Identifier',
	'property_identifier': 'Identifier',
	'shorthand_property_identifier': 'Identifier',
	'shorthand_property_identifier_pattern': 'Identifier',
	'statement_identifier': 'Identifier',
	'private_property_identifier': 'Identifier',
	'undefined': 'Identifier',
}

_IDENTIFIER_NODE_TYPES = frozenset(
	k for k, v in _ESTREE_TYPES.items() if v == 'Identifier'
)
_LEAF_TOKEN_TYPES = {
	'number': 'Numeric',
	'string': 'String',
	'template_string': 'Template',
	'regex': 'RegularExpression',
	'true': 'Boolean',
	'false': 'Boolean',
	'null': 'Null',
	'this': 'Keyword',
	'super': 'Keyword',
	'hash_bang_line': LINE_COMMENT,
}

_WORD_START = re.compile(r'[A-Za-z_$]')
_TRIVIA = re.compile(r'\r\n|\n|\r|[^\S\r\n]+')
_NEWLINE = re.compile(r'\r\n|\r|\n')


class ParseError(SyntaxError):
	"""tree-sitter could not make sense of the source, so there is nothing we can safely format"""


@dataclass(eq=False)
class Node:
	"""A syntax node under its ESTree name, spanning start_token to end_token (inclusive)

	Only the ESTree properties the formatter needs are filled in, everything else just lives in children."""

	type: 'NodeType'
	start_token: Token | None
	end_token: Token | None
	grammar_type: str = ''
	"""What tree-sitter calls it"""
	parent: 'Node | None' = field(default=None, repr=False)
	children: list['Node'] = field(default_factory=list, repr=False)

	id: 'Node | None' = field(default=None, repr=False)
	params: list['Node'] = field(default_factory=list, repr=False)
	body: 'Node | None' = field(default=None, repr=False)
	callee: 'Node | None' = field(default=None, repr=False)
	arguments: list['Node'] = field(default_factory=list, repr=False)
	left: 'Node | None' = field(default=None, repr=False)
	right: 'Node | None' = field(default=None, repr=False)
	operator: Token | None = field(default=None, repr=False)
	"""Operator token for binary/assignment expressions, the colon for properties"""
	properties: list['Node'] = field(default_factory=list, repr=False)
	key: 'Node | None' = field(default=None, repr=False)
	value: 'Node | None' = field(default=None, repr=False)
	shorthand: bool = field(default=False, repr=False)
	method: bool = field(default=False, repr=False)
	"""For {a} and {a() {}}, where value is the identifier or the method itself"""
	declarations: list['Node'] = field(default_factory=list, repr=False)
	init: 'Node | None' = field(default=None, repr=False)
	test: 'Node | None' = field(default=None, repr=False)
	consequent: 'Node | None' = field(default=None, repr=False)
	alternate: 'Node | None' = field(default=None, repr=False)
	open_paren: Token | None = field(default=None, repr=False)
	close_paren: Token | None = field(default=None, repr=False)

	tokens: TokenStream | None = field(default=None, repr=False)
	"""Only set on the Program node"""

	indent_level: int | None = field(default=None, repr=False)
	closing_indent_level: int | None = field(default=None, repr=False)

	def walk_bottom_up(self) -> Iterator['Node']:
		"""Every node in the tree, children before their parent"""
		# iterative, deeply nested code would blow the recursion limit otherwise
		stack: list[tuple[Node, bool]] = [(self, False)]
		while stack:
			node, children_done = stack.pop()
			if children_done:
				yield node
				continue
			stack.append((node, True))
			stack.extend((child, False) for child in reversed(node.children))

	def __str__(self) -> str:
		if self.tokens is not None:
			return str(self.tokens)
		if not self.start_token or not self.end_token:
			return ''
		parts = [self.start_token.value]
		token = self.start_token
		while token is not self.end_token and token.next:
			token = token.next
			parts.append(token.value)
		return ''.join(parts)


def estree_type(ts_node: tree_sitter.Node) -> 'NodeType':
	if ts_node.type == 'binary_expression':
		operator = ts_node.child_by_field_name('operator')
		if operator is not None and operator.type in LOGICAL_OPERATORS:
			return 'LogicalExpression'
		return 'BinaryExpression'
	name = _ESTREE_TYPES.get(ts_node.type)
	if name:
		return name
	# for_statement -> ForStatement, etc, which is what ESTree calls most things anyway
	return ''.join(part.title() for part in ts_node.type.split('_'))


def _token_type(ts_node: tree_sitter.Node, text: str) -> str:
	if ts_node.type == 'comment':
		return LINE_COMMENT if text.startswith('//') else BLOCK_COMMENT
	leaf_type = _LEAF_TOKEN_TYPES.get(ts_node.type)
	if leaf_type:
		return leaf_type
	if ts_node.type in _IDENTIFIER_NODE_TYPES:
		return 'Identifier'
	if _WORD_START.match(text):
		return 'Identifier' if ts_node.is_named else 'Keyword'
	return 'Punctuator'


def _iter_leaves(root: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
	stack = [root]
	while stack:
		node = stack.pop()
		if node.child_count == 0 or node.type in ATOMIC_NODE_TYPES:
			# zero width things like automatic semicolons have no text to keep track of
			if node.end_byte > node.start_byte:
				yield node
		else:
			stack.extend(reversed(node.children))


def _find_error(root: tree_sitter.Node) -> tree_sitter.Node | None:
	"""The first thing in the source that tree-sitter couldn't parse"""
	stack = [root]
	while stack:
		node = stack.pop()
		if node.type == 'ERROR' or node.is_missing:
			return node
		stack.extend(child for child in reversed(node.children) if child.has_error or child.is_missing)
	return None


def _raise_parse_error(root: tree_sitter.Node, js: 'JSSource'):
	error_node = _find_error(root) or root
	row, column = error_node.start_point
	lines = js.splitlines()
	line_text = lines[row] if row < len(lines) else ''
	if error_node.is_missing:
		description = f'Missing {error_node.type!r}'
	else:
		description = 'Unexpected token'
	raise ParseError(
		f'{description} at line {row + 1}, column {column + 1}',
		(None, row + 1, column + 1, line_text),
	)


class _Cursor:
	"""Keeps track of character offset, line and column while the stream is built up"""

	def __init__(self) -> None:
		self.offset = 0
		self.line = 1
		self.column = 0

	def make_token(self, type_: str, value: str) -> Token:
		start = Position(self.line, self.column)
		lines = _NEWLINE.split(value)
		if len(lines) > 1:
			self.line += len(lines) - 1
			self.column = len(lines[-1])
		else:
			self.column += len(value)
		token = Token(
			type_,
			value,
			(self.offset, self.offset + len(value)),
			SourceLocation(start, Position(self.line, self.column)),
		)
		self.offset += len(value)
		return token


def _tokenize_gap(cursor: _Cursor, gap: str, stream: TokenStream):
	pos = 0
	for match in _TRIVIA.finditer(gap):
		if match.start() != pos:
			raise ParseError(f'Untokenized text {gap[pos:match.start()]!r} at line {cursor.line}')
		text = match[0]
		stream.append(cursor.make_token(LINE_BREAK if text in {'\n', '\r\n', '\r'} else WHITE_SPACE, text))
		pos = match.end()
	if pos != len(gap):
		raise ParseError(f'Untokenized text {gap[pos:]!r} at line {cursor.line}')


class _TreeBuilder:
	def __init__(self, by_start_byte: dict[int, Token], by_end_byte: dict[int, Token]) -> None:
		self._by_start_byte = by_start_byte
		self._by_end_byte = by_end_byte
		self._starts = sorted(by_start_byte)
		self._ends = sorted(by_end_byte)
		self._by_id: dict[int, Node] = {}

	def _start_token(self, ts_node: tree_sitter.Node) -> Token | None:
		i = bisect.bisect_left(self._starts, ts_node.start_byte)
		return self._by_start_byte[self._starts[i]] if i < len(self._starts) else None

	def _end_token(self, ts_node: tree_sitter.Node) -> Token | None:
		i = bisect.bisect_right(self._ends, ts_node.end_byte) - 1
		return self._by_end_byte[self._ends[i]] if i >= 0 else None

	def _token_at(self, ts_node: tree_sitter.Node | None) -> Token | None:
		if ts_node is None:
			return None
		return self._by_start_byte.get(ts_node.start_byte)

	def _add_node(self, node_type: 'NodeType', ts_node: tree_sitter.Node, parent: Node) -> Node:
		node = Node(
			node_type,
			self._start_token(ts_node),
			self._end_token(ts_node),
			ts_node.type,
			parent,
		)
		parent.children.append(node)
		return node

	def build(self, root: tree_sitter.Node, program: Node):
		"""Builds everything under root as the children of program"""
		# iterative like walk_bottom_up, so deeply nested code doesn't blow the recursion limit
		built: list[tuple[Node, tree_sitter.Node]] = []
		wrappers: list[tuple[Node, tree_sitter.Node]] = []
		stack = [(child, program) for child in reversed(root.named_children)]
		while stack:
			ts_node, parent = stack.pop()
			if ts_node.type in SKIPPED_NODE_TYPES:
				continue
			if ts_node.type in TRANSPARENT_NODE_TYPES:
				stack.extend((child, parent) for child in reversed(ts_node.named_children))
				continue
			if parent.grammar_type == 'object' and ts_node.type in WRAPPED_PROPERTY_TYPES:
				parent = self._add_node('Property', ts_node, parent)
				wrappers.append((parent, ts_node))
			node = self._add_node(estree_type(ts_node), ts_node, parent)
			self._by_id[ts_node.id] = node
			built.append((node, ts_node))
			if ts_node.type not in ATOMIC_NODE_TYPES:
				stack.extend((child, node) for child in reversed(ts_node.named_children))

		# everything exists by now, so roles can point anywhere in the tree
		for node, ts_node in built:
			self._assign_roles(node, ts_node)
		for wrapper, ts_node in wrappers:
			value = self._by_id[ts_node.id]
			wrapper.value = value
			if ts_node.type == 'method_definition':
				wrapper.method = True
				wrapper.key = value.id
			else:
				wrapper.shorthand = True
				wrapper.key = value

	def _node(self, ts_node: tree_sitter.Node | None) -> Node | None:
		"""The node built for ts_node, looking through parentheses and the like"""
		while ts_node is not None and ts_node.type in TRANSPARENT_NODE_TYPES:
			ts_node = next(
				(c for c in ts_node.named_children if c.type not in SKIPPED_NODE_TYPES), None
			)
		if ts_node is None:
			return None
		return self._by_id.get(ts_node.id)

	def _nodes(self, ts_node: tree_sitter.Node | None) -> list[Node]:
		if ts_node is None:
			return []
		if ts_node.type in {'arguments', 'formal_parameters'}:
			return [self._by_id[c.id] for c in ts_node.named_children if c.id in self._by_id]
		single = self._node(ts_node)
		return [single] if single else []

	def _assign_roles(self, node: Node, ts_node: tree_sitter.Node):
		get = ts_node.child_by_field_name
		grammar_type = ts_node.type
		if grammar_type in FUNCTION_NODE_TYPES:
			node.id = self._node(get('name'))
			node.params = self._nodes(get('parameters') or get('parameter'))
			node.body = self._node(get('body'))
		elif grammar_type in {'call_expression', 'new_expression'}:
			node.callee = self._node(get('function') or get('constructor'))
			args = get('arguments')
			# tagged templates have a template string instead of an argument list
			node.arguments = self._nodes(args) if args is not None and args.type == 'arguments' else []
		elif grammar_type in {'binary_expression', 'augmented_assignment_expression', 'assignment_expression'}:
			node.left = self._node(get('left'))
			node.right = self._node(get('right'))
			operator = get('operator')
			if operator is None:
				operator = next((c for c in ts_node.children if c.type == '='), None)
			node.operator = self._token_at(operator)
		elif grammar_type in {'pair', 'pair_pattern'}:
			node.key = self._node(get('key'))
			node.value = self._node(get('value'))
			node.operator = self._token_at(next((c for c in ts_node.children if c.type == ':'), None))
		elif grammar_type == 'variable_declarator':
			node.id = self._node(get('name'))
			node.init = self._node(get('value'))
		elif grammar_type in {'variable_declaration', 'lexical_declaration'}:
			node.declarations = [c for c in node.children if c.type == 'VariableDeclarator']
		elif grammar_type == 'object':
			node.properties = list(node.children)
		elif grammar_type in {'for_statement', 'for_in_statement', 'while_statement', 'do_statement'}:
			node.body = self._node(get('body'))
		elif grammar_type == 'if_statement':
			condition = get('condition')
			node.test = self._node(condition)
			if condition is not None and condition.type == 'parenthesized_expression':
				node.open_paren = self._token_at(condition)
				node.close_paren = self._by_end_byte.get(condition.end_byte)
			node.consequent = self._node(get('consequence'))
			node.alternate = self._node(get('alternative'))


def parse_js(js: 'JSSource') -> Node:
	"""Parses JavaScript into the Program node, whose tokens attribute is the complete token stream

	Raises:
		ParseError: If the source has syntax errors"""
	parser = tree_sitter.Parser(JS_LANGUAGE)
	source = js.encode('utf-8')
	tree = parser.parse(source)
	root = tree.root_node
	if root.has_error:
		_raise_parse_error(root, js)

	stream = TokenStream()
	cursor = _Cursor()
	by_start_byte: dict[int, Token] = {}
	by_end_byte: dict[int, Token] = {}
	byte_pos = 0
	for leaf in _iter_leaves(root):
		if leaf.start_byte < byte_pos:
			# nested inside an atomic token we already have
			continue
		_tokenize_gap(cursor, source[byte_pos : leaf.start_byte].decode('utf-8'), stream)
		text = source[leaf.start_byte : leaf.end_byte].decode('utf-8')
		token = cursor.make_token(_token_type(leaf, text), text)
		stream.append(token)
		if not token.is_comment:
			by_start_byte[leaf.start_byte] = token
			by_end_byte[leaf.end_byte] = token
		byte_pos = leaf.end_byte
	_tokenize_gap(cursor, source[byte_pos:].decode('utf-8'), stream)

	significant = [t for t in stream if t.type not in TRIVIA_TYPES]
	program = Node(
		'Program',
		significant[0] if significant else None,
		significant[-1] if significant else None,
		root.type,
		tokens=stream,
	)
	_TreeBuilder(by_start_byte, by_end_byte).build(root, program)
	logger.debug('Parsed %d tokens, %d top level statements', len(significant), len(program.children))
	return program
