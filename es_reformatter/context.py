"""Everything a single formatting run needs to know, passed around explicitly so runs never share state"""

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .tokens import (
	COMMENT_TYPES,
	LINE_BREAK,
	WHITE_SPACE,
	Token,
	insert_line_break_after,
	insert_line_break_before,
	insert_space_after,
	insert_space_before,
	is_at_line_start,
)

if TYPE_CHECKING:
	from .options import Options
	from .tree import Node
	from .typedefs import NodeType, PositionLabel

logger = logging.getLogger(__name__)

# some nodes shouldn't be affected by indent rules, so we simply ignore them
BYPASS_INDENT: frozenset['NodeType'] = frozenset(
	{
		'BlockStatement',  # child nodes already add indent
		'Identifier',
		'Literal',
		'LogicalExpression',
	}
)

# some child nodes are already positioned by their parent
BYPASS_CHILD_INDENT: frozenset['NodeType'] = frozenset(
	{
		'IfStatement',
		'CallExpression',
		'ExpressionStatement',
		'Property',
		'ReturnStatement',
		'VariableDeclarator',
	}
)

# bypass indent for where they start, but the closing bracket still needs it
CLOSING_CHILD_INDENT: frozenset['NodeType'] = frozenset({'ObjectExpression'})


class Side(enum.Enum):
	BEFORE = 'before'
	AFTER = 'after'


class Layout(enum.Enum):
	SPACE = 'space'
	LINE_BREAK = 'line break'


class Action(enum.Enum):
	NOTHING = enum.auto()
	INSERT_SPACE = enum.auto()
	INSERT_LINE_BREAK = enum.auto()


def is_else_if(node: 'Node') -> bool:
	"""If this is the "if" in "else if", which is laid out as part of the parent if statement"""
	parent = node.parent
	return (
		node.type == 'IfStatement'
		and parent is not None
		and parent.type == 'IfStatement'
		and parent.alternate is node
	)


@dataclass(frozen=True)
class FormatContext:
	options: 'Options'
	pending_indents: dict[Token, int] = field(default_factory=dict, repr=False)
	"""Indent level per token, applied once every line break is in place"""

	@property
	def line_break(self) -> str:
		return self.options.line_break.value

	@property
	def white_space(self) -> str:
		return self.options.white_space.value

	# policy lookups
	# --------------

	def needs_space_before(self, label: 'PositionLabel') -> bool:
		return bool(self.options.white_space.before.get(label))

	def needs_space_after(self, label: 'PositionLabel') -> bool:
		return bool(self.options.white_space.after.get(label))

	def needs_line_break_before(self, label: 'PositionLabel') -> bool:
		return bool(self.options.line_break.before.get(label))

	def needs_line_break_after(self, label: 'PositionLabel') -> bool:
		return bool(self.options.line_break.after.get(label))

	def evaluate(self, token: Token, label: 'PositionLabel', side: Side, layout: Layout) -> Action:
		"""What (if anything) should be inserted on this side of token for it to follow the options for label

		Never asks for something which is already there, so applying the result any number of times is the same as once."""
		if layout is Layout.SPACE:
			table = self.options.white_space.before if side is Side.BEFORE else self.options.white_space.after
			if not table.get(label):
				return Action.NOTHING
			neighbour = token.prev if side is Side.BEFORE else token.next
			if neighbour is None or neighbour.type in {WHITE_SPACE, LINE_BREAK}:
				return Action.NOTHING
			return Action.INSERT_SPACE

		table = self.options.line_break.before if side is Side.BEFORE else self.options.line_break.after
		if not table.get(label):
			return Action.NOTHING
		if side is Side.BEFORE:
			prev = token.prev
			if prev is None:
				# nothing to break away from at the start of the file
				return Action.NOTHING
			if prev.type in {WHITE_SPACE, LINE_BREAK}:
				return Action.NOTHING
			# if someone already split it across lines, leave it be
			if prev.loc.end.line != token.loc.start.line:
				return Action.NOTHING
			return Action.INSERT_LINE_BREAK
		next_token = token.next
		if next_token is None:
			return Action.INSERT_LINE_BREAK
		if next_token.type == LINE_BREAK or next_token.type in COMMENT_TYPES:
			return Action.NOTHING
		if next_token.loc.start.line != token.loc.end.line:
			return Action.NOTHING
		return Action.INSERT_LINE_BREAK

	def apply(self, token: Token, side: Side, action: Action) -> Token | None:
		if action is Action.INSERT_SPACE:
			if side is Side.BEFORE:
				return insert_space_before(token, self.white_space)
			return insert_space_after(token, self.white_space)
		if action is Action.INSERT_LINE_BREAK:
			if side is Side.BEFORE:
				return insert_line_break_before(token, self.line_break)
			return insert_line_break_after(token, self.line_break)
		return None

	def ensure(self, token: Token | None, label: 'PositionLabel', side: Side, layout: Layout):
		if token is None:
			return
		self.apply(token, side, self.evaluate(token, label, side, layout))

	def space_before_if_needed(self, token: Token | None, label: 'PositionLabel'):
		self.ensure(token, label, Side.BEFORE, Layout.SPACE)

	def space_after_if_needed(self, token: Token | None, label: 'PositionLabel'):
		self.ensure(token, label, Side.AFTER, Layout.SPACE)

	def space_around_if_needed(self, token: Token | None, label: 'PositionLabel'):
		self.space_before_if_needed(token, label)
		self.space_after_if_needed(token, label)

	def line_break_before_if_needed(self, token: Token | None, label: 'PositionLabel'):
		self.ensure(token, label, Side.BEFORE, Layout.LINE_BREAK)

	def line_break_after_if_needed(self, token: Token | None, label: 'PositionLabel'):
		self.ensure(token, label, Side.AFTER, Layout.LINE_BREAK)

	def line_break_around_if_needed(self, token: Token | None, label: 'PositionLabel'):
		self.line_break_before_if_needed(token, label)
		self.line_break_after_if_needed(token, label)

	# indentation
	# -----------

	def indent(self, level: int | None) -> str:
		return self.options.indent.value * max(level or 0, 0)

	def indent_token(self, token: Token | None, level: int | None):
		"""Marks token to be indented to level, if it still starts a line once the whole tree is done

		The tree is walked bottom up, so a later call (from an outer node starting at the same token) wins."""
		if token is None or level is None:
			return
		self.pending_indents[token] = level

	def apply_indentation(self) -> int:
		indented = 0
		for token, level in self.pending_indents.items():
			if level > 0 and token.stream is not None and is_at_line_start(token):
				insert_space_before(token, self.indent(level))
				indented += 1
		self.pending_indents.clear()
		return indented

	def get_indent_level(self, node: 'Node') -> int:
		"""How many parents along the way are indent triggers for the node below them"""
		indent = self.options.indent
		level = 0
		current: Node | None = node
		while current:
			parent = current.parent
			if parent is None:
				if indent.is_trigger(current.type):
					level += 1
			# "else if" stays at the same level as the if it belongs to, a method body goes one past its property
			elif (indent.is_trigger(parent.type) or parent.method) and not is_else_if(current):
				level += 1
			current = parent
		return level

	def get_child_indent_level(self, node: 'Node') -> int:
		"""Level for something directly inside node, like a comment between its statements"""
		level = self.get_indent_level(node)
		if node.parent is None or node.type == 'ExpressionStatement':
			return level
		if node.type == 'BlockStatement' and not self.options.indent.is_trigger(node.type):
			# statements in a block are indented by whatever the block belongs to
			return level
		# anything else inside a node continues it, like the later names of a var declaration
		return level + 1

	def resolve_indent(self, node: 'Node'):
		"""Annotates node with indent_level (and closing_indent_level where that applies)"""
		bypassed = node.type in BYPASS_INDENT or (
			node.parent is not None and node.parent.type in BYPASS_CHILD_INDENT
		)
		node.indent_level = None if bypassed else self.get_indent_level(node)
		if node.type in CLOSING_CHILD_INDENT:
			if node.indent_level is not None:
				node.closing_indent_level = node.indent_level
			else:
				node.closing_indent_level = self.get_indent_level(node.parent) if node.parent else 0
