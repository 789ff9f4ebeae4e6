"""Token stream: a doubly linked list of every lexical unit in the source, whitespace and line breaks included"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

WHITE_SPACE = 'WhiteSpace'
LINE_BREAK = 'LineBreak'
LINE_COMMENT = 'LineComment'
BLOCK_COMMENT = 'BlockComment'

COMMENT_TYPES = frozenset({LINE_COMMENT, BLOCK_COMMENT})
TRIVIA_TYPES = frozenset({WHITE_SPACE, LINE_BREAK})


@dataclass
class Position:
	line: int
	"""1-based"""
	column: int
	"""0-based"""


@dataclass
class SourceLocation:
	start: Position
	end: Position


class DetachedTokenError(ValueError):
	"""Token is not part of a token stream (any more), so there are no neighbours to insert next to"""


@dataclass(eq=False)
class Token:
	"""One lexical unit. Equality is identity, two tokens with the same text are still different tokens"""

	type: str
	value: str
	range: tuple[int, int]
	loc: SourceLocation
	prev: 'Token | None' = field(default=None, repr=False)
	next: 'Token | None' = field(default=None, repr=False)
	processed: bool = field(default=False, repr=False)
	"""Only used for comments, so each one is reindented once"""
	stream: 'TokenStream | None' = field(default=None, repr=False)

	@property
	def is_comment(self) -> bool:
		return self.type in COMMENT_TYPES

	def _get_stream(self) -> 'TokenStream':
		if self.stream is None:
			raise DetachedTokenError(f'{self!r} is not part of a token stream')
		return self.stream

	def before(self, token: 'Token'):
		self._get_stream().insert_before(self, token)

	def after(self, token: 'Token'):
		self._get_stream().insert_after(self, token)

	def remove(self):
		self._get_stream().remove(self)


class TokenStream:
	def __init__(self) -> None:
		self.first: Token | None = None
		self.last: Token | None = None

	def __iter__(self) -> Iterator[Token]:
		token = self.first
		while token:
			# grab next first so the caller can remove the token it was given
			next_token = token.next
			yield token
			token = next_token

	def __len__(self) -> int:
		return sum(1 for _ in self)

	def __str__(self) -> str:
		return ''.join(token.value for token in self)

	def append(self, token: Token):
		token.stream = self
		token.prev = self.last
		token.next = None
		if self.last:
			self.last.next = token
		else:
			self.first = token
		self.last = token

	def insert_before(self, anchor: Token, token: Token):
		token.stream = self
		token.prev = anchor.prev
		token.next = anchor
		if anchor.prev:
			anchor.prev.next = token
		else:
			self.first = token
		anchor.prev = token

	def insert_after(self, anchor: Token, token: Token):
		token.stream = self
		token.prev = anchor
		token.next = anchor.next
		if anchor.next:
			anchor.next.prev = token
		else:
			self.last = token
		anchor.next = token

	def remove(self, token: Token):
		if token.prev:
			token.prev.next = token.next
		else:
			self.first = token.next
		if token.next:
			token.next.prev = token.prev
		else:
			self.last = token.prev
		# keep prev/next so loops walking through a removed token can carry on
		token.stream = None


def _synthetic_token(type_: str, value: str, start: int, line: int, column: int, *, end_line: int | None = None) -> Token:
	return Token(
		type_,
		value,
		(start, start + len(value)),
		SourceLocation(
			Position(line, column),
			Position(line if end_line is None else end_line, column + len(value)),
		),
	)


def insert_space_before(token: Token, value: str) -> Token | None:
	if not value:
		return None
	ws = _synthetic_token(WHITE_SPACE, value, token.range[0], token.loc.start.line, token.loc.start.column)
	token.before(ws)
	return ws


def insert_space_after(token: Token, value: str) -> Token | None:
	if not value:
		return None
	ws = _synthetic_token(WHITE_SPACE, value, token.range[1] + 1, token.loc.end.line, token.loc.end.column)
	token.after(ws)
	return ws


def insert_line_break_before(token: Token, value: str) -> Token:
	line = token.loc.start.line
	br = _synthetic_token(LINE_BREAK, value, token.range[0], line, token.loc.start.column, end_line=line + 1)
	token.before(br)
	return br


def insert_line_break_after(token: Token, value: str) -> Token:
	line = token.loc.end.line
	br = _synthetic_token(LINE_BREAK, value, token.range[1] + 1, line, token.loc.end.column, end_line=line + 1)
	token.after(br)
	return br


def remove_run_before(token: Token, type_: str) -> int:
	"""Removes every contiguous token of type_ directly before token, returns how many were removed"""
	removed = 0
	prev = token.prev
	while prev and prev.type == type_:
		before_prev = prev.prev
		prev.remove()
		removed += 1
		prev = before_prev
	return removed


def remove_run_after(token: Token, type_: str) -> int:
	removed = 0
	next_token = token.next
	while next_token and next_token.type == type_:
		after_next = next_token.next
		next_token.remove()
		removed += 1
		next_token = after_next
	return removed


def tokens_between(start: Token, end: Token) -> Iterator[Token]:
	"""Tokens strictly between start and end"""
	token = start.next
	while token and token is not end:
		next_token = token.next
		yield token
		token = next_token


def is_at_line_start(token: Token) -> bool:
	return token.prev is None or token.prev.type == LINE_BREAK
