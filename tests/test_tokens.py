import unittest

from es_reformatter.tokens import (
	DetachedTokenError,
	LINE_BREAK,
	WHITE_SPACE,
	insert_line_break_after,
	insert_line_break_before,
	insert_space_after,
	insert_space_before,
	is_at_line_start,
	remove_run_after,
	remove_run_before,
	tokens_between,
)
from es_reformatter.tree import parse_js


def _find(stream, value):
	return next(t for t in stream if t.value == value)


class TestTokenStream(unittest.TestCase):
	def test_stream_reproduces_source(self):
		for code in ('a = 1;', 'if (a) {\n  b();\n}\n', 'var s = "x  y"; // trailing\n', ''):
			with self.subTest(code=code):
				self.assertEqual(str(parse_js(code).tokens), code)

	def test_links_are_consistent(self):
		stream = parse_js('a = 1;').tokens
		tokens = list(stream)
		self.assertEqual(len(stream), 6)
		self.assertIs(stream.first, tokens[0])
		self.assertIs(stream.last, tokens[-1])
		self.assertIsNone(tokens[0].prev)
		self.assertIsNone(tokens[-1].next)
		for prev, token in zip(tokens, tokens[1:]):
			self.assertIs(prev.next, token)
			self.assertIs(token.prev, prev)

	def test_whitespace_and_line_break_tokens(self):
		stream = parse_js('a;\n  b;').tokens
		types = [t.type for t in stream]
		self.assertIn(LINE_BREAK, types)
		self.assertIn(WHITE_SPACE, types)

	def test_crlf_is_a_single_line_break(self):
		stream = parse_js('a;\r\nb;').tokens
		breaks = [t for t in stream if t.type == LINE_BREAK]
		self.assertEqual(len(breaks), 1)
		self.assertEqual(breaks[0].value, '\r\n')

	def test_locations(self):
		stream = parse_js('a;\n  bb;').tokens
		bb = _find(stream, 'bb')
		self.assertEqual(bb.loc.start.line, 2)
		self.assertEqual(bb.loc.start.column, 2)
		self.assertEqual(bb.loc.end.column, 4)
		self.assertEqual(bb.range, (5, 7))


class TestPrimitives(unittest.TestCase):
	def test_insert_space(self):
		stream = parse_js('a=1;').tokens
		equals = _find(stream, '=')
		insert_space_before(equals, ' ')
		insert_space_after(equals, ' ')
		self.assertEqual(str(stream), 'a = 1;')

	def test_insert_empty_space_does_nothing(self):
		stream = parse_js('a=1;').tokens
		self.assertIsNone(insert_space_before(_find(stream, '='), ''))
		self.assertEqual(str(stream), 'a=1;')

	def test_insert_line_break(self):
		stream = parse_js('a;b;').tokens
		b = _find(stream, 'b')
		br = insert_line_break_before(b, '\n')
		self.assertEqual(str(stream), 'a;\nb;')
		self.assertEqual(br.loc.end.line, br.loc.start.line + 1)
		insert_line_break_after(stream.last, '\r\n')
		self.assertEqual(str(stream), 'a;\nb;\r\n')
		self.assertEqual(stream.last.type, LINE_BREAK)

	def test_insert_at_start_updates_first(self):
		stream = parse_js('a;').tokens
		ws = insert_space_before(stream.first, '  ')
		self.assertIs(stream.first, ws)

	def test_remove_runs(self):
		stream = parse_js('a\n\n\n;\n\nb;').tokens
		semicolon = _find(stream, ';')
		self.assertEqual(remove_run_before(semicolon, LINE_BREAK), 3)
		self.assertEqual(remove_run_after(semicolon, LINE_BREAK), 2)
		self.assertEqual(str(stream), 'a;b;')

	def test_remove_run_of_other_type(self):
		stream = parse_js('a\n;').tokens
		self.assertEqual(remove_run_before(_find(stream, ';'), WHITE_SPACE), 0)
		self.assertEqual(str(stream), 'a\n;')

	def test_remove_keeps_iteration_going(self):
		stream = parse_js('a ; b ;').tokens
		for token in stream:
			if token.type == WHITE_SPACE:
				token.remove()
		self.assertEqual(str(stream), 'a;b;')

	def test_removed_token_leaves_stream(self):
		stream = parse_js('a ;').tokens
		ws = stream.first.next
		ws.remove()
		self.assertIsNone(ws.stream)
		self.assertEqual(len(stream), 2)
		with self.assertRaises(DetachedTokenError):
			ws.remove()
		with self.assertRaises(ValueError):
			insert_space_before(ws, ' ')

	def test_tokens_between(self):
		stream = parse_js('a + b;').tokens
		between = list(tokens_between(_find(stream, 'a'), _find(stream, 'b')))
		self.assertEqual([t.value for t in between], [' ', '+', ' '])

	def test_is_at_line_start(self):
		stream = parse_js('a;\nb;').tokens
		self.assertTrue(is_at_line_start(_find(stream, 'a')))
		self.assertTrue(is_at_line_start(_find(stream, 'b')))
		self.assertFalse(is_at_line_start(stream.last))

	def test_token_equality_is_identity(self):
		stream = parse_js('a;a;').tokens
		first, second = [t for t in stream if t.value == 'a']
		self.assertNotEqual(first, second)
		self.assertEqual(len({first, second}), 2)


if __name__ == '__main__':
	unittest.main()
