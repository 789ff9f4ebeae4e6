import copy
import json
import tempfile
import unittest
from pathlib import Path

import pydantic

from es_reformatter.options import DEFAULT_OPTIONS, Options, deep_merge, load_options, merge_options


class TestMergeOptions(unittest.TestCase):
	def test_defaults(self):
		options = merge_options()
		self.assertEqual(options.indent.value, '    ')
		self.assertTrue(options.indent.is_trigger('IfStatement'))
		self.assertTrue(options.indent.is_trigger('FunctionDeclaration'))
		self.assertFalse(options.indent.is_trigger('VariableDeclarator'))
		self.assertFalse(options.indent.is_trigger('BlockStatement'))
		self.assertEqual(options.line_break.value, '\n')
		self.assertTrue(options.line_break.keep_empty_lines)
		self.assertTrue(options.line_break.before['CallExpression'])
		self.assertFalse(options.line_break.after['Property'])
		self.assertEqual(options.white_space.value, ' ')
		self.assertTrue(options.white_space.remove_trailing)
		self.assertTrue(options.white_space.after['VarToken'])

	def test_partial_override_keeps_the_rest(self):
		options = merge_options({'indent': {'value': '\t'}, 'lineBreak': {'before': {'Property': False}}})
		self.assertEqual(options.indent.value, '\t')
		self.assertTrue(options.indent.is_trigger('IfStatement'))
		self.assertFalse(options.line_break.before['Property'])
		self.assertTrue(options.line_break.before['CallExpression'])

	def test_override_trigger(self):
		options = merge_options({'indent': {'IfStatement': False, 'ForStatement': True}})
		self.assertFalse(options.indent.is_trigger('IfStatement'))
		self.assertTrue(options.indent.is_trigger('ForStatement'))

	def test_defaults_are_not_mutated(self):
		before = copy.deepcopy(DEFAULT_OPTIONS)
		merge_options({'whiteSpace': {'before': {'IfTest': False}}})
		self.assertEqual(DEFAULT_OPTIONS, before)

	def test_options_are_passed_through(self):
		options = merge_options({'indent': {'value': '  '}})
		self.assertIs(merge_options(options), options)

	def test_wrong_type(self):
		with self.assertRaises(pydantic.ValidationError):
			merge_options({'indent': {'value': 4}})

	def test_frozen(self):
		options = merge_options()
		with self.assertRaises(pydantic.ValidationError):
			options.indent = None

	def test_default_model_matches_empty_merge_for_values(self):
		self.assertEqual(Options().indent.value, merge_options().indent.value)


class TestDeepMerge(unittest.TestCase):
	def test_nested(self):
		merged = deep_merge({'a': {'b': 1, 'c': 2}, 'd': 3}, {'a': {'b': 5}})
		self.assertEqual(merged, {'a': {'b': 5, 'c': 2}, 'd': 3})

	def test_replaces_non_mappings(self):
		self.assertEqual(deep_merge({'a': {'b': 1}}, {'a': 2}), {'a': 2})


class TestLoadOptions(unittest.TestCase):
	def test_load(self):
		with tempfile.TemporaryDirectory() as temp_dir:
			path = Path(temp_dir, 'options.json')
			path.write_text(json.dumps({'indent': {'value': '\t'}, 'lineBreak': {'value': '\r\n'}}))
			options = load_options(path)
		self.assertEqual(options.indent.value, '\t')
		self.assertEqual(options.line_break.value, '\r\n')
		self.assertTrue(options.line_break.after['IfOpeningBrace'])

	def test_invalid_json(self):
		with tempfile.TemporaryDirectory() as temp_dir:
			path = Path(temp_dir, 'options.json')
			path.write_text('{"indent": ')
			with self.assertRaises(pydantic.ValidationError):
				load_options(path)


if __name__ == '__main__':
	unittest.main()
