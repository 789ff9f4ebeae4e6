import asyncio
import contextlib
import io
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from es_reformatter.__main__ import get_options, main, parse_indent
from es_reformatter.batch import format_files, get_output_path
from es_reformatter.formatter import format
from es_reformatter.options import merge_options
from es_reformatter.tree import ParseError
from es_reformatter.utils import find_js_files

UNFORMATTED = 'foo();bar();'
FORMATTED = 'foo();\nbar();\n'


class TempDirTestCase(unittest.TestCase):
	def setUp(self):
		temp_dir = tempfile.TemporaryDirectory()
		self.addCleanup(temp_dir.cleanup)
		self.root = Path(temp_dir.name)

	def write(self, name, text):
		path = self.root / name
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_text(text, newline='')
		return path


class TestFormatFiles(TempDirTestCase):
	def _run(self, paths, **kwargs):
		return asyncio.run(format_files(paths, merge_options(), progress=False, **kwargs))

	def test_write(self):
		path = self.write('a.js', UNFORMATTED)
		results = self._run([path], write=True)
		self.assertEqual(path.read_text(), FORMATTED)
		self.assertEqual(len(results.changed), 1)
		self.assertEqual(results.results[0].output_path, path)
		self.assertEqual(results.failed, [])

	def test_unchanged_file_is_not_rewritten(self):
		path = self.write('a.js', FORMATTED)
		results = self._run([path], write=True)
		self.assertEqual(results.changed, [])
		self.assertIsNone(results.results[0].output_path)

	def test_check_does_not_write(self):
		path = self.write('a.js', UNFORMATTED)
		results = self._run([path], write=True, check=True)
		self.assertEqual(path.read_text(), UNFORMATTED)
		self.assertEqual([r.path for r in results.changed], [path])

	def test_output_dir_keeps_structure(self):
		source_dir = self.root / 'src'
		path = self.write('src/lib/a.js', UNFORMATTED)
		output_dir = self.root / 'out'
		self._run([path], output_dir=output_dir, root_dir=source_dir)
		self.assertEqual((output_dir / 'lib' / 'a.js').read_text(), FORMATTED)
		self.assertEqual(path.read_text(), UNFORMATTED)

	def test_crlf_is_written_as_is(self):
		path = self.write('a.js', UNFORMATTED)
		asyncio.run(
			format_files([path], merge_options({'lineBreak': {'value': '\r\n'}}), write=True, progress=False)
		)
		self.assertEqual(path.read_bytes(), b'foo();\r\nbar();\r\n')

	def test_failures_do_not_stop_the_rest(self):
		bad = self.write('bad.js', 'var = ;')
		good = self.write('good.js', UNFORMATTED)
		missing = self.root / 'missing.js'
		results = self._run([bad, good, missing], write=True)
		self.assertEqual(len(results.results), 3)
		failed = {r.path: r.error for r in results.failed}
		self.assertIsInstance(failed[bad], ParseError)
		self.assertIsInstance(failed[missing], OSError)
		self.assertEqual(bad.read_text(), 'var = ;')
		self.assertEqual(good.read_text(), FORMATTED)

	def test_unexpected_engine_failure_is_kept_to_its_file(self):
		def engine(source, options):
			if source == 'deep':
				raise RecursionError('maximum recursion depth exceeded')
			return format(source, options)

		deep = self.write('deep.js', 'deep')
		good = self.write('good.js', UNFORMATTED)
		with mock.patch('es_reformatter.batch.format_js', side_effect=engine):
			results = self._run([deep, good], write=True)
		self.assertEqual(len(results.results), 2)
		self.assertEqual([r.path for r in results.failed], [deep])
		self.assertIsInstance(results.failed[0].error, RecursionError)
		self.assertEqual(deep.read_text(), 'deep')
		self.assertEqual(good.read_text(), FORMATTED)

	def test_many_files(self):
		paths = [self.write(f'{i}.js', UNFORMATTED) for i in range(20)]
		results = self._run(paths, write=True, max_workers=3)
		self.assertEqual(len(results.changed), 20)
		for path in paths:
			self.assertEqual(path.read_text(), FORMATTED)


class TestPaths(TempDirTestCase):
	def test_find_js_files(self):
		a = self.write('a.js', '')
		b = self.write('sub/b.mjs', '')
		self.write('sub/c.txt', '')
		single = self.write('other.cjs', '')
		self.assertEqual(find_js_files([self.root / 'sub', single]), [b, single])
		self.assertIn(a, find_js_files([self.root]))

	def test_get_output_path(self):
		path = Path('src/lib/a.js')
		self.assertEqual(get_output_path(path, write=True), path)
		self.assertIsNone(get_output_path(path))
		self.assertEqual(get_output_path(path, output_dir=Path('out')), Path('out/a.js'))
		self.assertEqual(
			get_output_path(path, output_dir=Path('out'), root_dir=Path('src')), Path('out/lib/a.js')
		)


class TestCommandLine(TempDirTestCase):
	def _main(self, *args):
		stdout = io.StringIO()
		with mock.patch('sys.argv', ['es-reformatter', *args]), contextlib.redirect_stdout(stdout):
			main()
		return stdout.getvalue()

	def test_single_file_to_stdout(self):
		path = self.write('a.js', UNFORMATTED)
		self.assertEqual(self._main(str(path)), FORMATTED)
		self.assertEqual(path.read_text(), UNFORMATTED)

	def test_write_directory(self):
		path = self.write('src/a.js', 'if(a){b();}')
		self._main(str(self.root / 'src'), '--write', '--indent', 'tab')
		self.assertEqual(path.read_text(), 'if (a) {\n\tb();\n}\n')

	def test_check_exits_with_error(self):
		path = self.write('a.js', UNFORMATTED)
		with self.assertRaises(SystemExit) as cm:
			self._main(str(path), '--check')
		self.assertEqual(cm.exception.code, 1)

	def test_parse_error_exits_with_error(self):
		path = self.write('a.js', 'var = ;')
		with self.assertRaises(SystemExit) as cm:
			self._main(str(path), '--write')
		self.assertEqual(cm.exception.code, 1)

	def test_config_file(self):
		config = self.write('options.json', '{"indent": {"value": "  "}, "lineBreak": {"value": "\\r\\n"}}')
		options = get_options(config, None, None)
		self.assertEqual(options.indent.value, '  ')
		self.assertEqual(options.line_break.value, '\r\n')
		options = get_options(config, '\t', 'lf')
		self.assertEqual(options.indent.value, '\t')
		self.assertEqual(options.line_break.value, '\n')
		self.assertTrue(options.indent.is_trigger('IfStatement'))

	def test_parse_indent(self):
		self.assertEqual(parse_indent('2'), '  ')
		self.assertEqual(parse_indent('tab'), '\t')
		self.assertEqual(parse_indent('--'), '--')


if __name__ == '__main__':
	unittest.main()
