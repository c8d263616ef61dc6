"""
命令行接口单元测试
"""

import unittest
import io
import json
import tempfile
import os
from contextlib import redirect_stdout
from pathlib import Path

import sys
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from helpers import build_thread_from_paths, get_sample_paths

from stack_transform_tool.models import Category
from stack_transform_tool.parser import ProfileData, write_profile_file, parse_profile_file
from stack_transform_tool.cli.main import main
from stack_transform_tool.cli.validators import (
    validate_transform_string, parse_output_formats, validate_thread_index, validate_max_depth,
)
from stack_transform_tool.cli.file_utils import parse_file_paths, default_output_path


def run_cli(argv):
    """运行命令行并返回 (退出码, stdout)"""
    output = io.StringIO()
    with redirect_stdout(output):
        exit_code = main(argv)
    return exit_code, output.getvalue()


class TestValidators(unittest.TestCase):
    """测试命令行参数校验"""

    def test_transform_string(self):
        self.assertEqual(validate_transform_string(''), [])
        self.assertEqual(len(validate_transform_string(' mf-1~df-2 ')), 2)
        with self.assertRaises(ValueError):
            validate_transform_string('mf-1~zz-2')

    def test_output_formats(self):
        self.assertEqual(parse_output_formats('json,xlsx'), ['json', 'xlsx'])
        self.assertEqual(parse_output_formats('xlsx'), ['xlsx'])
        for bad in ('', 'csv', 'json,json'):
            with self.assertRaises(ValueError):
                parse_output_formats(bad)

    def test_thread_index_and_depth(self):
        self.assertEqual(validate_thread_index(0, 1), 0)
        with self.assertRaises(ValueError):
            validate_thread_index(1, 1)
        self.assertIsNone(validate_max_depth(None))
        with self.assertRaises(ValueError):
            validate_max_depth(-1)

    def test_default_output_path(self):
        self.assertEqual(default_output_path('data/profile.json.gz', 'out', 'transformed'),
                         Path('out') / 'profile.transformed.json')


class TestCommands(unittest.TestCase):
    """测试 apply / calltree / inspect 命令"""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.work_dir = Path(self.temp_dir.name)
        thread, self.funcs = build_thread_from_paths(
            ['A B C', 'A B', 'A D', 'E'], func_info={'D': {'resource': 'libfoo.so'}})
        profile = ProfileData(
            threads=[thread],
            categories=[Category(name='Idle', color='transparent'), Category(name='Other', color='grey')],
            meta={'interval': 1},
        )
        self.profile_path = self.work_dir / 'profile.json'
        write_profile_file(profile, self.profile_path)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_parse_file_paths(self):
        self.assertEqual(parse_file_paths(str(self.profile_path)), [str(self.profile_path)])
        self.assertEqual(parse_file_paths(str(self.work_dir / '*.json')), [str(self.profile_path)])
        with self.assertRaises(ValueError):
            parse_file_paths(str(self.work_dir / 'missing.json'))

    def test_apply(self):
        output_path = self.work_dir / 'out.json'
        exit_code, _ = run_cli(['apply', str(self.profile_path), '--transforms', 'mf-1~df-4',
                                '--output', str(output_path)])
        self.assertEqual(exit_code, 0)
        profile = parse_profile_file(output_path)
        self.assertEqual(profile.meta['transforms'], 'mf-1~df-4')
        self.assertEqual(profile.meta['interval'], 1)
        self.assertEqual(get_sample_paths(profile.threads[0]), ['A C', 'A', 'A D', None])

    def test_apply_unknown_resource(self):
        output_path = self.work_dir / 'out.json'
        exit_code, _ = run_cli(['apply', str(self.profile_path), '--transforms', 'cr-combined-3-3',
                                '--output', str(output_path)])
        self.assertEqual(exit_code, 0)
        profile = parse_profile_file(output_path)
        self.assertEqual(get_sample_paths(profile.threads[0]), ['A B C', 'A B', 'A D', 'E'])
        self.assertEqual(profile.threads[0].func_table.length, 5)

        exit_code, output = run_cli(['inspect', 'cr-combined-3-3', '--thread', str(self.profile_path)])
        self.assertEqual(exit_code, 0)
        self.assertIn('Collapse: resource 3', output)

    def test_apply_default_output(self):
        exit_code, _ = run_cli(['apply', str(self.profile_path), '--transforms', 'ff-1',
                                '--output-dir', str(self.work_dir / 'results')])
        self.assertEqual(exit_code, 0)
        self.assertTrue((self.work_dir / 'results' / 'profile.transformed.json').exists())

    def test_apply_invalid_input(self):
        exit_code, output = run_cli(['apply', str(self.profile_path), '--transforms', 'zz-1'])
        self.assertEqual(exit_code, 1)
        self.assertIn('错误', output)
        exit_code, _ = run_cli(['apply', str(self.profile_path), '--thread-index', '3'])
        self.assertEqual(exit_code, 1)
        exit_code, _ = run_cli(['apply', str(self.work_dir / 'missing.json')])
        self.assertEqual(exit_code, 1)

    def test_calltree(self):
        output_dir = self.work_dir / 'tree'
        exit_code, output = run_cli([
            'calltree', str(self.profile_path), '--transforms', 'cr-combined-0-5',
            '--output-format', 'json,xlsx', '--output-dir', str(output_dir), '--print-markdown',
        ])
        self.assertEqual(exit_code, 0)
        self.assertIn('| depth | name |', output)
        self.assertTrue((output_dir / 'call_tree_0.xlsx').exists())
        with open(output_dir / 'call_tree_0.json', encoding='utf-8') as f:
            rows = json.load(f)
        self.assertEqual([row['name'].strip() for row in rows], ['A', 'B', 'C', 'libfoo.so', 'E'])
        self.assertEqual(rows[0]['total'], 3)
        self.assertEqual(rows[0]['total_percent'], 75.0)

    def test_calltree_max_depth(self):
        output_dir = self.work_dir / 'tree'
        exit_code, _ = run_cli(['calltree', str(self.profile_path), '--max-depth', '0',
                                '--output-dir', str(output_dir)])
        self.assertEqual(exit_code, 0)
        with open(output_dir / 'call_tree_0.json', encoding='utf-8') as f:
            rows = json.load(f)
        self.assertEqual([row['name'] for row in rows], ['A', 'E'])

    def test_calltree_invalid_format(self):
        exit_code, _ = run_cli(['calltree', str(self.profile_path), '--output-format', 'csv'])
        self.assertEqual(exit_code, 1)

    def test_inspect(self):
        exit_code, output = run_cli(['inspect', 'mf-1~zz-3~cr-js-0-5', '--thread', str(self.profile_path)])
        self.assertEqual(exit_code, 0)
        self.assertIn('规范化: mf-1~cr-js-0-5', output)
        self.assertIn("Complete 'Main'", output)
        self.assertIn('Merge: B', output)
        self.assertIn('Collapse: libfoo.so', output)

    def test_inspect_without_thread(self):
        exit_code, output = run_cli(['inspect', 'f-combined-012-i'])
        self.assertEqual(exit_code, 0)
        self.assertIn('共解析出 1 个 transform', output)

    def test_no_command(self):
        exit_code, _ = run_cli([])
        self.assertEqual(exit_code, 1)


if __name__ == '__main__':
    unittest.main()
