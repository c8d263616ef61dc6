"""
字符串表与调用栈表构建器单元测试
"""

import unittest

from stack_transform_tool.models import FrameTable, FuncTable
from stack_transform_tool.string_table import UniqueStringArray
from stack_transform_tool.data_structures import (
    StackTableBuilder, build_stack_table, compute_stack_table_from_paths,
    shallow_clone_func_table,
)


class TestUniqueStringArray(unittest.TestCase):
    """测试 UniqueStringArray 类"""

    def test_index_for_string(self):
        strings = UniqueStringArray(['foo', 'bar'])
        self.assertEqual(strings.index_for_string('bar'), 1)
        self.assertEqual(strings.index_for_string('baz'), 2)
        self.assertEqual(strings.index_for_string('baz'), 2)
        self.assertEqual(len(strings), 3)
        self.assertEqual(strings.serialize(), ['foo', 'bar', 'baz'])

    def test_get_string(self):
        strings = UniqueStringArray(['foo'])
        self.assertEqual(strings.get_string(0), 'foo')
        self.assertTrue(strings.has_string('foo'))
        self.assertFalse(strings.has_string('bar'))
        with self.assertRaises(IndexError):
            strings.get_string(1)
        with self.assertRaises(IndexError):
            strings.get_string(-1)

    def test_duplicates_in_input(self):
        strings = UniqueStringArray(['a', 'b', 'a'])
        self.assertEqual(len(strings), 3)
        self.assertEqual(strings.index_for_string('a'), 0)
        self.assertEqual(strings.get_string(2), 'a')


def _frame_table(categories, subcategories):
    return FrameTable(
        category=list(categories),
        subcategory=list(subcategories),
        func=list(range(len(categories))),
        length=len(categories),
    )


class TestStackTableBuilder(unittest.TestCase):
    """测试调用栈表构建器"""

    def setUp(self):
        self.frame_table = _frame_table([None, 2, None, 3], [None, 1, None, None])

    def test_category_inheritance(self):
        stack_table = build_stack_table(
            self.frame_table, [(0, None), (1, 0), (2, 1), (2, None), (3, 3)], default_category=5)
        self.assertEqual(stack_table.category, [5, 2, 2, 5, 3])
        self.assertEqual(stack_table.subcategory, [0, 1, 1, 0, 0])
        self.assertEqual(stack_table.prefix, [None, 0, 1, None, 3])
        self.assertEqual(stack_table.length, 5)

    def test_prefix_must_exist(self):
        builder = StackTableBuilder(self.frame_table)
        with self.assertRaises(ValueError):
            builder.add_raw(0, 0, 0, 0)
        builder.add_raw(0, None, 0, 0)
        with self.assertRaises(ValueError):
            builder.add_stack(1, 1)

    def test_frozen_after_finish(self):
        builder = StackTableBuilder(self.frame_table)
        stack = builder.add_stack(0, None)
        stack_table = builder.finish()
        self.assertEqual(stack_table.length, 1)
        with self.assertRaises(RuntimeError):
            builder.add_raw(0, stack, 0, 0)
        with self.assertRaises(RuntimeError):
            builder.set_category(stack, 1, 0)
        with self.assertRaises(RuntimeError):
            builder.finish()

    def test_add_stack_requires_frame_table(self):
        with self.assertRaises(ValueError):
            StackTableBuilder().add_stack(0, None)

    def test_get_or_add_stack(self):
        builder = StackTableBuilder(self.frame_table)
        root = builder.get_or_add_stack(0, None)
        child = builder.get_or_add_stack(1, root)
        self.assertEqual(builder.get_or_add_stack(1, root), child)
        self.assertEqual(builder.find(1, root), child)
        self.assertIsNone(builder.find(2, root))
        self.assertEqual(builder.length, 2)

    def test_merge_category(self):
        builder = StackTableBuilder(self.frame_table)
        stack = builder.add_raw(0, None, 2, 1)
        builder.merge_category(stack, 2, 1, default_category=9)
        self.assertEqual((builder.get_category(stack), builder.get_subcategory(stack)), (2, 1))
        builder.merge_category(stack, 2, 3, default_category=9)
        self.assertEqual((builder.get_category(stack), builder.get_subcategory(stack)), (2, 0))
        builder.merge_category(stack, 4, 0, default_category=9)
        self.assertEqual((builder.get_category(stack), builder.get_subcategory(stack)), (9, 0))

    def test_compute_from_paths(self):
        stack_table, leaf_stacks = compute_stack_table_from_paths(
            self.frame_table, [[0, 1], [0, 1, 2], [], [0, 3]])
        self.assertEqual(stack_table.length, 4)
        self.assertEqual(leaf_stacks, [1, 2, None, 3])
        self.assertEqual(stack_table.prefix, [None, 0, 1, 0])


class TestTableHelpers(unittest.TestCase):
    """测试表的浅拷贝和导出"""

    def test_shallow_clone(self):
        func_table = FuncTable()
        func_table.name.append(0)
        func_table.is_js.append(False)
        func_table.relevant_for_js.append(False)
        func_table.resource.append(-1)
        func_table.file_name.append(None)
        func_table.line_number.append(None)
        func_table.column_number.append(None)
        func_table.length = 1
        clone = shallow_clone_func_table(func_table)
        clone.name.append(1)
        clone.length += 1
        self.assertEqual(func_table.name, [0])
        self.assertEqual(func_table.length, 1)

    def test_to_dataframe_and_length_check(self):
        stack_table = build_stack_table(_frame_table([1], [0]), [(0, None), (0, 0)])
        df = stack_table.to_dataframe()
        self.assertEqual(list(df.columns), ['frame', 'category', 'subcategory', 'prefix'])
        self.assertEqual(len(df), 2)
        stack_table.length = 3
        with self.assertRaises(ValueError):
            stack_table.check_length()


if __name__ == '__main__':
    unittest.main()
