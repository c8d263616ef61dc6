"""
调用节点路径改写单元测试
"""

import unittest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from helpers import build_thread_from_paths

from stack_transform_tool.models import FuncTable
from stack_transform_tool.call_tree import CallTree
from stack_transform_tool.profile_data import get_leaf_func_index
from stack_transform_tool.transforms import (
    invert_call_node_path, restore_all_functions_in_call_node_path,
    filter_call_node_path_by_implementation, apply_transform, apply_transform_to_call_node_path,
    MergeFunction, CollapseResource, FocusSubtree,
)
from stack_transform_tool.transforms.call_node_path import (
    remove_prefix_path_from_call_node_path,
    start_call_node_path_with_function,
    merge_node_in_call_node_path,
    merge_function_in_call_node_path,
    drop_function_in_call_node_path,
    collapse_resource_in_call_node_path,
    collapse_direct_recursion_in_call_node_path,
    collapse_function_subtree_in_call_node_path,
)


class TestPathRewrites(unittest.TestCase):
    """测试每种 transform 对应的路径改写"""

    def test_focus_subtree(self):
        self.assertEqual(remove_prefix_path_from_call_node_path([0, 1], [0, 1, 2]), [1, 2])
        self.assertEqual(remove_prefix_path_from_call_node_path([0, 1], [0, 1]), [1])
        self.assertEqual(remove_prefix_path_from_call_node_path([0, 1], [0, 2]), [])
        self.assertEqual(remove_prefix_path_from_call_node_path([0, 1, 2], [0, 1]), [])
        self.assertEqual(remove_prefix_path_from_call_node_path([], [0, 1]), [0, 1])

    def test_focus_function(self):
        self.assertEqual(start_call_node_path_with_function(1, [0, 1, 2, 1]), [1, 2, 1])
        self.assertEqual(start_call_node_path_with_function(5, [0, 1]), [])

    def test_merge_call_node(self):
        self.assertEqual(merge_node_in_call_node_path([0, 1], [0, 1, 2]), [0, 2])
        self.assertEqual(merge_node_in_call_node_path([0, 3], [0, 1, 2]), [0, 1, 2])

    def test_merge_function(self):
        self.assertEqual(merge_function_in_call_node_path(1, [0, 1, 2, 1]), [0, 2])

    def test_drop_function(self):
        self.assertEqual(drop_function_in_call_node_path(1, [0, 1, 2]), [])
        self.assertEqual(drop_function_in_call_node_path(3, [0, 1, 2]), [0, 1, 2])

    def test_collapse_resource(self):
        func_table = FuncTable(resource=[-1, 0, 0, -1], length=4)
        self.assertEqual(collapse_resource_in_call_node_path(0, 4, func_table, [0, 1, 2, 3]), [0, 4, 3])
        self.assertEqual(collapse_resource_in_call_node_path(0, 4, func_table, [0, 1, 3, 2]), [0, 4, 3, 4])

    def test_collapse_direct_recursion(self):
        self.assertEqual(collapse_direct_recursion_in_call_node_path(0, [0, 0, 1, 0, 0]), [0, 1, 0])
        self.assertEqual(collapse_direct_recursion_in_call_node_path(0, [1, 1, 0]), [1, 1, 0])

    def test_collapse_function_subtree(self):
        self.assertEqual(collapse_function_subtree_in_call_node_path(1, [0, 1, 2, 1]), [0, 1])
        self.assertEqual(collapse_function_subtree_in_call_node_path(5, [0, 1]), [0, 1])

    def test_leaf_func_index(self):
        self.assertEqual(get_leaf_func_index([3, 1, 4]), 4)
        self.assertIsNone(get_leaf_func_index([]))
        self.assertIsNone(get_leaf_func_index(()))


class TestApplyTransformToPath(unittest.TestCase):
    """测试 apply_transform_to_call_node_path 与 transform 的结果一致"""

    def test_merge_function(self):
        thread, f = build_thread_from_paths(['A B C'])
        transform = MergeFunction(func_index=f['B'])
        path = apply_transform_to_call_node_path([f['A'], f['B'], f['C']], transform, thread)
        self.assertEqual(path, [f['A'], f['C']])

    def test_collapse_resource_uses_transformed_thread(self):
        thread, f = build_thread_from_paths(
            ['A B C'], func_info={'B': {'resource': 'libfoo.so'}, 'C': {'resource': 'libfoo.so'}})
        collapsed_func = thread.func_table.length
        transform = CollapseResource(resource_index=0, collapsed_func_index=collapsed_func)
        new_thread = apply_transform(thread, transform, 0)
        path = apply_transform_to_call_node_path([f['A'], f['B'], f['C']], transform, new_thread)
        self.assertEqual(path, [f['A'], collapsed_func])
        # 已经折叠过的路径保持不变
        self.assertEqual(
            apply_transform_to_call_node_path(path, transform, new_thread), [f['A'], collapsed_func])

    def test_focus_subtree(self):
        thread, f = build_thread_from_paths(['A B C'])
        transform = FocusSubtree(call_node_path=[f['A'], f['B']])
        path = apply_transform_to_call_node_path([f['A'], f['B'], f['C']], transform, thread)
        self.assertEqual(path, [f['B'], f['C']])


class TestInvertCallNodePath(unittest.TestCase):
    """测试调用节点路径反转"""

    def setUp(self):
        self.thread, self.funcs = build_thread_from_paths(['A B C', 'A B C', 'A B D', 'A E'])
        self.call_tree = CallTree.from_thread(self.thread)
        self.call_node_table = self.call_tree.call_node_table

    def test_follow_heaviest_child(self):
        f = self.funcs
        inverted = invert_call_node_path([f['A'], f['B']], self.call_tree, self.call_node_table)
        self.assertEqual(inverted, [f['C'], f['B'], f['A']])
        inverted = invert_call_node_path([f['A']], self.call_tree, self.call_node_table)
        self.assertEqual(inverted, [f['C'], f['B'], f['A']])

    def test_leaf_path(self):
        f = self.funcs
        inverted = invert_call_node_path([f['A'], f['E']], self.call_tree, self.call_node_table)
        self.assertEqual(inverted, [f['E'], f['A']])

    def test_unknown_path(self):
        f = self.funcs
        self.assertEqual(invert_call_node_path([f['B']], self.call_tree, self.call_node_table), [])
        self.assertEqual(invert_call_node_path([], self.call_tree, self.call_node_table), [])


class TestImplementationFilterPaths(unittest.TestCase):
    """测试按实现过滤路径以及还原"""

    def setUp(self):
        func_info = {
            'A': {'is_js': True},
            'B': {'is_js': True},
            'C': {'is_js': True},
            'X': {'resource': 'libxul.so'},
            '0x7f00': {},
        }
        self.thread, self.funcs = build_thread_from_paths(['A X B C', 'A 0x7f00 B'], func_info=func_info)

    def test_filter_by_implementation(self):
        f = self.funcs
        path = [f['A'], f['X'], f['B'], f['C']]
        self.assertEqual(filter_call_node_path_by_implementation(self.thread, 'js', path),
                         [f['A'], f['B'], f['C']])
        self.assertEqual(filter_call_node_path_by_implementation(self.thread, 'cpp', path), [f['X']])
        self.assertEqual(filter_call_node_path_by_implementation(self.thread, 'combined', path), path)

    def test_jit_address_is_not_cpp(self):
        f = self.funcs
        path = [f['A'], f['0x7f00'], f['B']]
        self.assertEqual(filter_call_node_path_by_implementation(self.thread, 'cpp', path), [])

    def test_restore_all_functions(self):
        f = self.funcs
        restored = restore_all_functions_in_call_node_path(self.thread, 'js', [f['A'], f['B'], f['C']])
        self.assertEqual(restored, [f['A'], f['X'], f['B'], f['C']])

    def test_restore_missing_path(self):
        f = self.funcs
        self.assertEqual(restore_all_functions_in_call_node_path(self.thread, 'js', [f['B'], f['A']]), [])

    def test_unknown_filter(self):
        with self.assertRaises(ValueError):
            filter_call_node_path_by_implementation(self.thread, 'rust', [0])


if __name__ == '__main__':
    unittest.main()
