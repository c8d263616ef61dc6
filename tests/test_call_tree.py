"""
调用树单元测试
"""

import unittest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from helpers import build_thread_from_paths, format_call_tree

from stack_transform_tool.call_tree import CallTree, compute_call_node_table
from stack_transform_tool.presenter import build_call_tree_rows
from stack_transform_tool.profile_data import get_call_node_index_from_path, compute_call_node_self_and_summary
from stack_transform_tool.transforms import merge_call_node


class TestCallNodeTable(unittest.TestCase):
    """测试调用节点表"""

    def test_same_func_path_shares_call_node(self):
        thread, f = build_thread_from_paths(['A B C', 'A C'])
        # 合并后 "A C" 出现在两个不同的调用栈上
        merged = merge_call_node(thread, [f['A'], f['B']], 'combined')
        self.assertEqual(merged.stack_table.length, 3)
        call_node_table, stack_to_call_node = compute_call_node_table(merged)
        self.assertEqual(call_node_table.length, 2)
        self.assertEqual(stack_to_call_node, [0, 1, 1])
        self.assertEqual(call_node_table.depth, [0, 1])

    def test_category_conflict(self):
        # C 没有自己的分类：一个继承自 B（2），一个继承自 A（默认分类 0）
        thread, f = build_thread_from_paths(['A B C', 'A C'], func_info={'B': {'category': 2}})
        merged = merge_call_node(thread, [f['A'], f['B']], 'combined')
        self.assertEqual([merged.stack_table.category[i] for i in (1, 2)], [2, 0])
        call_node_table, _ = compute_call_node_table(merged, default_category=5)
        self.assertEqual(call_node_table.category[1], 5)
        self.assertEqual(call_node_table.subcategory[1], 0)

    def test_find_call_node_by_path(self):
        thread, f = build_thread_from_paths(['A B C', 'A D'])
        call_node_table, _ = compute_call_node_table(thread)
        self.assertEqual(get_call_node_index_from_path([f['A'], f['D']], call_node_table), 3)
        self.assertIsNone(get_call_node_index_from_path([f['D']], call_node_table))
        self.assertIsNone(get_call_node_index_from_path([], call_node_table))


class TestCallTree(unittest.TestCase):
    """测试调用树的权重和排序"""

    def setUp(self):
        self.thread, self.funcs = build_thread_from_paths(
            ['A B', 'A C', 'A C', 'A', 'D'], weights=[1, 2, 3, 4, 0])
        self.call_tree = CallTree.from_thread(self.thread)

    def test_weights(self):
        roots = self.call_tree.get_roots()
        self.assertEqual(len(roots), 1)
        root = roots[0]
        self.assertEqual(self.call_tree.get_self_weight(root), 4)
        self.assertEqual(self.call_tree.get_total_weight(root), 10)
        self.assertEqual(self.call_tree.root_total, 10)

    def test_children_heaviest_first(self):
        root = self.call_tree.get_roots()[0]
        children = self.call_tree.get_children(root)
        names = [self.call_tree.get_node_data(child)['name'] for child in children]
        self.assertEqual(names, ['C', 'B'])

    def test_format(self):
        self.assertEqual(format_call_tree(self.thread), [
            'A (10)',
            '  C (5)',
            '  B (1)',
        ])

    def test_rows(self):
        rows = build_call_tree_rows(self.call_tree)
        self.assertEqual([row['name'] for row in rows], ['A', '  C', '  B'])
        self.assertEqual(rows[1]['total_percent'], 50.0)
        self.assertEqual(rows[1]['call_node_path'], f"{self.funcs['A']},{self.funcs['C']}")

        rows = build_call_tree_rows(self.call_tree, max_depth=0)
        self.assertEqual(len(rows), 1)

    def test_self_and_summary(self):
        call_node_self, root_total = compute_call_node_self_and_summary(
            self.thread.samples, [0, 2, 2, 0, None], 3)
        self.assertEqual(call_node_self, [5, 0, 5])
        self.assertEqual(root_total, 10)

    def test_unweighted_samples(self):
        thread, _ = build_thread_from_paths(['A B', 'A B', None])
        call_tree = CallTree.from_thread(thread)
        root = call_tree.get_roots()[0]
        self.assertEqual(call_tree.get_total_weight(root), 2)


if __name__ == '__main__':
    unittest.main()
