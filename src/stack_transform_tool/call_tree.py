# -*- coding: utf-8 -*-
"""
调用树

把调用栈按函数路径合并为调用节点，并统计每个调用节点的 self/total 权重。
transform 只通过 get_children 这个窄接口使用调用树。
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple, Any
import logging

from .models import Thread
from .profile_data import get_sample_index_to_call_node_index, compute_call_node_self_and_summary

logger = logging.getLogger(__name__)


@dataclass
class CallNodeTable:
    """调用节点表，父节点总是排在子节点之前"""
    prefix: List[Optional[int]] = field(default_factory=list)
    func: List[int] = field(default_factory=list)
    category: List[int] = field(default_factory=list)
    subcategory: List[int] = field(default_factory=list)
    depth: List[int] = field(default_factory=list)
    length: int = 0


def compute_call_node_table(thread: Thread, default_category: int = 0) -> Tuple[CallNodeTable, List[int]]:
    """
    计算调用节点表

    Args:
        thread: 线程
        default_category: 合并的调用栈分类冲突时使用的默认分类

    Returns:
        Tuple[CallNodeTable, List[int]]: 调用节点表，以及调用栈下标到调用节点下标的映射
    """
    stack_table = thread.stack_table
    frame_table = thread.frame_table
    call_node_table = CallNodeTable()
    stack_index_to_call_node_index: List[int] = []
    # (prefix 调用节点, func) -> 调用节点
    func_to_call_node: Dict[Tuple[Optional[int], int], int] = {}

    for stack_index in range(stack_table.length):
        prefix_stack = stack_table.prefix[stack_index]
        prefix_call_node = None if prefix_stack is None else stack_index_to_call_node_index[prefix_stack]
        func_index = frame_table.func[stack_table.frame[stack_index]]
        category = stack_table.category[stack_index]
        subcategory = stack_table.subcategory[stack_index]

        call_node_index = func_to_call_node.get((prefix_call_node, func_index))
        if call_node_index is None:
            call_node_index = call_node_table.length
            call_node_table.prefix.append(prefix_call_node)
            call_node_table.func.append(func_index)
            call_node_table.category.append(category)
            call_node_table.subcategory.append(subcategory)
            call_node_table.depth.append(
                0 if prefix_call_node is None else call_node_table.depth[prefix_call_node] + 1)
            call_node_table.length += 1
            func_to_call_node[(prefix_call_node, func_index)] = call_node_index
        elif call_node_table.category[call_node_index] != category:
            call_node_table.category[call_node_index] = default_category
            call_node_table.subcategory[call_node_index] = 0
        elif call_node_table.subcategory[call_node_index] != subcategory:
            call_node_table.subcategory[call_node_index] = 0

        stack_index_to_call_node_index.append(call_node_index)

    return call_node_table, stack_index_to_call_node_index


class CallTree:
    """调用树，子节点按 total 权重从大到小排序"""

    def __init__(self, thread: Thread, call_node_table: CallNodeTable,
                 stack_index_to_call_node_index: List[int]):
        self.thread = thread
        self.call_node_table = call_node_table
        self._children: Optional[List[List[int]]] = None
        self._roots: List[int] = []

        sample_call_nodes = get_sample_index_to_call_node_index(thread.samples.stack, stack_index_to_call_node_index)
        self._self_weight, self.root_total = compute_call_node_self_and_summary(
            thread.samples, sample_call_nodes, call_node_table.length)

        # 子节点总在父节点之后，倒序累加即可得到 total
        self._total_weight = list(self._self_weight)
        for call_node_index in range(call_node_table.length - 1, -1, -1):
            prefix = call_node_table.prefix[call_node_index]
            if prefix is not None:
                self._total_weight[prefix] += self._total_weight[call_node_index]

    @classmethod
    def from_thread(cls, thread: Thread, default_category: int = 0) -> 'CallTree':
        call_node_table, stack_index_to_call_node_index = compute_call_node_table(thread, default_category)
        return cls(thread, call_node_table, stack_index_to_call_node_index)

    def _ensure_children(self):
        if self._children is not None:
            return
        children: List[List[int]] = [[] for _ in range(self.call_node_table.length)]
        roots = []
        for call_node_index in range(self.call_node_table.length):
            # 没有任何样本的节点不出现在调用树中
            if self._total_weight[call_node_index] == 0:
                continue
            prefix = self.call_node_table.prefix[call_node_index]
            if prefix is None:
                roots.append(call_node_index)
            else:
                children[prefix].append(call_node_index)

        def sort_key(index):
            return -self._total_weight[index], index

        for child_list in children:
            child_list.sort(key=sort_key)
        roots.sort(key=sort_key)
        self._children = children
        self._roots = roots

    def get_roots(self) -> List[int]:
        self._ensure_children()
        return list(self._roots)

    def get_children(self, call_node_index: int) -> List[int]:
        """返回子节点下标列表，最重的在前"""
        self._ensure_children()
        return list(self._children[call_node_index])

    def get_self_weight(self, call_node_index: int) -> float:
        return self._self_weight[call_node_index]

    def get_total_weight(self, call_node_index: int) -> float:
        return self._total_weight[call_node_index]

    def get_call_node_path(self, call_node_index: int) -> List[int]:
        path = []
        current = call_node_index
        while current is not None:
            path.append(self.call_node_table.func[current])
            current = self.call_node_table.prefix[current]
        return list(reversed(path))

    def get_node_data(self, call_node_index: int) -> Dict[str, Any]:
        total = self._total_weight[call_node_index]
        return {
            'name': self.thread.get_func_name(self.call_node_table.func[call_node_index]),
            'depth': self.call_node_table.depth[call_node_index],
            'self': self._self_weight[call_node_index],
            'total': total,
            'total_ratio': total / self.root_total if self.root_total else 0.0,
        }

    def iter_rows(self, max_depth: Optional[int] = None) -> Iterator[Dict[str, Any]]:
        """按深度优先、最重优先的顺序输出每个调用节点的数据"""
        stack = list(reversed(self.get_roots()))
        while stack:
            call_node_index = stack.pop()
            row = self.get_node_data(call_node_index)
            row['call_node_path'] = self.get_call_node_path(call_node_index)
            yield row
            if max_depth is not None and row['depth'] >= max_depth:
                continue
            stack.extend(reversed(self.get_children(call_node_index)))
