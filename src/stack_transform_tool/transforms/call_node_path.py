# -*- coding: utf-8 -*-
"""
调用节点路径的重写

调用节点路径是从根到某个节点的函数下标序列，与具体的调用栈表无关。
每个 transform 都有一个对应的纯函数，把任意调用节点路径按照同样的语义改写，
这样 UI 中已经选中的调用节点可以在新的 transform 应用之后继续保留。
"""

from typing import List, Optional, Sequence
import logging

from ..models import Thread, FuncTable
from ..profile_data import func_matches_implementation, get_call_node_index_from_path

logger = logging.getLogger(__name__)

CallNodePath = List[int]


def _call_node_path_has_prefix_path(prefix_path: Sequence[int], call_node_path: Sequence[int]) -> bool:
    return (
        len(prefix_path) <= len(call_node_path)
        and all(prefix_func == call_node_path[i] for i, prefix_func in enumerate(prefix_path))
    )


def remove_prefix_path_from_call_node_path(prefix_path: Sequence[int],
                                           call_node_path: Sequence[int]) -> CallNodePath:
    """focus-subtree：去掉匹配的前缀，保留前缀末端函数作为新的根"""
    if not prefix_path:
        return list(call_node_path)
    if _call_node_path_has_prefix_path(prefix_path, call_node_path):
        return list(call_node_path[len(prefix_path) - 1:])
    return []


def start_call_node_path_with_function(func_index: int, call_node_path: Sequence[int]) -> CallNodePath:
    """focus-function：从函数第一次出现的位置开始"""
    if func_index not in call_node_path:
        return []
    return list(call_node_path[list(call_node_path).index(func_index):])


def merge_node_in_call_node_path(prefix_path: Sequence[int], call_node_path: Sequence[int]) -> CallNodePath:
    """merge-call-node：移除前缀路径末端对应的那一个函数"""
    if not _call_node_path_has_prefix_path(prefix_path, call_node_path):
        return list(call_node_path)
    merged_depth = len(prefix_path) - 1
    return [func for i, func in enumerate(call_node_path) if i != merged_depth]


def merge_function_in_call_node_path(func_index: int, call_node_path: Sequence[int]) -> CallNodePath:
    return [func for func in call_node_path if func != func_index]


def drop_function_in_call_node_path(func_index: int, call_node_path: Sequence[int]) -> CallNodePath:
    """路径中包含被丢弃的函数时整条路径变为空"""
    if func_index in call_node_path:
        return []
    return list(call_node_path)


def collapse_resource_in_call_node_path(resource_index: int, collapsed_func_index: int,
                                        func_table: FuncTable,
                                        call_node_path: Sequence[int]) -> CallNodePath:
    """属于该资源的函数替换为折叠函数，并去掉连续重复的折叠函数"""
    new_path: CallNodePath = []
    for func in call_node_path:
        if func < func_table.length and func_table.resource[func] == resource_index:
            func = collapsed_func_index
        if func == collapsed_func_index and new_path and new_path[-1] == collapsed_func_index:
            continue
        new_path.append(func)
    return new_path


def collapse_direct_recursion_in_call_node_path(func_index: int,
                                                call_node_path: Sequence[int]) -> CallNodePath:
    new_path: CallNodePath = []
    previous_func = None
    for func in call_node_path:
        if func != func_index or func != previous_func:
            new_path.append(func)
        previous_func = func
    return new_path


def collapse_function_subtree_in_call_node_path(func_index: int,
                                                call_node_path: Sequence[int]) -> CallNodePath:
    if func_index not in call_node_path:
        return list(call_node_path)
    return list(call_node_path[:list(call_node_path).index(func_index) + 1])


def invert_call_node_path(path: Sequence[int], call_tree, call_node_table) -> CallNodePath:
    """
    利用调用树反转调用节点路径

    从路径对应的节点出发，每一层都走最重的子节点，直到叶子，然后从叶子一直回溯到根。
    这样得到的是非反转调用树里最重的分支，不保证是反转调用树中最重的路径，但足够好用。
    对反转路径 + 反转调用树调用则得到非反转路径。

    Args:
        path: 调用节点路径
        call_tree: 提供 get_children(node) 的调用树，子节点最重的在前
        call_node_table: 调用节点表

    Returns:
        CallNodePath: 反转后的路径，找不到节点时为空
    """
    call_node_index = get_call_node_index_from_path(path, call_node_table)
    if call_node_index is None:
        return []
    children = call_tree.get_children(call_node_index)
    while children:
        call_node_index = children[0]
        children = call_tree.get_children(call_node_index)
    inverted_path = []
    while call_node_index is not None:
        inverted_path.append(call_node_table.func[call_node_index])
        call_node_index = call_node_table.prefix[call_node_index]
    return inverted_path


def restore_all_functions_in_call_node_path(thread: Thread, previous_implementation_filter: str,
                                            call_node_path: Sequence[int]) -> CallNodePath:
    """
    把按实现过滤过的调用节点路径还原为包含全部函数的路径

    可能有多条正确的还原结果，这里只取调用栈表中第一个匹配的调用栈。
    """
    stack_table = thread.stack_table
    frame_table = thread.frame_table
    func_matches = func_matches_implementation(previous_implementation_filter)
    # None 表示不匹配，否则是匹配到的路径深度（包含）
    matches_up_to_depth: List[Optional[int]] = []
    tip_stack_index = None

    for stack_index in range(stack_table.length):
        prefix = stack_table.prefix[stack_index]
        func_index = frame_table.func[stack_table.frame[stack_index]]
        prefix_path_depth = -1 if prefix is None else matches_up_to_depth[prefix]

        if prefix_path_depth is None:
            matches_up_to_depth.append(None)
            continue

        path_depth = prefix_path_depth + 1
        if path_depth < len(call_node_path) and call_node_path[path_depth] == func_index:
            matches_up_to_depth.append(path_depth)
            if path_depth == len(call_node_path) - 1:
                tip_stack_index = stack_index
                break
        elif not func_matches(thread, func_index):
            # 不属于之前的实现过滤器，继续向下查找
            matches_up_to_depth.append(prefix_path_depth)
        else:
            matches_up_to_depth.append(None)

    if tip_stack_index is None:
        return []
    new_call_node_path = []
    stack_index = tip_stack_index
    while stack_index is not None:
        new_call_node_path.append(frame_table.func[stack_table.frame[stack_index]])
        stack_index = stack_table.prefix[stack_index]
    return list(reversed(new_call_node_path))


def filter_call_node_path_by_implementation(thread: Thread, implementation_filter: str,
                                            call_node_path: Sequence[int]) -> CallNodePath:
    func_matches = func_matches_implementation(implementation_filter)
    return [func for func in call_node_path if func_matches(thread, func)]
