# -*- coding: utf-8 -*-
"""
调用栈表的结构重写 (纯函数实现)

每个 transform 接收一个线程，返回一个新线程：
1. 对旧调用栈表做一次正向扫描（前缀总在子节点之前，所以处理某一行时它的前缀已经处理过）；
2. 维护显式的 old -> new 映射，None -> None 作为初始项；
3. 把需要保留的行写入新的调用栈表；
4. 用映射重写所有类采样表的 stack 列。

旧线程及其表不会被修改。
"""

from typing import Dict, List, Optional, Sequence
import logging

from ..models import Thread
from ..data_structures import StackTableBuilder, shallow_clone_frame_table, shallow_clone_func_table
from ..errors import TransformInvariantError, StackMappingError
from ..profile_data import update_thread_stacks, get_map_stack_updater, func_matches_implementation
from ..utils.time_code import time_code

logger = logging.getLogger(__name__)

StackMap = Dict[Optional[int], Optional[int]]


def _new_stack_map() -> StackMap:
    # 根节点的前缀是 None，新旧表之间保持 None -> None
    return {None: None}


def _mapped_prefix(old_stack_to_new_stack: StackMap, prefix: Optional[int]) -> Optional[int]:
    """前缀一定已经处理过，找不到说明调用栈表的顺序被破坏"""
    try:
        return old_stack_to_new_stack[prefix]
    except KeyError:
        raise StackMappingError(prefix) from None


def focus_subtree(thread: Thread, call_node_path: Sequence[int], implementation: str) -> Thread:
    """
    只保留以调用节点路径开头的调用栈，新的根节点是路径末端函数对应的帧

    不属于实现过滤器的帧在匹配过程中被跳过（不要求与路径匹配）；
    匹配完成之后，路径末端以下的所有帧都原样保留。
    """
    with time_code('focus_subtree'):
        stack_table = thread.stack_table
        frame_table = thread.frame_table
        prefix_depth = len(call_node_path)
        func_matches = func_matches_implementation(implementation)
        # 每个调用栈匹配到的路径深度，-1 表示不匹配
        stack_matches: List[int] = []
        old_stack_to_new_stack = _new_stack_map()
        builder = StackTableBuilder()

        for stack_index in range(stack_table.length):
            prefix = stack_table.prefix[stack_index]
            prefix_matches_up_to = stack_matches[prefix] if prefix is not None else 0
            stack_matches_up_to = -1
            if prefix_matches_up_to != -1:
                frame = stack_table.frame[stack_index]
                if prefix_matches_up_to == prefix_depth:
                    stack_matches_up_to = prefix_depth
                else:
                    func_index = frame_table.func[frame]
                    if func_index == call_node_path[prefix_matches_up_to]:
                        stack_matches_up_to = prefix_matches_up_to + 1
                    elif not func_matches(thread, func_index):
                        stack_matches_up_to = prefix_matches_up_to
                if stack_matches_up_to == prefix_depth:
                    # 路径末端节点的前缀不在新表中，映射为 None，成为新的根
                    new_prefix = old_stack_to_new_stack.get(prefix)
                    old_stack_to_new_stack[stack_index] = builder.add_raw(
                        frame, new_prefix,
                        stack_table.category[stack_index], stack_table.subcategory[stack_index])
            stack_matches.append(stack_matches_up_to)

        def convert_stack(old_stack: Optional[int]) -> Optional[int]:
            if old_stack is None or stack_matches[old_stack] != prefix_depth:
                return None
            new_stack = old_stack_to_new_stack.get(old_stack)
            if new_stack is None:
                raise StackMappingError(old_stack)
            return new_stack

        return update_thread_stacks(thread, builder.finish(), convert_stack)


def focus_inverted_subtree(thread: Thread, postfix_call_node_path: Sequence[int],
                           implementation: str) -> Thread:
    """
    只保留以调用节点路径结尾的调用栈（反转调用树中的聚焦）

    从每个样本的叶子向上查找：依次与路径匹配，路径全部匹配时，样本改为指向匹配到的
    最靠近根的那个调用栈；遇到属于实现过滤器却不匹配的帧则丢弃该样本。
    调用栈表本身不变。空路径与 focus_subtree 一致，保留全部样本。
    """
    if not postfix_call_node_path:
        return thread
    with time_code('focus_inverted_subtree'):
        postfix_depth = len(postfix_call_node_path)
        stack_table = thread.stack_table
        frame_table = thread.frame_table
        func_matches = func_matches_implementation(implementation)

        def convert_leaf(leaf: int) -> Optional[int]:
            matches_up_to_depth = 0  # 从叶子开始计数
            stack = leaf
            while stack is not None:
                func_index = frame_table.func[stack_table.frame[stack]]
                if func_index == postfix_call_node_path[matches_up_to_depth]:
                    matches_up_to_depth += 1
                    if matches_up_to_depth == postfix_depth:
                        return stack
                elif func_matches(thread, func_index):
                    return None
                stack = stack_table.prefix[stack]
            return None

        old_stack_to_new_stack = _new_stack_map()

        def convert_stack(stack_index: Optional[int]) -> Optional[int]:
            if stack_index not in old_stack_to_new_stack:
                old_stack_to_new_stack[stack_index] = convert_leaf(stack_index)
            return old_stack_to_new_stack[stack_index]

        return update_thread_stacks(thread, stack_table, convert_stack)


def focus_function(thread: Thread, func_index_to_focus: int) -> Thread:
    """只保留包含指定函数的调用栈，以该函数的第一次出现作为根"""
    with time_code('focus_function'):
        stack_table = thread.stack_table
        frame_table = thread.frame_table
        old_stack_to_new_stack = _new_stack_map()
        builder = StackTableBuilder()

        for stack_index in range(stack_table.length):
            prefix = stack_table.prefix[stack_index]
            frame = stack_table.frame[stack_index]
            matches_focus_func = frame_table.func[frame] == func_index_to_focus
            new_prefix = _mapped_prefix(old_stack_to_new_stack, prefix)

            if new_prefix is not None or matches_focus_func:
                old_stack_to_new_stack[stack_index] = builder.add_raw(
                    frame, new_prefix,
                    stack_table.category[stack_index], stack_table.subcategory[stack_index])
            else:
                old_stack_to_new_stack[stack_index] = None

        return update_thread_stacks(thread, builder.finish(), get_map_stack_updater(old_stack_to_new_stack))


def merge_call_node(thread: Thread, call_node_path: Sequence[int], implementation: str) -> Thread:
    """
    把调用节点路径末端对应的调用栈合并进它的调用者

    只移除路径末端这一个节点（而不是整棵子树），它的子节点挂到它的父节点上，
    指向它的样本改为指向它的父节点。
    """
    with time_code('merge_call_node'):
        stack_table = thread.stack_table
        frame_table = thread.frame_table
        # 深度从 0 开始
        depth_at_call_node_path_leaf = len(call_node_path) - 1
        old_stack_to_new_stack = _new_stack_map()
        builder = StackTableBuilder()
        stack_depths: List[int] = []
        stack_matches: List[bool] = []
        func_matches = func_matches_implementation(implementation)

        for stack_index in range(stack_table.length):
            prefix = stack_table.prefix[stack_index]
            frame = stack_table.frame[stack_index]
            func_index = frame_table.func[frame]

            does_prefix_match = True if prefix is None else stack_matches[prefix]
            prefix_depth = -1 if prefix is None else stack_depths[prefix]

            do_merge = False
            stack_depth = prefix_depth
            if does_prefix_match and stack_depth < depth_at_call_node_path_leaf:
                if call_node_path[prefix_depth + 1] == func_index:
                    does_match_call_node_path = True
                    if stack_depth + 1 == depth_at_call_node_path_leaf:
                        do_merge = True
                    else:
                        stack_depth += 1
                elif not func_matches(thread, func_index):
                    # 不属于实现过滤器的帧不参与匹配，保留
                    does_match_call_node_path = True
                else:
                    does_match_call_node_path = False
            else:
                does_match_call_node_path = False
            stack_matches.append(does_match_call_node_path)
            stack_depths.append(stack_depth)

            new_prefix = _mapped_prefix(old_stack_to_new_stack, prefix)
            if do_merge:
                old_stack_to_new_stack[stack_index] = new_prefix
            else:
                old_stack_to_new_stack[stack_index] = builder.add_raw(
                    frame, new_prefix,
                    stack_table.category[stack_index], stack_table.subcategory[stack_index])

        return update_thread_stacks(thread, builder.finish(), get_map_stack_updater(old_stack_to_new_stack))


def merge_function(thread: Thread, func_index_to_merge: int) -> Thread:
    """移除所有属于指定函数的调用栈，样本时间合并到调用者"""
    with time_code('merge_function'):
        stack_table = thread.stack_table
        frame_table = thread.frame_table
        old_stack_to_new_stack = _new_stack_map()
        builder = StackTableBuilder()

        for stack_index in range(stack_table.length):
            prefix = stack_table.prefix[stack_index]
            frame = stack_table.frame[stack_index]
            new_prefix = _mapped_prefix(old_stack_to_new_stack, prefix)

            if frame_table.func[frame] == func_index_to_merge:
                old_stack_to_new_stack[stack_index] = new_prefix
            else:
                old_stack_to_new_stack[stack_index] = builder.add_raw(
                    frame, new_prefix,
                    stack_table.category[stack_index], stack_table.subcategory[stack_index])

        return update_thread_stacks(thread, builder.finish(), get_map_stack_updater(old_stack_to_new_stack))


def drop_function(thread: Thread, func_index_to_drop: int) -> Thread:
    """丢弃所有包含指定函数的样本，调用栈表不变"""
    with time_code('drop_function'):
        stack_table = thread.stack_table
        frame_table = thread.frame_table
        stack_contains_func: List[bool] = []
        for stack_index in range(stack_table.length):
            prefix = stack_table.prefix[stack_index]
            func_index = frame_table.func[stack_table.frame[stack_index]]
            stack_contains_func.append(
                func_index == func_index_to_drop
                or (prefix is not None and stack_contains_func[prefix])
            )

        def convert_stack(stack: Optional[int]) -> Optional[int]:
            if stack is not None and stack_contains_func[stack]:
                return None
            return stack

        return update_thread_stacks(thread, stack_table, convert_stack)


def collapse_resource(thread: Thread, resource_index_to_collapse: int, implementation: str,
                      default_category: int) -> Thread:
    """
    把属于同一资源的连续调用栈折叠为一个合成节点

    合成节点使用新增的 func 和 frame，func 以资源名命名；同一父节点下的折叠节点合并为一个，
    合并时分类冲突退回默认分类。
    没有任何函数属于该资源（包括资源下标超出资源表）时，调用栈原样复制。
    """
    with time_code('collapse_resource'):
        stack_table = thread.stack_table
        func_table = thread.func_table
        frame_table = thread.frame_table
        resource_table = thread.resource_table
        if resource_index_to_collapse < 0:
            raise TransformInvariantError(f"资源下标 {resource_index_to_collapse} 不能为负数")
        new_frame_table = shallow_clone_frame_table(frame_table)
        new_func_table = shallow_clone_func_table(func_table)
        builder = StackTableBuilder()
        old_stack_to_new_stack = _new_stack_map()
        # 旧前缀 -> 该前缀下已经创建的折叠节点
        prefix_stack_to_collapsed_stack: Dict[Optional[int], int] = {}
        collapsed_stacks = set()
        func_matches = func_matches_implementation(implementation)
        # 第一次遇到该资源时才创建折叠的 func 和 frame
        collapsed_frame_index = None

        for stack_index in range(stack_table.length):
            prefix = stack_table.prefix[stack_index]
            frame = stack_table.frame[stack_index]
            category = stack_table.category[stack_index]
            subcategory = stack_table.subcategory[stack_index]
            func_index = frame_table.func[frame]
            resource_index = func_table.resource[func_index]
            new_prefix = _mapped_prefix(old_stack_to_new_stack, prefix)

            if resource_index == resource_index_to_collapse:
                if new_prefix in collapsed_stacks:
                    # 前缀已经是折叠节点，直接并入
                    old_stack_to_new_stack[stack_index] = new_prefix
                    continue

                existing_collapsed_stack = prefix_stack_to_collapsed_stack.get(prefix)
                if existing_collapsed_stack is None:
                    if collapsed_frame_index is None:
                        collapsed_frame_index = _add_collapsed_frame_and_func(
                            new_frame_table, new_func_table, frame_table, func_table,
                            frame, func_index, resource_table.name[resource_index_to_collapse])
                    new_stack_index = builder.add_raw(collapsed_frame_index, new_prefix, category, subcategory)
                    collapsed_stacks.add(new_stack_index)
                    prefix_stack_to_collapsed_stack[prefix] = new_stack_index
                    old_stack_to_new_stack[stack_index] = new_stack_index
                else:
                    # 同一层已经有折叠的兄弟节点，复用它
                    old_stack_to_new_stack[stack_index] = existing_collapsed_stack
                    builder.merge_category(existing_collapsed_stack, category, subcategory, default_category)
            else:
                if new_prefix is not None and not func_matches(thread, func_index):
                    prefix_func = new_frame_table.func[builder.get_frame(new_prefix)]
                    if new_func_table.resource[prefix_func] == resource_index_to_collapse:
                        # 不属于实现过滤器的帧夹在资源内部，并入已折叠的前缀
                        old_stack_to_new_stack[stack_index] = new_prefix
                        continue
                old_stack_to_new_stack[stack_index] = builder.add_raw(frame, new_prefix, category, subcategory)

        new_thread = thread.replace(frame_table=new_frame_table, func_table=new_func_table)
        return update_thread_stacks(new_thread, builder.finish(), get_map_stack_updater(old_stack_to_new_stack))


def _add_collapsed_frame_and_func(new_frame_table, new_func_table, frame_table, func_table,
                                  frame: int, func_index: int, resource_name_index: int) -> int:
    """追加折叠用的 func 和 frame，返回新 frame 的下标"""
    collapsed_func_index = new_func_table.length
    new_func_table.name.append(resource_name_index)
    new_func_table.is_js.append(func_table.is_js[func_index])
    new_func_table.relevant_for_js.append(func_table.relevant_for_js[func_index])
    new_func_table.resource.append(func_table.resource[func_index])
    new_func_table.file_name.append(func_table.file_name[func_index])
    new_func_table.line_number.append(None)
    new_func_table.column_number.append(None)
    new_func_table.length += 1

    collapsed_frame_index = new_frame_table.length
    new_frame_table.address.append(frame_table.address[frame])
    new_frame_table.inline_depth.append(frame_table.inline_depth[frame])
    new_frame_table.category.append(frame_table.category[frame])
    new_frame_table.subcategory.append(frame_table.subcategory[frame])
    new_frame_table.func.append(collapsed_func_index)
    new_frame_table.native_symbol.append(frame_table.native_symbol[frame])
    new_frame_table.inner_window_id.append(frame_table.inner_window_id[frame])
    new_frame_table.implementation.append(frame_table.implementation[frame])
    new_frame_table.line.append(frame_table.line[frame])
    new_frame_table.column.append(frame_table.column[frame])
    new_frame_table.optimizations.append(frame_table.optimizations[frame])
    new_frame_table.length += 1
    logger.debug(f"为资源创建折叠函数 {collapsed_func_index}，帧 {collapsed_frame_index}")
    return collapsed_frame_index


def collapse_direct_recursion(thread: Thread, func_to_collapse: int, implementation: str) -> Thread:
    """
    把连续重复出现的同一函数折叠为一次

    连续 N 个匹配的调用栈只保留第一个；夹在中间但不属于实现过滤器的帧不会打断连续性。
    """
    with time_code('collapse_direct_recursion'):
        stack_table = thread.stack_table
        frame_table = thread.frame_table
        old_stack_to_new_stack = _new_stack_map()
        recursive_stacks = set()
        builder = StackTableBuilder()
        func_matches = func_matches_implementation(implementation)

        for stack_index in range(stack_table.length):
            prefix = stack_table.prefix[stack_index]
            frame = stack_table.frame[stack_index]
            func_index = frame_table.func[frame]

            if prefix in recursive_stacks and (
                    func_index == func_to_collapse or not func_matches(thread, func_index)):
                old_stack_to_new_stack[stack_index] = _mapped_prefix(old_stack_to_new_stack, prefix)
                recursive_stacks.add(stack_index)
            else:
                # 不满足折叠条件，或者是连续出现中的第一个
                new_prefix = _mapped_prefix(old_stack_to_new_stack, prefix)
                old_stack_to_new_stack[stack_index] = builder.add_raw(
                    frame, new_prefix,
                    stack_table.category[stack_index], stack_table.subcategory[stack_index])
                if func_index == func_to_collapse:
                    recursive_stacks.add(stack_index)

        return update_thread_stacks(thread, builder.finish(), get_map_stack_updater(old_stack_to_new_stack))


def collapse_function_subtree(thread: Thread, func_to_collapse: int, default_category: int) -> Thread:
    """保留每条路径上该函数第一次出现的调用栈，丢弃它的所有后代，后代的样本归到它身上"""
    with time_code('collapse_function_subtree'):
        stack_table = thread.stack_table
        frame_table = thread.frame_table
        old_stack_to_new_stack = _new_stack_map()
        collapsed_stacks = set()
        builder = StackTableBuilder()

        for stack_index in range(stack_table.length):
            prefix = stack_table.prefix[stack_index]
            category = stack_table.category[stack_index]
            subcategory = stack_table.subcategory[stack_index]
            new_prefix = _mapped_prefix(old_stack_to_new_stack, prefix)

            if prefix in collapsed_stacks:
                # 多个被折叠的调用栈都指向同一个节点，这就是“折叠”
                old_stack_to_new_stack[stack_index] = new_prefix
                collapsed_stacks.add(stack_index)
                builder.merge_category(new_prefix, category, subcategory, default_category)
            else:
                frame = stack_table.frame[stack_index]
                old_stack_to_new_stack[stack_index] = builder.add_raw(frame, new_prefix, category, subcategory)
                if frame_table.func[frame] == func_to_collapse:
                    collapsed_stacks.add(stack_index)

        return update_thread_stacks(thread, builder.finish(), get_map_stack_updater(old_stack_to_new_stack))


def func_has_recursive_call(thread: Thread, implementation: str, func_to_check: int) -> bool:
    """检查调用栈表中是否存在该函数的直接递归"""
    stack_table = thread.stack_table
    frame_table = thread.frame_table
    recursive_stacks = set()
    func_matches = func_matches_implementation(implementation)

    for stack_index in range(stack_table.length):
        prefix = stack_table.prefix[stack_index]
        func_index = frame_table.func[stack_table.frame[stack_index]]
        recursive_prefix = prefix in recursive_stacks

        if func_index == func_to_check:
            if recursive_prefix:
                return True
            recursive_stacks.add(stack_index)
        elif recursive_prefix and not func_matches(thread, func_index):
            recursive_stacks.add(stack_index)
    return False


def func_has_direct_recursive_call(thread: Thread, func_to_check: int) -> bool:
    return func_has_recursive_call(thread, 'combined', func_to_check)
