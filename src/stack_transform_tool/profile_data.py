# -*- coding: utf-8 -*-
"""
线程数据的通用查询与更新工具

包括实现过滤器（combined/cpp/js）、类采样表的调用栈列重写，以及调用节点路径查找。
"""

from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple
import logging

from .models import Thread, StackTable, RawMarkerTable
from .errors import StackMappingError

logger = logging.getLogger(__name__)

IMPLEMENTATION_FILTERS = ('combined', 'cpp', 'js')

StackConverter = Callable[[Optional[int]], Optional[int]]


def to_valid_implementation_filter(implementation: Optional[str]) -> str:
    """非法的实现过滤器退回 combined"""
    if implementation in IMPLEMENTATION_FILTERS:
        return implementation
    return 'combined'


def _matches_combined(thread: Thread, func_index: int) -> bool:
    return True


def _matches_cpp(thread: Thread, func_index: int) -> bool:
    func_table = thread.func_table
    if func_table.is_js[func_index]:
        return False
    # 原生函数总是关联到加载它的共享库资源；JIT 生成的代码没有资源，名字是裸地址
    location_string = thread.string_table.get_string(func_table.name[func_index])
    is_probably_jit_code = func_table.resource[func_index] == -1 and location_string.startswith('0x')
    return not is_probably_jit_code


def _matches_js(thread: Thread, func_index: int) -> bool:
    return bool(thread.func_table.is_js[func_index] or thread.func_table.relevant_for_js[func_index])


FUNC_MATCHES: Dict[str, Callable[[Thread, int], bool]] = {
    'combined': _matches_combined,
    'cpp': _matches_cpp,
    'js': _matches_js,
}


def func_matches_implementation(implementation: str) -> Callable[[Thread, int], bool]:
    """返回实现过滤器对应的谓词"""
    try:
        return FUNC_MATCHES[implementation]
    except KeyError:
        raise ValueError(f"不支持的实现过滤器: {implementation}。支持: {', '.join(IMPLEMENTATION_FILTERS)}")


def get_map_stack_updater(old_stack_to_new_stack: Dict[Optional[int], Optional[int]]) -> StackConverter:
    """
    根据显式的 old -> new 映射生成调用栈转换函数

    映射中缺少的调用栈属于不变量被破坏，直接抛出 StackMappingError。
    """
    def convert_stack(old_stack: Optional[int]) -> Optional[int]:
        try:
            return old_stack_to_new_stack[old_stack]
        except KeyError:
            raise StackMappingError(old_stack) from None

    return convert_stack


def _convert_stack_column(column: List[Optional[int]], convert_stack: StackConverter) -> List[Optional[int]]:
    return [convert_stack(stack) for stack in column]


def _update_marker_stacks(markers: RawMarkerTable, convert_stack: StackConverter) -> RawMarkerTable:
    """重写 marker payload 中 cause 的调用栈"""
    new_data = []
    changed = False
    for data in markers.data:
        if data and isinstance(data.get('cause'), dict) and 'stack' in data['cause']:
            cause = dict(data['cause'])
            cause['stack'] = convert_stack(cause['stack'])
            new_data.append(dict(data, cause=cause))
            changed = True
        else:
            new_data.append(data)
    if not changed:
        return markers
    return replace(markers, data=new_data)


def update_thread_stacks(thread: Thread, new_stack_table: StackTable,
                         convert_stack: StackConverter) -> Thread:
    """
    用新的调用栈表替换线程的调用栈表，并用 convert_stack 重写所有类采样表的 stack 列

    Args:
        thread: 原线程（不会被修改）
        new_stack_table: 新的调用栈表
        convert_stack: 旧调用栈下标（或 None）到新调用栈下标（或 None）的转换函数

    Returns:
        Thread: 新线程
    """
    samples = replace(thread.samples, stack=_convert_stack_column(thread.samples.stack, convert_stack))

    js_allocations = thread.js_allocations
    if js_allocations is not None:
        js_allocations = replace(
            js_allocations, stack=_convert_stack_column(js_allocations.stack, convert_stack))

    native_allocations = thread.native_allocations
    if native_allocations is not None:
        native_allocations = replace(
            native_allocations, stack=_convert_stack_column(native_allocations.stack, convert_stack))

    return thread.replace(
        stack_table=new_stack_table,
        samples=samples,
        js_allocations=js_allocations,
        native_allocations=native_allocations,
        markers=_update_marker_stacks(thread.markers, convert_stack),
    )


def get_call_node_index_from_path(call_node_path: Sequence[int], call_node_table) -> Optional[int]:
    """
    在调用节点表中查找调用节点路径对应的节点

    调用节点表与调用栈表一样，父节点总是排在子节点之前，因此一次正向扫描即可。

    Returns:
        Optional[int]: 调用节点下标，找不到时返回 None
    """
    path_length = len(call_node_path)
    if path_length == 0:
        return None
    call_node_index = None
    depth = 0
    for index in range(call_node_table.length):
        if call_node_table.prefix[index] == call_node_index and \
                call_node_table.func[index] == call_node_path[depth]:
            depth += 1
            call_node_index = index
            if depth == path_length:
                return call_node_index
    return None


def get_sample_index_to_call_node_index(sample_stacks: Sequence[Optional[int]],
                                        stack_index_to_call_node_index: Sequence[int]) -> List[Optional[int]]:
    return [
        None if stack is None else stack_index_to_call_node_index[stack]
        for stack in sample_stacks
    ]


def get_leaf_func_index(call_node_path: Sequence[int]) -> Optional[int]:
    """路径为空时返回 None"""
    if not call_node_path:
        return None
    return call_node_path[-1]


def get_func_name(thread: Thread, func_index: int) -> str:
    return thread.get_func_name(func_index)


def get_category_index_by_name(categories, name: str, fallback: int = 0) -> int:
    for index, category in enumerate(categories or []):
        if category.name == name:
            return index
    return fallback


def compute_call_node_self_and_summary(samples, sample_index_to_call_node_index: Sequence[Optional[int]],
                                       call_node_count: int) -> Tuple[List[float], float]:
    """
    统计每个调用节点的 self 权重以及全部样本的总权重

    Args:
        samples: 类采样表，提供 get_weight
        sample_index_to_call_node_index: 每个样本对应的调用节点，None 表示没有调用栈
        call_node_count: 调用节点数量

    Returns:
        Tuple[List[float], float]: self 权重列表，以及总权重
    """
    call_node_self = [0.0] * call_node_count
    root_total = 0.0
    for sample_index, call_node_index in enumerate(sample_index_to_call_node_index):
        if call_node_index is None:
            continue
        weight = samples.get_weight(sample_index)
        call_node_self[call_node_index] += weight
        root_total += weight
    return call_node_self, root_total
