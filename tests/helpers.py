"""
测试用的线程构造工具

用文本形式的调用栈构造线程，例如 ["A B C", "A D"] 表示两个样本，
每个名字对应一个 func（同时对应一个 frame，frame 下标与 func 下标相同）。
"""

from stack_transform_tool.models import (
    Thread, FrameTable, FuncTable, ResourceTable, SamplesTable, RESOURCE_TYPE_LIBRARY,
)
from stack_transform_tool.string_table import UniqueStringArray
from stack_transform_tool.data_structures import compute_stack_table_from_paths
from stack_transform_tool.call_tree import CallTree


def build_thread_from_paths(paths, func_info=None, weights=None, default_category=0, name='Main'):
    """
    根据文本调用栈构造线程

    Args:
        paths: 每个样本一条路径，路径是空格分隔的函数名字符串或名字列表；None 表示样本没有调用栈
        func_info: {函数名: {'resource': 资源名, 'is_js': bool, 'relevant_for_js': bool,
                    'category': int, 'subcategory': int}}
        weights: 每个样本的权重，None 表示每个样本权重为 1
        default_category: 根节点没有分类时使用的分类

    Returns:
        Tuple[Thread, Dict[str, int]]: 线程，以及函数名到 func 下标的映射
    """
    func_info = func_info or {}
    string_table = UniqueStringArray()
    func_table = FuncTable()
    frame_table = FrameTable()
    resource_table = ResourceTable()
    func_indexes = {}
    resource_indexes = {}

    def get_resource(resource_name):
        if resource_name not in resource_indexes:
            resource_indexes[resource_name] = resource_table.length
            resource_table.lib.append(None)
            resource_table.name.append(string_table.index_for_string(resource_name))
            resource_table.host.append(None)
            resource_table.type.append(RESOURCE_TYPE_LIBRARY)
            resource_table.length += 1
        return resource_indexes[resource_name]

    def get_func(func_name):
        if func_name in func_indexes:
            return func_indexes[func_name]
        info = func_info.get(func_name, {})
        resource = get_resource(info['resource']) if 'resource' in info else -1
        func_index = func_table.length
        func_table.name.append(string_table.index_for_string(func_name))
        func_table.is_js.append(info.get('is_js', False))
        func_table.relevant_for_js.append(info.get('relevant_for_js', False))
        func_table.resource.append(resource)
        func_table.file_name.append(None)
        func_table.line_number.append(None)
        func_table.column_number.append(None)
        func_table.length += 1

        frame_table.address.append(-1)
        frame_table.inline_depth.append(0)
        frame_table.category.append(info.get('category'))
        frame_table.subcategory.append(info.get('subcategory'))
        frame_table.func.append(func_index)
        frame_table.native_symbol.append(None)
        frame_table.inner_window_id.append(None)
        frame_table.implementation.append(None)
        frame_table.line.append(None)
        frame_table.column.append(None)
        frame_table.optimizations.append(None)
        frame_table.length += 1

        func_indexes[func_name] = func_index
        return func_index

    frame_paths = []
    for path in paths:
        if path is None:
            frame_paths.append([])
            continue
        names = path.split() if isinstance(path, str) else path
        frame_paths.append([get_func(func_name) for func_name in names])

    stack_table, leaf_stacks = compute_stack_table_from_paths(frame_table, frame_paths, default_category)
    samples = SamplesTable(
        stack=leaf_stacks,
        time=[float(i) for i in range(len(leaf_stacks))],
        weight=list(weights) if weights is not None else None,
        length=len(leaf_stacks),
    )
    thread = Thread(
        name=name,
        pid=1,
        stack_table=stack_table,
        frame_table=frame_table,
        func_table=func_table,
        resource_table=resource_table,
        string_table=string_table,
        samples=samples,
    )
    return thread, func_indexes


def get_stack_path(thread, stack_index):
    """调用栈对应的函数名路径，空格分隔"""
    names = []
    while stack_index is not None:
        names.append(thread.get_func_name(thread.get_stack_func(stack_index)))
        stack_index = thread.stack_table.prefix[stack_index]
    return ' '.join(reversed(names))


def get_sample_paths(thread):
    return [None if stack is None else get_stack_path(thread, stack) for stack in thread.samples.stack]


def format_call_tree(thread, default_category=0):
    """把调用树格式化为缩进文本行，便于断言"""
    call_tree = CallTree.from_thread(thread, default_category)
    return [
        '  ' * row['depth'] + f"{row['name']} ({row['total']:g})"
        for row in call_tree.iter_rows()
    ]
