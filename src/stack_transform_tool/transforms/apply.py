# -*- coding: utf-8 -*-
"""
Transform 的统一分发入口

APPLIERS / PATH_REWRITERS / LABEL_NAMES 都按 TransformType 建表，
并在导入时检查是否覆盖了全部类型，新增 transform 类型时每个分发点都必须同步更新。
"""

from typing import Callable, Dict, List, Sequence
import logging

from ..models import Thread
from ..profile_data import get_func_name, get_leaf_func_index
from .models import (
    TransformType, Transform, TransformStack, assert_exhaustive, assert_exhaustive_check,
    CollapseResource,
)
from . import stack_transforms
from . import call_node_path as path_rewrites

logger = logging.getLogger(__name__)


def _apply_focus_subtree(thread, transform, default_category):
    if transform.inverted:
        return stack_transforms.focus_inverted_subtree(
            thread, transform.call_node_path, transform.implementation)
    return stack_transforms.focus_subtree(thread, transform.call_node_path, transform.implementation)


APPLIERS: Dict[TransformType, Callable[[Thread, Transform, int], Thread]] = {
    TransformType.FOCUS_SUBTREE: _apply_focus_subtree,
    TransformType.FOCUS_FUNCTION: lambda thread, t, default_category: stack_transforms.focus_function(
        thread, t.func_index),
    TransformType.MERGE_CALL_NODE: lambda thread, t, default_category: stack_transforms.merge_call_node(
        thread, t.call_node_path, t.implementation),
    TransformType.MERGE_FUNCTION: lambda thread, t, default_category: stack_transforms.merge_function(
        thread, t.func_index),
    TransformType.DROP_FUNCTION: lambda thread, t, default_category: stack_transforms.drop_function(
        thread, t.func_index),
    TransformType.COLLAPSE_RESOURCE: lambda thread, t, default_category: stack_transforms.collapse_resource(
        thread, t.resource_index, t.implementation, default_category),
    TransformType.COLLAPSE_DIRECT_RECURSION: lambda thread, t, default_category: (
        stack_transforms.collapse_direct_recursion(thread, t.func_index, t.implementation)),
    TransformType.COLLAPSE_FUNCTION_SUBTREE: lambda thread, t, default_category: (
        stack_transforms.collapse_function_subtree(thread, t.func_index, default_category)),
}
assert_exhaustive(APPLIERS, 'APPLIERS')


PATH_REWRITERS: Dict[TransformType, Callable[[Sequence[int], Transform, Thread], List[int]]] = {
    TransformType.FOCUS_SUBTREE: lambda path, t, thread: path_rewrites.remove_prefix_path_from_call_node_path(
        t.call_node_path, path),
    TransformType.FOCUS_FUNCTION: lambda path, t, thread: path_rewrites.start_call_node_path_with_function(
        t.func_index, path),
    TransformType.MERGE_CALL_NODE: lambda path, t, thread: path_rewrites.merge_node_in_call_node_path(
        t.call_node_path, path),
    TransformType.MERGE_FUNCTION: lambda path, t, thread: path_rewrites.merge_function_in_call_node_path(
        t.func_index, path),
    TransformType.DROP_FUNCTION: lambda path, t, thread: path_rewrites.drop_function_in_call_node_path(
        t.func_index, path),
    TransformType.COLLAPSE_RESOURCE: lambda path, t, thread: path_rewrites.collapse_resource_in_call_node_path(
        t.resource_index, t.collapsed_func_index, thread.func_table, path),
    TransformType.COLLAPSE_DIRECT_RECURSION: lambda path, t, thread: (
        path_rewrites.collapse_direct_recursion_in_call_node_path(t.func_index, path)),
    TransformType.COLLAPSE_FUNCTION_SUBTREE: lambda path, t, thread: (
        path_rewrites.collapse_function_subtree_in_call_node_path(t.func_index, path)),
}
assert_exhaustive(PATH_REWRITERS, 'PATH_REWRITERS')


LABEL_NAMES: Dict[TransformType, str] = {
    TransformType.FOCUS_SUBTREE: 'Focus Node',
    TransformType.FOCUS_FUNCTION: 'Focus',
    TransformType.MERGE_CALL_NODE: 'Merge Node',
    TransformType.MERGE_FUNCTION: 'Merge',
    TransformType.DROP_FUNCTION: 'Drop',
    TransformType.COLLAPSE_RESOURCE: 'Collapse',
    TransformType.COLLAPSE_DIRECT_RECURSION: 'Collapse recursion',
    TransformType.COLLAPSE_FUNCTION_SUBTREE: 'Collapse',
}
assert_exhaustive(LABEL_NAMES, 'LABEL_NAMES')


def _dispatch(table: Dict[TransformType, Callable], transform: Transform) -> Callable:
    handler = table.get(getattr(transform, 'type', None))
    if handler is None:
        raise assert_exhaustive_check(transform)
    return handler


def apply_transform(thread: Thread, transform: Transform, default_category: int) -> Thread:
    """
    对线程应用单个 transform

    Args:
        thread: 当前线程
        transform: 要应用的 transform
        default_category: 折叠时分类冲突使用的默认分类

    Returns:
        Thread: 新线程
    """
    return _dispatch(APPLIERS, transform)(thread, transform, default_category)


def apply_transform_stack(thread: Thread, transforms: TransformStack, default_category: int) -> Thread:
    """按顺序应用 transform 栈，每一步都以上一步的结果为输入"""
    for transform in transforms:
        logger.info(f"应用 transform: {transform.type.value}")
        thread = apply_transform(thread, transform, default_category)
    return thread


def apply_transform_to_call_node_path(call_node_path: Sequence[int], transform: Transform,
                                      transformed_thread: Thread) -> List[int]:
    """
    把调用节点路径按 transform 的语义改写

    Args:
        call_node_path: 原调用节点路径
        transform: 刚应用的 transform
        transformed_thread: 应用 transform 之后的线程（collapse-resource 需要新的函数表）
    """
    return _dispatch(PATH_REWRITERS, transform)(call_node_path, transform, transformed_thread)


def _get_resource_name(thread: Thread, resource_index: int) -> str:
    if not 0 <= resource_index < thread.resource_table.length:
        return f"resource {resource_index}"
    lib_index = thread.resource_table.lib[resource_index]
    if lib_index is None or lib_index == -1:
        name_index = thread.resource_table.name[resource_index]
        if name_index == -1:
            raise ValueError("尝试折叠一个没有名字的资源")
        return thread.string_table.get_string(name_index)
    return thread.libs[lib_index].name


def get_transform_labels(thread: Thread, thread_name: str, transforms: TransformStack) -> List[str]:
    """
    获取每个已应用 transform 的可读标签，第一项是完整线程

    Args:
        thread: 应用 transform 之前的线程（函数和资源下标以它为准）
        thread_name: 线程名称
        transforms: transform 栈

    Returns:
        List[str]: 标签列表
    """
    labels = [f"Complete '{thread_name}'"]
    for transform in transforms:
        label_name = _dispatch(LABEL_NAMES, transform)
        if isinstance(transform, CollapseResource):
            labels.append(f"{label_name}: {_get_resource_name(thread, transform.resource_index)}")
            continue
        if hasattr(transform, 'call_node_path'):
            func_index = get_leaf_func_index(transform.call_node_path)
        else:
            func_index = transform.func_index
        if func_index is None:
            # 空路径没有叶子函数
            labels.append(label_name)
            continue
        labels.append(f"{label_name}: {get_func_name(thread, func_index)}")
    return labels
