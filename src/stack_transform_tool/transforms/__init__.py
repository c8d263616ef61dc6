# -*- coding: utf-8 -*-
"""
Transform 模块：调用栈表的结构重写、调用节点路径改写以及 URL 编解码
"""

from .models import (
    TransformType, Transform, TransformStack,
    FocusSubtree, FocusFunction, MergeCallNode, MergeFunction, DropFunction,
    CollapseResource, CollapseDirectRecursion, CollapseFunctionSubtree,
)
from .stack_transforms import (
    focus_subtree, focus_inverted_subtree, focus_function, merge_call_node, merge_function,
    drop_function, collapse_resource, collapse_direct_recursion, collapse_function_subtree,
    func_has_recursive_call, func_has_direct_recursive_call,
)
from .call_node_path import (
    invert_call_node_path, restore_all_functions_in_call_node_path,
    filter_call_node_path_by_implementation,
)
from .codec import parse_transforms, stringify_transforms
from .apply import (
    apply_transform, apply_transform_stack, apply_transform_to_call_node_path, get_transform_labels,
)

__all__ = [
    'TransformType', 'Transform', 'TransformStack',
    'FocusSubtree', 'FocusFunction', 'MergeCallNode', 'MergeFunction', 'DropFunction',
    'CollapseResource', 'CollapseDirectRecursion', 'CollapseFunctionSubtree',
    'focus_subtree', 'focus_inverted_subtree', 'focus_function', 'merge_call_node', 'merge_function',
    'drop_function', 'collapse_resource', 'collapse_direct_recursion', 'collapse_function_subtree',
    'func_has_recursive_call', 'func_has_direct_recursive_call',
    'invert_call_node_path', 'restore_all_functions_in_call_node_path',
    'filter_call_node_path_by_implementation',
    'parse_transforms', 'stringify_transforms',
    'apply_transform', 'apply_transform_stack', 'apply_transform_to_call_node_path', 'get_transform_labels',
]
