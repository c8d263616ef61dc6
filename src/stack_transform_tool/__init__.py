"""
Stack Transform Tool Package
"""

from .models import Thread, StackTable, FrameTable, FuncTable, ResourceTable, SamplesTable
from .string_table import UniqueStringArray
from .data_structures import StackTableBuilder, build_stack_table, compute_stack_table_from_paths
from .parser import parse_profile_file, write_profile_file, thread_from_dict, thread_to_dict, ProfileData
from .call_tree import CallTree, CallNodeTable, compute_call_node_table
from .transforms import (
    apply_transform, apply_transform_stack, apply_transform_to_call_node_path,
    parse_transforms, stringify_transforms, invert_call_node_path,
)

__all__ = [
    'Thread',
    'StackTable',
    'FrameTable',
    'FuncTable',
    'ResourceTable',
    'SamplesTable',
    'UniqueStringArray',
    'StackTableBuilder',
    'build_stack_table',
    'compute_stack_table_from_paths',
    'parse_profile_file',
    'write_profile_file',
    'thread_from_dict',
    'thread_to_dict',
    'ProfileData',
    'CallTree',
    'CallNodeTable',
    'compute_call_node_table',
    'apply_transform',
    'apply_transform_stack',
    'apply_transform_to_call_node_path',
    'parse_transforms',
    'stringify_transforms',
    'invert_call_node_path',
]
