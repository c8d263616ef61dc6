# -*- coding: utf-8 -*-
"""
Transform 数据模型

八种 transform 构成一个封闭的联合类型，TransformType 枚举与 TRANSFORM_CLASSES 一一对应，
所有按类型分发的地方都在导入时检查是否覆盖了全部类型。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Tuple, Union


class TransformType(str, Enum):
    FOCUS_SUBTREE = 'focus-subtree'
    FOCUS_FUNCTION = 'focus-function'
    MERGE_CALL_NODE = 'merge-call-node'
    MERGE_FUNCTION = 'merge-function'
    DROP_FUNCTION = 'drop-function'
    COLLAPSE_RESOURCE = 'collapse-resource'
    COLLAPSE_DIRECT_RECURSION = 'collapse-direct-recursion'
    COLLAPSE_FUNCTION_SUBTREE = 'collapse-function-subtree'


@dataclass(frozen=True)
class FocusSubtree:
    call_node_path: Tuple[int, ...]
    implementation: str = 'combined'
    inverted: bool = False
    type = TransformType.FOCUS_SUBTREE

    def __post_init__(self):
        object.__setattr__(self, 'call_node_path', tuple(self.call_node_path))


@dataclass(frozen=True)
class FocusFunction:
    func_index: int
    type = TransformType.FOCUS_FUNCTION


@dataclass(frozen=True)
class MergeCallNode:
    call_node_path: Tuple[int, ...]
    implementation: str = 'combined'
    type = TransformType.MERGE_CALL_NODE

    def __post_init__(self):
        object.__setattr__(self, 'call_node_path', tuple(self.call_node_path))


@dataclass(frozen=True)
class MergeFunction:
    func_index: int
    type = TransformType.MERGE_FUNCTION


@dataclass(frozen=True)
class DropFunction:
    func_index: int
    type = TransformType.DROP_FUNCTION


@dataclass(frozen=True)
class CollapseResource:
    """collapsed_func_index 是合成 func 在新函数表中的下标（即应用前函数表的长度）"""
    resource_index: int
    collapsed_func_index: int
    implementation: str = 'combined'
    type = TransformType.COLLAPSE_RESOURCE


@dataclass(frozen=True)
class CollapseDirectRecursion:
    func_index: int
    implementation: str = 'combined'
    type = TransformType.COLLAPSE_DIRECT_RECURSION


@dataclass(frozen=True)
class CollapseFunctionSubtree:
    func_index: int
    type = TransformType.COLLAPSE_FUNCTION_SUBTREE


Transform = Union[
    FocusSubtree,
    FocusFunction,
    MergeCallNode,
    MergeFunction,
    DropFunction,
    CollapseResource,
    CollapseDirectRecursion,
    CollapseFunctionSubtree,
]

TransformStack = List[Transform]

TRANSFORM_CLASSES: Dict[TransformType, type] = {
    TransformType.FOCUS_SUBTREE: FocusSubtree,
    TransformType.FOCUS_FUNCTION: FocusFunction,
    TransformType.MERGE_CALL_NODE: MergeCallNode,
    TransformType.MERGE_FUNCTION: MergeFunction,
    TransformType.DROP_FUNCTION: DropFunction,
    TransformType.COLLAPSE_RESOURCE: CollapseResource,
    TransformType.COLLAPSE_DIRECT_RECURSION: CollapseDirectRecursion,
    TransformType.COLLAPSE_FUNCTION_SUBTREE: CollapseFunctionSubtree,
}


def assert_exhaustive(table: Iterable, table_name: str) -> None:
    """检查按 transform 类型分发的表是否覆盖了全部类型，新增类型时强制更新每个分发点"""
    missing = set(TransformType) - set(table)
    extra = set(table) - set(TransformType)
    if missing or extra:
        raise TypeError(
            f"{table_name} 与 TransformType 不一致，缺少: {sorted(t.value for t in missing)}，"
            f"多余: {sorted(str(t) for t in extra)}"
        )


def assert_exhaustive_check(transform) -> Exception:
    """分发函数遇到未知 transform 时构造异常"""
    return TypeError(f"未处理的 transform: {transform!r}")


assert_exhaustive(TRANSFORM_CLASSES, 'TRANSFORM_CLASSES')
