# -*- coding: utf-8 -*-
"""
Transform 栈的 URL 编解码

transform 之间用 "~" 分隔，每个 transform 内部的字段用 "-" 分隔，第一个字段是类型的短键。
例如 "f-js-xFFpUMl-i" 或 "f-cpp-0KV4KV5KV61KV7KV8K"。

解析是容错的：无法识别的短键记录日志后跳过，数值字段非法时只丢弃这一个 transform。
"""

from typing import Dict, List, Optional
import logging

from ..profile_data import to_valid_implementation_filter
from ..utils.uintarray_encoding import (
    encode_uint_array_for_url_component,
    decode_uint_array_from_url_component,
)
from .models import (
    TransformType, Transform, TransformStack, assert_exhaustive, assert_exhaustive_check,
    FocusSubtree, FocusFunction, MergeCallNode, MergeFunction, DropFunction,
    CollapseResource, CollapseDirectRecursion, CollapseFunctionSubtree,
)

logger = logging.getLogger(__name__)

TRANSFORM_SEPARATOR = '~'
FIELD_SEPARATOR = '-'

TRANSFORM_TO_SHORT_KEY: Dict[TransformType, str] = {
    TransformType.FOCUS_SUBTREE: 'f',
    TransformType.FOCUS_FUNCTION: 'ff',
    TransformType.MERGE_CALL_NODE: 'mcn',
    TransformType.MERGE_FUNCTION: 'mf',
    TransformType.DROP_FUNCTION: 'df',
    TransformType.COLLAPSE_RESOURCE: 'cr',
    TransformType.COLLAPSE_DIRECT_RECURSION: 'rec',
    TransformType.COLLAPSE_FUNCTION_SUBTREE: 'cfs',
}
assert_exhaustive(TRANSFORM_TO_SHORT_KEY, 'TRANSFORM_TO_SHORT_KEY')

SHORT_KEY_TO_TRANSFORM: Dict[str, TransformType] = {
    short_key: transform_type for transform_type, short_key in TRANSFORM_TO_SHORT_KEY.items()
}

# 只需要函数下标的 transform
_FUNC_INDEX_TRANSFORMS = {
    TransformType.FOCUS_FUNCTION: FocusFunction,
    TransformType.MERGE_FUNCTION: MergeFunction,
    TransformType.DROP_FUNCTION: DropFunction,
    TransformType.COLLAPSE_FUNCTION_SUBTREE: CollapseFunctionSubtree,
}


def _parse_index(raw: Optional[str]) -> Optional[int]:
    """解析非负整数字段，非法时返回 None"""
    if raw is None or not (raw.isascii() and raw.isdigit()):
        return None
    return int(raw)


def _field(fields: List[str], position: int) -> Optional[str]:
    return fields[position] if position < len(fields) else None


def parse_transform(transform_string: str) -> Optional[Transform]:
    """
    解析单个 transform

    Returns:
        Optional[Transform]: 解析结果，无法识别或字段非法时返回 None
    """
    fields = transform_string.split(FIELD_SEPARATOR)
    short_key = fields[0]
    transform_type = SHORT_KEY_TO_TRANSFORM.get(short_key)
    if transform_type is None:
        logger.error(f"URL 中包含无法识别的 transform: {short_key!r}")
        return None

    if transform_type in _FUNC_INDEX_TRANSFORMS:
        # 例如 "mf-325"
        func_index = _parse_index(_field(fields, 1))
        if func_index is None:
            logger.warning(f"transform 的函数下标非法，已忽略: {transform_string!r}")
            return None
        return _FUNC_INDEX_TRANSFORMS[transform_type](func_index=func_index)

    if transform_type == TransformType.COLLAPSE_RESOURCE:
        # 例如 "cr-js-325-8"
        resource_index = _parse_index(_field(fields, 2))
        collapsed_func_index = _parse_index(_field(fields, 3))
        if resource_index is None or collapsed_func_index is None:
            logger.warning(f"collapse-resource 的下标非法，已忽略: {transform_string!r}")
            return None
        return CollapseResource(
            resource_index=resource_index,
            collapsed_func_index=collapsed_func_index,
            implementation=to_valid_implementation_filter(_field(fields, 1)),
        )

    if transform_type == TransformType.COLLAPSE_DIRECT_RECURSION:
        # 例如 "rec-js-325"
        func_index = _parse_index(_field(fields, 2))
        if func_index is None:
            logger.warning(f"collapse-direct-recursion 的函数下标非法，已忽略: {transform_string!r}")
            return None
        return CollapseDirectRecursion(
            func_index=func_index,
            implementation=to_valid_implementation_filter(_field(fields, 1)),
        )

    if transform_type in (TransformType.FOCUS_SUBTREE, TransformType.MERGE_CALL_NODE):
        # 例如 "f-js-xFFpUMl-i"
        implementation = to_valid_implementation_filter(_field(fields, 1))
        try:
            call_node_path = decode_uint_array_from_url_component(_field(fields, 2) or '')
        except ValueError as e:
            logger.warning(f"调用节点路径无法解码，已忽略 {transform_string!r}: {e}")
            return None
        if not call_node_path:
            logger.warning(f"调用节点路径为空，已忽略: {transform_string!r}")
            return None
        if transform_type == TransformType.FOCUS_SUBTREE:
            return FocusSubtree(
                call_node_path=call_node_path,
                implementation=implementation,
                inverted=bool(_field(fields, 3)),
            )
        return MergeCallNode(call_node_path=call_node_path, implementation=implementation)

    raise assert_exhaustive_check(transform_type)


def parse_transforms(transform_string: str) -> TransformStack:
    """
    解析 transform 栈

    Args:
        transform_string: URL 中的 transform 字符串

    Returns:
        TransformStack: 按顺序排列的 transform 列表，非法项已被跳过
    """
    if not transform_string:
        return []
    transforms = []
    for item in transform_string.split(TRANSFORM_SEPARATOR):
        transform = parse_transform(item)
        if transform is not None:
            transforms.append(transform)
    return transforms


def stringify_transform(transform: Transform) -> str:
    short_key = TRANSFORM_TO_SHORT_KEY.get(transform.type)
    if short_key is None:
        raise assert_exhaustive_check(transform)

    if isinstance(transform, (MergeFunction, DropFunction, CollapseFunctionSubtree, FocusFunction)):
        return FIELD_SEPARATOR.join([short_key, str(transform.func_index)])
    if isinstance(transform, CollapseResource):
        return FIELD_SEPARATOR.join([
            short_key, transform.implementation,
            str(transform.resource_index), str(transform.collapsed_func_index),
        ])
    if isinstance(transform, CollapseDirectRecursion):
        return FIELD_SEPARATOR.join([short_key, transform.implementation, str(transform.func_index)])
    if isinstance(transform, (FocusSubtree, MergeCallNode)):
        fields = [
            short_key,
            transform.implementation,
            encode_uint_array_for_url_component(transform.call_node_path),
        ]
        if isinstance(transform, FocusSubtree) and transform.inverted:
            fields.append('i')
        return FIELD_SEPARATOR.join(fields)
    raise assert_exhaustive_check(transform)


def stringify_transforms(transform_stack: TransformStack) -> str:
    return TRANSFORM_SEPARATOR.join(stringify_transform(transform) for transform in transform_stack)
