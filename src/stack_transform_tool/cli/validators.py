# -*- coding: utf-8 -*-
"""
CLI验证器模块
"""

from typing import List

from ..transforms import parse_transforms, stringify_transforms, TransformStack

VALID_OUTPUT_FORMATS = ('json', 'xlsx')


def validate_transform_string(transform_string: str) -> TransformStack:
    """
    解析并验证 transform 字符串

    解析本身是容错的（非法项会被跳过），这里要求命令行给出的每一项都能被解析。

    Raises:
        ValueError: 存在无法解析的 transform
    """
    if not transform_string or not transform_string.strip():
        return []
    transform_string = transform_string.strip()
    transforms = parse_transforms(transform_string)
    expected_count = len(transform_string.split('~'))
    if len(transforms) != expected_count:
        raise ValueError(
            f"transform 字符串中有 {expected_count - len(transforms)} 项无法解析: {transform_string}"
            f"（可解析部分: {stringify_transforms(transforms) or '无'}）"
        )
    return transforms


def parse_output_formats(output_format: str) -> List[str]:
    """
    解析输出格式

    Raises:
        ValueError: 输出格式不合法
    """
    if not output_format or not output_format.strip():
        raise ValueError("输出格式不能为空")
    formats = [fmt.strip() for fmt in output_format.split(',') if fmt.strip()]
    for fmt in formats:
        if fmt not in VALID_OUTPUT_FORMATS:
            raise ValueError(f"不支持的输出格式: {fmt}。支持的格式: {', '.join(VALID_OUTPUT_FORMATS)}")
    if len(formats) != len(set(formats)):
        raise ValueError("输出格式不能重复")
    return formats


def validate_thread_index(thread_index: int, thread_count: int) -> int:
    if thread_index < 0 or thread_index >= thread_count:
        raise ValueError(f"线程下标 {thread_index} 超出范围，profile 中共有 {thread_count} 个线程")
    return thread_index


def validate_max_depth(max_depth):
    if max_depth is not None and max_depth < 0:
        raise ValueError(f"最大深度不能为负数: {max_depth}")
    return max_depth
