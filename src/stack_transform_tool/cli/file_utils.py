"""
文件处理工具模块
"""

import os
import glob
from pathlib import Path
from typing import List

PROFILE_SUFFIXES = ('.json', '.json.gz')


def _is_profile_file(path: str) -> bool:
    return path.lower().endswith(PROFILE_SUFFIXES)


def parse_file_paths(file_pattern: str) -> List[str]:
    """
    解析文件路径，支持 glob 模式

    Args:
        file_pattern: 文件路径模式，支持 glob 通配符

    Returns:
        List[str]: 匹配的文件路径列表
    """
    if '*' in file_pattern or '?' in file_pattern or '[' in file_pattern:
        matched_files = glob.glob(file_pattern)
        if not matched_files:
            raise ValueError(f"glob 模式 {file_pattern} 没有匹配到任何文件")

        profile_files = [f for f in matched_files if _is_profile_file(f)]
        if not profile_files:
            raise ValueError(f"glob 模式 {file_pattern} 没有匹配到任何 JSON 文件")
        return sorted(profile_files)

    if not os.path.exists(file_pattern):
        raise ValueError(f"文件不存在: {file_pattern}")
    if not _is_profile_file(file_pattern):
        raise ValueError(f"文件不是 JSON 格式: {file_pattern}")
    return [file_pattern]


def default_output_path(input_path: str, output_dir: str, suffix: str) -> Path:
    """根据输入文件名生成输出文件路径，例如 profile.json -> <output_dir>/profile.<suffix>.json"""
    name = Path(input_path).name
    for profile_suffix in PROFILE_SUFFIXES:
        if name.lower().endswith(profile_suffix):
            name = name[:-len(profile_suffix)]
            break
    return Path(output_dir) / f"{name}.{suffix}.json"
