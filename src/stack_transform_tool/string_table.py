# -*- coding: utf-8 -*-
"""
字符串驻留表：对字符串去重，其他表通过整数下标引用字符串
"""

from typing import Dict, Iterable, List, Optional


class UniqueStringArray:
    """去重字符串数组"""

    def __init__(self, original_array: Optional[Iterable[str]] = None):
        self._array: List[str] = []
        self._string_to_index: Dict[str, int] = {}
        for string in original_array or []:
            # 输入中的重复字符串保留第一次出现的下标，但数组位置仍需保留
            self._string_to_index.setdefault(string, len(self._array))
            self._array.append(string)

    def get_string(self, index: int) -> str:
        if index < 0 or index >= len(self._array):
            raise IndexError(f"字符串表中不存在下标 {index}")
        return self._array[index]

    def has_string(self, string: str) -> bool:
        return string in self._string_to_index

    def index_for_string(self, string: str) -> int:
        """返回字符串的下标，不存在时追加到表尾"""
        index = self._string_to_index.get(string)
        if index is None:
            index = len(self._array)
            self._string_to_index[string] = index
            self._array.append(string)
        return index

    def serialize(self) -> List[str]:
        return list(self._array)

    def __len__(self) -> int:
        return len(self._array)

    def __repr__(self):
        return f"UniqueStringArray({len(self._array)} strings)"
