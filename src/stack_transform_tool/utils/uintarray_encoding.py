"""
无符号整数数组的紧凑 URL 编码

每个整数按 5 bit 一组从高到低输出：最后一组使用 32 个“结束”字符 0-9a-v，
前面的组使用 32 个“延续”字符 w-zA-Z._。结果只包含 URL 安全字符，且不含 '-' 和 '~'。
"""

from typing import List, Sequence

TERMINAL_CHARS = '0123456789abcdefghijklmnopqrstuv'
CONTINUATION_CHARS = 'wxyzABCDEFGHIJKLMNOPQRSTUVWXYZ._'

_TERMINAL_VALUES = {char: value for value, char in enumerate(TERMINAL_CHARS)}
_CONTINUATION_VALUES = {char: value for value, char in enumerate(CONTINUATION_CHARS)}


def encode_uint(value: int) -> str:
    if value < 0:
        raise ValueError(f"只能编码非负整数: {value}")
    chars = [TERMINAL_CHARS[value & 0x1f]]
    value >>= 5
    while value:
        chars.append(CONTINUATION_CHARS[value & 0x1f])
        value >>= 5
    return ''.join(reversed(chars))


def encode_uint_array_for_url_component(values: Sequence[int]) -> str:
    return ''.join(encode_uint(value) for value in values)


def decode_uint_array_from_url_component(encoded: str) -> List[int]:
    """
    解码 encode_uint_array_for_url_component 的结果

    Raises:
        ValueError: 出现字母表以外的字符，或者结尾处有未结束的延续字符
    """
    result = []
    value = 0
    pending = False
    for char in encoded:
        if char in _CONTINUATION_VALUES:
            value = (value << 5) | _CONTINUATION_VALUES[char]
            pending = True
        elif char in _TERMINAL_VALUES:
            result.append((value << 5) | _TERMINAL_VALUES[char])
            value = 0
            pending = False
        else:
            raise ValueError(f"无法解码的字符: {char!r}")
    if pending:
        raise ValueError(f"编码以未结束的延续字符结尾: {encoded!r}")
    return result
