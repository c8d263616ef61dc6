"""
工具模块
"""

from .uintarray_encoding import encode_uint_array_for_url_component, decode_uint_array_from_url_component
from .time_code import time_code

__all__ = ['encode_uint_array_for_url_component', 'decode_uint_array_from_url_component', 'time_code']
