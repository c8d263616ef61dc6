# -*- coding: utf-8 -*-
"""
性能剖析数据模型定义

所有表都是列式存储：若干等长的并行列表，加上一个 length 字段表示行数。
行的身份就是它在列表中的下标（index），只在表被重写之前有效。
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Any, Optional

import pandas as pd

from .string_table import UniqueStringArray


# 资源类型（resourceTypeEnum）
RESOURCE_TYPE_UNKNOWN = 0
RESOURCE_TYPE_LIBRARY = 1
RESOURCE_TYPE_ADDON = 2
RESOURCE_TYPE_WEBHOST = 3
RESOURCE_TYPE_OTHERHOST = 4
RESOURCE_TYPE_URL = 5

WEIGHT_TYPES = ('samples', 'tracing-ms', 'bytes')


class _ColumnarTable:
    """列式表的公共行为"""

    # 子类按顺序列出自己的列名
    columns: tuple = ()

    def to_dataframe(self) -> pd.DataFrame:
        """转换为 pandas DataFrame，便于检查和导出"""
        return pd.DataFrame({name: list(getattr(self, name)) for name in self.columns})

    def check_length(self) -> None:
        """检查每一列的长度是否与 length 一致"""
        for name in self.columns:
            column = getattr(self, name)
            if column is not None and len(column) != self.length:
                raise ValueError(
                    f"{type(self).__name__}.{name} 长度为 {len(column)}，与 length={self.length} 不一致"
                )


@dataclass
class StackTable(_ColumnarTable):
    """调用栈表：前缀树（trie）的节点，祖先节点总是排在子节点之前"""
    frame: List[int] = field(default_factory=list)
    category: List[int] = field(default_factory=list)
    subcategory: List[int] = field(default_factory=list)
    prefix: List[Optional[int]] = field(default_factory=list)
    length: int = 0

    columns = ('frame', 'category', 'subcategory', 'prefix')


@dataclass
class FrameTable(_ColumnarTable):
    """帧表，多个帧可以共享同一个 func"""
    address: List[int] = field(default_factory=list)
    inline_depth: List[int] = field(default_factory=list)
    category: List[Optional[int]] = field(default_factory=list)
    subcategory: List[Optional[int]] = field(default_factory=list)
    func: List[int] = field(default_factory=list)
    native_symbol: List[Optional[int]] = field(default_factory=list)
    inner_window_id: List[Optional[int]] = field(default_factory=list)
    implementation: List[Optional[int]] = field(default_factory=list)
    line: List[Optional[int]] = field(default_factory=list)
    column: List[Optional[int]] = field(default_factory=list)
    optimizations: List[Any] = field(default_factory=list)
    length: int = 0

    columns = (
        'address', 'inline_depth', 'category', 'subcategory', 'func', 'native_symbol',
        'inner_window_id', 'implementation', 'line', 'column', 'optimizations',
    )


@dataclass
class FuncTable(_ColumnarTable):
    """函数表，没有任何帧引用的 func 视为孤立的"""
    name: List[int] = field(default_factory=list)
    is_js: List[bool] = field(default_factory=list)
    relevant_for_js: List[bool] = field(default_factory=list)
    resource: List[int] = field(default_factory=list)
    file_name: List[Optional[int]] = field(default_factory=list)
    line_number: List[Optional[int]] = field(default_factory=list)
    column_number: List[Optional[int]] = field(default_factory=list)
    length: int = 0

    columns = (
        'name', 'is_js', 'relevant_for_js', 'resource', 'file_name', 'line_number', 'column_number',
    )


@dataclass
class ResourceTable(_ColumnarTable):
    """资源表，按代码来源（lib/webhost/otherhost/addon/url）对 func 分组"""
    lib: List[Optional[int]] = field(default_factory=list)
    name: List[int] = field(default_factory=list)
    host: List[Optional[int]] = field(default_factory=list)
    type: List[int] = field(default_factory=list)
    length: int = 0

    columns = ('lib', 'name', 'host', 'type')


@dataclass
class NativeSymbolTable(_ColumnarTable):
    """原生符号表"""
    lib_index: List[int] = field(default_factory=list)
    address: List[int] = field(default_factory=list)
    name: List[int] = field(default_factory=list)
    length: int = 0

    columns = ('lib_index', 'address', 'name')


@dataclass
class Lib:
    """共享库信息，用于符号化"""
    start: int
    end: int
    offset: int
    arch: str
    name: str
    path: str
    debug_name: str
    debug_path: str
    breakpad_id: str


@dataclass
class Category:
    name: str
    color: str
    subcategories: List[str] = field(default_factory=list)


@dataclass
class SamplesTable(_ColumnarTable):
    """采样表，weight 为 None 时每个样本的权重为 1"""
    stack: List[Optional[int]] = field(default_factory=list)
    time: List[float] = field(default_factory=list)
    weight: Optional[List[float]] = None
    weight_type: str = 'samples'
    responsiveness: Optional[List[Optional[float]]] = None
    event_delay: Optional[List[Optional[float]]] = None
    thread_cpu_delta: Optional[List[Optional[float]]] = None
    length: int = 0

    columns = ('stack', 'time', 'weight', 'responsiveness', 'event_delay', 'thread_cpu_delta')

    def get_weight(self, sample_index: int) -> float:
        if self.weight is None:
            return 1
        return self.weight[sample_index]

    def to_dataframe(self) -> pd.DataFrame:
        data = {name: list(getattr(self, name)) for name in self.columns
                if getattr(self, name) is not None}
        return pd.DataFrame(data)


@dataclass
class JsAllocationsTable(_ColumnarTable):
    """JS 内存分配表"""
    time: List[float] = field(default_factory=list)
    class_name: List[str] = field(default_factory=list)
    type_name: List[str] = field(default_factory=list)
    coarse_type: List[str] = field(default_factory=list)
    weight: List[float] = field(default_factory=list)
    in_nursery: List[bool] = field(default_factory=list)
    stack: List[Optional[int]] = field(default_factory=list)
    weight_type: str = 'bytes'
    length: int = 0

    columns = ('time', 'class_name', 'type_name', 'coarse_type', 'weight', 'in_nursery', 'stack')

    def get_weight(self, sample_index: int) -> float:
        return self.weight[sample_index]


@dataclass
class NativeAllocationsTable(_ColumnarTable):
    """原生内存分配表，memory_address/thread_id 只在 balanced 形式中存在"""
    time: List[float] = field(default_factory=list)
    weight: List[float] = field(default_factory=list)
    stack: List[Optional[int]] = field(default_factory=list)
    memory_address: Optional[List[int]] = None
    thread_id: Optional[List[int]] = None
    weight_type: str = 'bytes'
    length: int = 0

    columns = ('time', 'weight', 'stack', 'memory_address', 'thread_id')

    def get_weight(self, sample_index: int) -> float:
        return self.weight[sample_index]

    def to_dataframe(self) -> pd.DataFrame:
        data = {name: list(getattr(self, name)) for name in self.columns
                if getattr(self, name) is not None}
        return pd.DataFrame(data)


@dataclass
class RawMarkerTable(_ColumnarTable):
    """标记表，data 中可能带有 cause 调用栈"""
    data: List[Optional[Dict[str, Any]]] = field(default_factory=list)
    name: List[int] = field(default_factory=list)
    start_time: List[Optional[float]] = field(default_factory=list)
    end_time: List[Optional[float]] = field(default_factory=list)
    phase: List[int] = field(default_factory=list)
    category: List[int] = field(default_factory=list)
    length: int = 0

    columns = ('data', 'name', 'start_time', 'end_time', 'phase', 'category')


@dataclass
class Thread:
    """
    线程数据：包含调用栈/帧/函数/资源表以及引用调用栈的类采样表

    Transform 不会修改 Thread，而是通过 replace() 产生新的 Thread。
    """
    name: str
    pid: Any
    stack_table: StackTable
    frame_table: FrameTable
    func_table: FuncTable
    resource_table: ResourceTable
    string_table: UniqueStringArray
    samples: SamplesTable
    markers: RawMarkerTable = field(default_factory=RawMarkerTable)
    native_symbols: NativeSymbolTable = field(default_factory=NativeSymbolTable)
    libs: List[Lib] = field(default_factory=list)
    js_allocations: Optional[JsAllocationsTable] = None
    native_allocations: Optional[NativeAllocationsTable] = None
    tid: Optional[int] = None
    process_type: str = 'default'
    process_name: Optional[str] = None
    process_startup_time: float = 0.0
    process_shutdown_time: Optional[float] = None
    register_time: float = 0.0
    unregister_time: Optional[float] = None
    paused_ranges: List[Dict[str, Any]] = field(default_factory=list)

    def replace(self, **changes) -> 'Thread':
        """返回替换了部分字段的浅拷贝"""
        return replace(self, **changes)

    def get_func_name(self, func_index: int) -> str:
        return self.string_table.get_string(self.func_table.name[func_index])

    def get_stack_func(self, stack_index: int) -> int:
        return self.frame_table.func[self.stack_table.frame[stack_index]]
