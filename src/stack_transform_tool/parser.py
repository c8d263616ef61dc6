# -*- coding: utf-8 -*-
"""
线程数据 JSON 解析器

读取已处理的 profile JSON（可以是 .gz），转换为列式数据模型；也支持把线程写回 JSON。
JSON 中的列名使用 camelCase，数据模型中使用 snake_case。
"""

import json
import gzip
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Any, Optional, Union
import logging

from .models import (
    Thread, StackTable, FrameTable, FuncTable, ResourceTable, NativeSymbolTable,
    SamplesTable, JsAllocationsTable, NativeAllocationsTable, RawMarkerTable, Lib, Category,
    WEIGHT_TYPES,
)
from .string_table import UniqueStringArray
from .data_structures import build_stack_table
from .profile_data import get_category_index_by_name

logger = logging.getLogger(__name__)

# 表类型 -> {数据模型列名: JSON 列名}
_COLUMN_NAMES = {
    StackTable: {'frame': 'frame', 'category': 'category', 'subcategory': 'subcategory', 'prefix': 'prefix'},
    FrameTable: {
        'address': 'address', 'inline_depth': 'inlineDepth', 'category': 'category',
        'subcategory': 'subcategory', 'func': 'func', 'native_symbol': 'nativeSymbol',
        'inner_window_id': 'innerWindowID', 'implementation': 'implementation',
        'line': 'line', 'column': 'column', 'optimizations': 'optimizations',
    },
    FuncTable: {
        'name': 'name', 'is_js': 'isJS', 'relevant_for_js': 'relevantForJS', 'resource': 'resource',
        'file_name': 'fileName', 'line_number': 'lineNumber', 'column_number': 'columnNumber',
    },
    ResourceTable: {'lib': 'lib', 'name': 'name', 'host': 'host', 'type': 'type'},
    NativeSymbolTable: {'lib_index': 'libIndex', 'address': 'address', 'name': 'name'},
    SamplesTable: {
        'stack': 'stack', 'time': 'time', 'weight': 'weight', 'responsiveness': 'responsiveness',
        'event_delay': 'eventDelay', 'thread_cpu_delta': 'threadCPUDelta',
    },
    JsAllocationsTable: {
        'time': 'time', 'class_name': 'className', 'type_name': 'typeName', 'coarse_type': 'coarseType',
        'weight': 'weight', 'in_nursery': 'inNursery', 'stack': 'stack',
    },
    NativeAllocationsTable: {
        'time': 'time', 'weight': 'weight', 'stack': 'stack',
        'memory_address': 'memoryAddress', 'thread_id': 'threadId',
    },
    RawMarkerTable: {
        'data': 'data', 'name': 'name', 'start_time': 'startTime', 'end_time': 'endTime',
        'phase': 'phase', 'category': 'category',
    },
}

# 缺省时可以填充的列及其默认值
_COLUMN_DEFAULTS = {
    FrameTable: {
        'address': -1, 'inline_depth': 0, 'category': None, 'subcategory': None,
        'native_symbol': None, 'inner_window_id': None, 'implementation': None,
        'line': None, 'column': None, 'optimizations': None,
    },
    FuncTable: {
        'is_js': False, 'relevant_for_js': False, 'resource': -1,
        'file_name': None, 'line_number': None, 'column_number': None,
    },
    ResourceTable: {'lib': None, 'host': None, 'type': 0},
}

# 整列可以为 None 的可选列
_OPTIONAL_COLUMNS = {
    SamplesTable: {'weight', 'responsiveness', 'event_delay', 'thread_cpu_delta'},
    NativeAllocationsTable: {'memory_address', 'thread_id'},
}


@dataclass
class ProfileData:
    """解析后的 profile：线程列表、分类列表和 meta 信息"""
    threads: List[Thread]
    categories: List[Category] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def default_category(self) -> int:
        """meta.defaultCategory 优先，否则使用名为 Other 的分类"""
        default_category = self.meta.get('defaultCategory')
        if isinstance(default_category, int):
            return default_category
        return get_category_index_by_name(self.categories, 'Other', 0)


def _table_length(raw: Dict[str, Any]) -> int:
    if 'length' in raw:
        return raw['length']
    for value in raw.values():
        if isinstance(value, list):
            return len(value)
    return 0


def _table_from_dict(table_class, raw: Optional[Dict[str, Any]]):
    """按列名映射把 JSON 字典转换为列式表"""
    raw = raw or {}
    length = _table_length(raw)
    defaults = _COLUMN_DEFAULTS.get(table_class, {})
    optional = _OPTIONAL_COLUMNS.get(table_class, set())
    kwargs = {'length': length}
    for attr, json_name in _COLUMN_NAMES[table_class].items():
        if json_name in raw and raw[json_name] is not None:
            kwargs[attr] = list(raw[json_name])
        elif attr in optional:
            kwargs[attr] = None
        elif attr in defaults:
            kwargs[attr] = [defaults[attr]] * length
        elif length == 0:
            kwargs[attr] = []
        else:
            raise ValueError(f"{table_class.__name__} 缺少必需的列: {json_name}")
    if 'weightType' in raw:
        if raw['weightType'] not in WEIGHT_TYPES:
            raise ValueError(f"不支持的 weightType: {raw['weightType']}。支持: {', '.join(WEIGHT_TYPES)}")
        kwargs['weight_type'] = raw['weightType']
    table = table_class(**kwargs)
    table.check_length()
    return table


def _table_to_dict(table) -> Dict[str, Any]:
    result = {}
    for attr, json_name in _COLUMN_NAMES[type(table)].items():
        value = getattr(table, attr)
        if value is not None:
            result[json_name] = list(value)
    if hasattr(table, 'weight_type'):
        result['weightType'] = table.weight_type
    result['length'] = table.length
    return result


def _lib_from_dict(raw: Dict[str, Any]) -> Lib:
    return Lib(
        start=raw.get('start', 0),
        end=raw.get('end', 0),
        offset=raw.get('offset', 0),
        arch=raw.get('arch', ''),
        name=raw.get('name', ''),
        path=raw.get('path', ''),
        debug_name=raw.get('debugName', ''),
        debug_path=raw.get('debugPath', ''),
        breakpad_id=raw.get('breakpadId', ''),
    )


def _lib_to_dict(lib: Lib) -> Dict[str, Any]:
    return {
        'start': lib.start, 'end': lib.end, 'offset': lib.offset, 'arch': lib.arch,
        'name': lib.name, 'path': lib.path, 'debugName': lib.debug_name,
        'debugPath': lib.debug_path, 'breakpadId': lib.breakpad_id,
    }


def _check_stack_order(frames: List[int], prefixes: List[Optional[int]], frame_table: FrameTable) -> None:
    """前缀必须排在子节点之前，帧下标必须在帧表范围内"""
    if len(frames) != len(prefixes):
        raise ValueError(f"StackTable 的 frame 列与 prefix 列长度不一致: {len(frames)} != {len(prefixes)}")
    for stack_index, (frame, prefix) in enumerate(zip(frames, prefixes)):
        if prefix is not None and not 0 <= prefix < stack_index:
            raise ValueError(f"调用栈 {stack_index} 的前缀 {prefix} 没有排在它之前")
        if not 0 <= frame < frame_table.length:
            raise ValueError(f"调用栈 {stack_index} 的帧下标 {frame} 超出帧表范围")


def _parse_stack_table(raw: Dict[str, Any], frame_table: FrameTable, default_category: int) -> StackTable:
    """没有 category 列的调用栈表按帧/前缀继承规则计算分类"""
    if raw.get('category') is not None:
        stack_table = _table_from_dict(StackTable, raw)
        _check_stack_order(stack_table.frame, stack_table.prefix, frame_table)
        return stack_table
    logger.info("调用栈表缺少 category 列，按分类继承规则重新计算")
    for key in ('frame', 'prefix'):
        if raw.get(key) is None:
            raise ValueError(f"StackTable 缺少必需的列: {key}")
    _check_stack_order(raw['frame'], raw['prefix'], frame_table)
    return build_stack_table(frame_table, zip(raw['frame'], raw['prefix']), default_category)


def thread_from_dict(raw: Dict[str, Any], default_category: int = 0) -> Thread:
    """
    把已处理 profile 中的单个线程字典转换为 Thread

    Args:
        raw: 线程字典
        default_category: 调用栈表缺少分类时使用的默认分类

    Returns:
        Thread: 线程对象
    """
    for key in ('stackTable', 'frameTable', 'funcTable', 'samples'):
        if key not in raw:
            raise ValueError(f"线程数据缺少 {key}")

    string_table = UniqueStringArray(raw.get('stringArray', raw.get('stringTable', [])))
    frame_table = _table_from_dict(FrameTable, raw['frameTable'])
    js_allocations = raw.get('jsAllocations')
    native_allocations = raw.get('nativeAllocations')

    return Thread(
        name=raw.get('name', ''),
        pid=raw.get('pid', 0),
        tid=raw.get('tid'),
        process_type=raw.get('processType', 'default'),
        process_name=raw.get('processName'),
        process_startup_time=raw.get('processStartupTime', 0.0),
        process_shutdown_time=raw.get('processShutdownTime'),
        register_time=raw.get('registerTime', 0.0),
        unregister_time=raw.get('unregisterTime'),
        paused_ranges=list(raw.get('pausedRanges', [])),
        stack_table=_parse_stack_table(raw['stackTable'], frame_table, default_category),
        frame_table=frame_table,
        func_table=_table_from_dict(FuncTable, raw['funcTable']),
        resource_table=_table_from_dict(ResourceTable, raw.get('resourceTable')),
        native_symbols=_table_from_dict(NativeSymbolTable, raw.get('nativeSymbols')),
        string_table=string_table,
        samples=_table_from_dict(SamplesTable, raw['samples']),
        markers=_table_from_dict(RawMarkerTable, raw.get('markers')),
        libs=[_lib_from_dict(lib) for lib in raw.get('libs', [])],
        js_allocations=_table_from_dict(JsAllocationsTable, js_allocations) if js_allocations else None,
        native_allocations=(
            _table_from_dict(NativeAllocationsTable, native_allocations) if native_allocations else None),
    )


def thread_to_dict(thread: Thread) -> Dict[str, Any]:
    """把 Thread 转换为可 JSON 序列化的字典"""
    result = {
        'name': thread.name,
        'pid': thread.pid,
        'tid': thread.tid,
        'processType': thread.process_type,
        'processStartupTime': thread.process_startup_time,
        'processShutdownTime': thread.process_shutdown_time,
        'registerTime': thread.register_time,
        'unregisterTime': thread.unregister_time,
        'pausedRanges': thread.paused_ranges,
        'stackTable': _table_to_dict(thread.stack_table),
        'frameTable': _table_to_dict(thread.frame_table),
        'funcTable': _table_to_dict(thread.func_table),
        'resourceTable': _table_to_dict(thread.resource_table),
        'nativeSymbols': _table_to_dict(thread.native_symbols),
        'samples': _table_to_dict(thread.samples),
        'markers': _table_to_dict(thread.markers),
        'stringArray': thread.string_table.serialize(),
        'libs': [_lib_to_dict(lib) for lib in thread.libs],
    }
    if thread.process_name is not None:
        result['processName'] = thread.process_name
    if thread.js_allocations is not None:
        result['jsAllocations'] = _table_to_dict(thread.js_allocations)
    if thread.native_allocations is not None:
        result['nativeAllocations'] = _table_to_dict(thread.native_allocations)
    return result


def profile_from_dict(data: Dict[str, Any]) -> ProfileData:
    """
    解析 profile 字典

    支持两种形式：包含 meta/threads 的完整 profile，或者单个线程字典。
    """
    if 'threads' in data:
        meta = dict(data.get('meta', {}))
        categories = [
            Category(name=c.get('name', ''), color=c.get('color', ''),
                     subcategories=list(c.get('subcategories', [])))
            for c in meta.get('categories', [])
        ]
        profile = ProfileData(threads=[], categories=categories, meta=meta)
        default_category = profile.default_category
        profile.threads = [thread_from_dict(raw, default_category) for raw in data['threads']]
        return profile
    if 'stackTable' in data:
        return ProfileData(threads=[thread_from_dict(data)])
    raise ValueError("JSON 中既没有 threads 也没有 stackTable，无法识别为线程数据")


def profile_to_dict(profile: ProfileData) -> Dict[str, Any]:
    meta = dict(profile.meta)
    meta['categories'] = [
        {'name': c.name, 'color': c.color, 'subcategories': c.subcategories}
        for c in profile.categories
    ]
    return {'meta': meta, 'threads': [thread_to_dict(thread) for thread in profile.threads]}


def parse_profile_file(file_path: Union[str, Path]) -> ProfileData:
    """
    解析 profile JSON 文件（支持 .gz）

    Args:
        file_path: JSON 文件路径

    Returns:
        ProfileData: 解析结果
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"文件不存在: {file_path}")

    print(f"正在解析文件: {file_path}")
    open_func = gzip.open if file_path.suffix == '.gz' else open
    with open_func(file_path, 'rt', encoding='utf-8') as f:
        data = json.load(f)

    profile = profile_from_dict(data)
    print(f"读取到 {len(profile.threads)} 个线程")
    return profile


def write_profile_file(profile: ProfileData, file_path: Union[str, Path]) -> Path:
    """把 profile 写入 JSON 文件，后缀为 .gz 时压缩"""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    open_func = gzip.open if file_path.suffix == '.gz' else open
    with open_func(file_path, 'wt', encoding='utf-8') as f:
        json.dump(profile_to_dict(profile), f, ensure_ascii=False)
    return file_path
