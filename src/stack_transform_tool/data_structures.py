# -*- coding: utf-8 -*-
"""
表结构工具：浅拷贝以及调用栈表构建器
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from .models import StackTable, FrameTable, FuncTable

logger = logging.getLogger(__name__)


def shallow_clone_frame_table(frame_table: FrameTable) -> FrameTable:
    """复制每一列的列表（不复制列表中的元素），可以在副本上追加行"""
    return FrameTable(
        address=list(frame_table.address),
        inline_depth=list(frame_table.inline_depth),
        category=list(frame_table.category),
        subcategory=list(frame_table.subcategory),
        func=list(frame_table.func),
        native_symbol=list(frame_table.native_symbol),
        inner_window_id=list(frame_table.inner_window_id),
        implementation=list(frame_table.implementation),
        line=list(frame_table.line),
        column=list(frame_table.column),
        optimizations=list(frame_table.optimizations),
        length=frame_table.length,
    )


def shallow_clone_func_table(func_table: FuncTable) -> FuncTable:
    return FuncTable(
        name=list(func_table.name),
        is_js=list(func_table.is_js),
        relevant_for_js=list(func_table.relevant_for_js),
        resource=list(func_table.resource),
        file_name=list(func_table.file_name),
        line_number=list(func_table.line_number),
        column_number=list(func_table.column_number),
        length=func_table.length,
    )


class StackTableBuilder:
    """
    调用栈表构建器

    构建过程中使用可变列表，finish() 之后构建器被冻结，只暴露构建完成的表。
    新节点的 category/subcategory 优先取自帧本身，否则继承前缀节点，
    没有前缀的根节点使用默认分类（subcategory 为 0）。
    """

    def __init__(self, frame_table: Optional[FrameTable] = None, default_category: int = 0):
        self.frame_table = frame_table
        self.default_category = default_category
        self._table = StackTable()
        self._finished = False
        # (prefix, frame) -> stack，用于保证相同调用路径共享同一个节点
        self._stack_index_for: Dict[Tuple[Optional[int], int], int] = {}

    @property
    def length(self) -> int:
        return self._table.length

    def _check_writable(self):
        if self._finished:
            raise RuntimeError("StackTableBuilder 已经 finish，不能再修改")

    def _check_prefix(self, prefix: Optional[int]):
        if prefix is not None and not 0 <= prefix < self._table.length:
            raise ValueError(
                f"前缀 {prefix} 必须指向已存在的调用栈（当前长度 {self._table.length}）"
            )

    def add_raw(self, frame: int, prefix: Optional[int], category: int, subcategory: int) -> int:
        """按给定的分类追加一行，返回新调用栈的下标"""
        self._check_writable()
        self._check_prefix(prefix)
        table = self._table
        stack_index = table.length
        table.frame.append(frame)
        table.prefix.append(prefix)
        table.category.append(category)
        table.subcategory.append(subcategory)
        table.length += 1
        self._stack_index_for.setdefault((prefix, frame), stack_index)
        return stack_index

    def add_stack(self, frame: int, prefix: Optional[int]) -> int:
        """追加一行，分类按照帧/前缀继承规则计算"""
        if self.frame_table is None:
            raise ValueError("计算分类继承需要提供 frame_table")
        category, subcategory = self.inherited_category(frame, prefix)
        return self.add_raw(frame, prefix, category, subcategory)

    def get_or_add_stack(self, frame: int, prefix: Optional[int]) -> int:
        """调用路径已存在时复用已有节点"""
        existing = self.find(frame, prefix)
        if existing is not None:
            return existing
        return self.add_stack(frame, prefix)

    def find(self, frame: int, prefix: Optional[int]) -> Optional[int]:
        return self._stack_index_for.get((prefix, frame))

    def inherited_category(self, frame: int, prefix: Optional[int]) -> Tuple[int, int]:
        frame_category = self.frame_table.category[frame]
        if frame_category is not None:
            frame_subcategory = self.frame_table.subcategory[frame]
            return frame_category, frame_subcategory if frame_subcategory is not None else 0
        if prefix is not None:
            self._check_prefix(prefix)
            return self._table.category[prefix], self._table.subcategory[prefix]
        return self.default_category, 0

    # 以下方法供折叠类 transform 在构建期间修正已输出节点的分类

    def get_category(self, stack_index: int) -> int:
        return self._table.category[stack_index]

    def get_subcategory(self, stack_index: int) -> int:
        return self._table.subcategory[stack_index]

    def get_frame(self, stack_index: int) -> int:
        return self._table.frame[stack_index]

    def set_category(self, stack_index: int, category: int, subcategory: int):
        self._check_writable()
        self._table.category[stack_index] = category
        self._table.subcategory[stack_index] = subcategory

    def merge_category(self, stack_index: int, category: int, subcategory: int, default_category: int):
        """
        把另一个来源节点的分类合并到已输出的节点上

        分类冲突时退回默认分类 + subcategory 0；只有子分类冲突时退回 subcategory 0。
        """
        if self._table.category[stack_index] != category:
            self.set_category(stack_index, default_category, 0)
        elif self._table.subcategory[stack_index] != subcategory:
            self.set_category(stack_index, category, 0)

    def finish(self) -> StackTable:
        self._check_writable()
        self._finished = True
        return self._table


def build_stack_table(frame_table: FrameTable,
                      stacks: Iterable[Tuple[int, Optional[int]]],
                      default_category: int = 0) -> StackTable:
    """
    根据 (frame, prefix) 序列构建调用栈表

    Args:
        frame_table: 帧表，用于分类继承
        stacks: (frame, prefix) 序列，prefix 必须指向更早的行
        default_category: 默认分类

    Returns:
        StackTable: 构建完成的调用栈表
    """
    builder = StackTableBuilder(frame_table, default_category)
    for frame, prefix in stacks:
        builder.add_stack(frame, prefix)
    return builder.finish()


def compute_stack_table_from_paths(frame_table: FrameTable,
                                   frame_paths: Sequence[Sequence[int]],
                                   default_category: int = 0) -> Tuple[StackTable, List[Optional[int]]]:
    """
    根据帧路径列表构建去重后的前缀树

    Args:
        frame_paths: 每个元素是从根到叶子的帧下标序列，空序列表示没有调用栈

    Returns:
        Tuple[StackTable, List[Optional[int]]]: 调用栈表，以及每条路径对应的叶子调用栈下标
    """
    builder = StackTableBuilder(frame_table, default_category)
    leaf_stacks = []
    for path in frame_paths:
        prefix = None
        for frame in path:
            prefix = builder.get_or_add_stack(frame, prefix)
        leaf_stacks.append(prefix)
    stack_table = builder.finish()
    logger.debug(f"从 {len(frame_paths)} 条路径构建了 {stack_table.length} 个调用栈")
    return stack_table, leaf_stacks
