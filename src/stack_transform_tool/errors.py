# -*- coding: utf-8 -*-
"""
异常定义

这些异常表示内部不变量被破坏（程序错误），而不是用户输入有误，调用方不应吞掉它们。
"""


class TransformInvariantError(Exception):
    """transform 构建新调用栈表时发现不变量被破坏"""


class StackMappingError(TransformInvariantError, KeyError):
    """旧调用栈下标在 old -> new 映射中找不到对应项"""

    def __init__(self, stack_index):
        self.stack_index = stack_index
        super().__init__(f"调用栈 {stack_index} 在新旧映射中没有对应项")

    def __str__(self):
        return self.args[0]
