"""
CLI命令模块
"""

from .apply import ApplyCommand
from .calltree import CallTreeCommand
from .inspect import InspectCommand

__all__ = ['ApplyCommand', 'CallTreeCommand', 'InspectCommand']
