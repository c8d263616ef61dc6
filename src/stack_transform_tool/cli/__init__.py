# -*- coding: utf-8 -*-
"""
CLI模块 - 命令行接口
"""

from .main import main
from .commands import ApplyCommand, CallTreeCommand, InspectCommand

__all__ = ['main', 'ApplyCommand', 'CallTreeCommand', 'InspectCommand']
