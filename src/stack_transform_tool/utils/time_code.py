"""
计时工具
"""

import time
import logging
from contextlib import contextmanager

logger = logging.getLogger(__name__)


@contextmanager
def time_code(label: str):
    """记录代码块的耗时（DEBUG 级别）"""
    start_time = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"{label} 耗时 {elapsed_ms:.2f} ms")
