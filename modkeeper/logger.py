"""
日志配置

各模块直接使用 loguru 的全局 logger，这里只负责安装输出。
"""

import os
import sys
from typing import Optional, Protocol

from loguru import logger

DEBUG_ENV = "MODKEEPER_DEBUG"

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"
)


class LogSink(Protocol):
    """入口函数接受的日志对象（loguru logger 或任何兼容对象）"""

    def debug(self, message: str, *args, **kwargs) -> None: ...

    def info(self, message: str, *args, **kwargs) -> None: ...

    def success(self, message: str, *args, **kwargs) -> None: ...

    def warning(self, message: str, *args, **kwargs) -> None: ...

    def error(self, message: str, *args, **kwargs) -> None: ...


def resolve_level(level: Optional[str] = None) -> str:
    """显式指定的级别优先，否则由 MODKEEPER_DEBUG 决定"""
    if level:
        return level.upper()
    return "DEBUG" if os.environ.get(DEBUG_ENV, "0") == "1" else "INFO"


def setup_logger(
    level: Optional[str] = None,
    sink=None,
    colorize: bool = True,
) -> int:
    """
    替换 loguru 默认的输出

    Args:
        level: 日志级别，为空时读取 MODKEEPER_DEBUG
        sink: 输出目标，默认 stderr（stdout 留给命令结果）
        colorize: 是否启用颜色

    Returns:
        新 handler 的 id
    """
    level = resolve_level(level)
    debug = level == "DEBUG"

    logger.remove()
    handler_id = logger.add(
        sink or sys.stderr,
        format=LOG_FORMAT,
        level=level,
        colorize=colorize,
        backtrace=debug,
        diagnose=debug,
    )
    logger.debug("调试日志已开启")
    return handler_id


__all__ = ["logger", "setup_logger", "resolve_level", "LogSink"]
