"""
Logging configuration for the probe runtime.
探针运行时的日志配置。

Library modules only call logging.getLogger(__name__); this is the one
place handlers are attached.
库模块只调用 logging.getLogger(__name__)；这里是唯一挂载处理器的地方。
"""

import logging
import os
import sys
from typing import Optional


def setup_logger(
    name: str = "osprobe",
    level: int = logging.INFO,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure and return a logger with consistent formatting.
    配置并返回一个格式统一的 logger。

    Parameters / 参数
    ----------
    name : str
        Logger name; "osprobe" covers every module in the package.
        logger 名称；"osprobe" 覆盖包内所有模块。
    level : int
        Console level (default INFO). / 控制台级别（默认 INFO）。
    log_file : str, optional
        Also write DEBUG and above to this file. / 同时把 DEBUG 及以上写入此文件。
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if log_file else level)

    # Avoid duplicate handlers when called twice.
    logger.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(fmt="[%(levelname)s] %(message)s"))
    logger.addHandler(console)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
