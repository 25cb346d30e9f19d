"""
公共模块

包含共享的日志与配置。
"""
from .logger import get_logger
from .config import (
    load_config,
    get_config,
    get_bus_config,
    get_logging_config,
    get_redis_url
)

__all__ = [
    "get_logger",
    "load_config",
    "get_config",
    "get_bus_config",
    "get_logging_config",
    "get_redis_url"
]
