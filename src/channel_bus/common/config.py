"""
配置管理模块

提供通用的配置加载功能：读取YAML配置文件并解析其中的环境变量引用。
"""
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..core.constants import ChannelConstants, FrameConstants, RedisConstants

# 日志系统初始化依赖本模块，这里直接使用标准日志器避免循环导入
logger = logging.getLogger("channel_bus.config")


def _get_config_path() -> Path:
    """获取配置文件路径"""
    config_path = Path(os.environ.get("CONFIG_PATH", "/app/config/config.yml"))
    if not config_path.exists():
        config_path = Path("config/config.yml")
    return config_path


def _resolve_env_vars(value: str) -> str:
    """解析环境变量 ${VAR:default} 或 ${VAR:-default}"""
    if not isinstance(value, str):
        return value

    pattern = re.compile(r'\${([^}:]+)(?::(-?)([^}]*?))?}')

    def replace_var(match):
        var_name, dash, default = match.groups()
        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value
        return default if default is not None else ""

    return pattern.sub(replace_var, value)


def _resolve_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """递归解析字典中的环境变量并转换数据类型"""
    result = {}
    for key, value in data.items():
        if isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, str):
            resolved_value = _resolve_env_vars(value)
            if resolved_value.isdigit():
                result[key] = int(resolved_value)
            elif resolved_value.lower() in ('true', 'false'):
                result[key] = resolved_value.lower() == 'true'
            else:
                result[key] = resolved_value
        else:
            result[key] = value
    return result


def load_config() -> Dict[str, Any]:
    """加载配置文件"""
    try:
        config_file = _get_config_path()
        if config_file.exists():
            with open(config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
            config = _resolve_dict(config)
            logger.debug(f"成功加载配置: {config_file}")
            return config
        else:
            logger.debug(f"配置文件不存在: {config_file}")
            return {}
    except Exception as e:
        logger.error(f"加载配置失败: {e}")
        return {}


def get_config() -> Dict[str, Any]:
    """获取原始配置字典"""
    return load_config()


def get_bus_config() -> Dict[str, Any]:
    """
    获取消息总线配置

    未配置的键使用默认值补齐。

    Returns:
        消息总线配置字典
    """
    config = load_config()
    bus_config = dict(config.get('channel_bus', {}) or {})

    bus_config.setdefault('transport', ChannelConstants.TRANSPORT_AUTO)
    bus_config.setdefault('key_prefix', RedisConstants.DEFAULT_KEY_PREFIX)
    bus_config.setdefault('default_origin', ChannelConstants.DEFAULT_ORIGIN)
    bus_config.setdefault('frame_interval_ms', FrameConstants.DEFAULT_FRAME_INTERVAL_MS)
    bus_config.setdefault('memoize', True)
    return bus_config


def get_logging_config() -> Dict[str, Any]:
    """获取日志配置"""
    config = load_config()
    return config.get('logging', {})


def get_redis_url(bus_config: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """
    根据消息总线配置构建Redis连接URL

    Args:
        bus_config: 消息总线配置，为None时从配置文件读取

    Returns:
        Redis URL；未配置Redis时返回None
    """
    if bus_config is None:
        bus_config = get_bus_config()

    connection_url = bus_config.get('connection_url')
    if connection_url:
        return connection_url

    redis_config = bus_config.get('redis')
    if not redis_config:
        return None

    redis_host = redis_config.get('host', 'localhost')
    redis_port = redis_config.get('port', 6379)
    redis_db = redis_config.get('db', 0)
    redis_password = redis_config.get('password', '')

    if redis_password:
        return f"redis://:{redis_password}@{redis_host}:{redis_port}/{redis_db}"
    return f"redis://{redis_host}:{redis_port}/{redis_db}"
