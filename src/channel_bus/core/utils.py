"""
消息总线的工具函数。
"""
import json
import threading
import time
from typing import Any
from uuid import uuid4

from ..common.logger import get_logger
from .exceptions import DeserializationError

logger = get_logger("channel_bus.utils")

_clock_lock = threading.Lock()
_last_timestamp_ms = 0


def now_ms() -> int:
    """
    获取当前时间的毫秒时间戳。

    同一进程内返回值单调不减：系统时钟回拨时沿用上一次的时间戳。

    Returns:
        自纪元起的毫秒数
    """
    global _last_timestamp_ms
    current = int(time.time() * 1000)
    with _clock_lock:
        if current < _last_timestamp_ms:
            current = _last_timestamp_ms
        _last_timestamp_ms = current
    return current


def serialize_to_json(data: Any) -> str:
    """
    将数据序列化为JSON字符串。

    Args:
        data: 要序列化的数据

    Returns:
        JSON字符串
    """
    try:
        return json.dumps(data, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logger.debug(f"JSON序列化失败: {e}")
        raise DeserializationError(f"无法序列化为JSON: {e}")


def deserialize_from_json(json_str: Any) -> Any:
    """
    从JSON字符串反序列化数据。

    Args:
        json_str: JSON字符串或字节串

    Returns:
        反序列化后的数据
    """
    if isinstance(json_str, bytes):
        try:
            json_str = json_str.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DeserializationError(f"无效的UTF-8数据: {e}")
    try:
        return json.loads(json_str)
    except (json.JSONDecodeError, TypeError) as e:
        logger.debug(f"JSON反序列化失败: {e}")
        raise DeserializationError(f"无效的JSON: {e}")


def generate_unique_id() -> str:
    """
    生成唯一标识符。

    Returns:
        唯一ID字符串
    """
    return str(uuid4())


def build_topic_key(topic_prefix: str, topic: str) -> str:
    """
    构建完整的主题键。

    Args:
        topic_prefix: 主题前缀
        topic: 逻辑主题名

    Returns:
        完整的主题键
    """
    if not topic_prefix:
        return topic

    # 确保前缀和主题之间只有一个分隔符
    if topic_prefix.endswith(':') and topic.startswith(':'):
        return f"{topic_prefix}{topic[1:]}"
    elif topic_prefix.endswith(':') or topic.startswith(':'):
        return f"{topic_prefix}{topic}"
    else:
        return f"{topic_prefix}:{topic}"
