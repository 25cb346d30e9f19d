"""
消息总线核心模块。

此模块包含频道、传输接口、数据模型、常量和工具函数。
"""

from .constants import ChannelConstants, ErrorMessages, FrameConstants, RedisConstants
from .exceptions import (
    ChannelBusError,
    DeserializationError,
    PublishError,
    SubscribeError,
    TransportError,
)
from .interfaces import FrameScheduler, ITransport, MessageHandler, Unsubscribe
from .models import MessageEnvelope, build_envelope, decode_envelope, encode_envelope
from .channel import Channel
from .debounce import AsyncioFrameScheduler, FrameDebouncer, ManualFrameScheduler, debounce
from .subscription_manager import ChannelSubscriptionManager
from .utils import (
    build_topic_key,
    deserialize_from_json,
    generate_unique_id,
    now_ms,
    serialize_to_json,
)

__all__ = [
    # 接口
    "ITransport",
    "FrameScheduler",
    "MessageHandler",
    "Unsubscribe",

    # 数据模型
    "MessageEnvelope",
    "build_envelope",
    "encode_envelope",
    "decode_envelope",

    # 频道
    "Channel",
    "ChannelSubscriptionManager",

    # 防抖
    "debounce",
    "FrameDebouncer",
    "AsyncioFrameScheduler",
    "ManualFrameScheduler",

    # 常量
    "ChannelConstants",
    "RedisConstants",
    "FrameConstants",
    "ErrorMessages",

    # 异常
    "ChannelBusError",
    "TransportError",
    "PublishError",
    "SubscribeError",
    "DeserializationError",

    # 工具函数
    "now_ms",
    "serialize_to_json",
    "deserialize_from_json",
    "generate_unique_id",
    "build_topic_key",
]
