"""
Channel Bus

轻量级的发布/订阅消息总线，让同一设备上相互独立的组件通过频道交换结构化事件。
Redis可用时跨进程广播，否则在进程内分发。
"""

# 先初始化日志与配置
from .common.logger import get_logger
from .common.config import load_config, get_config, get_bus_config, get_redis_url

# 导出核心接口与模型
from .core.interfaces import ITransport, FrameScheduler
from .core.constants import ChannelConstants, RedisConstants
from .core.models import MessageEnvelope, build_envelope, encode_envelope, decode_envelope
from .core.exceptions import (
    ChannelBusError,
    TransportError,
    PublishError,
    SubscribeError,
    DeserializationError
)

# 导出实现
from .adapters.local import LocalTransport
from .adapters.redis_broadcast import RedisBroadcastTransport
from .core.channel import Channel
from .core.debounce import debounce, FrameDebouncer, AsyncioFrameScheduler, ManualFrameScheduler
from .core.subscription_manager import ChannelSubscriptionManager

# 导出工厂与注册表
from .factory import (
    TransportFactory,
    LocalTransportFactory,
    RedisTransportFactory,
    TransportFactoryRegistry,
    create_transport
)
from .registry import ChannelRegistry, default_registry, create_channel

# 导出绑定工具
from .bindings import enable_messaging, enable_listener, publish_vars

__version__ = "0.1.0"

__all__ = [
    # 核心接口
    "ITransport",
    "FrameScheduler",

    # 频道
    "Channel",
    "create_channel",
    "ChannelRegistry",
    "default_registry",
    "ChannelSubscriptionManager",

    # 传输实现
    "LocalTransport",
    "RedisBroadcastTransport",

    # 工厂模式
    "TransportFactory",
    "LocalTransportFactory",
    "RedisTransportFactory",
    "TransportFactoryRegistry",
    "create_transport",

    # 数据模型
    "MessageEnvelope",
    "build_envelope",
    "encode_envelope",
    "decode_envelope",

    # 防抖
    "debounce",
    "FrameDebouncer",
    "AsyncioFrameScheduler",
    "ManualFrameScheduler",

    # 绑定工具
    "enable_messaging",
    "enable_listener",
    "publish_vars",

    # 常量
    "ChannelConstants",
    "RedisConstants",

    # 异常
    "ChannelBusError",
    "TransportError",
    "PublishError",
    "SubscribeError",
    "DeserializationError",

    # 公共组件
    "get_logger",
    "load_config",
    "get_config",
    "get_bus_config",
    "get_redis_url"
]
