"""
频道注册表

进程级的频道名称到频道实例的映射。频道在第一次 create_channel(name) 时创建，
不会被隐式销毁；只有显式 close() 才会将其移出注册表，之后同名调用会创建新频道。
"""
import asyncio
import atexit
import threading
from typing import Any, Dict, List, Optional

from .common.config import get_bus_config
from .common.logger import get_logger
from .core.channel import Channel
from .core.constants import ChannelConstants
from .factory import create_transport

logger = get_logger("channel_bus.registry")


class ChannelRegistry:
    """按名称记忆频道实例的注册表"""

    def __init__(self):
        self._channels: Dict[str, Channel] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self,
        name: str,
        config: Optional[Dict[str, Any]] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> Channel:
        """
        获取已有频道，不存在时创建

        Args:
            name: 频道名称
            config: 消息总线配置，为None时从配置文件读取
            loop: 远端消息转交的事件循环，仅在创建时生效

        Returns:
            频道实例
        """
        with self._lock:
            channel = self._channels.get(name)
            if channel is not None and not channel.closed:
                return channel

            if config is None:
                config = get_bus_config()

            channel = Channel(
                name,
                create_transport(name, config, loop=loop),
                default_origin=config.get('default_origin', ChannelConstants.DEFAULT_ORIGIN),
                on_close=self._evict,
            )
            self._channels[name] = channel
            logger.debug(f"已创建频道: {channel!r}")
            return channel

    def get(self, name: str) -> Optional[Channel]:
        """获取已注册的频道"""
        with self._lock:
            return self._channels.get(name)

    def names(self) -> List[str]:
        """获取已注册的频道名称"""
        with self._lock:
            return list(self._channels.keys())

    def _evict(self, channel: Channel) -> None:
        """频道关闭时移除；名称已指向其他实例时不做处理"""
        with self._lock:
            if self._channels.get(channel.name) is channel:
                del self._channels[channel.name]
                logger.debug(f"已从注册表移除频道: {channel.name}")

    def close_all(self) -> None:
        """关闭所有已注册的频道"""
        with self._lock:
            channels = list(self._channels.values())
        for channel in channels:
            channel.close()

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._channels

    def __len__(self) -> int:
        with self._lock:
            return len(self._channels)


# 进程级默认注册表，解释器退出时关闭所有频道
default_registry = ChannelRegistry()
atexit.register(default_registry.close_all)


def create_channel(
    name: str = ChannelConstants.DEFAULT_CHANNEL_NAME,
    config: Optional[Dict[str, Any]] = None,
    registry: Optional[ChannelRegistry] = None,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> Channel:
    """
    获取或创建频道

    配置项 memoize 为真（默认）时按名称记忆：同名调用返回同一个频道实例，
    共享同一个传输。memoize 为假时每次创建独立的频道。

    Args:
        name: 频道名称
        config: 消息总线配置，为None时从配置文件读取
        registry: 使用的注册表，默认进程级注册表
        loop: 远端消息转交的事件循环

    Returns:
        频道实例
    """
    if config is None:
        config = get_bus_config()

    if not config.get('memoize', True):
        return Channel(
            name,
            create_transport(name, config, loop=loop),
            default_origin=config.get('default_origin', ChannelConstants.DEFAULT_ORIGIN),
        )

    if registry is None:
        registry = default_registry
    return registry.get_or_create(name, config=config, loop=loop)
