"""
Transport Factory

Abstract factory pattern for creating channel transports.
The transport variant is chosen once per channel construction; when the
cross-context broadcast primitive is unavailable the local transport is
selected silently.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from .adapters.local import LocalTransport
from .adapters.redis_broadcast import RedisBroadcastTransport
from .common.config import get_bus_config, get_redis_url
from .common.logger import get_logger
from .core.constants import ChannelConstants, RedisConstants
from .core.exceptions import TransportError
from .core.interfaces import ITransport

logger = get_logger("channel_bus.factory")


class TransportFactory(ABC):
    """Abstract factory for creating transport instances"""

    @abstractmethod
    def create_transport(
        self,
        config: Dict[str, Any],
        channel_name: str,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> ITransport:
        """
        Create a transport instance

        Args:
            config: Channel bus configuration
            channel_name: Name of the channel the transport serves
            loop: Event loop that remote deliveries are handed to

        Returns:
            ITransport instance
        """
        pass


class LocalTransportFactory(TransportFactory):
    """Factory for in-process transports"""

    def create_transport(
        self,
        config: Dict[str, Any],
        channel_name: str,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> ITransport:
        return LocalTransport(channel_name)


class RedisTransportFactory(TransportFactory):
    """Factory for Redis Pub/Sub broadcast transports"""

    def create_transport(
        self,
        config: Dict[str, Any],
        channel_name: str,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> ITransport:
        """
        Create a Redis-based broadcast transport

        Raises:
            TransportError: If Redis is not configured or not reachable
        """
        redis_url = get_redis_url(config)
        if not redis_url:
            raise TransportError("Redis is not configured")

        transport = RedisBroadcastTransport(
            name=channel_name,
            redis_url=redis_url,
            key_prefix=config.get('key_prefix', RedisConstants.DEFAULT_KEY_PREFIX),
            loop=loop
        )

        logger.debug(f"Created Redis broadcast transport for channel '{channel_name}'")
        return transport


class TransportFactoryRegistry:
    """Registry for transport factories"""

    _factories: Dict[str, TransportFactory] = {}

    @classmethod
    def register_factory(cls, transport_type: str, factory: TransportFactory) -> None:
        """
        Register a transport factory

        Args:
            transport_type: Type identifier for the transport (e.g., 'redis', 'local')
            factory: Factory instance
        """
        cls._factories[transport_type] = factory
        logger.debug(f"Registered transport factory for type: {transport_type}")

    @classmethod
    def get_factory(cls, transport_type: str) -> TransportFactory:
        """
        Get a factory for the specified transport type

        Raises:
            ValueError: If no factory is registered for the transport type
        """
        if transport_type not in cls._factories:
            raise ValueError(f"No factory registered for transport type: {transport_type}")

        return cls._factories[transport_type]

    @classmethod
    def create_transport(
        cls,
        config: Dict[str, Any],
        channel_name: str,
        transport_type: Optional[str] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> ITransport:
        """
        Create a transport instance using the appropriate factory

        Args:
            config: Channel bus configuration
            channel_name: Name of the channel
            transport_type: Type of transport to create (auto-detected if None or 'auto')
            loop: Event loop for remote deliveries

        Returns:
            ITransport instance
        """
        if transport_type in (None, ChannelConstants.TRANSPORT_AUTO):
            transport_type = cls._detect_transport_type(config)

        factory = cls.get_factory(transport_type)
        return factory.create_transport(config, channel_name, loop=loop)

    @classmethod
    def _detect_transport_type(cls, config: Dict[str, Any]) -> str:
        """
        Auto-detect the transport type from configuration

        Returns:
            'redis' when a Redis server is configured, 'local' otherwise
        """
        if config.get('redis'):
            return ChannelConstants.TRANSPORT_REDIS

        connection_url = config.get('connection_url', '')
        if connection_url:
            parsed = urlparse(connection_url)
            if parsed.scheme in ['redis', 'rediss', 'unix']:
                return ChannelConstants.TRANSPORT_REDIS

        return ChannelConstants.TRANSPORT_LOCAL


# Register default factories
TransportFactoryRegistry.register_factory(ChannelConstants.TRANSPORT_LOCAL, LocalTransportFactory())
TransportFactoryRegistry.register_factory(ChannelConstants.TRANSPORT_REDIS, RedisTransportFactory())


def create_transport(
    channel_name: str,
    config: Optional[Dict[str, Any]] = None,
    transport_type: Optional[str] = None,
    loop: Optional[asyncio.AbstractEventLoop] = None
) -> ITransport:
    """
    Create the transport for one channel, falling back to the local transport

    Construction failures of the selected transport are logged and never
    surfaced to the caller.

    Args:
        channel_name: Name of the channel
        config: Channel bus configuration (loaded from the config file if None)
        transport_type: 'auto', 'local' or 'redis' (read from config if None)
        loop: Event loop for remote deliveries

    Returns:
        ITransport instance
    """
    if config is None:
        config = get_bus_config()
    if transport_type is None:
        transport_type = config.get('transport', ChannelConstants.TRANSPORT_AUTO)

    try:
        return TransportFactoryRegistry.create_transport(
            config, channel_name, transport_type=transport_type, loop=loop
        )
    except Exception as e:
        logger.warning(
            f"Transport '{transport_type}' unavailable for channel '{channel_name}', "
            f"falling back to local transport: {e}"
        )
        return LocalTransport(channel_name)
