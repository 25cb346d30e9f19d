"""
传输适配器包

此包包含传输层的各种实现。
"""

from .local import LocalTransport
from .redis_broadcast import RedisBroadcastTransport, BroadcastListenerThread

__all__ = ["LocalTransport", "RedisBroadcastTransport", "BroadcastListenerThread"]
