"""
本地传输适配器

在当前进程内同步分发消息，是跨上下文广播不可用时的回退实现。
"""
import threading
from typing import List, Optional

from ..common.logger import get_logger
from ..core.interfaces import ITransport, MessageHandler, Unsubscribe
from ..core.models import MessageEnvelope

logger = get_logger("channel_bus.local")


class _Listener:
    """已注册的监听器条目，按对象身份移除"""

    __slots__ = ("topic", "handler")

    def __init__(self, topic: str, handler: MessageHandler):
        self.topic = topic
        self.handler = handler


class LocalTransport(ITransport):
    """
    进程内传输

    send 在返回前按注册顺序同步调用所有匹配的监听器。
    分发开始时对监听器列表做快照，分发过程中的增删只影响之后的分发。
    """

    def __init__(self, name: Optional[str] = None):
        """
        初始化本地传输

        Args:
            name: 所属频道名称，仅用于日志
        """
        self.name = name or "local"
        self._listeners: List[_Listener] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def send(self, envelope: MessageEnvelope) -> None:
        """
        分发信封给所有匹配的监听器

        Args:
            envelope: 消息信封
        """
        if self._closed:
            return

        with self._lock:
            snapshot = [entry for entry in self._listeners if envelope.matches(entry.topic)]

        for entry in snapshot:
            try:
                entry.handler(envelope)
            except Exception:
                logger.exception(
                    f"[{self.name}] 消息处理器执行失败: 主题={entry.topic}, 类型={envelope.type}"
                )

    def listen(self, topic: str, handler: MessageHandler) -> Unsubscribe:
        """
        注册监听器

        Args:
            topic: 消息类型或通配主题
            handler: 处理函数

        Returns:
            移除函数，重复调用无副作用
        """
        if self._closed:
            logger.debug(f"[{self.name}] 传输已关闭，忽略监听注册: {topic}")
            return _noop

        entry = _Listener(topic, handler)
        with self._lock:
            self._listeners.append(entry)

        def remove() -> None:
            with self._lock:
                for index, candidate in enumerate(self._listeners):
                    if candidate is entry:
                        del self._listeners[index]
                        logger.debug(f"[{self.name}] 已移除监听器: {topic}")
                        return

        return remove

    def teardown(self) -> None:
        """丢弃所有监听器，幂等"""
        with self._lock:
            self._listeners.clear()
        if not self._closed:
            self._closed = True
            logger.debug(f"[{self.name}] 本地传输已释放")


def _noop() -> None:
    pass
