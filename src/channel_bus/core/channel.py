"""
频道

基于单个传输实现的发布/订阅端点。
"""
import threading
from typing import Any, Callable, Dict, Mapping, Optional

from ..common.logger import get_logger
from .constants import ChannelConstants, ErrorMessages
from .exceptions import SubscribeError
from .interfaces import ITransport, MessageHandler, Unsubscribe
from .models import build_envelope

logger = get_logger("channel_bus.channel")


class Channel:
    """
    命名的发布/订阅端点

    持有且只持有一个传输实例，构造后不可更换。
    close() 之后频道进入终态：发布不再投递，已注册的处理器全部释放，不可重新打开。

    发布与关闭都不会向调用方抛出异常；只有 subscribe 会对参数做校验。
    """

    def __init__(
        self,
        name: str,
        transport: ITransport,
        default_origin: str = ChannelConstants.DEFAULT_ORIGIN,
        on_close: Optional[Callable[["Channel"], None]] = None,
    ):
        """
        初始化频道

        Args:
            name: 频道名称
            transport: 传输实现
            default_origin: 未指定 origin 时使用的发布者标识
            on_close: 关闭后的回调，注册表用它来移除记忆的实例
        """
        self._name = name
        self._transport = transport
        self.default_origin = default_origin
        self._on_close = on_close

        self._subscriptions: Dict[int, Unsubscribe] = {}
        self._next_subscription_id = 0
        self._lock = threading.Lock()
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def transport(self) -> ITransport:
        return self._transport

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(
        self,
        event_type: str,
        payload: Optional[Mapping[str, Any]] = None,
        origin: Optional[str] = None,
    ) -> None:
        """
        发布消息

        构建信封（填写 channel 与 ts）后交给传输。尽力投递：
        任何构建或投递失败都只记录日志。

        Args:
            event_type: 消息主题
            payload: 业务数据
            origin: 发布者标识
        """
        if self._closed:
            logger.debug(f"[{self._name}] 频道已关闭，忽略发布: {event_type}")
            return

        try:
            envelope = build_envelope(
                event_type,
                self._name,
                payload=payload,
                origin=origin or self.default_origin,
            )
        except (TypeError, ValueError) as e:
            logger.warning(f"[{self._name}] 构建消息信封失败，已丢弃: {e}")
            return

        try:
            self._transport.send(envelope)
        except Exception as e:
            logger.warning(f"[{self._name}] 投递消息失败: 类型={event_type}, 错误={e}")

    def subscribe(self, event_type: str, handler: MessageHandler) -> Unsubscribe:
        """
        订阅消息

        Args:
            event_type: 具体的消息类型，或 "*" 订阅全部消息
            handler: 处理函数，每次匹配时以信封为参数同步调用

        Returns:
            取消订阅的函数，只移除本次注册，重复调用无副作用

        Raises:
            SubscribeError: 主题不是非空字符串或处理器不可调用
        """
        if not isinstance(event_type, str) or not event_type:
            raise SubscribeError(ErrorMessages.INVALID_TOPIC)
        if not callable(handler):
            raise SubscribeError(ErrorMessages.INVALID_HANDLER)

        if self._closed:
            logger.warning(f"[{self._name}] 频道已关闭，订阅不会收到消息: {event_type}")
            return _noop

        remove = self._transport.listen(event_type, handler)

        with self._lock:
            subscription_id = self._next_subscription_id
            self._next_subscription_id += 1
            self._subscriptions[subscription_id] = remove

        def unsubscribe() -> None:
            with self._lock:
                registered = self._subscriptions.pop(subscription_id, None)
            if registered is not None:
                registered()

        logger.debug(f"[{self._name}] 已订阅主题: {event_type}")
        return unsubscribe

    # 兼容浏览器端的命名
    on = subscribe

    def close(self) -> None:
        """释放传输并丢弃所有订阅，幂等且不抛出异常"""
        if self._closed:
            return
        self._closed = True

        with self._lock:
            self._subscriptions.clear()

        try:
            self._transport.teardown()
        except Exception as e:
            logger.warning(f"[{self._name}] 释放传输失败: {e}")

        if self._on_close is not None:
            try:
                self._on_close(self)
            except Exception as e:
                logger.warning(f"[{self._name}] 关闭回调执行失败: {e}")

        logger.debug(f"[{self._name}] 频道已关闭")

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"Channel(name={self._name!r}, transport={type(self._transport).__name__}, {state})"


def _noop() -> None:
    pass
