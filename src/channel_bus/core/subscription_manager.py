"""
频道订阅管理器

批量管理一个频道上的主题订阅，支持同步和异步处理器，
并通过一次 teardown 移除全部订阅。
"""
import asyncio
import inspect
from typing import Callable, Dict, List, Optional

from ..common.logger import get_logger
from .channel import Channel
from .interfaces import Unsubscribe
from .models import MessageEnvelope

logger = get_logger("channel_bus.subscription_manager")


class ChannelSubscriptionManager:
    """
    通用的频道订阅管理器

    主要职责：
    1. 注册主题处理器映射关系
    2. 在频道上建立订阅
    3. 调度异步处理器
    4. 统一取消订阅
    """

    def __init__(self, channel: Channel, component_name: Optional[str] = None):
        """
        初始化订阅管理器

        Args:
            channel: 频道实例
            component_name: 组件名称，用于日志标识
        """
        self.channel = channel
        self.component_name = component_name or "unknown_component"

        # 主题处理器映射：topic -> handler_function
        self.topic_handlers: Dict[str, Callable] = {}

        # 已建立的订阅：topic -> unsubscribe
        self._active: Dict[str, Unsubscribe] = {}

    @property
    def active_topics(self) -> List[str]:
        return list(self._active.keys())

    def register_handler(self, topic: str, handler: Callable) -> None:
        """
        注册主题的消息处理器

        已建立订阅的主题会改用新的处理器重新订阅。

        Args:
            topic: 主题名称或 "*"
            handler: 消息处理函数（同步或异步），签名: (envelope: MessageEnvelope) -> None
        """
        self.topic_handlers[topic] = handler
        logger.debug(f"[{self.component_name}] 已注册主题处理器: {topic}")

        if topic in self._active:
            self._active.pop(topic)()
            self._subscribe(topic, handler)

    def register_handlers(self, handlers: Dict[str, Callable]) -> None:
        """
        批量注册主题处理器

        Args:
            handlers: 主题到处理器的映射字典
        """
        for topic, handler in handlers.items():
            self.register_handler(topic, handler)

    def _create_message_handler(self, topic: str, handler: Callable) -> Callable[[MessageEnvelope], None]:
        """
        创建消息处理包装器

        异步处理器被调度到正在运行的事件循环；没有运行中的循环时直接运行至完成。
        """
        def message_wrapper(envelope: MessageEnvelope) -> None:
            logger.debug(f"[{self.component_name}] 处理来自主题 {topic} 的消息: {envelope.type}")

            if not inspect.iscoroutinefunction(handler):
                handler(envelope)
                return

            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                asyncio.run(self._run_async(topic, handler, envelope))
            else:
                loop.create_task(self._run_async(topic, handler, envelope))

        return message_wrapper

    async def _run_async(self, topic: str, handler: Callable, envelope: MessageEnvelope) -> None:
        try:
            await handler(envelope)
        except Exception as e:
            logger.error(f"[{self.component_name}] 异步处理器中发生错误，主题 {topic}: {e}")

    def _subscribe(self, topic: str, handler: Callable) -> None:
        message_wrapper = self._create_message_handler(topic, handler)
        self._active[topic] = self.channel.subscribe(topic, message_wrapper)
        logger.debug(f"[{self.component_name}] 成功设置主题订阅: {topic}")

    def setup_subscriptions(self) -> None:
        """为所有已注册但尚未订阅的主题建立订阅"""
        if not self.topic_handlers:
            logger.warning(f"[{self.component_name}] 没有注册的主题处理器")
            return

        for topic, handler in self.topic_handlers.items():
            if topic not in self._active:
                self._subscribe(topic, handler)

    def get_registered_topics(self) -> list:
        """获取已注册的主题列表"""
        return list(self.topic_handlers.keys())

    def unregister_handler(self, topic: str) -> bool:
        """
        取消注册主题处理器，已建立的订阅同时移除

        Returns:
            bool: 是否成功取消注册
        """
        if topic not in self.topic_handlers:
            return False

        del self.topic_handlers[topic]
        unsubscribe = self._active.pop(topic, None)
        if unsubscribe is not None:
            unsubscribe()
        logger.debug(f"[{self.component_name}] 已取消注册主题处理器: {topic}")
        return True

    def teardown(self) -> None:
        """移除所有已建立的订阅，处理器映射保留，可再次 setup_subscriptions"""
        for unsubscribe in self._active.values():
            unsubscribe()
        self._active.clear()
        logger.debug(f"[{self.component_name}] 已移除所有订阅")

    def clear_handlers(self) -> None:
        """移除所有订阅并清除已注册的处理器"""
        self.teardown()
        self.topic_handlers.clear()
        logger.debug(f"[{self.component_name}] 已清除所有主题处理器")
