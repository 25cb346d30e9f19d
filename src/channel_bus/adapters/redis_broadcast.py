"""
Redis广播适配器

基于Redis Pub/Sub实现的跨上下文传输：连接同一Redis的所有进程中，
同名频道的监听器都会收到消息。本进程内的监听器在 send 返回前同步收到消息。
"""
import asyncio
import threading
import time
from typing import Any, Dict, Optional

import redis

from ..common.logger import get_logger
from ..core.constants import ErrorMessages, RedisConstants
from ..core.exceptions import DeserializationError, PublishError, TransportError
from ..core.interfaces import ITransport, MessageHandler, Unsubscribe
from ..core.models import MessageEnvelope, decode_envelope
from ..core.utils import build_topic_key, deserialize_from_json, generate_unique_id, serialize_to_json
from .local import LocalTransport

logger = get_logger("channel_bus.redis_broadcast")


class RedisBroadcastTransport(ITransport):
    """
    Redis Pub/Sub实现的广播传输

    线框帧为JSON对象 {"sender": <实例ID>, "data": <信封记录>}。
    Redis会把消息回送给发送方自己的订阅连接，这类回送帧按 sender 跳过，
    因为本地监听器已经在 send 中同步收到。
    """

    def __init__(
        self,
        name: str,
        redis_url: Optional[str] = None,
        redis_client: Optional[redis.Redis] = None,
        key_prefix: str = RedisConstants.DEFAULT_KEY_PREFIX,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        start_listener: bool = True,
        poll_timeout: float = RedisConstants.DEFAULT_POLL_TIMEOUT,
    ):
        """
        初始化Redis广播传输

        Args:
            name: 频道名称
            redis_url: Redis连接URL，提供 redis_client 时忽略
            redis_client: 已有的Redis客户端
            key_prefix: Redis频道键前缀
            loop: 远端消息转交的事件循环；为None时在监听线程中直接分发
            start_listener: 是否立即启动后台监听线程
            poll_timeout: 监听线程每次读取的阻塞时间（秒）

        Raises:
            TransportError: 无法连接Redis或订阅失败
        """
        self.name = name
        self.key_prefix = key_prefix
        self.channel_key = build_topic_key(key_prefix, name)
        self.sender_id = generate_unique_id()
        self.poll_timeout = poll_timeout

        self._loop = loop
        self._local = LocalTransport(name)
        self._owns_client = redis_client is None
        self._listener_thread: Optional[BroadcastListenerThread] = None
        self._torn_down = False

        try:
            if redis_client is None:
                if not redis_url:
                    raise ValueError("未提供Redis URL")
                redis_client = redis.from_url(
                    redis_url,
                    decode_responses=True,
                    socket_connect_timeout=RedisConstants.DEFAULT_CONNECTION_TIMEOUT,
                )
            self.redis_client = redis_client
            self.redis_client.ping()
            self._pubsub = self.redis_client.pubsub()
            self._pubsub.subscribe(self.channel_key)
            logger.debug(f"[{self.name}] 已订阅Redis频道: {self.channel_key}")
        except Exception as e:
            logger.debug(f"[{self.name}] 构建Redis广播传输失败: {e}")
            raise TransportError(f"{ErrorMessages.REDIS_CONNECTION_ERROR}: {str(e)}")

        if start_listener:
            self.start()

    @property
    def closed(self) -> bool:
        return self._torn_down

    def start(self) -> None:
        """启动后台监听线程"""
        if self._torn_down:
            return
        if self._listener_thread is not None and self._listener_thread.is_alive():
            return

        self._listener_thread = BroadcastListenerThread(self)
        self._listener_thread.start()
        logger.debug(f"已启动广播监听线程: {self._listener_thread.name}")

    def send(self, envelope: MessageEnvelope) -> None:
        """
        本地同步分发后广播到Redis

        Raises:
            PublishError: 载荷无法序列化或Redis发布失败（本地监听器已收到消息）
        """
        if self._torn_down:
            return

        self._local.send(envelope)

        try:
            frame = serialize_to_json({
                RedisConstants.SENDER_FIELD: self.sender_id,
                RedisConstants.DATA_FIELD: envelope.to_wire(),
            })
        except DeserializationError as e:
            raise PublishError(f"载荷无法跨上下文传输: {str(e)}")

        try:
            receivers = self.redis_client.publish(self.channel_key, frame)
            logger.debug(f"已广播消息到 {self.channel_key}, 类型={envelope.type}, 接收者={receivers}")
        except Exception as e:
            raise PublishError(f"{ErrorMessages.PUBLISH_ERROR}: {str(e)}")

    def listen(self, topic: str, handler: MessageHandler) -> Unsubscribe:
        """注册监听器，本地消息与远端消息共用同一监听器列表"""
        return self._local.listen(topic, handler)

    def poll(self, timeout: float = 0.0) -> int:
        """
        读取并分发当前已到达的远端消息

        未启动监听线程时可由宿主循环调用；不可与监听线程并发使用。

        Args:
            timeout: 每次读取的阻塞时间（秒）

        Returns:
            int: 分发的远端消息数量
        """
        handled = 0
        while not self._torn_down:
            message = self._pubsub.get_message(timeout=timeout)
            if message is None:
                break
            if self._handle_wire_message(message):
                handled += 1
        return handled

    def _handle_wire_message(self, message: Dict[str, Any]) -> bool:
        """
        处理一条Pub/Sub消息

        Returns:
            bool: 是否分发给了监听器
        """
        if message.get("type") != "message":
            return False

        try:
            frame = deserialize_from_json(message.get("data"))
            if not isinstance(frame, dict):
                raise DeserializationError("帧必须是JSON对象")
            if frame.get(RedisConstants.SENDER_FIELD) == self.sender_id:
                return False
            envelope = decode_envelope(frame.get(RedisConstants.DATA_FIELD))
        except DeserializationError as e:
            logger.warning(f"[{self.name}] 丢弃无法解析的消息: {e}")
            return False

        self._dispatch_remote(envelope)
        return True

    def _dispatch_remote(self, envelope: MessageEnvelope) -> None:
        """将远端信封交给本地监听器"""
        if self._loop is None:
            self._local.send(envelope)
            return

        try:
            self._loop.call_soon_threadsafe(self._local.send, envelope)
        except RuntimeError as e:
            logger.warning(f"[{self.name}] 事件循环不可用，丢弃远端消息: {e}")

    def teardown(self) -> None:
        """停止监听线程并释放Redis订阅，幂等且不抛出异常"""
        if self._torn_down:
            return
        self._torn_down = True

        thread = self._listener_thread
        self._listener_thread = None
        if thread is not None:
            thread.stop()
            if thread is not threading.current_thread():
                thread.join(timeout=RedisConstants.DEFAULT_JOIN_TIMEOUT)

        self._local.teardown()

        try:
            self._pubsub.unsubscribe(self.channel_key)
            self._pubsub.close()
        except Exception as e:
            logger.debug(f"[{self.name}] 关闭Redis订阅失败: {e}")

        if self._owns_client:
            try:
                self.redis_client.close()
            except Exception as e:
                logger.debug(f"[{self.name}] 关闭Redis连接失败: {e}")

        logger.debug(f"[{self.name}] Redis广播传输已释放")


class BroadcastListenerThread(threading.Thread):
    """
    广播监听线程

    负责从Redis订阅连接读取消息并交给传输分发
    """

    def __init__(self, transport: RedisBroadcastTransport):
        super().__init__(name=f"BroadcastListener-{transport.name}")
        self.daemon = True

        self.transport = transport
        self._running = False

    def run(self) -> None:
        """线程主循环"""
        self._running = True
        logger.debug(f"广播监听线程已启动: {self.name}")

        while self._running:
            try:
                self.transport.poll(timeout=self.transport.poll_timeout)
            except Exception as e:
                if self._running:
                    logger.error(f"广播监听循环异常: {e}")
                    time.sleep(1)  # 避免在错误情况下过快重试

        logger.debug(f"广播监听线程已停止: {self.name}")

    def stop(self) -> None:
        """停止线程"""
        self._running = False
