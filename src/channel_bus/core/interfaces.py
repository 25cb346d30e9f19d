"""
消息总线的抽象接口定义。

此模块定义了传输层与帧调度器的接口，所有具体实现类必须满足这些接口要求。
"""
from typing import Any, Callable, Protocol, runtime_checkable

from .models import MessageEnvelope

# 消息处理器：接收一个信封，无返回值
MessageHandler = Callable[[MessageEnvelope], None]

# 取消订阅的能力：无参数调用，可重复调用
Unsubscribe = Callable[[], None]


@runtime_checkable
class ITransport(Protocol):
    """
    传输层的抽象接口定义。

    屏蔽跨上下文广播与同上下文分发两种投递范围的差异，
    频道层只通过此接口与传输层交互，从不判断具体实现。
    """

    def send(self, envelope: MessageEnvelope) -> None:
        """
        投递一个信封给所有匹配的监听器。

        Args:
            envelope: 已构建好的消息信封
        """
        ...

    def listen(self, topic: str, handler: MessageHandler) -> Unsubscribe:
        """
        注册监听器。

        Args:
            topic: 具体的消息类型，或通配主题 "*"
            handler: 匹配时同步调用的处理函数

        Returns:
            移除该监听器的函数，可安全地重复调用
        """
        ...

    def teardown(self) -> None:
        """释放底层原语并丢弃所有监听器。必须幂等，且不抛出异常。"""
        ...


@runtime_checkable
class FrameScheduler(Protocol):
    """
    帧调度器接口。

    request_frame 注册的回调会在下一帧执行一次。
    """

    def request_frame(self, callback: Callable[[], None]) -> Any:
        """请求在下一帧执行回调，返回可用于取消的句柄"""
        ...

    def cancel_frame(self, handle: Any) -> None:
        """取消尚未执行的回调"""
        ...
