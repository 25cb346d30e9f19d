"""
通用绑定工具

把任意事件源接到频道上。具体组件（地图、图表、按钮、下拉框）只需提供
on/off 注册函数与载荷构造函数，不需要频道提供额外的接口。
每个绑定返回一个清理函数，调用后事件源与频道上都不再残留注册。
"""
import json
from typing import Any, Callable, Dict, Optional, Union

from .common.config import get_bus_config
from .common.logger import get_logger
from .core.channel import Channel
from .core.constants import ErrorMessages
from .core.debounce import AsyncioFrameScheduler, FrameDebouncer, debounce
from .core.exceptions import SubscribeError
from .core.interfaces import FrameScheduler, MessageHandler
from .registry import create_channel

logger = get_logger("channel_bus.bindings")

ChannelRef = Union[str, Channel]
Cleanup = Callable[[], None]


def _resolve_channel(channel: ChannelRef) -> Channel:
    """频道名称通过 create_channel 解析，频道实例原样返回"""
    if isinstance(channel, Channel):
        return channel
    if isinstance(channel, str) and channel:
        return create_channel(channel)
    raise SubscribeError(f"无效的频道: {channel!r}")


def enable_messaging(
    source: Any,
    channel: ChannelRef,
    sender: str,
    event_type: str,
    on: Callable[[Any, Callable[..., None]], None],
    off: Optional[Callable[[Any, Callable[..., None]], None]] = None,
    get_payload: Optional[Callable[..., Dict[str, Any]]] = None,
    debounced: bool = False,
    scheduler: Optional[FrameScheduler] = None,
) -> Cleanup:
    """
    把事件源的每次触发发布为频道消息

    Args:
        source: 事件源对象
        channel: 频道名称或频道实例
        sender: 发布者标识，写入信封的 origin
        event_type: 发布的消息类型
        on: 注册函数，签名 on(source, handler)
        off: 注销函数，签名 off(source, handler)
        get_payload: 根据事件参数构造载荷，默认空载荷
        debounced: 是否按帧合并高频触发
        scheduler: 防抖使用的帧调度器，默认按配置的 frame_interval_ms 在事件循环上调度

    Returns:
        清理函数，重复调用无副作用

    Raises:
        SubscribeError: 缺少事件源或注册函数
    """
    if source is None:
        raise SubscribeError(ErrorMessages.MISSING_SOURCE)
    if not callable(on):
        raise SubscribeError(ErrorMessages.INVALID_HANDLER)

    ch = _resolve_channel(channel)

    def handler(*args: Any) -> None:
        try:
            payload = get_payload(*args) if get_payload else {}
        except Exception as e:
            logger.warning(f"[{sender}] 构造载荷失败，跳过发布: {e}")
            return
        ch.publish(event_type, payload, sender)

    if debounced and scheduler is None:
        frame_interval = get_bus_config()["frame_interval_ms"] / 1000
        scheduler = AsyncioFrameScheduler(frame_interval=frame_interval)

    emit: Callable[..., None] = debounce(handler, scheduler=scheduler) if debounced else handler
    on(source, emit)
    logger.debug(f"[{sender}] 已绑定事件源到频道 {ch.name}: {event_type}")

    detached = False

    def cleanup() -> None:
        nonlocal detached
        if detached:
            return
        detached = True
        if isinstance(emit, FrameDebouncer):
            emit.cancel()
        if off is not None:
            try:
                off(source, emit)
            except Exception as e:
                logger.debug(f"[{sender}] 注销事件源失败: {e}")

    return cleanup


def enable_listener(
    channel: ChannelRef,
    on_message: Optional[MessageHandler] = None,
) -> Cleanup:
    """
    监听频道上的全部消息

    未提供回调时，以格式化JSON记录每个信封。

    Returns:
        取消监听的函数
    """
    ch = _resolve_channel(channel)

    def handler(envelope) -> None:
        if on_message is not None:
            on_message(envelope)
            return
        logger.info(json.dumps(envelope.to_wire(), ensure_ascii=False, indent=2, default=str))

    return ch.subscribe("*", handler)


def publish_vars(channel: ChannelRef, sender: str, variables: Dict[str, Any]) -> None:
    """发布标准的变量消息 ("vars", {"vars": variables})"""
    _resolve_channel(channel).publish("vars", {"vars": variables}, sender)
