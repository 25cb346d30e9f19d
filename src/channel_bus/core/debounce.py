"""
帧对齐的防抖工具

把高频触发（例如地图持续平移时的 move 事件）合并为每帧至多一次的执行。
"""
import asyncio
import itertools
import threading
from typing import Any, Callable, Dict, Optional

from ..common.logger import get_logger
from .constants import FrameConstants
from .interfaces import FrameScheduler

logger = get_logger("channel_bus.debounce")


class _CrossThreadFrame:
    """从事件循环之外的线程请求的帧，定时器在循环线程上创建"""

    def __init__(self, loop: asyncio.AbstractEventLoop, delay: float, callback: Callable[[], None]):
        self._callback = callback
        self._cancelled = False
        loop.call_soon_threadsafe(self._arm, loop, delay)

    def _arm(self, loop: asyncio.AbstractEventLoop, delay: float) -> None:
        if not self._cancelled:
            loop.call_later(delay, self._fire)

    def _fire(self) -> None:
        if not self._cancelled:
            self._callback()

    def cancel(self) -> None:
        self._cancelled = True


class AsyncioFrameScheduler(FrameScheduler):
    """
    基于asyncio事件循环的帧调度器

    以固定帧间隔通过 call_later 执行回调。未指定事件循环时，
    在请求时使用当前正在运行的循环，此时只能在循环线程中请求。
    指定了事件循环时可以从任意线程请求（例如广播监听线程），
    回调总是在循环线程上执行。
    """

    def __init__(
        self,
        frame_interval: float = FrameConstants.DEFAULT_FRAME_INTERVAL_MS / 1000,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.frame_interval = frame_interval
        self._loop = loop

    def request_frame(self, callback: Callable[[], None]) -> Any:
        if self._loop is None:
            return asyncio.get_running_loop().call_later(self.frame_interval, callback)

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            return self._loop.call_later(self.frame_interval, callback)
        return _CrossThreadFrame(self._loop, self.frame_interval, callback)

    def cancel_frame(self, handle: Any) -> None:
        if handle is not None:
            handle.cancel()


class ManualFrameScheduler(FrameScheduler):
    """
    手动驱动的帧调度器

    由宿主的渲染循环每帧调用一次 tick()。tick 只执行本帧开始前请求的回调，
    回调执行期间新请求的回调留到下一帧。
    """

    def __init__(self):
        self._callbacks: Dict[int, Callable[[], None]] = {}
        self._due: Dict[int, Callable[[], None]] = {}
        self._handles = itertools.count(1)
        self.frame_count = 0

    @property
    def pending_count(self) -> int:
        return len(self._callbacks)

    def request_frame(self, callback: Callable[[], None]) -> int:
        handle = next(self._handles)
        self._callbacks[handle] = callback
        return handle

    def cancel_frame(self, handle: Optional[int]) -> None:
        self._callbacks.pop(handle, None)
        self._due.pop(handle, None)

    def tick(self) -> int:
        """
        推进一帧

        Returns:
            int: 本帧执行的回调数量
        """
        self.frame_count += 1
        self._due, self._callbacks = self._callbacks, {}

        executed = 0
        while self._due:
            handle = next(iter(self._due))
            callback = self._due.pop(handle)
            executed += 1
            try:
                callback()
            except Exception:
                logger.exception(f"帧回调执行失败: handle={handle}")
        return executed


class FrameDebouncer:
    """
    帧对齐的防抖包装器

    第一次调用请求下一帧执行并进入 pending 状态；pending 期间的调用被丢弃。
    帧回调触发时先清除 pending，再以第一次调用的参数执行处理器
    （latest=True 时改用最后一次调用的参数）。

    可以在任意线程中调用；处理器在调度器的帧回调中执行。
    在广播监听线程等没有运行中事件循环的线程里使用时，
    调度器需要绑定事件循环，例如 AsyncioFrameScheduler(loop=loop)。
    """

    def __init__(
        self,
        handler: Callable[..., Any],
        scheduler: Optional[FrameScheduler] = None,
        latest: bool = False,
    ):
        self._handler = handler
        self._scheduler = scheduler if scheduler is not None else AsyncioFrameScheduler()
        self._latest = latest

        self._lock = threading.RLock()
        self._pending = False
        self._handle: Any = None
        self._args: tuple = ()
        self._kwargs: Dict[str, Any] = {}

        # 统计
        self.executions = 0
        self.dropped = 0

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def handler(self) -> Callable[..., Any]:
        return self._handler

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            if self._pending:
                self.dropped += 1
                if self._latest:
                    self._args, self._kwargs = args, kwargs
                return

            self._pending = True
            self._args, self._kwargs = args, kwargs
            try:
                self._handle = self._scheduler.request_frame(self._run)
            except Exception:
                self._reset()
                raise

    def _run(self) -> None:
        with self._lock:
            if not self._pending:
                return
            args, kwargs = self._args, self._kwargs
            self._reset()
            self.executions += 1

        try:
            self._handler(*args, **kwargs)
        except Exception:
            logger.exception("防抖处理器执行失败")

    def cancel(self) -> None:
        """取消尚未执行的调用"""
        with self._lock:
            if not self._pending:
                return
            try:
                self._scheduler.cancel_frame(self._handle)
            finally:
                self._reset()

    def _reset(self) -> None:
        self._pending = False
        self._handle = None
        self._args = ()
        self._kwargs = {}


def debounce(
    handler: Callable[..., Any],
    scheduler: Optional[FrameScheduler] = None,
    latest: bool = False,
) -> FrameDebouncer:
    """
    将处理器包装为每帧至多执行一次

    Args:
        handler: 原始处理器
        scheduler: 帧调度器，默认使用调用时正在运行的asyncio事件循环；
            在没有运行中事件循环的线程里调用时需要传入绑定了 loop 的调度器
        latest: 为True时使用本帧最后一次调用的参数，否则使用第一次

    Returns:
        可调用的防抖包装器
    """
    return FrameDebouncer(handler, scheduler=scheduler, latest=latest)
