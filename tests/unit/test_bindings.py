"""
测试通用绑定工具。
"""
import asyncio
import logging

import pytest

from channel_bus import bindings
from channel_bus.core.debounce import ManualFrameScheduler
from channel_bus.core.exceptions import SubscribeError
from channel_bus.registry import create_channel


class FakeSource:
    """模拟组件事件源，例如地图的 move 事件"""

    def __init__(self):
        self.handlers = []
        self.zoom = 3

    def fire(self, *args):
        for handler in list(self.handlers):
            handler(*args)


def _on(source, handler):
    source.handlers.append(handler)


def _off(source, handler):
    source.handlers.remove(handler)


@pytest.fixture
def channel(registry, local_config, monkeypatch):
    """名称解析走独立的注册表"""
    monkeypatch.setattr(
        bindings, "create_channel",
        lambda name: create_channel(name, config=local_config, registry=registry)
    )
    return create_channel("bus-a", config=local_config, registry=registry)


class TestEnableMessaging:
    """测试 enable_messaging"""

    def test_publishes_each_trigger(self, channel):
        source = FakeSource()
        received = []
        channel.subscribe("bounds", received.append)

        bindings.enable_messaging(
            source, channel, "map", "bounds", _on, _off,
            get_payload=lambda: {"bounds": [0, 1, 2, 3], "zoom": source.zoom}
        )
        source.fire()
        source.zoom = 4
        source.fire()

        assert [e.payload["zoom"] for e in received] == [3, 4]
        assert all(e.origin == "map" for e in received)

    def test_payload_receives_event_arguments(self, channel):
        source = FakeSource()
        received = []
        channel.subscribe("brush", received.append)

        bindings.enable_messaging(
            source, channel, "chart", "brush", _on, _off,
            get_payload=lambda name, value: {"signal": name, "extent": value}
        )
        source.fire("brush", [0, 10])

        assert received[0].payload == {"signal": "brush", "extent": [0, 10]}

    def test_channel_name_is_resolved(self, channel):
        source = FakeSource()
        received = []
        channel.subscribe("*", received.append)

        bindings.enable_messaging(source, "bus-a", "button", "button", _on, _off)
        source.fire()

        assert len(received) == 1
        assert received[0].payload == {}

    def test_cleanup_detaches_source(self, channel):
        source = FakeSource()
        received = []
        channel.subscribe("*", received.append)

        cleanup = bindings.enable_messaging(source, channel, "map", "bounds", _on, _off)
        cleanup()
        cleanup()
        source.fire()

        assert source.handlers == []
        assert received == []

    def test_cleanup_swallows_off_errors(self, channel):
        def broken_off(source, handler):
            raise RuntimeError("widget destroyed")

        cleanup = bindings.enable_messaging(FakeSource(), channel, "map", "bounds", _on, broken_off)

        cleanup()

    def test_payload_failure_skips_publish(self, channel):
        source = FakeSource()
        received = []
        channel.subscribe("*", received.append)

        def broken_payload():
            raise KeyError("bounds")

        bindings.enable_messaging(source, channel, "map", "bounds", _on, _off, get_payload=broken_payload)
        source.fire()

        assert received == []

    def test_missing_source(self, channel):
        with pytest.raises(SubscribeError):
            bindings.enable_messaging(None, channel, "map", "bounds", _on, _off)

    def test_invalid_channel(self):
        with pytest.raises(SubscribeError):
            bindings.enable_messaging(FakeSource(), "", "map", "bounds", _on, _off)

    def test_debounced_emission(self, channel):
        """测试高频触发按帧合并"""
        source = FakeSource()
        scheduler = ManualFrameScheduler()
        received = []
        channel.subscribe("bounds", received.append)

        cleanup = bindings.enable_messaging(
            source, channel, "map", "bounds", _on, _off,
            get_payload=lambda: {"zoom": source.zoom},
            debounced=True, scheduler=scheduler
        )
        for _ in range(20):
            source.fire()
        scheduler.tick()
        assert len(received) == 1

        source.fire()
        cleanup()
        scheduler.tick()
        assert len(received) == 1


class TestListenerAndVars:
    """测试 enable_listener 与 publish_vars"""

    def test_listener_callback(self, channel):
        received = []
        stop = bindings.enable_listener(channel, received.append)

        channel.publish("a")
        channel.publish("b")
        stop()
        channel.publish("c")

        assert [e.type for e in received] == ["a", "b"]

    def test_listener_default_logs_envelope(self, channel, caplog):
        bindings.enable_listener(channel)

        with caplog.at_level(logging.INFO, logger="channel_bus.bindings"):
            channel.publish("ping", {"n": 1}, "tester")

        assert '"type": "ping"' in caplog.text
        assert '"origin": "tester"' in caplog.text

    def test_publish_vars(self, channel):
        received = []
        channel.subscribe("vars", received.append)

        bindings.publish_vars("bus-a", "form", {"threshold": 5})

        assert received[0].payload == {"vars": {"threshold": 5}}
        assert received[0].origin == "form"


class TestDefaultScheduler:
    """测试未指定调度器时使用配置的帧间隔"""

    @pytest.mark.asyncio
    async def test_configured_frame_interval(self, channel, monkeypatch):
        monkeypatch.setattr(bindings, "get_bus_config", lambda: {"frame_interval_ms": 5})
        source = FakeSource()
        received = []
        channel.subscribe("bounds", received.append)

        cleanup = bindings.enable_messaging(source, channel, "map", "bounds", _on, _off, debounced=True)
        assert source.handlers[0]._scheduler.frame_interval == 0.005

        for _ in range(5):
            source.fire()
        await asyncio.sleep(0.05)
        cleanup()

        assert len(received) == 1
