"""
测试 LocalTransport。
"""
import logging

import pytest

from channel_bus.adapters.local import LocalTransport
from channel_bus.core.interfaces import ITransport
from channel_bus.core.models import build_envelope


@pytest.fixture
def transport():
    transport = LocalTransport("local-test")
    yield transport
    transport.teardown()


def _envelope(event_type, payload=None):
    return build_envelope(event_type, "local-test", payload)


class TestLocalTransport:
    """测试本地传输的分发语义"""

    def test_implements_interface(self, transport):
        assert isinstance(transport, ITransport)

    def test_exact_topic_and_wildcard(self, transport):
        """测试具体主题只收到完全相等的类型，通配主题收到全部"""
        exact, wildcard = [], []
        transport.listen("filter/range.changed", exact.append)
        transport.listen("*", wildcard.append)

        transport.send(_envelope("filter/range.changed"))
        transport.send(_envelope("filter/range"))
        transport.send(_envelope("filter/bounds.changed"))

        assert [e.type for e in exact] == ["filter/range.changed"]
        assert [e.type for e in wildcard] == [
            "filter/range.changed", "filter/range", "filter/bounds.changed"
        ]

    def test_registration_order(self, transport):
        """测试按注册顺序同步调用"""
        calls = []
        transport.listen("*", lambda e: calls.append("first"))
        transport.listen("ping", lambda e: calls.append("second"))
        transport.listen("*", lambda e: calls.append("third"))

        transport.send(_envelope("ping"))

        assert calls == ["first", "second", "third"]

    def test_remove_is_idempotent(self, transport):
        """测试移除函数可重复调用"""
        received = []
        remove = transport.listen("ping", received.append)

        remove()
        remove()
        transport.send(_envelope("ping"))

        assert received == []
        assert transport.listener_count == 0

    def test_duplicate_registrations_removed_independently(self, transport):
        """测试相同的重复注册各自独立移除"""
        received = []
        remove_first = transport.listen("ping", received.append)
        transport.listen("ping", received.append)

        transport.send(_envelope("ping"))
        assert len(received) == 2

        remove_first()
        transport.send(_envelope("ping"))
        assert len(received) == 3

    def test_removal_during_dispatch_does_not_affect_current(self, transport):
        """测试分发过程中的移除只影响之后的分发"""
        calls = []
        removers = {}

        def first(envelope):
            calls.append("first")
            removers["second"]()

        transport.listen("ping", first)
        removers["second"] = transport.listen("ping", lambda e: calls.append("second"))

        transport.send(_envelope("ping"))
        assert calls == ["first", "second"]

        transport.send(_envelope("ping"))
        assert calls == ["first", "second", "first"]

    def test_addition_during_dispatch_waits_for_next(self, transport):
        """测试分发过程中新增的监听器不参与当前分发"""
        late = []

        def adder(envelope):
            transport.listen("ping", late.append)

        remove_adder = transport.listen("ping", adder)
        transport.send(_envelope("ping"))
        assert late == []

        remove_adder()
        transport.send(_envelope("ping"))
        assert len(late) == 1

    def test_handler_failure_is_isolated(self, transport, caplog):
        """测试单个处理器异常不影响其他处理器"""
        received = []

        def broken(envelope):
            raise RuntimeError("boom")

        transport.listen("ping", broken)
        transport.listen("ping", received.append)

        with caplog.at_level(logging.ERROR, logger="channel_bus.local"):
            transport.send(_envelope("ping"))

        assert len(received) == 1
        assert "消息处理器执行失败" in caplog.text

    def test_handler_cannot_alter_payload_for_later_handlers(self, transport):
        """测试前一个处理器无法修改后续处理器看到的载荷"""
        seen = []

        def tamper(envelope):
            envelope.payload.update(hacked=True)

        transport.listen("ping", tamper)
        transport.listen("ping", lambda e: seen.append(e.payload))

        transport.send(build_envelope("ping", "test-local", {"nested": {"a": 1}}))

        assert seen == [{"nested": {"a": 1}}]

    def test_teardown_is_idempotent(self, transport):
        """测试释放可重复调用，释放后发送与注册都无效"""
        received = []
        transport.listen("*", received.append)

        transport.teardown()
        transport.teardown()

        remove = transport.listen("*", received.append)
        remove()
        transport.send(_envelope("ping"))

        assert transport.closed
        assert received == []
