"""
测试频道注册表与 create_channel。
"""
from channel_bus.adapters.local import LocalTransport
from channel_bus.core.channel import Channel
from channel_bus.registry import ChannelRegistry, create_channel, default_registry


class TestChannelRegistry:
    """测试按名称记忆频道"""

    def test_same_name_returns_same_channel(self, registry, local_config):
        first = create_channel("bus-a", config=local_config, registry=registry)
        second = create_channel("bus-a", config=local_config, registry=registry)

        assert first is second
        assert first.transport is second.transport
        assert "bus-a" in registry
        assert len(registry) == 1

    def test_different_names_are_independent(self, registry, local_config):
        a = create_channel("bus-a", config=local_config, registry=registry)
        b = create_channel("bus-b", config=local_config, registry=registry)
        received = []
        b.subscribe("*", received.append)

        a.publish("ping")

        assert a is not b
        assert received == []
        assert sorted(registry.names()) == ["bus-a", "bus-b"]

    def test_memoized_channels_share_fan_out(self, registry, local_config):
        publisher = create_channel("bus-a", config=local_config, registry=registry)
        listener = create_channel("bus-a", config=local_config, registry=registry)
        received = []
        listener.subscribe("ping", received.append)

        publisher.publish("ping", {"n": 1}, "map")

        assert len(received) == 1
        assert received[0].channel == "bus-a"

    def test_close_evicts_and_next_call_creates_fresh_channel(self, registry, local_config):
        first = create_channel("bus-a", config=local_config, registry=registry)

        first.close()

        assert "bus-a" not in registry
        second = create_channel("bus-a", config=local_config, registry=registry)
        assert second is not first
        assert not second.closed

    def test_eviction_ignores_replaced_instance(self, registry, local_config):
        first = create_channel("bus-a", config=local_config, registry=registry)
        first.close()
        second = create_channel("bus-a", config=local_config, registry=registry)

        registry._evict(first)

        assert registry.get("bus-a") is second

    def test_close_all(self, registry, local_config):
        channels = [create_channel(name, config=local_config, registry=registry) for name in ("a", "b", "c")]

        registry.close_all()

        assert all(channel.closed for channel in channels)
        assert len(registry) == 0

    def test_default_origin_from_config(self, registry, local_config):
        channel = create_channel("bus-a", config={**local_config, "default_origin": "dashboard"}, registry=registry)
        received = []
        channel.subscribe("*", received.append)

        channel.publish("ping")

        assert received[0].origin == "dashboard"

    def test_memoize_disabled(self, registry, local_config):
        config = {**local_config, "memoize": False}

        first = create_channel("bus-a", config=config, registry=registry)
        second = create_channel("bus-a", config=config, registry=registry)

        assert first is not second
        assert len(registry) == 0
        first.close()
        second.close()

    def test_direct_construction_is_not_memoized(self, registry, local_config):
        memoized = create_channel("bus-a", config=local_config, registry=registry)
        direct = Channel("bus-a", LocalTransport("bus-a"))

        assert direct is not memoized
        assert registry.get("bus-a") is memoized
        direct.close()

    def test_empty_registry_is_used(self, local_config):
        """测试传入的空注册表在第一次调用时即被使用，而不是进程级注册表"""
        fresh = ChannelRegistry()
        assert len(fresh) == 0

        channel = create_channel("registry-fresh-only", config=local_config, registry=fresh)

        assert "registry-fresh-only" in fresh
        assert fresh.get("registry-fresh-only") is channel
        assert "registry-fresh-only" not in default_registry
        fresh.close_all()

    def test_config_of_passed_registry_wins_over_default(self, local_config):
        """测试进程级注册表已缓存同名频道时，传入注册表仍按自己的配置创建"""
        cached = create_channel("registry-shared-name", config=local_config)
        fresh = ChannelRegistry()
        try:
            channel = create_channel(
                "registry-shared-name",
                config={**local_config, "default_origin": "dashboard"},
                registry=fresh
            )

            assert channel is not cached
            assert channel.default_origin == "dashboard"
        finally:
            fresh.close_all()
            cached.close()
