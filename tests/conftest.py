"""
全局测试配置
"""
import os
import sys

import fakeredis
import pytest

# 确保能导入项目模块
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from channel_bus.adapters.local import LocalTransport
from channel_bus.core.channel import Channel
from channel_bus.registry import ChannelRegistry


@pytest.fixture
def local_channel():
    """使用本地传输的频道"""
    channel = Channel("test-channel", LocalTransport("test-channel"))
    yield channel
    channel.close()


@pytest.fixture
def fake_redis_server():
    """模拟多个进程共享的Redis服务器"""
    return fakeredis.FakeServer()


@pytest.fixture
def make_fake_redis(fake_redis_server):
    """创建连接到同一个假Redis服务器的客户端"""
    def factory():
        return fakeredis.FakeRedis(server=fake_redis_server, decode_responses=True)
    return factory


@pytest.fixture
def registry():
    """独立的频道注册表，测试结束时关闭所有频道"""
    reg = ChannelRegistry()
    yield reg
    reg.close_all()


@pytest.fixture
def local_config():
    """只使用本地传输的消息总线配置"""
    return {
        "transport": "local",
        "key_prefix": "test-bus",
        "default_origin": "udf",
        "memoize": True,
    }
