"""
消息总线使用的常量定义。
"""


class ChannelConstants:
    """频道相关常量"""
    # 通配主题，订阅该主题可以收到频道内所有消息
    WILDCARD_TOPIC = "*"

    # 默认值
    DEFAULT_CHANNEL_NAME = "channel-bus-default"  # 默认频道名称
    DEFAULT_ORIGIN = "udf"  # 未指定发布者时的来源标识

    # 传输方式
    TRANSPORT_AUTO = "auto"
    TRANSPORT_LOCAL = "local"
    TRANSPORT_REDIS = "redis"


class RedisConstants:
    """Redis相关常量"""
    DEFAULT_KEY_PREFIX = "channel-bus"  # Redis频道键前缀

    # 线框字段
    SENDER_FIELD = "sender"
    DATA_FIELD = "data"

    # 默认连接超时时间（秒）
    DEFAULT_CONNECTION_TIMEOUT = 2

    # 监听线程每次读取的阻塞时间（秒）
    DEFAULT_POLL_TIMEOUT = 0.5

    # 监听线程退出时的等待时间（秒）
    DEFAULT_JOIN_TIMEOUT = 1.0


class FrameConstants:
    """帧调度相关常量"""
    DEFAULT_FRAME_INTERVAL_MS = 16  # 约60fps


class ErrorMessages:
    """错误消息常量"""
    REDIS_CONNECTION_ERROR = "无法连接到Redis服务器"
    PUBLISH_ERROR = "发布消息时发生错误"
    SUBSCRIBE_ERROR = "订阅消息时发生错误"
    INVALID_TOPIC = "订阅主题必须是非空字符串"
    INVALID_HANDLER = "消息处理器必须可调用"
    MISSING_SOURCE = "缺少事件源"
    INVALID_JSON = "无效的JSON数据"
    READONLY_PAYLOAD = "消息信封的载荷不可修改"
