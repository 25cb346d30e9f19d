"""
消息总线的自定义异常定义。
"""


class ChannelBusError(Exception):
    """消息总线的基础异常类"""
    pass


class TransportError(ChannelBusError):
    """传输层（广播原语）构建或释放时的异常"""
    pass


class PublishError(ChannelBusError):
    """发布消息时发生的异常"""
    pass


class SubscribeError(ChannelBusError):
    """订阅参数不合法等编程错误"""
    pass


class DeserializationError(ChannelBusError):
    """消息序列化或反序列化异常"""
    pass
