"""
消息总线的核心数据模型。

此模块定义了消息信封 (Message Envelope) 及其编解码函数。
"""
from copy import deepcopy
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import ChannelConstants, ErrorMessages
from .exceptions import DeserializationError
from .utils import deserialize_from_json, now_ms, serialize_to_json

# 线框上信封记录包含的字段
ENVELOPE_FIELDS = ("type", "payload", "origin", "channel", "ts")


class FrozenDict(dict):
    """只读字典，信封载荷中的映射以此形式保存"""

    def _readonly(self, *args, **kwargs):
        raise TypeError(ErrorMessages.READONLY_PAYLOAD)

    __setitem__ = __delitem__ = __ior__ = _readonly
    clear = pop = popitem = setdefault = update = _readonly

    def __reduce__(self):
        return (FrozenDict, (dict(self),))


class FrozenList(list):
    """只读列表，信封载荷中的序列以此形式保存"""

    def _readonly(self, *args, **kwargs):
        raise TypeError(ErrorMessages.READONLY_PAYLOAD)

    __setitem__ = __delitem__ = __iadd__ = __imul__ = _readonly
    append = extend = insert = pop = remove = clear = sort = reverse = _readonly

    def __reduce__(self):
        return (FrozenList, (list(self),))


def freeze_payload(value: Any) -> Any:
    """
    递归生成载荷的只读副本。

    映射转为 FrozenDict，列表与元组转为 FrozenList，其余值深拷贝，
    因此发布方之后修改原始数据不会影响已投递的信封。
    """
    if isinstance(value, Mapping):
        return FrozenDict((key, freeze_payload(item)) for key, item in value.items())
    if isinstance(value, (list, tuple)):
        return FrozenList(freeze_payload(item) for item in value)
    return deepcopy(value)


class MessageEnvelope(BaseModel):
    """
    消息信封模型，用于包装所有通过频道传递的消息。

    信封在构建后不可修改：载荷在构建时复制为只读结构，所有监听器共享同一份。
    channel 与 ts 由频道在发布时填写。
    """
    # 消息主题，例如 "filter/range.changed"，对总线而言是不透明的字符串
    type: str = Field(min_length=1)

    # 应用层数据，总线不检查其结构
    payload: Dict[str, Any] = Field(default_factory=dict, validate_default=True)

    # 发布组件标识
    origin: str = ChannelConstants.DEFAULT_ORIGIN

    # 发布所在的频道名称
    channel: str

    # 发布时刻，自纪元起的毫秒数
    ts: int = Field(default_factory=now_ms)

    @field_validator("payload")
    @classmethod
    def _freeze_payload(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        return freeze_payload(value)

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "type": "filter/range.changed",
                "payload": {"field": "area_km", "range": [0, 10]},
                "origin": "histogram",
                "channel": "bus-a",
                "ts": 1760860800000,
            }
        }
    )

    @classmethod
    def create(
        cls,
        event_type: str,
        channel: str,
        payload: Optional[Mapping[str, Any]] = None,
        origin: Optional[str] = None,
    ) -> "MessageEnvelope":
        """
        创建消息信封的工厂方法，自动填写时间戳。

        Args:
            event_type: 消息主题
            channel: 频道名称
            payload: 业务数据，默认为空字典
            origin: 发布者标识，默认为 "udf"

        Returns:
            消息信封对象
        """
        return cls(
            type=event_type,
            channel=channel,
            payload=dict(payload) if payload is not None else {},
            origin=origin or ChannelConstants.DEFAULT_ORIGIN,
        )

    def to_wire(self) -> Dict[str, Any]:
        """返回线框记录（普通字典）"""
        return self.model_dump()

    def matches(self, topic: str) -> bool:
        """判断信封是否匹配订阅主题：通配主题或类型完全相等"""
        return topic == ChannelConstants.WILDCARD_TOPIC or topic == self.type


def build_envelope(
    event_type: str,
    channel: str,
    payload: Optional[Mapping[str, Any]] = None,
    origin: Optional[str] = None,
) -> MessageEnvelope:
    """
    构建标准的消息信封。

    Args:
        event_type: 消息主题
        channel: 频道名称
        payload: 业务数据
        origin: 发布者标识

    Returns:
        消息信封对象
    """
    return MessageEnvelope.create(
        event_type=event_type,
        channel=channel,
        payload=payload,
        origin=origin,
    )


def encode_envelope(envelope: MessageEnvelope) -> str:
    """
    将信封编码为JSON字符串。

    Raises:
        DeserializationError: 载荷无法用JSON表示
    """
    return serialize_to_json(envelope.to_wire())


def decode_envelope(raw: Union[str, bytes, Mapping[str, Any]]) -> MessageEnvelope:
    """
    从线框数据解析信封。

    Args:
        raw: JSON字符串、字节串或已解析的字典

    Returns:
        消息信封对象

    Raises:
        DeserializationError: 数据无法解析、缺少 type 字段或字段类型不符
    """
    data = raw if isinstance(raw, Mapping) else deserialize_from_json(raw)
    if not isinstance(data, Mapping):
        raise DeserializationError("信封必须是JSON对象")
    if "type" not in data:
        raise DeserializationError("信封缺少 type 字段")
    try:
        return MessageEnvelope.model_validate(dict(data))
    except ValidationError as e:
        raise DeserializationError(f"信封字段无效: {e}")
