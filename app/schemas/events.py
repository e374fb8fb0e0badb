"""
app.schemas.events
~~~~~~~~~~~~~~~~~~

WebSocket 事件协议的 Pydantic 模型。

每一帧都是一个 JSON 文本帧::

    {"event": "join-room", "args": ["123"]}

``args`` 是位置参数列表，各事件的参数形状由下方的 ``TypeAdapter`` 校验。
多余的尾部参数会被忽略；类型或数量不符的事件直接丢弃。
"""
from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

T = TypeVar("T")

# ── 事件名 ────────────────────────────────────────────────────────────

JOIN_ROOM = "join-room"
MESSAGE = "message"
OFFER = "offer"
ANSWER = "answer"
CANDIDATE = "candidate"

USER_CONNECTED = "user-connected"
USER_DISCONNECTED = "user-disconnected"
USER_COUNT = "user-count"
CHAT_HISTORY = "chat-history"

SIGNAL_KINDS: tuple[str, ...] = (OFFER, ANSWER, CANDIDATE)


# ── 消息体 ────────────────────────────────────────────────────────────

class ChatMessage(BaseModel):
    """房间内的一条聊天记录。

    Attributes:
        text: 原样保存的消息文本，不做裁剪或校验。
        timestamp: 服务端处理该消息时分配的毫秒时间戳。
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="消息文本")
    timestamp: int = Field(..., description="服务端时间戳（毫秒）")


class ClientEvent(BaseModel):
    """客户端 → 服务端的事件帧。"""

    event: str = Field(..., description="事件名")
    args: list[Any] = Field(default_factory=list, description="位置参数")


class ServerEvent(BaseModel):
    """服务端 → 客户端的事件帧。"""

    event: str = Field(..., description="事件名")
    args: list[Any] = Field(default_factory=list, description="位置参数")


class RoomInfoData(BaseModel):
    """房间摘要信息。"""

    room_id: str = Field(..., description="房间标识")
    member_count: int = Field(..., description="当前在线人数")
    message_count: int = Field(..., description="当前保留的聊天记录条数")


# ── 位置参数校验 ──────────────────────────────────────────────────────

# join-room(roomId)
JOIN_ARGS: TypeAdapter[tuple[str]] = TypeAdapter(tuple[str])
# message(roomId, text)
MESSAGE_ARGS: TypeAdapter[tuple[str, str]] = TypeAdapter(tuple[str, str])
# offer / answer / candidate(roomId, targetId, payload)，targetId 与 payload 原样透传
SIGNAL_ARGS: TypeAdapter[tuple[str, Any, Any]] = TypeAdapter(tuple[str, Any, Any])


def parse_args(adapter: TypeAdapter[T], args: list[Any], arity: int) -> T | None:
    """按位置校验事件参数，多余参数忽略。

    Args:
        adapter: 目标参数形状。
        args: 客户端帧中的 ``args``。
        arity: 需要的参数个数。

    Returns:
        校验后的参数元组；数量或类型不符时返回 ``None``。
    """
    if len(args) < arity:
        return None
    try:
        return adapter.validate_python(tuple(args[:arity]), strict=True)
    except ValidationError:
        return None
