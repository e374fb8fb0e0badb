"""
app.services.session
~~~~~~~~~~~~~~~~~~~~

连接会话领域模型 —— 一个 WebSocket 连接对应一个 ``Session``。

``Session`` 只负责两件事：

* 状态机：``CONNECTED`` → ``JOINED`` → ``CLOSED``，且最多绑定一个房间；
* 出站队列：房间广播只是把事件放进各成员的队列，由各自的
  ``pump()`` 协程写回 WebSocket，某个成员发送失败不会影响其他成员。
"""
from __future__ import annotations

import asyncio
import enum
import uuid
from typing import Any

from fastapi import WebSocket

from app.core.logging import get_logger
from app.schemas.events import ServerEvent

logger = get_logger(__name__)


class SessionState(enum.Enum):
    """会话生命周期阶段。"""

    CONNECTED = "connected"
    JOINED = "joined"
    CLOSED = "closed"


class Session:
    """单个连接的会话状态。

    Attributes:
        session_id: 连接存续期间唯一的会话 ID，对其他成员即 peerId。
        room_id: 首次成功加入的房间 ID，加入前为 ``None``，之后不可变。
        state: 当前生命周期阶段。
        outbox: 待发送给客户端的事件帧队列。
    """

    def __init__(self, session_id: str | None = None) -> None:
        self.session_id: str = session_id or uuid.uuid4().hex
        self.room_id: str | None = None
        self.state: SessionState = SessionState.CONNECTED
        self.outbox: asyncio.Queue[ServerEvent | None] = asyncio.Queue()
        self._deliverable: bool = True

    def __repr__(self) -> str:
        return f"<Session {self.session_id} {self.state.value} room={self.room_id}>"

    # ── 状态机 ────────────────────────────────────────────────────────

    @property
    def is_joined(self) -> bool:
        return self.state is SessionState.JOINED

    @property
    def is_closed(self) -> bool:
        return self.state is SessionState.CLOSED

    def is_member_of(self, room_id: str) -> bool:
        """当前是否已加入 ``room_id`` 对应的房间。"""
        return self.is_joined and self.room_id == room_id

    def bind(self, room_id: str) -> bool:
        """绑定房间并进入 ``JOINED``。

        只有 ``CONNECTED`` 状态的会话可以绑定，重复调用返回 ``False``
        且保留原绑定。
        """
        if self.state is not SessionState.CONNECTED:
            return False
        self.room_id = room_id
        self.state = SessionState.JOINED
        return True

    def close(self) -> None:
        """进入终态 ``CLOSED``，并通知 ``pump()`` 退出。"""
        if self.is_closed:
            return
        self.state = SessionState.CLOSED
        self.outbox.put_nowait(None)

    # ── 出站 ──────────────────────────────────────────────────────────

    def send(self, event: str, *args: Any) -> None:
        """把一个事件放入出站队列（非阻塞）。已关闭或已失联的会话直接丢弃。"""
        if self.is_closed or not self._deliverable:
            return
        self.outbox.put_nowait(ServerEvent(event=event, args=list(args)))

    async def pump(self, websocket: WebSocket) -> None:
        """持续把出站队列写回 WebSocket，直到会话关闭或发送失败。"""
        while True:
            frame = await self.outbox.get()
            if frame is None:
                break
            try:
                await websocket.send_json(frame.model_dump())
            except Exception as e:
                # 对端已断开：停止投递，等待接收循环发现断开后清理
                logger.warning("发送失败，停止向该会话投递: %s | %s", self.session_id, e)
                self._deliverable = False
                break
