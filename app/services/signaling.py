"""
app.services.signaling
~~~~~~~~~~~~~~~~~~~~~~

WebRTC 信令转发 —— offer / answer / candidate。

三种信令都是"房间内除发送者以外的所有成员"广播，而不是点对点投递：
客户端附带的 targetId 只是参考，不参与路由；接收方依靠事件中的
发送者 ID 认识对端。payload 不解析、不校验、不保存。
"""
from __future__ import annotations

from typing import Any

from app.core.logging import get_logger
from app.schemas.events import ANSWER, CANDIDATE, OFFER, SIGNAL_KINDS
from app.services.room import Room
from app.services.session import Session

logger = get_logger(__name__)


class SignalingRelay:
    """信令转发器。"""

    async def relay(self, kind: str, room: Room, sender: Session, payload: Any) -> int:
        """把一条信令转发给房间内其他成员。

        Args:
            kind: ``offer`` / ``answer`` / ``candidate``。
            room: 发送者声明的房间。
            sender: 发送者会话，必须已加入 ``room``。
            payload: 原样透传的信令内容。

        Returns:
            实际投递的成员数；前置条件不满足时为 0。
        """
        if kind not in SIGNAL_KINDS:
            raise ValueError(f"unknown signaling event: {kind!r}")
        if not sender.is_member_of(room.room_id):
            logger.debug("忽略跨房间信令 | kind=%s | room=%s", kind, room.room_id)
            return 0

        async with room.lock:
            if room.members.get(sender.session_id) is not sender:
                return 0
            delivered = room.broadcast(kind, sender.session_id, payload, exclude=sender)

        logger.debug("信令转发 | kind=%s | room=%s | 接收方: %d", kind, room.room_id, delivered)
        return delivered

    async def relay_offer(self, room: Room, sender: Session, payload: Any) -> int:
        return await self.relay(OFFER, room, sender, payload)

    async def relay_answer(self, room: Room, sender: Session, payload: Any) -> int:
        return await self.relay(ANSWER, room, sender, payload)

    async def relay_candidate(self, room: Room, sender: Session, payload: Any) -> int:
        return await self.relay(CANDIDATE, room, sender, payload)
