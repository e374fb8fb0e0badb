"""
app.services.chat_service
~~~~~~~~~~~~~~~~~~~~~~~~~

房间聊天服务 —— 追加聊天记录并广播，新成员加入时回放历史。

时间戳由服务端在处理消息时分配（毫秒），同一房间内单调不减；
客户端时钟不参与。

默认不限制历史条数；配置 ``CHAT_HISTORY_LIMIT`` 后只保留最新的 N 条。
"""
from __future__ import annotations

import time
from collections.abc import Callable

from app.core.logging import get_logger
from app.schemas.events import MESSAGE, ChatMessage
from app.services.room import Room
from app.services.session import Session

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class ChatService:
    """聊天记录的追加与回放。

    Attributes:
        history_limit: 每个房间保留的记录上限，``None`` 表示不限制。
    """

    def __init__(
        self,
        history_limit: int | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.history_limit = history_limit
        self._clock = clock

    async def post_message(self, room: Room, sender: Session, text: str) -> ChatMessage | None:
        """记录一条聊天消息并广播给房间内所有成员（包括发送者）。

        Args:
            room: 目标房间。
            sender: 发送者会话，必须已加入该房间。
            text: 消息文本，原样保存。

        Returns:
            新追加的 ``ChatMessage``；发送者不在该房间时返回 ``None``。
        """
        if not sender.is_member_of(room.room_id):
            logger.debug("忽略非成员消息 | room=%s", room.room_id)
            return None

        async with room.lock:
            # 关闭与加锁之间可能已离开房间
            if room.members.get(sender.session_id) is not sender:
                return None
            message = ChatMessage(
                text=text,
                timestamp=max(self._clock(), room.last_timestamp),
            )
            room.history.append(message)
            if self.history_limit is not None and len(room.history) > self.history_limit:
                del room.history[: len(room.history) - self.history_limit]
            room.broadcast(MESSAGE, message.model_dump())

        logger.debug("聊天消息 | room=%s | 记录数: %d", room.room_id, len(room.history))
        return message

    def get_history(self, room: Room) -> list[ChatMessage]:
        """返回当前聊天记录的快照（按追加顺序）。"""
        return list(room.history)
