"""
app.services.room
~~~~~~~~~~~~~~~~~

房间领域模型 —— 当前成员 + 有序聊天记录 + 房间内广播。

``Room`` 只在 ``RoomRegistry`` 中存活：第一个成员加入时创建，
最后一个成员离开时连同聊天记录一起销毁。
"""
from __future__ import annotations

import asyncio
from typing import Any

from app.schemas.events import ChatMessage, RoomInfoData
from app.services.session import Session


class Room:
    """一个房间实体。

    Attributes:
        room_id: 房间标识（外部提供，不保证唯一）。
        members: 当前成员，``session_id -> Session``。
        history: 按处理顺序追加的聊天记录。
        lock: 串行化本房间的聊天与信令处理。
    """

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        self.members: dict[str, Session] = {}
        self.history: list[ChatMessage] = []
        self.lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"<Room {self.room_id} members={self.member_count} messages={len(self.history)}>"

    @property
    def member_count(self) -> int:
        """当前在线人数。"""
        return len(self.members)

    @property
    def is_empty(self) -> bool:
        return not self.members

    @property
    def last_timestamp(self) -> int:
        """最后一条聊天记录的时间戳，无记录时为 0。"""
        return self.history[-1].timestamp if self.history else 0

    def add_member(self, session: Session) -> None:
        self.members[session.session_id] = session

    def remove_member(self, session: Session) -> bool:
        """移除成员，返回该会话原先是否在房间内。"""
        return self.members.pop(session.session_id, None) is not None

    def broadcast(self, event: str, *args: Any, exclude: Session | None = None) -> int:
        """向房间内所有成员（可排除发送者）投递事件。

        投递只是入队，不等待网络发送，因此同一房间内的事件顺序
        与服务端处理顺序一致。

        Returns:
            实际投递的成员数。
        """
        delivered = 0
        for member in list(self.members.values()):
            if member is exclude:
                continue
            member.send(event, *args)
            delivered += 1
        return delivered

    def info(self) -> RoomInfoData:
        """返回房间摘要信息。"""
        return RoomInfoData(
            room_id=self.room_id,
            member_count=self.member_count,
            message_count=len(self.history),
        )
