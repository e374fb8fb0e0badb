"""
app.services.room_registry
~~~~~~~~~~~~~~~~~~~~~~~~~~

进程内房间注册表 —— ``room_id -> Room``。

注册表由应用 lifespan 创建并挂载在 ``app.state`` 上，
通过构造参数注入 ``ConnectionManager``，不作为模块级全局变量存在。

所有成员变更（加入 / 离开 / 释放）都应在 ``registry.lock`` 内完成，
保证同一个新房间 ID 不会被并发创建出两个实例，也不会在有人
正在加入时被删除。
"""
from __future__ import annotations

import asyncio

from app.core.logging import get_logger
from app.services.room import Room

logger = get_logger(__name__)


class RoomRegistry:
    """房间注册表。

    Attributes:
        lock: 串行化成员变更的互斥锁。
    """

    def __init__(self) -> None:
        self._rooms: dict[str, Room] = {}
        self.lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def get(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def get_or_create(self, room_id: str) -> Room:
        """获取房间，不存在则创建一个空房间并登记。

        Args:
            room_id: 房间标识。

        Returns:
            对应的 ``Room`` 实例。
        """
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(room_id)
            self._rooms[room_id] = room
            logger.info("房间已创建 | room=%s | 当前房间数: %d", room_id, len(self._rooms))
        return room

    def release_if_empty(self, room_id: str) -> bool:
        """房间已无成员时将其连同聊天记录一起删除。

        Returns:
            房间是否被删除。
        """
        room = self._rooms.get(room_id)
        if room is None or not room.is_empty:
            return False
        del self._rooms[room_id]
        logger.info(
            "房间已释放 | room=%s | 丢弃 %d 条记录 | 当前房间数: %d",
            room_id, len(room.history), len(self._rooms),
        )
        return True

    def list_rooms(self) -> list[Room]:
        """列出所有存活房间。"""
        return list(self._rooms.values())
