"""
app.services.connection
~~~~~~~~~~~~~~~~~~~~~~~

连接管理器 —— 把 WebSocket 上的入站事件转成 ``Session`` 状态迁移，
并分发给 ``RoomRegistry`` / ``ChatService`` / ``SignalingRelay``。

每个入站事件只有一个分发入口 ``dispatch()``，加入房间的绑定只会
发生一次，无论客户端重复发送多少次 ``join-room``。
"""
from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError

from app.core.logging import get_logger
from app.schemas.events import (
    ANSWER,
    CANDIDATE,
    CHAT_HISTORY,
    JOIN_ARGS,
    JOIN_ROOM,
    MESSAGE,
    MESSAGE_ARGS,
    OFFER,
    SIGNAL_ARGS,
    USER_CONNECTED,
    USER_COUNT,
    USER_DISCONNECTED,
    ClientEvent,
    parse_args,
)
from app.services.chat_service import ChatService
from app.services.room import Room
from app.services.room_registry import RoomRegistry
from app.services.session import Session, SessionState
from app.services.signaling import SignalingRelay

logger = get_logger(__name__)

Handler = Callable[[Session, list[Any]], Awaitable[None]]


class ConnectionManager:
    """会话生命周期编排器。

    Attributes:
        registry: 共享的房间注册表。
        chat: 聊天服务。
        relay: 信令转发器。
        sessions: 当前存活的会话，``session_id -> Session``。
    """

    def __init__(
        self,
        registry: RoomRegistry,
        chat: ChatService,
        relay: SignalingRelay,
    ) -> None:
        self.registry = registry
        self.chat = chat
        self.relay = relay
        self.sessions: dict[str, Session] = {}
        self._handlers: dict[str, Handler] = {
            JOIN_ROOM: self._on_join,
            MESSAGE: self._on_message,
            OFFER: self._on_signal(OFFER),
            ANSWER: self._on_signal(ANSWER),
            CANDIDATE: self._on_signal(CANDIDATE),
        }

    @property
    def connection_count(self) -> int:
        return len(self.sessions)

    # ── 生命周期 ──────────────────────────────────────────────────────

    def open_session(self, session: Session | None = None) -> Session:
        """登记一个新连接，状态为 ``CONNECTED``。"""
        session = session or Session()
        self.sessions[session.session_id] = session
        logger.info("连接建立 | 当前连接数: %d", len(self.sessions))
        return session

    async def close_session(self, session: Session) -> None:
        """连接断开：已加入房间则离开房间并通知其余成员，随后进入 ``CLOSED``。"""
        if session.is_closed:
            return
        if session.is_joined and session.room_id is not None:
            await self._leave(session, session.room_id)
        session.close()
        self.sessions.pop(session.session_id, None)
        logger.info("连接关闭 | 当前连接数: %d", len(self.sessions))

    # ── 入站分发 ──────────────────────────────────────────────────────

    async def handle_text(self, session: Session, raw: str) -> None:
        """解析一帧文本并分发，非法帧直接忽略。"""
        try:
            event = ClientEvent.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.debug("忽略非法帧: %s", e)
            return
        await self.dispatch(session, event)

    async def dispatch(self, session: Session, event: ClientEvent) -> None:
        """把一个入站事件交给对应的处理函数。"""
        if session.is_closed:
            return
        handler = self._handlers.get(event.event)
        if handler is None:
            logger.debug("忽略未知事件: %s", event.event)
            return
        await handler(session, event.args)

    # ── 事件处理 ──────────────────────────────────────────────────────

    async def _on_join(self, session: Session, args: list[Any]) -> None:
        parsed = parse_args(JOIN_ARGS, args, 1)
        if parsed is None:
            logger.debug("忽略参数不合法的 join-room: %r", args)
            return
        (room_id,) = parsed
        if session.state is not SessionState.CONNECTED:
            logger.debug("忽略重复 join-room | 已绑定 room=%s", session.room_id)
            return

        async with self.registry.lock:
            room = self.registry.get_or_create(room_id)
            async with room.lock:
                bound = session.bind(room_id)
                if bound:
                    room.add_member(session)
                    room.broadcast(USER_CONNECTED, session.session_id, exclude=session)
                    session.send(
                        CHAT_HISTORY,
                        [m.model_dump() for m in self.chat.get_history(room)],
                    )
                    room.broadcast(USER_COUNT, room.member_count)
            if not bound:
                # 等锁期间会话已关闭，不留下空房间
                self.registry.release_if_empty(room_id)
                return

        logger.info("加入房间 | room=%s | 在线: %d", room_id, room.member_count)

    async def _on_message(self, session: Session, args: list[Any]) -> None:
        parsed = parse_args(MESSAGE_ARGS, args, 2)
        if parsed is None:
            logger.debug("忽略参数不合法的 message: %r", args)
            return
        room_id, text = parsed
        room = self._joined_room(session, room_id)
        if room is None:
            return
        await self.chat.post_message(room, session, text)

    def _on_signal(self, kind: str) -> Handler:
        async def handler(session: Session, args: list[Any]) -> None:
            parsed = parse_args(SIGNAL_ARGS, args, 3)
            if parsed is None:
                logger.debug("忽略参数不合法的 %s: %r", kind, args)
                return
            room_id, _target_id, payload = parsed
            room = self._joined_room(session, room_id)
            if room is None:
                return
            await self.relay.relay(kind, room, session, payload)

        return handler

    def _joined_room(self, session: Session, room_id: str) -> Room | None:
        """返回会话当前所在且与 ``room_id`` 一致的房间，否则 ``None``。"""
        if not session.is_member_of(room_id):
            logger.debug("忽略未加入房间的事件 | room=%s | 已绑定=%s", room_id, session.room_id)
            return None
        return self.registry.get(room_id)

    async def _leave(self, session: Session, room_id: str) -> None:
        async with self.registry.lock:
            room = self.registry.get(room_id)
            if room is not None:
                async with room.lock:
                    if room.remove_member(session):
                        room.broadcast(USER_DISCONNECTED, session.session_id)
                        room.broadcast(USER_COUNT, room.member_count)
                logger.info("离开房间 | room=%s | 在线: %d", room_id, room.member_count)
            self.registry.release_if_empty(room_id)
