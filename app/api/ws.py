"""
app.api.ws
~~~~~~~~~~

WebSocket 事件通道 —— 房间成员发现、聊天与 WebRTC 信令。

每个连接运行两个协程：

* 接收循环：读取文本帧，交给 ``ConnectionManager`` 唯一的分发入口；
* 发送协程：``Session.pump()``，把出站队列写回客户端。

帧格式见 ``app.schemas.events``。
"""
from __future__ import annotations

import asyncio
import contextlib

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.api.deps import get_ws_connection_manager
from app.core.logging import get_logger, session_id_ctx_var
from app.services.connection import ConnectionManager

logger = get_logger(__name__)

router: APIRouter = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    manager: ConnectionManager = Depends(get_ws_connection_manager),
) -> None:
    """房间事件端点。

    客户端 → 服务端:
      - ``join-room(roomId)``
      - ``message(roomId, text)``
      - ``offer / answer / candidate(roomId, targetId, payload)``

    服务端 → 客户端:
      - ``user-connected(peerId)`` / ``user-disconnected(peerId)``
      - ``user-count(count)``
      - ``chat-history([{text, timestamp}])`` / ``message({text, timestamp})``
      - ``offer / answer / candidate(fromPeerId, payload)``
    """
    await websocket.accept()
    session = manager.open_session()
    token = session_id_ctx_var.set(session.session_id)
    sender = asyncio.create_task(session.pump(websocket))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(code=message.get("code", 1000))
            raw: str | None = message.get("text")
            if raw is None:
                logger.debug("忽略二进制帧")
                continue
            await manager.handle_text(session, raw)
    except WebSocketDisconnect:
        pass  # 正常断开
    except Exception as e:
        logger.error("WebSocket 异常: %s", e, exc_info=True)
    finally:
        await manager.close_session(session)
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
        session_id_ctx_var.reset(token)
