from fastapi import Request, WebSocket

from app.services.connection import ConnectionManager
from app.services.room_registry import RoomRegistry


def get_room_registry(request: Request) -> RoomRegistry:
    return request.app.state.room_registry


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.connection_manager


def get_ws_connection_manager(websocket: WebSocket) -> ConnectionManager:
    return websocket.app.state.connection_manager
