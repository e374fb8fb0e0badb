"""
app.api.room
~~~~~~~~~~~~

房间查询 REST 接口（只读）。

路由前缀 ``/api``。查询不会创建房间：房间只因有人加入而存在。

端点:
  - ``GET /rooms``            → 获取存活房间列表
  - ``GET /rooms/{room_id}``  → 获取房间详情
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_room_registry
from app.schemas.api_response import ApiResponse
from app.schemas.events import RoomInfoData
from app.services.room_registry import RoomRegistry

router: APIRouter = APIRouter()


@router.get("/rooms", summary="获取存活房间列表")
async def list_rooms(
    registry: RoomRegistry = Depends(get_room_registry),
) -> ApiResponse[list[RoomInfoData]]:
    """返回当前至少有一名成员的所有房间。"""
    return ApiResponse.ok(data=[room.info() for room in registry.list_rooms()])


@router.get("/rooms/{room_id}", summary="获取房间详情")
async def room_info(
    room_id: str,
    registry: RoomRegistry = Depends(get_room_registry),
) -> ApiResponse[RoomInfoData]:
    """返回指定房间的在线人数与聊天记录条数。

    Args:
        room_id: 房间标识。

    Raises:
        HTTPException: 房间不存在（无人在线）时返回 404。
    """
    room = registry.get(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return ApiResponse.ok(data=room.info())
