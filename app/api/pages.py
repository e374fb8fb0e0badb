"""
app.api.pages
~~~~~~~~~~~~~

浏览器入口页面。

  - ``GET /``          → 重定向到随机生成的短房间号
  - ``GET /{room_id}`` → 返回前端页面，页面自行从 URL 读取房间号

房间号不做唯一性检查，碰撞即进入同一个房间。
"""
from __future__ import annotations

import secrets
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse, RedirectResponse

from app.core.config import settings

router: APIRouter = APIRouter()

_ROOM_PAGE: Path = Path(__file__).resolve().parent.parent / "static" / "room.html"


def generate_room_id() -> str:
    """在 ``[ROOM_ID_MIN, ROOM_ID_MAX]`` 内随机生成一个房间号。"""
    span = settings.ROOM_ID_MAX - settings.ROOM_ID_MIN + 1
    return str(settings.ROOM_ID_MIN + secrets.randbelow(span))


@router.get("/", include_in_schema=False)
async def new_room() -> RedirectResponse:
    return RedirectResponse(url=f"/{generate_room_id()}", status_code=302)


@router.get("/{room_id}", include_in_schema=False)
async def room_page(room_id: str) -> FileResponse:
    return FileResponse(_ROOM_PAGE, media_type="text/html")
