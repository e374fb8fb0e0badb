"""
app.main
~~~~~~~~

FastAPI 应用入口 —— 注册路由、挂载中间件、定义生命周期。

房间注册表与各服务在 lifespan 中创建并挂载到 ``app.state``，
通过依赖注入交给各端点，不使用模块级全局状态。
"""
from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import pages, room, ws
from app.api.deps import get_connection_manager, get_room_registry
from app.core.config import settings
from app.core.logging import get_logger, setup_logging
from app.schemas.api_response import ApiResponse
from app.services.chat_service import ChatService
from app.services.connection import ConnectionManager
from app.services.room_registry import RoomRegistry
from app.services.signaling import SignalingRelay

# 初始化日志系统（必须在其他模块之前）
setup_logging()
logger = get_logger(__name__)


# ── 生命周期 ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期钩子，仅在 worker 启动/关闭时各执行一次。"""
    # ── 启动 ──
    registry = RoomRegistry()
    app.state.room_registry = registry
    app.state.connection_manager = ConnectionManager(
        registry=registry,
        chat=ChatService(history_limit=settings.CHAT_HISTORY_LIMIT),
        relay=SignalingRelay(),
    )
    logger.info(
        "🚀 应用已启动 | env=%s | port=%d | history_limit=%s | log_level=%s",
        settings.ENVIRONMENT,
        settings.PORT,
        settings.CHAT_HISTORY_LIMIT,
        settings.effective_log_level,
    )
    yield
    # ── 关闭 ──
    logger.info("👋 应用已关闭 | 剩余房间: %d", len(registry))


# ── 创建 FastAPI 实例 ─────────────────────────────────────────────────

app: FastAPI = FastAPI(
    title=settings.PROJECT_NAME,
    description="多人实时房间协调服务：成员发现、聊天记录与 WebRTC 信令转发",
    version=settings.VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)

if settings.allow_cors_all_origins:
    # dev / test 环境：允许所有来源，方便本地调试
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[],
        allow_methods=["GET"],
        allow_headers=["*"],
    )


# ── 全局异常处理器 ────────────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """捕获所有未处理异常，返回统一的 ApiResponse.fail() 格式。"""
    logger.error("未捕获异常: %s %s -> %s", request.method, request.url, exc, exc_info=True)
    # 非 prod 环境返回详细错误信息，prod 环境隐藏内部细节
    detail = str(exc) if not settings.is_prod else "服务器内部错误"
    response = ApiResponse.fail(msg=detail, code=500, data=None)
    return JSONResponse(
        status_code=500,
        content=response.model_dump(),
    )


# ── 路由挂载 ──────────────────────────────────────────────────────────
app.include_router(room.router, prefix="/api", tags=["Rooms"])
app.include_router(ws.router, tags=["WebSocket"])


@app.get("/health", tags=["System"])
async def health_check(
    manager: ConnectionManager = Depends(get_connection_manager),
    registry: RoomRegistry = Depends(get_room_registry),
) -> JSONResponse:
    """验证服务是否正常运行，并返回当前连接数与房间数。"""
    return JSONResponse(
        content={
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "connections": manager.connection_count,
            "rooms": len(registry),
        },
    )


# ``/{room_id}`` 会匹配任意单段路径，必须最后挂载
app.include_router(pages.router, tags=["Pages"])


def run() -> None:
    """启动服务。端口绑定失败时 uvicorn 会记录错误并以非零状态退出。"""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.reload,  # 仅 dev 环境开启热重载
        log_level=settings.effective_log_level.lower(),
    )


if __name__ == "__main__":
    run()
