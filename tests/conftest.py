"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 构造不依赖真实 WebSocket 的服务对象，
通过读取各会话的出站队列断言广播结果。
"""
from __future__ import annotations

import os

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")  # 激活 .env.test 配置

from app.services.chat_service import ChatService  # noqa: E402
from app.services.connection import ConnectionManager  # noqa: E402
from app.services.room_registry import RoomRegistry  # noqa: E402
from app.services.signaling import SignalingRelay  # noqa: E402
from tests.helpers import FakeClock  # noqa: E402


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def registry() -> RoomRegistry:
    return RoomRegistry()


@pytest.fixture()
def chat(clock: FakeClock) -> ChatService:
    return ChatService(clock=clock)


@pytest.fixture()
def relay() -> SignalingRelay:
    return SignalingRelay()


@pytest.fixture()
def manager(registry: RoomRegistry, chat: ChatService, relay: SignalingRelay) -> ConnectionManager:
    return ConnectionManager(registry=registry, chat=chat, relay=relay)
