"""
tests.helpers
~~~~~~~~~~~~~

测试辅助：可控时钟与出站队列读取。
"""
from __future__ import annotations

from typing import Any

from app.services.session import Session


class FakeClock:
    """可手动推进的毫秒时钟。"""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now


def drain(session: Session) -> list[tuple[str, list[Any]]]:
    """取出会话出站队列中已排队的全部事件，返回 ``(event, args)`` 列表。"""
    frames: list[tuple[str, list[Any]]] = []
    while not session.outbox.empty():
        frame = session.outbox.get_nowait()
        if frame is not None:
            frames.append((frame.event, frame.args))
    return frames


def events_named(frames: list[tuple[str, list[Any]]], name: str) -> list[list[Any]]:
    """从 ``drain()`` 结果中筛选指定事件的参数列表。"""
    return [args for event, args in frames if event == name]
