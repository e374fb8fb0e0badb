"""
tests.test_api
~~~~~~~~~~~~~~

HTTP 与 WebSocket 端点集成测试（``fastapi.testclient.TestClient``）。
"""
from __future__ import annotations

import re
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from app.api.pages import generate_room_id
from app.core.config import settings
from app.main import app


@pytest.fixture()
def client() -> Iterator[TestClient]:
    # 进入上下文才会触发 lifespan，每个用例拿到全新的房间注册表
    with TestClient(app) as test_client:
        yield test_client


def _join(ws, room_id: str) -> None:
    ws.send_json({"event": "join-room", "args": [room_id]})


class TestPages:
    """测试浏览器入口。"""

    def test_root_redirects_to_random_room(self, client: TestClient) -> None:
        response = client.get("/", follow_redirects=False)

        assert response.status_code == 302
        assert re.fullmatch(r"/\d+", response.headers["location"])

    def test_room_page_served(self, client: TestClient) -> None:
        response = client.get("/123")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "join-room" in response.text

    def test_generate_room_id_in_range(self) -> None:
        for _ in range(200):
            value = int(generate_room_id())
            assert settings.ROOM_ID_MIN <= value <= settings.ROOM_ID_MAX


class TestSystemEndpoints:
    """测试健康检查与房间查询。"""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["connections"] == 0
        assert body["rooms"] == 0

    def test_unknown_room_is_404(self, client: TestClient) -> None:
        response = client.get("/api/rooms/nope")

        assert response.status_code == 404

    def test_rooms_listed_while_occupied(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            _join(ws, "777")
            ws.receive_json()  # chat-history
            ws.receive_json()  # user-count

            listing = client.get("/api/rooms").json()
            detail = client.get("/api/rooms/777").json()

        assert listing["code"] == 200
        assert listing["data"] == [{"room_id": "777", "member_count": 1, "message_count": 0}]
        assert detail["data"]["member_count"] == 1

    def test_querying_does_not_create_rooms(self, client: TestClient) -> None:
        client.get("/api/rooms/555")

        assert client.get("/api/rooms").json()["data"] == []


class TestWebSocketScenario:
    """通过真实 WebSocket 帧走一遍两人房间的完整流程。"""

    def test_chat_and_presence(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as a:
            _join(a, "123")
            assert a.receive_json() == {"event": "chat-history", "args": [[]]}
            assert a.receive_json() == {"event": "user-count", "args": [1]}

            a.send_json({"event": "message", "args": ["123", "hello"]})
            hello = a.receive_json()
            assert hello["event"] == "message"
            assert hello["args"][0]["text"] == "hello"
            t1 = hello["args"][0]["timestamp"]

            with client.websocket_connect("/ws") as b:
                _join(b, "123")
                assert b.receive_json() == {
                    "event": "chat-history",
                    "args": [[{"text": "hello", "timestamp": t1}]],
                }
                assert b.receive_json() == {"event": "user-count", "args": [2]}

                connected = a.receive_json()
                assert connected["event"] == "user-connected"
                peer_b = connected["args"][0]
                assert a.receive_json() == {"event": "user-count", "args": [2]}

                b.send_json({"event": "message", "args": ["123", "hi"]})
                from_a = a.receive_json()
                from_b = b.receive_json()
                assert from_a == from_b
                assert from_a["args"][0]["text"] == "hi"
                assert from_a["args"][0]["timestamp"] >= t1

                b.send_json({"event": "offer", "args": ["123", "whoever", {"sdp": "v=0"}]})
                assert a.receive_json() == {"event": "offer", "args": [peer_b, {"sdp": "v=0"}]}

            assert a.receive_json() == {"event": "user-disconnected", "args": [peer_b]}
            assert a.receive_json() == {"event": "user-count", "args": [1]}

    def test_malformed_frames_keep_connection_alive(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("definitely not json")
            ws.send_json({"event": "nope"})
            ws.send_json({"event": "message", "args": ["123", "before join"]})
            _join(ws, "321")

            assert ws.receive_json() == {"event": "chat-history", "args": [[]]}
            assert ws.receive_json() == {"event": "user-count", "args": [1]}

    def test_binary_frame_does_not_drop_sender(self, client: TestClient) -> None:
        """二进制帧被忽略：发送者仍留在房间，其他成员收不到断开通知。"""
        with client.websocket_connect("/ws") as a, client.websocket_connect("/ws") as b:
            _join(a, "123")
            a.receive_json()  # chat-history
            a.receive_json()  # user-count
            _join(b, "123")
            b.receive_json()  # chat-history
            b.receive_json()  # user-count
            assert a.receive_json()["event"] == "user-connected"
            assert a.receive_json() == {"event": "user-count", "args": [2]}

            b.send_bytes(b'{"event": "message", "args": ["123", "binary"]}')
            b.send_json({"event": "message", "args": ["123", "still here"]})

            from_a = a.receive_json()
            assert from_a["event"] == "message"
            assert from_a["args"][0]["text"] == "still here"
            assert b.receive_json() == from_a

            health = client.get("/health").json()
            assert health["connections"] == 2
            assert client.get("/api/rooms/123").json()["data"]["member_count"] == 2
