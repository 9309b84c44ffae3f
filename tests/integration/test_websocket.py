"""
End-to-end tests of the WebSocket channel and the health routes.

The application runs with its real lifespan; only the database engine is
swapped for a file-backed SQLite database created for each test.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine
from starlette.websockets import WebSocketDisconnect

from orgsync.core.config import settings
from orgsync.main import app
from orgsync.models import Base

ROOT_EMAIL = "root@example.com"
ROOT_PASSWORD = "RootPass123"


@pytest.fixture
def client(tmp_path):
    """TestClient whose lifespan bootstraps a fresh database."""
    db_path = tmp_path / "ws.db"
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    def _sqlite_engine(database_url=None):
        return create_async_engine(f"sqlite+aiosqlite:///{db_path}")

    with patch("orgsync.core.lifespan.create_database_engine", _sqlite_engine), \
         patch.object(settings, "bootstrap_enabled", True), \
         patch.object(settings, "bootstrap_admin_email", ROOT_EMAIL), \
         patch.object(settings, "bootstrap_admin_password", ROOT_PASSWORD), \
         patch.object(settings, "cors_origins", ["http://localhost:3000"]):
        with TestClient(app) as test_client:
            yield test_client


def login(websocket) -> str:
    websocket.send_json(
        {"action": "auth.login", "data": {"email": ROOT_EMAIL, "password": ROOT_PASSWORD}}
    )
    response = websocket.receive_json()
    assert response["status"] == 200
    return response["data"]["token"]


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["connections"] == 0
        assert "X-Request-ID" in response.headers

    def test_ready(self, client):
        response = client.get("/health/ready")

        assert response.json()["checks"]["database"] == "ok"


class TestWebSocket:
    def test_login_list_and_logout(self, client):
        with client.websocket_connect("/ws") as websocket:
            token = login(websocket)

            websocket.send_json({"credential": token, "action": "accounts.get"})
            response = websocket.receive_json()
            assert response["status"] == 200
            assert response["message"] == "Accounts retrieved successfully"
            assert [account["type"] for account in response["data"]] == ["main"]

            websocket.send_json({"action": "auth.logout"})
            assert websocket.receive_json()["message"] == "Logout successful"
            with pytest.raises(WebSocketDisconnect) as exc_info:
                websocket.receive_json()
            assert exc_info.value.code == 1000

    def test_malformed_message_keeps_connection_open(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("not json")
            assert websocket.receive_json()["status"] == 400

            token = login(websocket)
            assert token

    def test_missing_credential_closes_with_4401(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"action": "accounts.get"})

            assert websocket.receive_json()["status"] == 401
            with pytest.raises(WebSocketDisconnect) as exc_info:
                websocket.receive_json()
            assert exc_info.value.code == 4401

    def test_disallowed_origin_is_rejected(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws", headers={"origin": "https://evil.example.com"}):
                pass

        assert exc_info.value.code == 1008

    def test_allowed_origin_is_accepted(self, client):
        with client.websocket_connect("/ws", headers={"origin": "http://localhost:3000"}) as ws:
            assert login(ws)

    def test_authentication_timeout(self, client):
        with patch.object(settings, "ws_auth_timeout_seconds", 0.2):
            with client.websocket_connect("/ws") as websocket:
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    websocket.receive_json()

        assert exc_info.value.code == 4001

    def test_account_creation_is_broadcast_to_other_connections(self, client):
        with client.websocket_connect("/ws") as sender, client.websocket_connect("/ws") as watcher:
            token = login(sender)
            login(watcher)

            sender.send_json({"credential": token, "action": "accounts.get"})
            main_account_id = sender.receive_json()["data"][0]["id"]

            sender.send_json(
                {
                    "credential": token,
                    "action": "users.create",
                    "data": {
                        "firstName": "Kofi",
                        "lastName": "Boateng",
                        "email": "kofi@example.com",
                        "role": "admin",
                        "accountId": main_account_id,
                    },
                }
            )
            created_user = sender.receive_json()
            assert created_user["status"] == 201

            sender.send_json(
                {
                    "credential": token,
                    "action": "accounts.create",
                    "data": {
                        "name": "Northern Region",
                        "type": "regional",
                        "parentId": main_account_id,
                        "country": "Ghana",
                        "primaryAdminId": created_user["data"]["id"],
                    },
                }
            )
            created = sender.receive_json()
            assert created["status"] == 201

            event = watcher.receive_json()
            assert event == {
                "event": "account.created",
                "data": {
                    "accountId": created["data"]["account"]["id"],
                    "parentId": main_account_id,
                },
            }
