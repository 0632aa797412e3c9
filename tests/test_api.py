"""API tests against in-memory adapters. /health and the REST routes do not require Neo4j."""

import pytest
from fastapi.testclient import TestClient

from api.main import app
from santa.domain import NAME_MAX_LENGTH
from santa.infrastructure import InMemoryConversationStateStore, InMemoryParticipantRepository

from conftest import FakeMessenger


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def client(messenger):
    app.state.repository = InMemoryParticipantRepository()
    app.state.state_store = InMemoryConversationStateStore()
    app.state.messenger = messenger
    app.state.conversation = None
    try:
        yield TestClient(app)
    finally:
        for attr in ("repository", "state_store", "messenger", "conversation"):
            setattr(app.state, attr, None)


def _telegram_update(user_id: int, text: str, update_id: int = 1) -> dict:
    return {
        "update_id": update_id,
        "message": {
            "message_id": update_id,
            "date": 1700000000,
            "chat": {"id": user_id, "type": "private"},
            "from": {"id": user_id, "is_bot": False, "first_name": "Test"},
            "text": text,
        },
    }


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_bulk_upload_and_list(client):
    r = client.post(
        "/participants/bulk-upload",
        json={
            "users": [
                {"name": "Alice Smith", "receiver_name": "Bob Brown"},
                {"fio": "Bob Brown", "receiver_fio": "Carol White"},
                {"name": "Carol White"},
            ]
        },
    )
    assert r.status_code == 200
    assert r.json() == {
        "created": 3,
        "total": 3,
        "linked": 2,
        "message": "Successfully processed 3 participants. Created: 3, Skipped: 0, Receiver links: 2",
    }

    r = client.get("/participants")
    assert r.status_code == 200
    body = r.json()
    assert [p["name"] for p in body] == ["Alice Smith", "Bob Brown", "Carol White"]
    assert body[0]["recipient"]["name"] == "Bob Brown"
    assert body[0]["chat_handle"] is None
    assert body[2]["recipient"] is None


def test_bulk_upload_twice_skips_existing(client):
    payload = {"users": [{"name": "Alice", "receiver_name": "Bob"}, {"name": "Bob"}]}
    client.post("/participants/bulk-upload", json=payload)
    r = client.post("/participants/bulk-upload", json=payload)
    assert r.json()["created"] == 0
    assert "Skipped: 2" in r.json()["message"]
    assert len(client.get("/participants").json()) == 2


def test_bulk_upload_rejects_empty_name(client):
    r = client.post("/participants/bulk-upload", json={"users": [{"name": ""}]})
    assert r.status_code == 422


def test_bulk_upload_rejects_overlong_name_before_writing(client):
    r = client.post(
        "/participants/bulk-upload",
        json={
            "users": [
                {"name": "Alice", "receiver_name": "Bob"},
                {"name": "Bob"},
                {"name": "X" * (NAME_MAX_LENGTH + 1)},
            ]
        },
    )
    assert r.status_code == 422
    assert client.get("/participants").json() == []


def test_webhook_start_registers_flow(client, messenger):
    r = client.post("/webhook/telegram", json=_telegram_update(42, "/start"))
    assert r.status_code == 200
    assert r.json() == {}
    assert len(messenger.texts_for("42")) == 1

    client.post("/webhook/telegram", json=_telegram_update(42, "Alice Smith", update_id=2))
    names = [p["name"] for p in client.get("/participants").json()]
    assert names == ["Alice Smith"]


def test_webhook_ignores_irrelevant_updates(client, messenger):
    r = client.post("/webhook/telegram", json={"update_id": 3})
    assert r.status_code == 200
    assert messenger.sent == []


def test_webhook_invalid_json(client):
    r = client.post(
        "/webhook/telegram",
        content=b"not json",
        headers={"content-type": "application/json"},
    )
    assert r.status_code == 400


def test_webhook_invalid_update(client):
    r = client.post("/webhook/telegram", json={"update_id": 1, "message": "oops"})
    assert r.status_code == 400
