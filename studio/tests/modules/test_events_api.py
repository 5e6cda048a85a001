"""Tests for the events service HTTP endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from modules.events.main import app, get_context
from modules.events.store import Category
from tests.conftest import event_path


@pytest.fixture
def client(events_ctx, documents):
    documents.put_studio("North", time_zone="+5", chat_id="-100")
    documents.put_studio("South", time_zone="-1", chat_id="-200")
    app.dependency_overrides[get_context] = lambda: events_ctx
    yield TestClient(app)
    app.dependency_overrides.clear()


def _body(**kwargs) -> dict:
    body = {
        "chatIds": ["-100"],
        "studioNames": ["North"],
        "name": "Inventory",
        "time": "10.03.2025 12:00:00",
        "description": "Count the stock",
        "report": False,
        "period": False,
        "addReminder": False,
    }
    body.update(kwargs)
    return body


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_not_ready_without_context(self):
        resp = TestClient(app).get("/all-events")
        assert resp.status_code == 503


class TestCreateEvent:
    def test_created(self, client, documents, mock_redis):
        resp = client.post("/create-event", json=_body(report=True))

        assert resp.status_code == 200
        assert "Inventory" in resp.json()["message"]
        assert documents.has_event("North", Category.REPORT, "Inventory")
        assert mock_redis.publish.await_count == 1

    def test_numeric_chat_ids_accepted(self, client, documents):
        resp = client.post("/create-event", json=_body(chatIds=[-100]))

        assert resp.status_code == 200
        assert documents.event_data("North", Category.PLAIN, "Inventory")["chatId"] == "-100"

    @pytest.mark.parametrize("field", ["name", "time", "description", "chatIds", "studioNames"])
    def test_missing_field_is_400(self, client, field):
        body = _body()
        del body[field]
        resp = client.post("/create-event", json=body)
        assert resp.status_code == 400

    def test_empty_name_is_400(self, client):
        assert client.post("/create-event", json=_body(name="")).status_code == 400

    def test_length_mismatch_is_400(self, client):
        resp = client.post("/create-event", json=_body(chatIds=["-100", "-200"]))
        assert resp.status_code == 400

    def test_unknown_studio_is_400(self, client, documents):
        resp = client.post("/create-event", json=_body(studioNames=["Nowhere"]))

        assert resp.status_code == 400
        assert "Nowhere" in resp.json()["detail"]

    def test_bad_time_is_400(self, client):
        resp = client.post("/create-event", json=_body(time="tomorrow"))
        assert resp.status_code == 400

    def test_unexpected_error_is_500(self, client, events_ctx):
        async def _boom(*args, **kwargs):
            raise RuntimeError("boom")

        events_ctx.studios.get = _boom
        resp = client.post("/create-event", json=_body())
        assert resp.status_code == 500


class TestDeleteEvent:
    def test_deleted(self, client, documents):
        documents.put_event("North", Category.PLAIN, "Audit", name="Audit")
        documents.put_event("North", Category.REPORT, "Audit", name="Audit")

        resp = client.request(
            "DELETE", "/delete-event", json={"studioName": "North", "eventName": "Audit"}
        )

        assert resp.status_code == 200
        assert not documents.has_event("North", Category.REPORT, "Audit")

    def test_not_found(self, client):
        resp = client.request(
            "DELETE", "/delete-event", json={"studioName": "North", "eventName": "Ghost"}
        )
        assert resp.status_code == 404

    def test_missing_field(self, client):
        resp = client.request("DELETE", "/delete-event", json={"studioName": "North"})
        assert resp.status_code == 400

    def test_store_down(self, client, documents):
        documents.put_event("North", Category.PLAIN, "Audit", name="Audit")
        for category in Category:
            documents.fail_on.add(event_path("North", category, "Audit"))

        resp = client.request(
            "DELETE", "/delete-event", json={"studioName": "North", "eventName": "Audit"}
        )

        assert resp.status_code == 500
        assert documents.has_event("North", Category.PLAIN, "Audit")


class TestListings:
    def test_studio_events(self, client, documents):
        documents.put_event(
            "North", Category.PLAIN, "B", name="B", description="d", time="2025-03-12T17:00:00Z"
        )
        documents.put_event(
            "North", Category.PLAIN, "A", name="A", description="d", time="2025-03-10T17:00:00Z"
        )

        resp = client.get("/events", params={"studioName": "North"})

        assert resp.status_code == 200
        data = resp.json()
        assert [e["id"] for e in data] == ["A", "B"]
        assert data[0]["time"] == "2025-03-10T15:00:00.000Z"
        assert "studioName" not in data[0]

    def test_missing_studio_name(self, client):
        assert client.get("/events").status_code == 400

    def test_unknown_studio(self, client):
        assert client.get("/events", params={"studioName": "Nowhere"}).status_code == 404

    def test_all_events(self, client, documents):
        documents.put_event("North", Category.PLAIN, "A", name="A", time="2025-03-10T17:00:00Z")
        documents.put_event("South", Category.PLAIN, "B", name="B", time="2025-03-09T11:00:00Z")

        resp = client.get("/all-events")

        assert resp.status_code == 200
        assert [(e["studioName"], e["id"]) for e in resp.json()] == [("South", "B"), ("North", "A")]
