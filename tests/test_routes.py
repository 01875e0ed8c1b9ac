"""
Tests for the HTTP surface using FastAPI's TestClient.
"""
import pytest
from fastapi.testclient import TestClient

from pyq_retrieval import main
from pyq_retrieval.utils.exceptions import ArchiveUnavailableError

from conftest import build_engine


@pytest.fixture
def client(archive, clock, monkeypatch):
    engine = build_engine(archive, clock)
    monkeypatch.setattr(main, "create_engine", lambda settings: engine)
    with TestClient(main.app) as test_client:
        test_client.engine = engine
        yield test_client


def search(client, message, conversation_id="chat-1", language="en"):
    response = client.post("/pyq/search", json={
        "message": message,
        "conversation_id": conversation_id,
        "language": language,
    })
    assert response.status_code == 200
    return response.json()


def test_ping_and_root(client):
    assert client.get("/ping").json() == {"status": "ok"}
    assert client.get("/").json()["endpoints"]["search"] == "/pyq/search"


def test_health(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["durable_cache"] is False


def test_search_success(client):
    body = search(client, "PYQ on Geography from 2020 to 2024")

    assert body["status"] == "success"
    assert body["follow_up"] == "new"
    assert body["count"] == 4
    assert body["context"]["offset"] == 4
    assert body["message"].startswith("## 📚 Previous Year Questions (UPSC)")


def test_search_empty(client):
    body = search(client, "PYQ on quantum chromodynamics")

    assert body["status"] == "empty"
    assert body["context"] is None
    assert "couldn't find" in body["message"]


def test_more_follow_up_exhausts_and_clears_context(client):
    search(client, "PYQ on Geography from 2020 to 2024")

    body = search(client, "more")

    assert body["follow_up"] == "more"
    assert body["status"] == "empty"
    assert "That's all" in body["message"]
    assert client.get("/pyq/context/chat-1").status_code == 404


def test_solve_follow_up(client):
    search(client, "PYQ on Geography from 2020 to 2024")

    body = search(client, "solve these")

    assert body["follow_up"] == "solve"
    assert body["message"].startswith("QUESTIONS TO SOLVE:")
    assert body["count"] == 2


def test_solve_without_context_runs_new_search(client):
    body = search(client, "solve these", conversation_id="fresh")

    assert body["follow_up"] == "new"


def test_context_routes(client):
    search(client, "PYQ on Geography from 2020 to 2024")

    context = client.get("/pyq/context/chat-1").json()
    questions = client.get("/pyq/context/chat-1/questions").json()

    assert context["shown_question_ids"] == ["geo-2023", "geo-2021"]
    assert context["intent"]["offset"] == 4
    assert [q["id"] for q in questions["questions"]] == ["geo-2023", "geo-2021"]
    assert questions["questions"][0]["question"].startswith("Discuss the role")

    assert client.delete("/pyq/context/chat-1").json()["status"] == "cleared"
    assert client.get("/pyq/context/chat-1").status_code == 404


def test_cache_entries_route(client):
    search(client, "PYQ on Geography from 2020 to 2024")

    entries = client.get("/pyq/cache/entries", params={"limit": 5}).json()

    assert len(entries) == 1
    assert entries[0]["value"]["count"] == 4


def test_blank_message_rejected(client):
    response = client.post("/pyq/search", json={"message": "   "})

    assert response.status_code == 400


def test_missing_message_rejected(client):
    response = client.post("/pyq/search", json={"conversation_id": "chat-1"})

    assert response.status_code == 422


def test_new_topic_with_answers_runs_new_search(client):
    search(client, "PYQ on Geography from 2020 to 2024")

    body = search(client, "PYQ on economy with answers")

    assert body["follow_up"] == "new"
    assert not body["message"].startswith("QUESTIONS TO SOLVE:")
    assert body["context"]["topic"] == "economy"
    assert client.get("/pyq/context/chat-1").json()["shown_question_ids"] == ["eco-2019", "eco-2015"]


def test_hindi_new_topic_does_not_continue_previous_search(client):
    search(client, "PYQ on Geography from 2020 to 2024")

    body = search(client, "aur economy ke questions")

    assert body["follow_up"] == "new"
    assert body["context"]["topic"] == "economy"


def test_retrieval_error_becomes_json_500(client, monkeypatch):
    async def failing_entries(limit):
        raise ArchiveUnavailableError("archive offline")

    monkeypatch.setattr(client.engine, "cache_entries", failing_entries)

    response = client.get("/pyq/cache/entries")

    assert response.status_code == 500
    assert response.json() == {
        "error": "RetrievalError",
        "message": "archive offline",
        "detail": "An error occurred during PYQ retrieval",
    }
