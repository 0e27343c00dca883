"""
HTTP and websocket surface, driven in-process. The model API and the
analytics database are replaced through dependency overrides.
"""
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from codecoach.api.deps import get_analytics_store, get_model_client
from codecoach.api.v1.endpoints.sessions import SESSIONS, evict_idle_sessions
from codecoach.core.groq import ModelClient, ModelConfig
from codecoach.main import app

GENERATED = {
    "title": "Closures",
    "questions": [
        {"type": "mcq", "q": "What is captured?", "options": ["scope", "nothing"], "correctIndex": 0},
        {"type": "text", "q": "Define a closure", "keywords": ["function", "scope"]},
    ],
}


def _model_client(status=200, content=None):
    def handler(request):
        if status != 200:
            return httpx.Response(status, text="upstream exploded")
        body = content if content is not None else "```json\n" + json.dumps(GENERATED) + "\n```"
        return httpx.Response(200, json={"choices": [{"message": {"content": body}}]})

    return ModelClient(ModelConfig(api_key="test-key"), transport=httpx.MockTransport(handler))


@pytest.fixture
async def client(store):
    app.dependency_overrides[get_analytics_store] = lambda: store
    app.dependency_overrides[get_model_client] = lambda: _model_client()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    for session in SESSIONS.values():
        session.close()
    SESSIONS.clear()


async def test_health(client):
    resp = await client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "provider": "groq", "model": "llama-3.1-8b-instant"}


async def test_generate_quiz(client):
    resp = await client.post("/api/v1/quiz/generate", json={"topic": "closures", "count": 1})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["quiz"]["title"] == "Closures"
    assert len(body["quiz"]["questions"]) == 1
    assert body["quiz"]["questions"][0]["options"][2] == "Option 3"


async def test_generate_requires_topic_or_code(client):
    resp = await client.post("/api/v1/quiz/generate", json={"topic": "  "})
    assert resp.status_code == 400
    assert resp.json()["code"] == "BAD_REQUEST"
    assert resp.json()["ok"] is False


async def test_generate_reports_upstream_failure(client):
    app.dependency_overrides[get_model_client] = lambda: _model_client(status=500)
    resp = await client.post("/api/v1/quiz/generate", json={"topic": "closures"})
    assert resp.status_code == 502
    body = resp.json()
    assert body["code"] == "UPSTREAM_FAILURE"
    assert body["detail"] == {"status": 500, "body": "upstream exploded"}


async def test_generate_reports_invalid_output(client):
    app.dependency_overrides[get_model_client] = lambda: _model_client(content="no quiz today")
    resp = await client.post("/api/v1/quiz/generate", json={"topic": "closures"})
    assert resp.status_code == 502
    assert resp.json()["code"] == "INVALID_AI_OUTPUT"
    assert resp.json()["detail"] == "no quiz today"


async def test_upload_quiz(client):
    resp = await client.post("/api/v1/quiz/upload", content=json.dumps(GENERATED))
    assert resp.status_code == 200
    assert resp.json()["quiz"]["description"] == "AI-ready coding quiz"

    resp = await client.post("/api/v1/quiz/upload", content=b'{"questions": []}')
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


async def test_session_flow_records_attempt(client):
    resp = await client.post("/api/v1/sessions", json={})
    assert resp.status_code == 200
    session = resp.json()
    assert session["state"] == "authoring"
    assert session["quiz"]["title"] == "Sample: sum function quiz"
    session_id = session["id"]

    resp = await client.post(f"/api/v1/sessions/{session_id}/start", json={"proctoring": True})
    assert resp.json()["state"] == "taking"
    assert resp.json()["proctoring"] is True

    resp = await client.put(f"/api/v1/sessions/{session_id}/answers/q1", json={"value": 1})
    assert resp.json()["answer"]["questionId"] == "q1"

    SESSIONS[session_id].collector.capture("window_blur", "Window lost focus")

    resp = await client.post(f"/api/v1/sessions/{session_id}/submit", headers={"X-User-Id": "learner-1"})
    assert resp.status_code == 200
    graded = resp.json()
    assert graded["state"] == "graded"
    assert graded["score"] == 17
    assert graded["attempt"]["weakAreas"] == ["text-medium", "code-hard"]

    resp = await client.get("/api/v1/analytics/dashboard", headers={"X-User-Id": "learner-1"})
    analytics = resp.json()["analytics"]
    assert analytics["totalAttempts"] == 1
    assert analytics["proctorFlags"] == 1
    assert analytics["badges"] == ["first-quiz-complete"]

    resp = await client.get(f"/api/v1/sessions/{session_id}/export")
    assert resp.headers["content-disposition"] == 'attachment; filename="Sample:_sum_function_quiz_results.json"'
    assert resp.json()["score"] == 17


async def test_anonymous_submit_is_not_recorded(client, store):
    session_id = (await client.post("/api/v1/sessions", json={})).json()["id"]
    await client.post(f"/api/v1/sessions/{session_id}/start", json={})
    resp = await client.post(f"/api/v1/sessions/{session_id}/submit")
    assert resp.json()["state"] == "graded"
    assert (await store.summary("learner-1"))["totalAttempts"] == 0


async def test_submit_before_start_is_rejected(client):
    session_id = (await client.post("/api/v1/sessions", json={})).json()["id"]
    resp = await client.post(f"/api/v1/sessions/{session_id}/submit")
    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_STATE"


async def test_unknown_session(client):
    resp = await client.get("/api/v1/sessions/missing")
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"


async def test_delete_session(client):
    session_id = (await client.post("/api/v1/sessions", json={"quiz": GENERATED})).json()["id"]
    resp = await client.delete(f"/api/v1/sessions/{session_id}")
    assert resp.json() == {"ok": True}
    assert session_id not in SESSIONS


async def test_analytics_requires_identity(client):
    resp = await client.post("/api/v1/analytics/attempt", json={"score": 80})
    assert resp.status_code == 401
    assert resp.json()["code"] == "UNAUTHORIZED"


async def test_record_attempt_endpoint(client):
    resp = await client.post(
        "/api/v1/analytics/attempt",
        json={"quizTitle": "Loops", "score": 120, "weakAreas": ["mcq-easy"]},
        headers={"X-User-Id": "learner-2"},
    )
    assert resp.status_code == 200
    assert resp.json()["attempt"]["score"] == 100


async def test_proctor_event_requires_type(client):
    resp = await client.post("/api/v1/proctor/event", json={"detail": "x"}, headers={"X-User-Id": "u"})
    assert resp.status_code == 400
    resp = await client.post("/api/v1/proctor/event", json={"type": "tab_hidden"}, headers={"X-User-Id": "u"})
    assert resp.json() == {"ok": True}


def test_signal_socket():
    with TestClient(app) as client:
        session_id = client.post("/api/v1/sessions", json={}).json()["id"]
        client.post(f"/api/v1/sessions/{session_id}/start", json={"proctoring": True})
        with client.websocket_connect(f"/ws/sessions/{session_id}/signals") as ws:
            ws.send_json({"signal": "copy"})
            assert ws.receive_json() == {"captured": True, "suppress": True, "warnings": 1}
            ws.send_json({"signal": "visibilitychange", "visibility": "visible"})
            assert ws.receive_json() == {"captured": False, "suppress": False, "warnings": 1}
            ws.send_json({"signal": "blur"})
            assert ws.receive_json() == {"captured": True, "suppress": False, "warnings": 2}
            ws.send_json({"signal": "keypress"})
            assert ws.receive_json() == {"error": "unsupported_signal"}
            ws.send_text("not json")
            assert ws.receive_json() == {"error": "invalid_json"}
            ws.send_bytes(b"\x00\x01")
            assert ws.receive_json() == {"error": "invalid_message"}
            ws.send_json({"signal": "paste"})
            assert ws.receive_json()["warnings"] == 3
        client.delete(f"/api/v1/sessions/{session_id}")


def test_dropped_signal_socket_abandons_the_attempt():
    with TestClient(app) as client:
        session_id = client.post("/api/v1/sessions", json={}).json()["id"]
        client.post(f"/api/v1/sessions/{session_id}/start", json={"proctoring": True})
        with client.websocket_connect(f"/ws/sessions/{session_id}/signals") as ws:
            ws.send_json({"signal": "blur"})
            ws.receive_json()
        session = SESSIONS[session_id]
        assert client.get(f"/api/v1/sessions/{session_id}").json()["state"] == "authoring"
        assert not session.timer.running
        assert session.environment.observer_count() == 0
        client.delete(f"/api/v1/sessions/{session_id}")


async def test_idle_sessions_are_evicted_and_closed(client):
    stale_id = (await client.post("/api/v1/sessions", json={})).json()["id"]
    await client.post(f"/api/v1/sessions/{stale_id}/start", json={"proctoring": True})
    stale = SESSIONS[stale_id]
    stale.last_seen -= 10_000
    fresh_id = (await client.post("/api/v1/sessions", json={})).json()["id"]
    assert stale_id not in SESSIONS
    assert fresh_id in SESSIONS
    assert not stale.timer.running
    assert stale.environment.observer_count() == 0
    assert (await client.get(f"/api/v1/sessions/{stale_id}")).status_code == 404


def test_evict_keeps_recently_used_sessions(quiz):
    from codecoach.models.session import QuizSession

    session = QuizSession(quiz)
    SESSIONS[session.id] = session
    try:
        assert evict_idle_sessions(max_idle=60, now=session.last_seen + 30) == []
        assert evict_idle_sessions(max_idle=60, now=session.last_seen + 61) == [session.id]
        assert session.id not in SESSIONS
    finally:
        SESSIONS.pop(session.id, None)


async def test_authoring_routes(client):
    session_id = (await client.post("/api/v1/sessions", json={})).json()["id"]
    base = f"/api/v1/sessions/{session_id}"

    resp = await client.put(f"{base}/quiz", json={"quiz": GENERATED})
    assert resp.json()["quiz"]["title"] == "Closures"
    assert resp.json()["state"] == "authoring"

    resp = await client.patch(f"{base}/details", json={"title": "Closures 101"})
    assert resp.json()["quiz"]["title"] == "Closures 101"
    assert resp.json()["quiz"]["description"] == "AI-ready coding quiz"

    added = (await client.post(f"{base}/questions", json={"type": "code"})).json()["question"]
    assert added["type"] == "code"

    resp = await client.put(f"{base}/questions/{added['id']}", json={"type": "code", "q": "Write a counter"})
    assert resp.json()["question"] == {**added, "q": "Write a counter"}

    resp = await client.put(f"{base}/questions/q1/level", json={"level": "hard"})
    assert (resp.json()["question"]["level"], resp.json()["question"]["points"]) == ("hard", 3)

    resp = await client.delete(f"{base}/questions/{added['id']}")
    assert [q["id"] for q in resp.json()["quiz"]["questions"]] == ["q1", "q2"]


async def test_authoring_routes_reject_bad_input(client):
    session_id = (await client.post("/api/v1/sessions", json={})).json()["id"]
    base = f"/api/v1/sessions/{session_id}"

    resp = await client.put(f"{base}/quiz", json={"quiz": {"questions": []}})
    assert resp.json()["code"] == "VALIDATION_ERROR"

    resp = await client.post(f"{base}/questions", json={"type": "essay"})
    assert resp.status_code == 400

    await client.post(f"{base}/start", json={})
    resp = await client.put(f"{base}/questions/q1/level", json={"level": "hard"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_STATE"

    resp = await client.post(f"{base}/authoring")
    assert resp.json()["state"] == "authoring"
