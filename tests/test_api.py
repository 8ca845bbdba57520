"""
API tests: request validation, SSE framing, demo fallback and health endpoints.
"""

import json
import pytest
from fastapi.testclient import TestClient

import main
from conftest import FakeLLMClient


def _parse_sse(body: str):
    frames = []
    for block in body.strip().split("\n\n"):
        frame = {}
        for line in block.splitlines():
            if line.startswith("event: "):
                frame["event"] = line[len("event: "):]
            elif line.startswith("data: "):
                frame["data"] = line[len("data: "):]
        if frame:
            frames.append(frame)
    return frames


@pytest.fixture
def llm():
    return FakeLLMClient()


@pytest.fixture
def client(llm, monkeypatch):
    monkeypatch.setattr("services.pipeline_stream.DEMO_DELAY_SCALE", 0)
    main.app.dependency_overrides[main.get_llm_client] = lambda: llm
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json() == {"ready": True, "checks": {"api": True, "llm": True}}

    def test_not_ready_when_llm_unreachable(self, client, llm):
        llm.reachable = False
        response = client.get("/ready")
        assert response.status_code == 503
        assert response.json()["ready"] is False


class TestAgentCatalogue:
    def test_lists_orchestrator_and_workers(self, client):
        agents = client.get("/api/agents").json()["agents"]
        assert [a["name"] for a in agents] == [
            "orchestrator",
            "profile-analyst",
            "market-researcher",
            "match-scorer",
            "resume-tailor",
            "interview-coach",
        ]
        scorer = agents[3]
        assert scorer["displayName"] == "Match Scorer"
        assert scorer["structuredOutput"] is True
        assert scorer["description"]


class TestOrchestrateValidation:
    @pytest.mark.parametrize("payload", [{}, {"message": ""}, {"message": "   "}])
    def test_message_required(self, client, payload):
        response = client.post("/api/orchestrate", json=payload)
        assert response.status_code == 400
        assert response.json()["detail"] == "Message is required"

    def test_message_too_large(self, client):
        response = client.post("/api/orchestrate", json={"message": "a" * (500 * 1024 + 1)})
        assert response.status_code == 413

    def test_unknown_mode(self, client):
        response = client.post("/api/orchestrate", json={"message": "hi", "orchestrationMode": "round-robin"})
        assert response.status_code == 400

    def test_bad_approval_response(self, client):
        response = client.post("/api/orchestrate", json={"message": "hi", "humanApprovalResponse": "maybe"})
        assert response.status_code == 422


class TestOrchestrateStream:
    def test_streams_agent_events_then_done(self, client):
        response = client.post("/api/orchestrate", json={"message": "Find me remote frontend roles"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["x-accel-buffering"] == "no"

        frames = _parse_sse(response.text)
        assert frames[0]["event"] == "agent:status-change"
        assert json.loads(frames[0]["data"])["agentName"] == "orchestrator"
        assert frames[-1] == {"event": "done", "data": "[DONE]"}
        summary = json.loads(frames[-2]["data"])
        assert summary["metadata"]["pipelineSummary"] is True
        assert summary["metadata"]["agentCount"] == 5

    def test_falls_back_to_demo(self, client, llm):
        llm.reachable = False
        response = client.post("/api/orchestrate", json={"message": "Find me remote frontend roles"})

        frames = _parse_sse(response.text)
        assert frames[0]["event"] == "system"
        assert json.loads(frames[0]["data"])["content"] == "Running in demo mode - agents simulated locally"
        assert sum(1 for f in frames if f["event"].startswith("agent:")) == 19
        assert frames[-1]["event"] == "done"

    def test_pending_approval_ends_stream(self, client):
        response = client.post(
            "/api/orchestrate",
            json={"message": "help me", "approvalRequiredFor": ["resume-tailor"]},
        )
        frames = _parse_sse(response.text)
        assert frames[-2]["event"] == "agent:human-request"
        assert frames[-1]["event"] == "done"

    def test_demo_endpoint(self, client):
        response = client.post("/api/demo", json={"message": "Help me practice for an interview"})
        frames = _parse_sse(response.text)
        assert sum(1 for f in frames if f["event"].startswith("agent:")) == 19
        assert frames[-1]["event"] == "done"
