"""
Tests for the pipeline engine: event order, structured output, errors,
human approval and LLM-directed routing.
"""

import asyncio
import json
import pytest

from agents.client import LLMCallError, LLMUnavailableError
from conftest import (
    INTERVIEW_COACH,
    MARKET_RESEARCHER,
    MATCH_SCORER,
    PROFILE_ANALYST,
    RESUME_TAILOR,
    ROUTER,
    FakeLLMClient,
)
from orchestrator.engine import SUMMARY_MESSAGE, PipelineEngine
from orchestrator.workflows import OrchestrationMode
from schemas.events import AgentEventType, AgentName, WORKER_AGENTS
from schemas.runs import RunStatus, StepStatus


def _summary(events):
    return [(e.agent_name.value, e.type.value, e.content) for e in events]


MARKET_REPLY = """Here is what I found:
```json
{
  "summary": "Found 2 roles that fit.",
  "jobs": [
    {"title": "Senior Frontend Engineer", "company": "Stripe", "remote": true, "experienceLevel": "Senior"},
    {"title": "", "company": "Nameless"},
    {"title": "Full-Stack Engineer, Growth", "company": "Vercel", "employmentType": "full-time"}
  ]
}
```"""

MATCH_REPLY = json.dumps({
    "summary": "Stripe is the top match.",
    "matches": [
        {"jobTitle": "senior frontend engineer", "overallScore": 92, "skillGaps": [{"skill": "Accessibility", "gapSeverity": "minor"}]},
        {"jobTitle": "Unknown Role", "overallScore": 40},
    ],
})


class TestEngineConfiguration:
    def test_defaults(self, fake_llm):
        engine = PipelineEngine(run_id="run-1", llm_client=fake_llm)
        assert engine.run_id == "run-1"
        assert engine.orchestration_mode == OrchestrationMode.DETERMINISTIC
        assert [step.step_id for step in engine.pipeline] == [a.value for a in WORKER_AGENTS]

    def test_unknown_mode_rejected(self, fake_llm):
        with pytest.raises(ValueError):
            PipelineEngine(run_id="run-1", llm_client=fake_llm, orchestration_mode="round-robin")

    def test_event_emitter_is_kept(self, fake_llm, mock_event_callback):
        engine = PipelineEngine(run_id="run-1", llm_client=fake_llm, event_emitter=mock_event_callback)
        assert engine.event_emitter is mock_event_callback


class TestDeterministicRun:
    @pytest.mark.asyncio
    async def test_full_event_sequence(self, fake_llm, collected_events, sample_message):
        engine = PipelineEngine(run_id="run-1", llm_client=fake_llm, event_emitter=collected_events)
        result = await engine.run(sample_message)

        events = collected_events.events
        expected = [
            ("orchestrator", "status-change", "Orchestrator analyzing request"),
            ("orchestrator", "message", "Processing your request. Running 5 agents..."),
        ]
        for agent in WORKER_AGENTS:
            name = agent.value
            expected += [
                (name, "status-change", f"{name} activated"),
                (name, "thought", f"{name} analyzing..."),
                (name, "status-change", f"{name} executing"),
                (name, "message", "ok"),
                (name, "status-change", f"{name} complete"),
            ]
        expected += [
            ("orchestrator", "status-change", "Orchestrator complete"),
            ("orchestrator", "message", SUMMARY_MESSAGE),
        ]
        assert _summary(events) == expected

        assert result.status == RunStatus.COMPLETED
        assert result.progress_pct == 100
        assert all(step.status == StepStatus.SUCCEEDED for step in result.steps)
        assert len(fake_llm.calls) == 5

    @pytest.mark.asyncio
    async def test_worker_message_metadata(self, fake_llm, collected_events):
        engine = PipelineEngine(run_id="run-1", llm_client=fake_llm, event_emitter=collected_events)
        await engine.run("help me")

        profile_message = next(
            e for e in collected_events.events
            if e.agent_name == AgentName.PROFILE_ANALYST and e.type == AgentEventType.MESSAGE
        )
        assert profile_message.metadata == {
            "model": "fake-model",
            "inputTokens": 10,
            "outputTokens": 20,
            "durationMs": 1000,
            "tokensPerSecond": 20.0,
        }
        statuses = [
            e.metadata["status"] for e in collected_events.events
            if e.agent_name == AgentName.PROFILE_ANALYST and e.type == AgentEventType.STATUS_CHANGE
        ]
        assert statuses == ["thinking", "executing", "complete"]

    @pytest.mark.asyncio
    async def test_summary_totals(self, fake_llm, collected_events):
        engine = PipelineEngine(run_id="run-1", llm_client=fake_llm, event_emitter=collected_events)
        await engine.run("help me")

        summary = collected_events.events[-1].metadata
        assert summary["pipelineSummary"] is True
        assert summary["totalInputTokens"] == 50
        assert summary["totalOutputTokens"] == 100
        assert summary["agentCount"] == 5
        assert summary["totalDurationMs"] >= 0

    @pytest.mark.asyncio
    async def test_context_flows_between_agents(self, make_llm):
        llm = make_llm(replies={PROFILE_ANALYST: "Strong React engineer", MATCH_SCORER: "Stripe fits best"})
        engine = PipelineEngine(run_id="run-1", llm_client=llm)
        await engine.run("find roles", profile={"name": "Alex", "skills": ["React"]})

        profile_call, market_call, match_call, resume_call, interview_call = llm.calls
        assert '"name": "Alex"' in profile_call["user"]
        assert "Strong React engineer" in market_call["user"]
        assert "Jobs:\nok" in match_call["user"]
        assert "Top Match:\nStripe fits best" in resume_call["user"]
        assert "Target Role:\nStripe fits best" in interview_call["user"]
        assert market_call["max_tokens"] == 2048
        assert profile_call["max_tokens"] is None

    @pytest.mark.asyncio
    async def test_without_callback(self, fake_llm):
        engine = PipelineEngine(run_id="run-1", llm_client=fake_llm)
        result = await engine.run("help me")
        assert result.status == RunStatus.COMPLETED
        assert engine.trace_emitter.emitted == 29


class TestStructuredOutput:
    @pytest.mark.asyncio
    async def test_jobs_and_matches_are_extracted(self, make_llm, collected_events):
        llm = make_llm(replies={MARKET_RESEARCHER: MARKET_REPLY, MATCH_SCORER: MATCH_REPLY})
        engine = PipelineEngine(run_id="run-1", llm_client=llm, event_emitter=collected_events)
        result = await engine.run("find me frontend roles")

        jobs = result.results["jobs"]
        assert [job["company"] for job in jobs] == ["Stripe", "Vercel"]
        assert jobs[0]["experienceLevel"] == "senior"

        matches = result.results["matches"]
        assert matches[0]["jobId"] == jobs[0]["id"]
        assert matches[0]["skillGaps"][0]["gapSeverity"] == "minor"
        assert matches[1]["jobId"] is None

        market_message = next(
            e for e in collected_events.events
            if e.agent_name == AgentName.MARKET_RESEARCHER and e.type == AgentEventType.MESSAGE
        )
        assert market_message.content == "Found 2 roles that fit."
        assert len(market_message.metadata["structuredData"]["jobs"]) == 3

    @pytest.mark.asyncio
    async def test_fenced_summary_replaces_content(self, make_llm, collected_events):
        llm = make_llm(replies={MARKET_RESEARCHER: 'Here you go:\n```json\n{"summary":"ok","jobs":[]}\n```\nThanks'})
        engine = PipelineEngine(run_id="run-1", llm_client=llm, event_emitter=collected_events)
        result = await engine.run("Find me a senior backend role")

        market_message = next(
            e for e in collected_events.events
            if e.agent_name == AgentName.MARKET_RESEARCHER and e.type == AgentEventType.MESSAGE
        )
        assert market_message.content == "ok"
        assert market_message.metadata["structuredData"]["jobs"] == ()
        assert result.results["jobs"] == []

    @pytest.mark.asyncio
    async def test_unparseable_output_keeps_text(self, make_llm, collected_events):
        llm = make_llm(replies={INTERVIEW_COACH: "Practice system design. {not json"})
        engine = PipelineEngine(run_id="run-1", llm_client=llm, event_emitter=collected_events)
        result = await engine.run("prep me for interviews")

        coach_message = next(
            e for e in collected_events.events
            if e.agent_name == AgentName.INTERVIEW_COACH and e.type == AgentEventType.MESSAGE
        )
        assert coach_message.content == "Practice system design. {not json"
        assert "structuredData" not in coach_message.metadata
        assert result.results["interviewTopics"] == []
        assert result.status == RunStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_resume_is_kept_as_text(self, make_llm):
        llm = make_llm(replies={RESUME_TAILOR: "Lead with the dashboard work."})
        result = await PipelineEngine(run_id="run-1", llm_client=llm).run("tailor my resume")
        assert result.results["tailoredResume"] == "Lead with the dashboard work."


class TestErrors:
    @pytest.mark.asyncio
    async def test_worker_call_error_fails_run(self, make_llm, collected_events):
        llm = make_llm(replies={MATCH_SCORER: LLMCallError("model returned 500")})
        engine = PipelineEngine(run_id="run-1", llm_client=llm, event_emitter=collected_events)
        result = await engine.run("help me")

        assert result.status == RunStatus.FAILED
        assert "model returned 500" in result.error_message
        assert result.step("match-scorer").status == StepStatus.FAILED
        assert result.step("market-researcher").status == StepStatus.SUCCEEDED
        assert len(llm.calls) == 3

        tail = _summary(collected_events.events[-2:])
        assert tail[0] == ("match-scorer", "status-change", "match-scorer failed")
        assert tail[1][0:2] == ("orchestrator", "error")
        assert not any(e.content == SUMMARY_MESSAGE for e in collected_events.events)

    @pytest.mark.asyncio
    async def test_unreachable_llm_is_raised(self, make_llm):
        llm = make_llm(replies={PROFILE_ANALYST: LLMUnavailableError("connection refused")})
        engine = PipelineEngine(run_id="run-1", llm_client=llm)
        with pytest.raises(LLMUnavailableError):
            await engine.run("help me")
        assert engine.run_metadata.status == RunStatus.FAILED

    @pytest.mark.asyncio
    async def test_route_decision_ceiling(self, fake_llm, collected_events):
        engine = PipelineEngine(
            run_id="run-1", llm_client=fake_llm, event_emitter=collected_events, max_route_decisions=2,
        )
        result = await engine.run("help me")

        assert result.status == RunStatus.COMPLETED
        assert len(fake_llm.calls) == 2
        assert collected_events.events[-1].metadata["agentCount"] == 2
        assert result.step("match-scorer").status == StepStatus.PENDING


class TestHumanApproval:
    @pytest.mark.asyncio
    async def test_pending_approval_pauses_run(self, fake_llm, collected_events):
        engine = PipelineEngine(
            run_id="run-1", llm_client=fake_llm, event_emitter=collected_events,
            approval_required_for=["resume-tailor"],
        )
        result = await engine.run("help me")

        assert result.status == RunStatus.AWAITING_APPROVAL
        assert len(fake_llm.calls) == 3
        last = collected_events.events[-1]
        assert last.type == AgentEventType.HUMAN_REQUEST
        assert last.metadata == {"status": "waiting-for-human", "pendingAgent": "resume-tailor"}
        assert not any(e.content == SUMMARY_MESSAGE for e in collected_events.events)

    @pytest.mark.asyncio
    async def test_approved_run_completes(self, fake_llm):
        engine = PipelineEngine(run_id="run-1", llm_client=fake_llm, approval_required_for=["resume-tailor"])
        result = await engine.run("help me", human_approval_response="approved")
        assert result.status == RunStatus.COMPLETED
        assert len(fake_llm.calls) == 5

    @pytest.mark.asyncio
    async def test_rejected_run_stops(self, fake_llm, collected_events):
        engine = PipelineEngine(
            run_id="run-1", llm_client=fake_llm, event_emitter=collected_events,
            approval_required_for=["resume-tailor"],
        )
        result = await engine.run("help me", human_approval_response="rejected")

        assert result.status == RunStatus.REJECTED
        assert len(fake_llm.calls) == 3
        assert collected_events.events[-1].content == "Request rejected before resume-tailor"


class TestLLMDirectedRouting:
    @pytest.mark.asyncio
    async def test_router_picks_agents(self, make_llm, collected_events):
        llm = make_llm(replies={ROUTER: ["match-scorer", "done"]})
        engine = PipelineEngine(
            run_id="run-1", llm_client=llm, event_emitter=collected_events,
            orchestration_mode=OrchestrationMode.LLM_DIRECTED,
        )
        result = await engine.run("score my fit")

        events = collected_events.events
        assert events[1].content == "Processing your request. Coordinating up to 5 agents..."
        assert events[2].content == "Routing to match-scorer"
        assert events[2].metadata == {"nextAgent": "match-scorer", "decision": "match-scorer"}
        assert ("orchestrator", "thought", "All required agents have run") in _summary(events)
        assert result.status == RunStatus.COMPLETED
        # Router calls are not part of the agent totals.
        assert events[-1].metadata["agentCount"] == 1
        assert [call["max_tokens"] for call in llm.calls] == [16, 2048, 16]

    @pytest.mark.asyncio
    async def test_unrecognized_reply_finishes(self, make_llm, collected_events):
        llm = make_llm(replies={ROUTER: "let me think about it"})
        engine = PipelineEngine(
            run_id="run-1", llm_client=llm, event_emitter=collected_events,
            orchestration_mode=OrchestrationMode.LLM_DIRECTED,
        )
        result = await engine.run("help me")

        assert result.status == RunStatus.COMPLETED
        assert len(llm.calls) == 1
        assert ("orchestrator", "thought", "Could not interpret the routing decision, finishing the run") in _summary(
            collected_events.events
        )

    @pytest.mark.asyncio
    async def test_router_call_error_fails_run(self, make_llm):
        llm = make_llm(replies={ROUTER: LLMCallError("bad gateway")})
        engine = PipelineEngine(
            run_id="run-1", llm_client=llm, orchestration_mode=OrchestrationMode.LLM_DIRECTED,
        )
        result = await engine.run("help me")
        assert result.status == RunStatus.FAILED
        assert result.error_message.startswith("Routing failed")


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_run_is_recorded(self, make_llm, collected_events):
        llm = make_llm()
        llm.block = asyncio.Event()
        llm.block_key = MARKET_RESEARCHER
        engine = PipelineEngine(run_id="run-1", llm_client=llm, event_emitter=collected_events)

        task = asyncio.create_task(engine.run("Find me a senior backend role"))
        await llm.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        run = engine.run_metadata
        assert run.status == RunStatus.CANCELLED
        assert run.completed_at is not None
        assert run.step("profile-analyst").status == StepStatus.SUCCEEDED
        assert run.step("market-researcher").status == StepStatus.RUNNING
        assert run.step("match-scorer").status == StepStatus.PENDING
        assert run.steps_completed == 1
        assert collected_events.events[-1].agent_name == AgentName.MARKET_RESEARCHER
