"""
Tests for the in-process SSE stream emitter.
"""

import json
import pytest

from schemas.events import AgentName, AgentStatus, status_change_event
from services.event_stream import StreamEmitter


async def _drain(emitter: StreamEmitter):
    return [frame async for frame in emitter.frames()]


@pytest.mark.asyncio
async def test_frames_in_push_order_then_done():
    emitter = StreamEmitter.open("run-1")
    await emitter.push(status_change_event(AgentName.ORCHESTRATOR, AgentStatus.THINKING, "Orchestrator analyzing request"))
    await emitter.push_status("profile-analyst", "thinking")
    await emitter.done()
    emitter.close()

    frames = await _drain(emitter)
    assert [f["event"] for f in frames] == ["agent:status-change", "status", "done"]
    assert json.loads(frames[0]["data"])["agentName"] == "orchestrator"
    assert json.loads(frames[1]["data"]) == {"agentName": "profile-analyst", "status": "thinking"}
    assert frames[2]["data"] == "[DONE]"


@pytest.mark.asyncio
async def test_only_one_terminal_frame():
    emitter = StreamEmitter.open("run-2")
    await emitter.fail("LLM call failed")
    await emitter.done()
    assert not await emitter.system_notice("late")
    emitter.close()

    frames = await _drain(emitter)
    assert frames == [{"event": "error", "data": json.dumps({"error": "LLM call failed"})}]
    assert emitter.terminated


@pytest.mark.asyncio
async def test_push_after_close_is_dropped():
    emitter = StreamEmitter.open("run-3")
    emitter.close()
    emitter.close()
    assert emitter.closed
    assert not await emitter.push_status("orchestrator", "thinking")
    await emitter.done()

    assert await _drain(emitter) == []
    assert not emitter.terminated


@pytest.mark.asyncio
async def test_system_notice_shape():
    emitter = StreamEmitter.open("run-4")
    await emitter.system_notice("Running in demo mode - agents simulated locally")
    emitter.close()

    frames = await _drain(emitter)
    assert frames[0]["event"] == "system"
    assert json.loads(frames[0]["data"]) == {
        "role": "system",
        "content": "Running in demo mode - agents simulated locally",
    }


@pytest.mark.asyncio
async def test_agent_event_after_terminal_frame_is_dropped():
    emitter = StreamEmitter.open("run-5")
    await emitter.done()
    event = status_change_event(AgentName.MATCH_SCORER, AgentStatus.THINKING, "match-scorer activated")
    assert not await emitter.push(event)
    await emitter.fail("late failure")
    emitter.close()

    assert await _drain(emitter) == [{"event": "done", "data": "[DONE]"}]
    assert emitter.frames_pushed == 1


@pytest.mark.asyncio
async def test_reset_notice():
    emitter = StreamEmitter.open("run-6")
    await emitter.system_notice("restarting in demo mode", reset=True)
    emitter.close()

    frames = await _drain(emitter)
    assert json.loads(frames[0]["data"]) == {"role": "system", "content": "restarting in demo mode", "reset": True}
