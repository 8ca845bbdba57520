"""
Stream driver: runs the live pipeline (or the demo script) in a background task
and exposes its frames as an async generator for EventSourceResponse.

If the LLM collaborator cannot be reached, the turn switches wholesale to the
demo simulator. When live frames already went out, the notice carries
reset=True so the client drops them. Application errors are reported through
an error frame.
"""

import asyncio
import os
import uuid
from typing import Any, AsyncGenerator, Dict, List, Optional

import structlog

from agents.client import BaseLLMClient, LLMUnavailableError
from orchestrator.engine import PipelineEngine
from schemas.runs import RunStatus
from services.demo_simulation import run_demo_simulation
from services.event_stream import StreamEmitter

logger = structlog.get_logger()

DEMO_FALLBACK_ENABLED = os.getenv("DEMO_FALLBACK_ENABLED", "true").lower() in ("1", "true", "yes")
DEMO_DELAY_SCALE = float(os.getenv("DEMO_DELAY_SCALE", "1.0"))
DEMO_MODE_NOTICE = "Running in demo mode - agents simulated locally"
DEMO_RESTART_NOTICE = "Lost connection to the model - restarting this turn in demo mode, earlier results are replaced"


async def replay_demo(emitter: StreamEmitter, message: str, delay_scale: float) -> int:
    """Push the simulator script onto the stream; returns the number of events pushed."""
    pushed = 0
    async for step in run_demo_simulation(message, delay_scale=delay_scale):
        await emitter.push(step.event)
        if step.status_update is not None:
            await emitter.push_status(step.status_update.agent_name.value, step.status_update.status.value)
        pushed += 1
    return pushed


async def _drive_pipeline(
    emitter: StreamEmitter,
    llm_client: BaseLLMClient,
    message: str,
    engine_options: Dict[str, Any],
    run_options: Dict[str, Any],
    demo_fallback: bool,
    delay_scale: float,
) -> None:
    run_id = emitter.run_id
    try:
        try:
            if demo_fallback and not await llm_client.ping():
                raise LLMUnavailableError("LLM collaborator did not answer the reachability probe")

            engine = PipelineEngine(run_id, llm_client, event_emitter=emitter.push, **engine_options)
            result = await engine.run(message, **run_options)
        except LLMUnavailableError as e:
            if not demo_fallback:
                raise
            live_frames = emitter.frames_pushed
            logger.warning("llm_unreachable_demo_fallback", run_id=run_id, error=str(e), live_frames=live_frames)
            if live_frames:
                await emitter.system_notice(DEMO_RESTART_NOTICE, reset=True)
            else:
                await emitter.system_notice(DEMO_MODE_NOTICE)
            await replay_demo(emitter, message, delay_scale)
            await emitter.done()
            return

        if result.status == RunStatus.FAILED:
            await emitter.fail(result.error_message or "Pipeline failed")
        else:
            await emitter.done()
    except Exception as e:
        logger.error("pipeline_stream_failed", run_id=run_id, error=str(e), exc_info=True)
        await emitter.fail(str(e))
    finally:
        emitter.close()


async def _drive_demo(emitter: StreamEmitter, message: str, delay_scale: float) -> None:
    try:
        await replay_demo(emitter, message, delay_scale)
        await emitter.done()
    except Exception as e:
        logger.error("demo_stream_failed", run_id=emitter.run_id, error=str(e), exc_info=True)
        await emitter.fail(str(e))
    finally:
        emitter.close()


async def _stream_frames(emitter: StreamEmitter, task: "asyncio.Task[None]") -> AsyncGenerator[Dict[str, str], None]:
    try:
        async for frame in emitter.frames():
            yield frame
    finally:
        if not task.done():
            task.cancel()
            logger.info("pipeline_stream_cancelled", run_id=emitter.run_id)
        emitter.close()


def stream_orchestration(
    message: str,
    llm_client: BaseLLMClient,
    run_id: Optional[str] = None,
    conversation_id: Optional[str] = None,
    user_id: Optional[str] = None,
    orchestration_mode: Optional[str] = None,
    human_approval_response: Optional[str] = None,
    approval_required_for: Optional[List[str]] = None,
    profile: Optional[Dict[str, Any]] = None,
    demo_fallback: Optional[bool] = None,
    delay_scale: Optional[float] = None,
) -> AsyncGenerator[Dict[str, str], None]:
    """Start a live run and return its frame generator.

    Must be called from a running event loop. Closing the generator cancels the run.
    """
    emitter = StreamEmitter.open(run_id or str(uuid.uuid4()))
    task = asyncio.create_task(
        _drive_pipeline(
            emitter,
            llm_client,
            message,
            engine_options={
                "orchestration_mode": orchestration_mode,
                "approval_required_for": approval_required_for,
            },
            run_options={
                "conversation_id": conversation_id,
                "user_id": user_id,
                "profile": profile,
                "human_approval_response": human_approval_response,
            },
            demo_fallback=DEMO_FALLBACK_ENABLED if demo_fallback is None else demo_fallback,
            delay_scale=DEMO_DELAY_SCALE if delay_scale is None else delay_scale,
        ),
        name=f"pipeline-{emitter.run_id}",
    )
    return _stream_frames(emitter, task)


def stream_demo(
    message: str,
    run_id: Optional[str] = None,
    delay_scale: Optional[float] = None,
) -> AsyncGenerator[Dict[str, str], None]:
    """Start a demo replay and return its frame generator."""
    emitter = StreamEmitter.open(run_id or str(uuid.uuid4()))
    task = asyncio.create_task(
        _drive_demo(emitter, message, DEMO_DELAY_SCALE if delay_scale is None else delay_scale),
        name=f"demo-{emitter.run_id}",
    )
    return _stream_frames(emitter, task)
