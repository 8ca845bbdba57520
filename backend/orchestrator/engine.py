"""
Central engine for one career pipeline run.

Emits the orchestrator intro, drives the LangGraph pipeline, then emits either
the completion summary or a run-level error event. Connection failures of the
LLM collaborator are re-raised so the stream layer can fall back to the demo.
"""

import asyncio
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import structlog

from agents.client import BaseLLMClient, LLMUnavailableError
from orchestrator.agent_registry import get_agent_pipeline
from orchestrator.extraction import dump_records
from orchestrator.state import create_initial_state
from orchestrator.stats import StatsAggregator
from orchestrator.trace_emitter import EventCallback, TraceEmitter
from orchestrator.workflows import OrchestrationMode, create_pipeline_graph, recursion_limit_for
from schemas.events import AgentName, AgentStatus
from schemas.runs import RunMetadata, RunStatus, StepMetadata, StepStatus, create_new_run
from telemetry import get_tracer, set_span_attributes, traced_span

logger = structlog.get_logger()

_tracer = get_tracer("orchestrator")

ORCHESTRATION_MODE = os.getenv("ORCHESTRATION_MODE", OrchestrationMode.DETERMINISTIC)
PIPELINE_MAX_ROUTE_DECISIONS = int(os.getenv("PIPELINE_MAX_ROUTE_DECISIONS", "12"))
APPROVAL_REQUIRED_AGENTS = [
    name.strip() for name in os.getenv("APPROVAL_REQUIRED_AGENTS", "").split(",") if name.strip()
]

SUMMARY_MESSAGE = (
    "All agents have completed. Check the results above for your personalized career analysis."
)

ORCHESTRATOR = AgentName.ORCHESTRATOR


class PipelineEngine:
    """
    Runs the five-agent career pipeline for a single user turn.
    Each run owns its state, trace emitter and stats aggregator.
    """

    def __init__(
        self,
        run_id: str,
        llm_client: BaseLLMClient,
        event_emitter: Optional[EventCallback] = None,
        orchestration_mode: Optional[str] = None,
        max_route_decisions: Optional[int] = None,
        approval_required_for: Optional[List[str]] = None,
    ):
        self.run_id = run_id
        self.llm_client = llm_client
        self.event_emitter = event_emitter
        self.orchestration_mode = orchestration_mode or ORCHESTRATION_MODE
        if self.orchestration_mode not in OrchestrationMode.ALL:
            raise ValueError(f"Unknown orchestration mode '{self.orchestration_mode}'")
        self.max_route_decisions = max_route_decisions or PIPELINE_MAX_ROUTE_DECISIONS
        self.approval_required_for = (
            list(approval_required_for) if approval_required_for is not None else list(APPROVAL_REQUIRED_AGENTS)
        )

        self.pipeline = get_agent_pipeline()
        self.aggregator = StatsAggregator()
        self.trace_emitter = TraceEmitter(run_id=run_id, event_callback=event_emitter)
        self.run_metadata: Optional[RunMetadata] = None
        self._started_at = time.monotonic()

        logger.info(
            "pipeline_engine_initialized",
            run_id=run_id,
            orchestration_mode=self.orchestration_mode,
            max_route_decisions=self.max_route_decisions,
            approval_required_for=self.approval_required_for,
        )

    def _elapsed_ms(self) -> int:
        return int((time.monotonic() - self._started_at) * 1000)

    def _intro_message(self) -> str:
        if self.orchestration_mode == OrchestrationMode.LLM_DIRECTED:
            return f"Processing your request. Coordinating up to {len(self.pipeline)} agents..."
        return f"Processing your request. Running {len(self.pipeline)} agents..."

    async def run(
        self,
        message: str,
        conversation_id: Optional[str] = None,
        user_id: Optional[str] = None,
        profile: Optional[Dict[str, Any]] = None,
        human_approval_response: Optional[str] = None,
    ) -> RunMetadata:
        with traced_span(_tracer, "pipeline.run") as span:
            set_span_attributes(span, **{"run.id": self.run_id, "pipeline.mode": self.orchestration_mode})
            return await self._run_inner(message, conversation_id, user_id, profile, human_approval_response)

    async def _run_inner(
        self,
        message: str,
        conversation_id: Optional[str],
        user_id: Optional[str],
        profile: Optional[Dict[str, Any]],
        human_approval_response: Optional[str],
    ) -> RunMetadata:
        self._started_at = time.monotonic()
        self.run_metadata = create_new_run(
            user_message=message,
            steps=[
                StepMetadata(step_id=step.step_id, step_name=step.display_name, step_order=index)
                for index, step in enumerate(self.pipeline, start=1)
            ],
            run_id=self.run_id,
            conversation_id=conversation_id,
            orchestration_mode=self.orchestration_mode,
        )
        self.run_metadata.status = RunStatus.RUNNING
        logger.info("pipeline_run_started", run_id=self.run_id, message_chars=len(message))

        trace = self.trace_emitter
        await trace.emit_status(ORCHESTRATOR, AgentStatus.THINKING, "Orchestrator analyzing request")
        await trace.emit_message(ORCHESTRATOR, self._intro_message())

        graph = create_pipeline_graph(
            self.llm_client,
            trace,
            self.aggregator,
            orchestration_mode=self.orchestration_mode,
            max_route_decisions=self.max_route_decisions,
            pipeline=self.pipeline,
        )
        initial_state = create_initial_state(
            user_message=message,
            conversation_id=conversation_id or self.run_id,
            user_id=user_id or "anonymous",
            profile=profile,
            human_approval_response=human_approval_response,
            approval_required_for=self.approval_required_for,
        )

        try:
            final_state = await graph.ainvoke(
                initial_state,
                config={"recursion_limit": recursion_limit_for(self.max_route_decisions)},
            )
        except LLMUnavailableError as e:
            logger.warning("pipeline_llm_unavailable", run_id=self.run_id, error=str(e))
            self._finish(RunStatus.FAILED, initial_state, error=str(e))
            raise
        except asyncio.CancelledError:
            self._cancel(initial_state)
            raise
        except Exception as e:
            logger.error("pipeline_run_failed", run_id=self.run_id, error=str(e), exc_info=True)
            return await self._fail(str(e), initial_state)

        if final_state.get("error"):
            return await self._fail(final_state["error"], final_state)

        if final_state.get("human_approval_needed"):
            rejected = final_state.get("human_approval_response") == "rejected"
            status = RunStatus.REJECTED if rejected else RunStatus.AWAITING_APPROVAL
            logger.info(
                "pipeline_run_paused" if not rejected else "pipeline_run_rejected",
                run_id=self.run_id,
                pending_agent=final_state.get("current_agent"),
            )
            return self._finish(status, final_state)

        await trace.emit_status(ORCHESTRATOR, AgentStatus.COMPLETE, "Orchestrator complete")
        summary = self.aggregator.summary(total_duration_ms=self._elapsed_ms())
        await trace.emit_message(ORCHESTRATOR, SUMMARY_MESSAGE, summary)

        result = self._finish(RunStatus.COMPLETED, final_state)
        logger.info(
            "pipeline_run_completed",
            run_id=self.run_id,
            agent_count=summary.agent_count,
            total_input_tokens=summary.total_input_tokens,
            total_output_tokens=summary.total_output_tokens,
            duration_ms=result.duration_ms,
        )
        return result

    async def _fail(self, error: str, state: Mapping[str, Any]) -> RunMetadata:
        await self.trace_emitter.emit_error(error)
        return self._finish(RunStatus.FAILED, state, error=error)

    def _finish(self, status: RunStatus, state: Mapping[str, Any], error: Optional[str] = None) -> RunMetadata:
        run = self.run_metadata
        run.status = status
        run.completed_at = datetime.now(timezone.utc)
        run.duration_ms = self._elapsed_ms()
        run.error_message = error
        run.final_response = state.get("response") or ""
        run.route_decisions = state.get("route_decisions") or 0

        completed = set(state.get("completed_steps") or [])
        statuses = state.get("agent_statuses") or {}
        for step in run.steps:
            stats = self.aggregator.by_agent.get(step.step_id)
            if stats is not None:
                step.input_tokens = stats.input_tokens
                step.output_tokens = stats.output_tokens
                step.duration_ms = stats.duration_ms
            if step.step_id in completed:
                step.status = StepStatus.SUCCEEDED
            elif statuses.get(step.step_id) == AgentStatus.ERROR:
                step.status = StepStatus.FAILED
                step.error_message = error
        run.update_progress()

        run.results = {
            "jobs": dump_records(state.get("jobs") or []),
            "matches": dump_records(state.get("matches") or []),
            "interviewTopics": dump_records(state.get("interview_topics") or []),
            "tailoredResume": state.get("tailored_resume"),
            "agentStatuses": {name: AgentStatus(value).value for name, value in statuses.items()},
        }
        return run

    def _cancel(self, state: Mapping[str, Any]) -> RunMetadata:
        """Record a run stopped by its consumer. Graph state is lost, so step
        outcomes come from the last status emitted for each agent."""
        run = self._finish(RunStatus.CANCELLED, state)
        for step in run.steps:
            status = self.trace_emitter.last_status.get(step.step_id)
            if status == AgentStatus.COMPLETE:
                step.status = StepStatus.SUCCEEDED
            elif status in (AgentStatus.THINKING, AgentStatus.EXECUTING):
                step.status = StepStatus.RUNNING
        run.update_progress()
        logger.info("pipeline_run_cancelled", run_id=self.run_id, steps_completed=run.steps_completed)
        return run
