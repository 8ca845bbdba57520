"""
Trace Event Emitter for the career pipeline.
Builds AgentEvents for orchestrator and worker activity and hands each one to
the run's event callback as soon as it is created.
"""

from typing import Any, Awaitable, Callable, Dict, Optional
import structlog

from schemas.events import (
    AgentEvent,
    AgentName,
    AgentStatus,
    EventMetadata,
    error_event,
    human_request_event,
    message_event,
    status_change_event,
    thought_event,
)
from telemetry import get_current_trace_context

logger = structlog.get_logger()

EventCallback = Callable[[AgentEvent], Awaitable[Any]]


class TraceEmitter:
    """
    Emits agent events for dashboard visibility.

    Event Types:
    - status-change: agent lifecycle (thinking, executing, complete, error)
    - thought: what an agent is about to do
    - message: agent output, with inference stats or the run summary
    - human-request: approval needed before a worker runs
    - error: run-level failure
    """

    def __init__(self, run_id: str, event_callback: Optional[EventCallback] = None):
        self.run_id = run_id
        self.event_callback = event_callback
        self.emitted = 0
        # Latest status emitted per agent name.
        self.last_status: Dict[str, AgentStatus] = {}
        self._warned_missing_otel = False

    async def _emit(self, event: AgentEvent) -> AgentEvent:
        otel_ctx = get_current_trace_context()
        if not otel_ctx and not self._warned_missing_otel:
            self._warned_missing_otel = True
            logger.debug("otel_context_missing", run_id=self.run_id, first_missing_type=event.type.value)

        self.emitted += 1
        logger.debug(
            "agent_event",
            run_id=self.run_id,
            agent_name=event.agent_name.value,
            event_type=event.type.value,
            trace_id=(otel_ctx or {}).get("trace_id"),
        )
        if self.event_callback:
            await self.event_callback(event)
        return event

    async def emit_status(self, agent_name: AgentName, status: AgentStatus, content: str) -> AgentEvent:
        self.last_status[agent_name.value] = status
        return await self._emit(status_change_event(agent_name, status, content))

    async def emit_thought(self, agent_name: AgentName, content: str) -> AgentEvent:
        return await self._emit(thought_event(agent_name, content))

    async def emit_message(
        self,
        agent_name: AgentName,
        content: str,
        metadata: Optional[EventMetadata] = None,
    ) -> AgentEvent:
        return await self._emit(message_event(agent_name, content, metadata))

    async def emit_human_request(self, pending_agent: str, content: Optional[str] = None) -> AgentEvent:
        text = content or f"Approval required before {pending_agent} runs"
        return await self._emit(human_request_event(AgentName.ORCHESTRATOR, text, pending_agent=pending_agent))

    async def emit_error(self, error: str, agent_name: AgentName = AgentName.ORCHESTRATOR) -> AgentEvent:
        return await self._emit(error_event(agent_name, error))
