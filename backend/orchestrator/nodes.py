"""
Graph nodes for the career pipeline: the router, one node per worker agent,
and the human approval interrupt.

Nodes emit their events through the run's TraceEmitter as they happen and also
return them in the state update so the transcript is kept on the state.
"""

from typing import Any, Dict, List, Mapping, Sequence

import structlog

from agents.client import BaseLLMClient, LLMCallError
from orchestrator.extraction import extract_json
from orchestrator.router import (
    ROUTER_INSTRUCTIONS,
    RouteKind,
    RoutingDecision,
    build_router_message,
    next_in_pipeline,
    parse_routing_reply,
)
from orchestrator.stats import StatsAggregator
from orchestrator.steps import AgentStep
from orchestrator.trace_emitter import TraceEmitter
from schemas.events import AgentEvent, AgentName, AgentStatus, InferenceMetadata, RoutingMetadata
from telemetry import get_tracer, record_token_usage, set_span_attributes, traced_span

logger = structlog.get_logger()

_tracer = get_tracer("orchestrator")

ORCHESTRATOR = AgentName.ORCHESTRATOR
ROUTER_MAX_TOKENS = 16


class OrchestrationMode:
    DETERMINISTIC = "deterministic"
    LLM_DIRECTED = "llm_directed"

    ALL = (DETERMINISTIC, LLM_DIRECTED)


# ═══════════════════════════════════════════════════════════════════
# Router
# ═══════════════════════════════════════════════════════════════════

def create_router_node(
    llm_client: BaseLLMClient,
    trace: TraceEmitter,
    pipeline_order: Sequence[AgentName],
    orchestration_mode: str,
    max_route_decisions: int,
):
    """Build the router node.

    Deterministic mode walks the pipeline order without calling the LLM.
    LLM-directed mode asks the model for the next agent and validates the reply.
    """

    async def _ask_llm(state: Mapping[str, Any], span) -> RoutingDecision:
        result = await llm_client.complete(ROUTER_INSTRUCTIONS, build_router_message(state), ROUTER_MAX_TOKENS)
        record_token_usage(span, result.stats)
        return parse_routing_reply(result.content)

    async def router_node(state: Mapping[str, Any]) -> Dict[str, Any]:
        decisions = state.get("route_decisions") or 0
        if decisions >= max_route_decisions:
            logger.warning(
                "route_decision_limit_reached",
                run_id=trace.run_id,
                decisions=decisions,
                completed_steps=list(state.get("completed_steps") or []),
            )
            return {"current_agent": ORCHESTRATOR.value, "route_decisions": 1}

        llm_directed = orchestration_mode == OrchestrationMode.LLM_DIRECTED
        with traced_span(_tracer, "orchestrator.route") as span:
            if llm_directed:
                try:
                    decision = await _ask_llm(state, span)
                except LLMCallError as exc:
                    logger.error("route_decision_failed", run_id=trace.run_id, error=str(exc))
                    return {
                        "error": f"Routing failed: {exc}",
                        "route_decisions": 1,
                        "agent_statuses": {ORCHESTRATOR.value: AgentStatus.ERROR},
                    }
            else:
                decision = next_in_pipeline(state, pipeline_order)
            set_span_attributes(span, **{
                "route.kind": decision.kind.value,
                "route.agent": decision.agent.value if decision.agent else None,
            })

        logger.info(
            "route_decided",
            run_id=trace.run_id,
            mode=orchestration_mode,
            kind=decision.kind.value,
            agent=decision.agent.value if decision.agent else None,
        )

        events: List[AgentEvent] = []
        update: Dict[str, Any] = {"route_decisions": 1, "events": events}

        if decision.kind == RouteKind.WORKER:
            agent = decision.agent.value
            gated = agent in (state.get("approval_required_for") or [])
            if gated and state.get("human_approval_response") != "approved":
                update.update(
                    current_agent=agent,
                    human_approval_needed=True,
                    agent_statuses={ORCHESTRATOR.value: AgentStatus.WAITING_FOR_HUMAN},
                )
                return update

            if llm_directed:
                events.append(await trace.emit_message(
                    ORCHESTRATOR,
                    f"Routing to {agent}",
                    RoutingMetadata(next_agent=agent, decision=decision.raw),
                ))
            update.update(
                current_agent=agent,
                human_approval_needed=False,
                agent_statuses={ORCHESTRATOR.value: AgentStatus.EXECUTING},
            )
            return update

        if decision.kind == RouteKind.HUMAN_APPROVAL:
            update.update(
                human_approval_needed=True,
                agent_statuses={ORCHESTRATOR.value: AgentStatus.WAITING_FOR_HUMAN},
            )
            return update

        if decision.kind == RouteKind.UNRECOGNIZED:
            logger.warning("route_reply_unrecognized", run_id=trace.run_id, reply=decision.raw[:200])
        if llm_directed:
            text = (
                "All required agents have run"
                if decision.kind == RouteKind.DONE
                else "Could not interpret the routing decision, finishing the run"
            )
            events.append(await trace.emit_thought(ORCHESTRATOR, text))
        update["current_agent"] = ORCHESTRATOR.value
        return update

    return router_node


# ═══════════════════════════════════════════════════════════════════
# Workers
# ═══════════════════════════════════════════════════════════════════

def create_worker_node(
    step: AgentStep,
    llm_client: BaseLLMClient,
    trace: TraceEmitter,
    aggregator: StatsAggregator,
):
    """Build the node that runs one agent step: a single LLM call and its events."""
    agent = step.agent_name

    async def worker_node(state: Mapping[str, Any]) -> Dict[str, Any]:
        log = logger.bind(run_id=trace.run_id, agent_name=agent.value, node=step.node_name)

        with traced_span(_tracer, f"{agent.value}.execute") as span:
            events = [await trace.emit_status(agent, AgentStatus.THINKING, f"{agent.value} activated")]
            events.append(await trace.emit_thought(agent, step.thought))

            log.info("agent_step_started", max_tokens=step.max_tokens, structured=step.structured_output)
            try:
                result = await llm_client.complete(step.system_prompt, step.build_user_message(state), step.max_tokens)
            except LLMCallError as exc:
                log.error("agent_step_failed", error=str(exc))
                events.append(await trace.emit_status(agent, AgentStatus.ERROR, f"{agent.value} failed"))
                return {
                    "error": f"{agent.value}: {exc}",
                    "current_agent": agent.value,
                    "agent_statuses": {agent.value: AgentStatus.ERROR},
                    "events": events,
                }

            record_token_usage(span, result.stats)
            aggregator.add(result.stats, agent.value)
            events.append(await trace.emit_status(agent, AgentStatus.EXECUTING, f"{agent.value} executing"))

            structured = extract_json(result.content) if step.structured_output else None
            if step.structured_output and structured is None:
                log.warning("structured_output_not_found", response_chars=len(result.content))

            content = result.content
            if structured is not None and isinstance(structured.get("summary"), str):
                content = structured["summary"]
            events.append(await trace.emit_message(
                agent, content, InferenceMetadata.from_stats(result.stats, structured),
            ))
            events.append(await trace.emit_status(agent, AgentStatus.COMPLETE, f"{agent.value} complete"))

        log.info(
            "agent_step_completed",
            input_tokens=result.stats.input_tokens,
            output_tokens=result.stats.output_tokens,
            duration_ms=result.stats.duration_ms,
        )
        update = step.state_update(state, result.content, structured)
        update.update(
            response=result.content,
            current_agent=agent.value,
            completed_steps=[step.step_id],
            agent_responses={agent.value: result.content},
            agent_statuses={agent.value: AgentStatus.COMPLETE},
            events=events,
        )
        return update

    return worker_node


# ═══════════════════════════════════════════════════════════════════
# Human approval
# ═══════════════════════════════════════════════════════════════════

def create_human_approval_node(trace: TraceEmitter):
    """Resolve a pending approval from the response supplied with this request, or ask for one."""

    async def human_approval_node(state: Mapping[str, Any]) -> Dict[str, Any]:
        pending = state.get("current_agent") or ORCHESTRATOR.value
        response = state.get("human_approval_response")

        if response == "rejected":
            logger.info("human_approval_rejected", run_id=trace.run_id, pending_agent=pending)
            event = await trace.emit_status(ORCHESTRATOR, AgentStatus.COMPLETE, f"Request rejected before {pending}")
            # Stays flagged so the run reports the rejection.
            return {
                "human_approval_needed": True,
                "agent_statuses": {ORCHESTRATOR.value: AgentStatus.COMPLETE},
                "events": [event],
            }

        if response == "approved":
            logger.info("human_approval_granted", run_id=trace.run_id, pending_agent=pending)
            event = await trace.emit_status(ORCHESTRATOR, AgentStatus.EXECUTING, f"Approval received for {pending}")
            return {
                "human_approval_needed": False,
                "agent_statuses": {ORCHESTRATOR.value: AgentStatus.EXECUTING},
                "events": [event],
            }

        logger.info("human_approval_requested", run_id=trace.run_id, pending_agent=pending)
        event = await trace.emit_human_request(pending)
        return {
            "human_approval_needed": True,
            "agent_statuses": {ORCHESTRATOR.value: AgentStatus.WAITING_FOR_HUMAN},
            "events": [event],
        }

    return human_approval_node
