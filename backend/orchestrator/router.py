"""
Routing for the career pipeline graph.

Every worker hands control back to the router node; the transition functions
below are pure so the graph's control flow can be checked without an LLM.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from langgraph.graph import END
from pydantic import BaseModel

from schemas.events import AgentName, WORKER_AGENTS

ROUTER_NODE = "router"
HUMAN_APPROVAL_NODE = "human_approval"

WORKER_NODES: Dict[str, str] = {
    agent.value: agent.value.replace("-", "_") for agent in WORKER_AGENTS
}

DONE_SENTINEL = "done"
HUMAN_APPROVAL_SENTINEL = "human_approval"


class RouteKind(str, Enum):
    WORKER = "worker"
    DONE = "done"
    HUMAN_APPROVAL = "human_approval"
    UNRECOGNIZED = "unrecognized"


class RoutingDecision(BaseModel):
    """Validated outcome of a routing reply."""
    kind: RouteKind
    agent: Optional[AgentName] = None
    raw: str = ""

    @classmethod
    def worker(cls, agent: AgentName, raw: str = "") -> "RoutingDecision":
        return cls(kind=RouteKind.WORKER, agent=agent, raw=raw or agent.value)

    @classmethod
    def done(cls, raw: str = DONE_SENTINEL) -> "RoutingDecision":
        return cls(kind=RouteKind.DONE, raw=raw)


_STRIP_CHARS = " \t\r\n\"'`.,;:!*"
_WORKER_LOOKUP = {agent.value: agent for agent in WORKER_AGENTS}
_WORKER_LOOKUP.update({agent.value.replace("-", "_"): agent for agent in WORKER_AGENTS})


def parse_routing_reply(reply: Optional[str]) -> RoutingDecision:
    """Match a free-text router reply against the worker names and sentinels.

    Only the first line is considered. Anything that is not an exact
    (case-insensitive) match comes back as UNRECOGNIZED.
    """
    raw = (reply or "").strip()
    first_line = raw.splitlines()[0] if raw else ""
    token = first_line.strip(_STRIP_CHARS).lower()

    if token in _WORKER_LOOKUP:
        return RoutingDecision.worker(_WORKER_LOOKUP[token], raw=raw)
    if token == DONE_SENTINEL:
        return RoutingDecision(kind=RouteKind.DONE, raw=raw)
    if token in (HUMAN_APPROVAL_SENTINEL, "human-approval"):
        return RoutingDecision(kind=RouteKind.HUMAN_APPROVAL, raw=raw)
    return RoutingDecision(kind=RouteKind.UNRECOGNIZED, raw=raw)


def next_in_pipeline(state: Mapping[str, Any], pipeline_order: Sequence[AgentName]) -> RoutingDecision:
    """First worker in pipeline order whose step has not completed yet."""
    completed = set(state.get("completed_steps") or [])
    for agent in pipeline_order:
        if agent.value not in completed:
            return RoutingDecision.worker(agent)
    return RoutingDecision.done()


# ============================================================================
# Graph transition functions
# ============================================================================

def route_after_orchestrator(state: Mapping[str, Any]) -> str:
    if state.get("human_approval_needed"):
        return HUMAN_APPROVAL_NODE
    if state.get("error"):
        return END
    return WORKER_NODES.get(state.get("current_agent") or "", END)


def route_after_agent(state: Mapping[str, Any]) -> str:
    if state.get("error"):
        return END
    return ROUTER_NODE


def route_after_human_approval(state: Mapping[str, Any]) -> str:
    if state.get("human_approval_response") == "rejected":
        return END
    # Still waiting on a decision: the turn ends here and a later request resumes it.
    if state.get("human_approval_needed"):
        return END
    return ROUTER_NODE


# ============================================================================
# LLM-directed routing prompt
# ============================================================================

ROUTER_INSTRUCTIONS = """You are the orchestrator of a career assistant team. Decide which specialist acts next.

Specialists, in their usual order:
- profile-analyst: analyses the user's background, skills and goals
- market-researcher: finds matching job openings and market trends
- match-scorer: scores the found jobs against the profile and lists skill gaps
- resume-tailor: rewrites the resume for the best match
- interview-coach: prepares interview topics for the target role

Rules:
- Never pick a specialist that already completed unless the user explicitly asks for it again.
- Reply "human_approval" when a human should sign off before continuing.
- Reply "done" when the user's request is fully answered.

Reply with exactly one word: a specialist name, "human_approval" or "done"."""


def _summarise(items: List[Any], label: str, limit: int = 5) -> str:
    if not items:
        return f"{label}: none"
    titles = []
    for item in items[:limit]:
        title = getattr(item, "title", None) or getattr(item, "job_title", None) or str(item)
        titles.append(title)
    return f"{label} ({len(items)}): " + "; ".join(titles)


def build_router_message(state: Mapping[str, Any]) -> str:
    completed = state.get("completed_steps") or []
    profile = state.get("profile")
    lines = [
        f"User request: {state.get('user_message', '')}",
        f"Completed steps: {', '.join(completed) if completed else 'none'}",
        f"Profile: {json.dumps(profile)[:1000] if profile else 'not provided'}",
        _summarise(state.get("jobs") or [], "Jobs"),
        _summarise(state.get("matches") or [], "Matches"),
        f"Tailored resume: {'ready' if state.get('tailored_resume') else 'not yet'}",
    ]
    return "\n".join(lines)
