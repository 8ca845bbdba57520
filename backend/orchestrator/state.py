"""
Pipeline state threaded through one orchestration run.

Fields without a reducer are last-write-wins; the annotated ones merge so that
the transcript only grows and completed steps never shrink.
"""

import operator
from typing import Annotated, Any, Dict, List, Optional, TypedDict

from schemas.career import InterviewTopic, Job, Match
from schemas.events import AgentEvent, AgentName, AgentStatus


def merge_completed_steps(left: List[str], right: List[str]) -> List[str]:
    """Order-preserving union."""
    merged = list(left or [])
    for step in right or []:
        if step not in merged:
            merged.append(step)
    return merged


def merge_dict(left: Dict[str, Any], right: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(left or {})
    merged.update(right or {})
    return merged


class PipelineState(TypedDict, total=False):
    # Identity
    conversation_id: str
    user_id: str
    user_message: str

    # Control
    current_agent: str
    human_approval_needed: bool
    human_approval_response: Optional[str]
    approval_required_for: List[str]
    error: Optional[str]
    route_decisions: Annotated[int, operator.add]

    # Accumulated results
    profile: Optional[Dict[str, Any]]
    jobs: List[Job]
    matches: List[Match]
    tailored_resume: Optional[str]
    interview_topics: List[InterviewTopic]
    completed_steps: Annotated[List[str], merge_completed_steps]
    agent_statuses: Annotated[Dict[str, AgentStatus], merge_dict]
    agent_responses: Annotated[Dict[str, str], merge_dict]

    # Transcript
    events: Annotated[List[AgentEvent], operator.add]

    # Last agent's raw output
    response: str


def create_initial_state(
    user_message: str,
    conversation_id: str,
    user_id: str = "anonymous",
    profile: Optional[Dict[str, Any]] = None,
    human_approval_response: Optional[str] = None,
    approval_required_for: Optional[List[str]] = None,
) -> PipelineState:
    return PipelineState(
        conversation_id=conversation_id,
        user_id=user_id,
        user_message=user_message,
        current_agent=AgentName.ORCHESTRATOR.value,
        human_approval_needed=False,
        human_approval_response=human_approval_response,
        approval_required_for=list(approval_required_for or []),
        error=None,
        route_decisions=0,
        profile=profile,
        jobs=[],
        matches=[],
        tailored_resume=None,
        interview_topics=[],
        completed_steps=[],
        agent_statuses={agent.value: AgentStatus.IDLE for agent in AgentName},
        agent_responses={},
        events=[],
        response="",
    )
