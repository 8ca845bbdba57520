"""
Career Agents Schemas - Pydantic models for events, runs and career records.
"""

from .events import (
    AgentEvent,
    AgentEventType,
    AgentName,
    AgentStatus,
    InferenceStats,
    InferenceMetadata,
    PipelineSummaryMetadata,
    WORKER_AGENTS,
    status_change_event,
    thought_event,
    message_event,
    error_event,
    human_request_event,
)

from .runs import (
    RunStatus,
    RunMetadata,
    StepStatus,
    StepMetadata,
    create_new_run,
)

from .career import (
    Job,
    Match,
    SkillGap,
    InterviewTopic,
    InterviewQuestion,
    link_matches_to_jobs,
)

__all__ = [
    # Events
    "AgentEvent",
    "AgentEventType",
    "AgentName",
    "AgentStatus",
    "InferenceStats",
    "InferenceMetadata",
    "PipelineSummaryMetadata",
    "WORKER_AGENTS",
    "status_change_event",
    "thought_event",
    "message_event",
    "error_event",
    "human_request_event",
    # Runs
    "RunStatus",
    "RunMetadata",
    "StepStatus",
    "StepMetadata",
    "create_new_run",
    # Career records
    "Job",
    "Match",
    "SkillGap",
    "InterviewTopic",
    "InterviewQuestion",
    "link_matches_to_jobs",
]
