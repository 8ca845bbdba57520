"""
Agent event schemas for SSE streaming.
Events are pushed onto the run's stream emitter and rendered by the dashboard.
"""

from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Optional, Dict, Any, Mapping
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel
import uuid


class AgentName(str, Enum):
    PROFILE_ANALYST = "profile-analyst"
    MARKET_RESEARCHER = "market-researcher"
    MATCH_SCORER = "match-scorer"
    RESUME_TAILOR = "resume-tailor"
    INTERVIEW_COACH = "interview-coach"
    ORCHESTRATOR = "orchestrator"


WORKER_AGENTS = (
    AgentName.PROFILE_ANALYST,
    AgentName.MARKET_RESEARCHER,
    AgentName.MATCH_SCORER,
    AgentName.RESUME_TAILOR,
    AgentName.INTERVIEW_COACH,
)


class AgentEventType(str, Enum):
    THOUGHT = "thought"
    TOOL_CALL = "tool-call"
    TOOL_RESULT = "tool-result"
    MESSAGE = "message"
    ERROR = "error"
    HUMAN_REQUEST = "human-request"
    STATUS_CHANGE = "status-change"


class AgentStatus(str, Enum):
    IDLE = "idle"
    THINKING = "thinking"
    EXECUTING = "executing"
    WAITING_FOR_HUMAN = "waiting-for-human"
    ERROR = "error"
    COMPLETE = "complete"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _freeze(value: Any) -> Any:
    """Read-only copy: mappings become MappingProxyType, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


class AgentEvent(BaseModel):
    """Immutable unit of observable pipeline activity."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    agent_name: AgentName = Field(alias="agentName")
    type: AgentEventType
    content: str
    metadata: Optional[Dict[str, Any]] = Field(default=None)
    timestamp: datetime = Field(default_factory=_utc_now, description="Event creation instant")

    @field_validator("metadata", mode="after")
    @classmethod
    def _freeze_metadata(cls, value: Optional[Dict[str, Any]]) -> Optional[Mapping[str, Any]]:
        return _freeze(value) if value is not None else None

    @field_serializer("metadata")
    def _serialize_metadata(self, value: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
        return _thaw(value) if value is not None else None

    @property
    def sse_event_name(self) -> str:
        return f"agent:{self.type.value}"

    def to_sse_data(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


# ============================================================================
# Typed metadata payloads, one shape per event kind
# ============================================================================

class EventMetadata(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def as_metadata(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StatusChangeMetadata(EventMetadata):
    status: AgentStatus


class InferenceStats(EventMetadata):
    """Per-call LLM measurement folded into message metadata and the run totals."""
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    duration_ms: int = 0
    tokens_per_second: float = 0.0
    estimated_cost: Optional[float] = None

    @classmethod
    def from_counts(
        cls,
        model: str,
        input_tokens: int,
        output_tokens: int,
        duration_ms: int,
        estimated_cost: Optional[float] = None,
    ) -> "InferenceStats":
        return cls(
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
            tokens_per_second=tokens_per_second(output_tokens, duration_ms),
            estimated_cost=estimated_cost,
        )


class InferenceMetadata(InferenceStats):
    structured_data: Optional[Dict[str, Any]] = None

    @classmethod
    def from_stats(cls, stats: InferenceStats, structured_data: Optional[Dict[str, Any]] = None) -> "InferenceMetadata":
        return cls(**stats.model_dump(), structured_data=structured_data)


class RoutingMetadata(EventMetadata):
    next_agent: str
    decision: str


class HumanRequestMetadata(EventMetadata):
    status: AgentStatus = AgentStatus.WAITING_FOR_HUMAN
    pending_agent: Optional[str] = None


class ErrorMetadata(EventMetadata):
    status: AgentStatus = AgentStatus.ERROR
    error: str


class PipelineSummaryMetadata(EventMetadata):
    pipeline_summary: bool = True
    total_input_tokens: int
    total_output_tokens: int
    total_duration_ms: int
    agent_count: int
    average_tokens_per_second: Optional[float] = None
    total_cost: Optional[float] = None


def tokens_per_second(output_tokens: int, duration_ms: int) -> float:
    """Output tokens per second rounded to one decimal, 0 for a zero duration."""
    if duration_ms <= 0:
        return 0.0
    return round(output_tokens / (duration_ms / 1000), 1)


# ============================================================================
# Event factories
# ============================================================================

def _metadata(payload: Optional[EventMetadata]) -> Optional[Dict[str, Any]]:
    return payload.as_metadata() if payload is not None else None


def status_change_event(agent_name: AgentName, status: AgentStatus, content: str) -> AgentEvent:
    return AgentEvent(
        agent_name=agent_name, type=AgentEventType.STATUS_CHANGE,
        content=content, metadata=StatusChangeMetadata(status=status).as_metadata(),
    )


def thought_event(agent_name: AgentName, content: str) -> AgentEvent:
    return AgentEvent(agent_name=agent_name, type=AgentEventType.THOUGHT, content=content)


def message_event(agent_name: AgentName, content: str, metadata: Optional[EventMetadata] = None) -> AgentEvent:
    return AgentEvent(
        agent_name=agent_name, type=AgentEventType.MESSAGE,
        content=content, metadata=_metadata(metadata),
    )


def error_event(agent_name: AgentName, error: str) -> AgentEvent:
    return AgentEvent(
        agent_name=agent_name, type=AgentEventType.ERROR,
        content=error, metadata=ErrorMetadata(error=error).as_metadata(),
    )


def human_request_event(agent_name: AgentName, content: str, pending_agent: Optional[str] = None) -> AgentEvent:
    return AgentEvent(
        agent_name=agent_name, type=AgentEventType.HUMAN_REQUEST,
        content=content, metadata=HumanRequestMetadata(pending_agent=pending_agent).as_metadata(),
    )
