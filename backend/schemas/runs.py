"""
Run and step metadata schemas for a single orchestration request.
Held in memory for the lifetime of the stream.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field
import uuid


class RunStatus(str, Enum):
    """Pipeline run status."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    AWAITING_APPROVAL = "awaiting_approval"
    REJECTED = "rejected"
    FAILED = "failed"
    CANCELLED = "cancelled"


class StepStatus(str, Enum):
    """Individual agent step status."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class StepMetadata(BaseModel):
    """Metadata for a single agent step."""
    step_id: str = Field(description="Agent name of the step")
    step_name: str = Field(description="Human-readable step name")
    step_order: int = Field(description="Pipeline position")

    status: StepStatus = Field(default=StepStatus.PENDING)
    input_tokens: int = 0
    output_tokens: int = 0
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None


class RunMetadata(BaseModel):
    """Complete metadata for one pipeline run."""
    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique run identifier")
    status: RunStatus = Field(default=RunStatus.PENDING)

    # Timing
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None

    # Request
    user_message: str = Field(default="", description="Message submitted by the user")
    conversation_id: Optional[str] = None
    orchestration_mode: str = "deterministic"

    # Progress
    steps: List[StepMetadata] = Field(default_factory=list)
    steps_completed: int = Field(default=0)
    progress_pct: float = Field(default=0, ge=0, le=100)
    route_decisions: int = 0

    # Outcome
    final_response: str = ""
    error_message: Optional[str] = None
    results: Dict[str, Any] = Field(default_factory=dict)

    def step(self, step_id: str) -> Optional[StepMetadata]:
        return next((s for s in self.steps if s.step_id == step_id), None)

    def update_progress(self):
        """Recalculate progress from step completion."""
        if not self.steps:
            self.progress_pct = 0
            return
        completed = sum(
            1 for s in self.steps
            if s.status in [StepStatus.SUCCEEDED, StepStatus.SKIPPED]
        )
        self.steps_completed = completed
        self.progress_pct = (completed / len(self.steps)) * 100


def create_new_run(
    user_message: str = "",
    steps: Optional[List[StepMetadata]] = None,
    run_id: Optional[str] = None,
    **config: Any,
) -> RunMetadata:
    """Factory function to create a new run with one pending step per agent."""
    run = RunMetadata(
        user_message=user_message,
        steps=[step.model_copy(deep=True) for step in (steps or [])],
        **config,
    )
    if run_id:
        run.run_id = run_id
    return run
