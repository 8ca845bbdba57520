"""
Run-level accumulation of per-call inference statistics.
"""

from typing import Dict, List, Optional

from schemas.events import InferenceStats, PipelineSummaryMetadata, tokens_per_second


class StatsAggregator:
    """Sums token usage, duration and cost across the agent calls of one run."""

    def __init__(self):
        self.total_input_tokens = 0
        self.total_output_tokens = 0
        self.total_duration_ms = 0
        self.total_cost = 0.0
        self.calls: List[InferenceStats] = []
        self.by_agent: Dict[str, InferenceStats] = {}

    @property
    def agent_count(self) -> int:
        return len(self.calls)

    def add(self, stats: InferenceStats, agent_name: Optional[str] = None) -> None:
        self.calls.append(stats)
        if agent_name:
            self.by_agent[agent_name] = stats
        self.total_input_tokens += stats.input_tokens
        self.total_output_tokens += stats.output_tokens
        self.total_duration_ms += stats.duration_ms
        if stats.estimated_cost:
            self.total_cost += stats.estimated_cost

    def summary(self, total_duration_ms: Optional[int] = None) -> PipelineSummaryMetadata:
        """Build the pipeline summary metadata.

        The duration defaults to the sum of call durations; callers may pass the
        wall-clock run time instead.
        """
        duration = self.total_duration_ms if total_duration_ms is None else total_duration_ms
        return PipelineSummaryMetadata(
            total_input_tokens=self.total_input_tokens,
            total_output_tokens=self.total_output_tokens,
            total_duration_ms=duration,
            agent_count=self.agent_count,
            average_tokens_per_second=tokens_per_second(self.total_output_tokens, duration),
            total_cost=round(self.total_cost, 6) if self.total_cost else None,
        )
