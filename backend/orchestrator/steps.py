"""
Static per-agent pipeline definitions.
"""

from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from schemas.events import AgentName

MessageBuilder = Callable[[Mapping[str, Any]], str]
OutputApplier = Callable[[Mapping[str, Any], str, Optional[Dict[str, Any]]], Dict[str, Any]]


class AgentStep(BaseModel):
    """One worker of the pipeline: prompt, message builder and how its output lands in state."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    agent_name: AgentName
    display_name: str
    description: str
    system_prompt: str
    build_user_message: MessageBuilder
    max_tokens: Optional[int] = None
    structured_output: bool = False
    apply_output: Optional[OutputApplier] = None

    @property
    def step_id(self) -> str:
        return self.agent_name.value

    @property
    def node_name(self) -> str:
        return self.agent_name.value.replace("-", "_")

    @property
    def thought(self) -> str:
        return f"{self.agent_name.value} analyzing..."

    def state_update(self, state: Mapping[str, Any], content: str, structured: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if self.apply_output is None:
            return {}
        return self.apply_output(state, content, structured)

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.agent_name.value,
            "displayName": self.display_name,
            "description": self.description,
            "node": self.node_name,
            "stepId": self.step_id,
            "structuredOutput": self.structured_output,
            "maxTokens": self.max_tokens,
        }


def previous_response(state: Mapping[str, Any], agent_name: AgentName) -> str:
    """Raw text an earlier agent produced this run, or N/A."""
    return (state.get("agent_responses") or {}).get(agent_name.value) or "N/A"
