"""
Agent Registry - the five-step career pipeline plus the orchestrator.
Each agent has display metadata for the dashboard and a pipeline position.
"""

import re
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from agents import step_factories
from orchestrator.steps import AgentStep
from schemas.events import AgentName


class AgentDefinition(BaseModel):
    """Display definition of an agent in the registry."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: AgentName
    display_name: str
    category: str  # "specialist" or "coordinator"
    description: str
    icon: str = ""
    color: str = ""
    order: int = 0


# ═══════════════════════════════════════════════════════════════════
# PIPELINE
# ═══════════════════════════════════════════════════════════════════

PIPELINE_ORDER: List[AgentName] = [AgentName(name) for name in step_factories]

AGENT_DISPLAY = {
    AgentName.ORCHESTRATOR: ("Orchestrator", "coordinator", "Plans the run and routes between specialists", "Workflow", "#6366f1"),
    AgentName.PROFILE_ANALYST: ("Profile Analyst", "specialist", "", "UserSearch", "#3b82f6"),
    AgentName.MARKET_RESEARCHER: ("Market Researcher", "specialist", "", "Briefcase", "#22c55e"),
    AgentName.MATCH_SCORER: ("Match Scorer", "specialist", "", "Target", "#f59e0b"),
    AgentName.RESUME_TAILOR: ("Resume Tailor", "specialist", "", "FileText", "#ec4899"),
    AgentName.INTERVIEW_COACH: ("Interview Coach", "specialist", "", "MessagesSquare", "#8b5cf6"),
}


def get_agent_pipeline() -> List[AgentStep]:
    """Fresh step definitions in pipeline order."""
    return [step_factories[agent.value]() for agent in PIPELINE_ORDER]


def get_agent_registry() -> List[AgentDefinition]:
    steps = {step.agent_name: step for step in get_agent_pipeline()}
    registry = []
    for order, (agent, (display, category, description, icon, color)) in enumerate(AGENT_DISPLAY.items()):
        step = steps.get(agent)
        registry.append(AgentDefinition(
            name=agent,
            display_name=display,
            category=category,
            description=description or (step.description if step else ""),
            icon=icon,
            color=color,
            order=order,
        ))
    return registry


def describe_agents() -> List[Dict[str, Any]]:
    """Registry entries merged with step configuration, for the /api/agents catalogue."""
    steps = {step.agent_name: step for step in get_agent_pipeline()}
    described = []
    for definition in get_agent_registry():
        entry = definition.model_dump(mode="json", by_alias=True)
        step = steps.get(definition.name)
        if step is not None:
            entry.update(step.describe())
        described.append(entry)
    return described


# ═══════════════════════════════════════════════════════════════════
# REQUEST FOCUS DETECTION
# ═══════════════════════════════════════════════════════════════════

# Ordered: the first pattern that matches decides the focus
REQUEST_FOCUS_PATTERNS = [
    ("profile", re.compile(r"profile|resume|skill|experience|background", re.IGNORECASE)),
    ("jobs", re.compile(r"job|search|find|opportunit|role|position", re.IGNORECASE)),
    ("interview", re.compile(r"interview|prep|practice|question", re.IGNORECASE)),
]


def detect_request_focus(message: str) -> str:
    """Classify what the user mainly asked for; "full" when nothing matches."""
    for focus, pattern in REQUEST_FOCUS_PATTERNS:
        if pattern.search(message or ""):
            return focus
    return "full"
