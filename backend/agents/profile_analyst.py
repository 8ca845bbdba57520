"""Profile Analyst Agent - reads the user's background and extracts skills, strengths and growth areas."""

import json
from typing import Any, Mapping

from orchestrator.steps import AgentStep
from schemas.events import AgentName

INSTRUCTIONS = """You are the Profile Analyst agent of a career assistant. Analyze career profiles and extract key information.
Identify skills, strengths, experience level, and areas for growth. Be specific and actionable.
Keep your response concise (2-3 paragraphs).
"""


def build_profile_analyst_message(state: Mapping[str, Any]) -> str:
    message = state.get("user_message", "")
    profile = state.get("profile")
    if not profile:
        return message
    return f"Stored profile:\n{json.dumps(profile, indent=2)}\n\nRequest: {message}"


def create_profile_analyst() -> AgentStep:
    return AgentStep(
        agent_name=AgentName.PROFILE_ANALYST,
        display_name="Profile Analyst",
        description="Extracts skills, strengths, seniority and growth areas from the user's background",
        system_prompt=INSTRUCTIONS,
        build_user_message=build_profile_analyst_message,
    )
