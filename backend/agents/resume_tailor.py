"""Resume Tailor Agent - suggests ATS keywords and section rewrites for the best match."""

from typing import Any, Dict, Mapping, Optional

from orchestrator.steps import AgentStep, previous_response
from schemas.events import AgentName

INSTRUCTIONS = """You are the Resume Tailor agent of a career assistant. Optimize resumes for specific job applications.
Suggest specific improvements, keyword optimizations for ATS, and section rewrites.
Keep your response concise (2-3 paragraphs).
"""


def build_resume_tailor_message(state: Mapping[str, Any]) -> str:
    return (
        f"Profile:\n{previous_response(state, AgentName.PROFILE_ANALYST)}\n\n"
        f"Top Match:\n{previous_response(state, AgentName.MATCH_SCORER)}\n\n"
        f"Request: {state.get('user_message', '')}"
    )


def apply_tailored_resume(state: Mapping[str, Any], content: str, structured: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {"tailored_resume": content}


def create_resume_tailor() -> AgentStep:
    return AgentStep(
        agent_name=AgentName.RESUME_TAILOR,
        display_name="Resume Tailor",
        description="Rewrites resume sections and keywords for the top match",
        system_prompt=INSTRUCTIONS,
        build_user_message=build_resume_tailor_message,
        apply_output=apply_tailored_resume,
    )
