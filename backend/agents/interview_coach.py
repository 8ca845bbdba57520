"""
Interview Coach Agent - prepares interview topics and practice questions for the target role.
"""

from typing import Any, Dict, Mapping, Optional

from orchestrator.extraction import validate_items
from orchestrator.steps import AgentStep, previous_response
from schemas.career import InterviewTopic
from schemas.events import AgentName

INSTRUCTIONS = """You are the Interview Coach agent of a career assistant. Help prepare for interviews.

You MUST respond with valid JSON in the following format:
{
  "summary": "Brief 1-2 sentence summary of interview prep",
  "topics": [
    {
      "title": "Topic Title",
      "category": "technical",
      "difficulty": "medium",
      "questions": [
        {
          "question": "Interview question text",
          "tip": "Coaching tip for answering"
        }
      ]
    }
  ]
}

category must be one of: behavioral, technical, situational, company
difficulty must be one of: easy, medium, hard
Return 3-5 topics with 2-4 questions each. Respond ONLY with JSON, no other text.
"""


def build_interview_coach_message(state: Mapping[str, Any]) -> str:
    return (
        f"Profile:\n{previous_response(state, AgentName.PROFILE_ANALYST)}\n\n"
        f"Target Role:\n{previous_response(state, AgentName.MATCH_SCORER)}\n\n"
        f"Request: {state.get('user_message', '')}"
    )


def apply_interview_topics(state: Mapping[str, Any], content: str, structured: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not structured:
        return {}
    topics = validate_items(InterviewTopic, structured.get("topics"), AgentName.INTERVIEW_COACH.value, "topics")
    if topics is None:
        return {}
    return {"interview_topics": topics}


def create_interview_coach() -> AgentStep:
    return AgentStep(
        agent_name=AgentName.INTERVIEW_COACH,
        display_name="Interview Coach",
        description="Builds interview topics with practice questions and answer tips",
        system_prompt=INSTRUCTIONS,
        build_user_message=build_interview_coach_message,
        max_tokens=2048,
        structured_output=True,
        apply_output=apply_interview_topics,
    )
