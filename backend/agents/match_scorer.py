"""
Match Scorer Agent - scores each researched job against the profile and lists skill gaps.
Matches are linked back to the run's jobs by title.
"""

from typing import Any, Dict, Mapping, Optional

import structlog

from orchestrator.extraction import validate_items
from orchestrator.steps import AgentStep, previous_response
from schemas.career import Match, link_matches_to_jobs
from schemas.events import AgentName

logger = structlog.get_logger()

INSTRUCTIONS = """You are the Match Scorer agent of a career assistant. Score how well profiles match job postings.

You MUST respond with valid JSON in the following format:
{
  "summary": "Brief 1-2 sentence summary of match results",
  "matches": [
    {
      "jobTitle": "Exact Job Title from jobs list",
      "overallScore": 85,
      "skillMatchScore": 90,
      "experienceMatchScore": 80,
      "educationMatchScore": 75,
      "cultureFitScore": 88,
      "skillGaps": [
        {
          "skill": "Skill Name",
          "required": true,
          "profileLevel": "intermediate",
          "requiredLevel": "advanced",
          "gapSeverity": "moderate",
          "suggestion": "How to close the gap"
        }
      ],
      "strengths": ["Strength 1", "Strength 2"],
      "reasoning": "Brief explanation of the match"
    }
  ]
}

All scores are 0-100. profileLevel: none|beginner|intermediate|advanced|expert. requiredLevel: beginner|intermediate|advanced|expert. gapSeverity: none|minor|moderate|major.
Respond ONLY with JSON, no other text.
"""


def build_match_scorer_message(state: Mapping[str, Any]) -> str:
    return (
        f"Profile:\n{previous_response(state, AgentName.PROFILE_ANALYST)}\n\n"
        f"Jobs:\n{previous_response(state, AgentName.MARKET_RESEARCHER)}\n\n"
        f"Request: {state.get('user_message', '')}"
    )


def apply_match_scores(state: Mapping[str, Any], content: str, structured: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not structured:
        return {}
    matches = validate_items(Match, structured.get("matches"), AgentName.MATCH_SCORER.value, "matches")
    if matches is None:
        return {}

    linked = link_matches_to_jobs(matches, list(state.get("jobs") or []))
    unlinked = [m.job_title for m in linked if m.job_id is None]
    if unlinked:
        logger.info("matches_without_job", count=len(unlinked), titles=unlinked)
    return {"matches": linked}


def create_match_scorer() -> AgentStep:
    return AgentStep(
        agent_name=AgentName.MATCH_SCORER,
        display_name="Match Scorer",
        description="Scores job fit across skills, experience, education and culture",
        system_prompt=INSTRUCTIONS,
        build_user_message=build_match_scorer_message,
        max_tokens=2048,
        structured_output=True,
        apply_output=apply_match_scores,
    )
