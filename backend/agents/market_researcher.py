"""
Market Researcher Agent - recommends openings that fit the analysed profile.
Answers with a {summary, jobs} JSON document that replaces the run's job list.
"""

from typing import Any, Dict, Mapping, Optional

from orchestrator.extraction import validate_items
from orchestrator.steps import AgentStep, previous_response
from schemas.career import Job
from schemas.events import AgentName

INSTRUCTIONS = """You are the Market Researcher agent of a career assistant. Search for relevant jobs and analyze market trends.
Based on the profile analysis, recommend matching job opportunities.

You MUST respond with valid JSON in the following format:
{
  "summary": "Brief 1-2 sentence summary of findings",
  "jobs": [
    {
      "title": "Job Title",
      "company": "Company Name",
      "location": "City, State or Remote",
      "remote": true,
      "description": "Brief job description",
      "salaryMin": 150000,
      "salaryMax": 250000,
      "skills": ["Skill1", "Skill2"],
      "requirements": ["Requirement 1", "Requirement 2"],
      "experienceLevel": "senior",
      "employmentType": "full-time"
    }
  ]
}

experienceLevel must be one of: entry, mid, senior, lead, executive
employmentType must be one of: full-time, part-time, contract, freelance, internship
Return 2-4 jobs. Respond ONLY with JSON, no other text.
"""


def build_market_researcher_message(state: Mapping[str, Any]) -> str:
    return (
        f"Profile Analysis:\n{previous_response(state, AgentName.PROFILE_ANALYST)}\n\n"
        f"Original request: {state.get('user_message', '')}"
    )


def apply_market_research(state: Mapping[str, Any], content: str, structured: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not structured:
        return {}
    jobs = validate_items(Job, structured.get("jobs"), AgentName.MARKET_RESEARCHER.value, "jobs")
    if jobs is None:
        return {}
    return {"jobs": jobs}


def create_market_researcher() -> AgentStep:
    return AgentStep(
        agent_name=AgentName.MARKET_RESEARCHER,
        display_name="Market Researcher",
        description="Finds matching openings and summarises market trends",
        system_prompt=INSTRUCTIONS,
        build_user_message=build_market_researcher_message,
        max_tokens=2048,
        structured_output=True,
        apply_output=apply_market_research,
    )
