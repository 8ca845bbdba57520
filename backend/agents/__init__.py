"""
Career Multi-Agent System - five specialist agents run one after another.
Each agent is an AgentStep: a system prompt, a user-message builder over the
pipeline state, and a function that folds its output back into that state.
"""

from agents.profile_analyst import create_profile_analyst
from agents.market_researcher import create_market_researcher
from agents.match_scorer import create_match_scorer
from agents.resume_tailor import create_resume_tailor
from agents.interview_coach import create_interview_coach
from agents.client import (
    BaseLLMClient,
    LLMCallError,
    LLMClientError,
    LLMResponse,
    LLMUnavailableError,
    create_llm_client,
    get_shared_llm_client,
)


# Factory map: agent name -> create function, in pipeline order
# Used by agent_registry.py to build the pipeline
step_factories = {
    "profile-analyst": create_profile_analyst,
    "market-researcher": create_market_researcher,
    "match-scorer": create_match_scorer,
    "resume-tailor": create_resume_tailor,
    "interview-coach": create_interview_coach,
}

__all__ = [
    "step_factories",
    "create_profile_analyst",
    "create_market_researcher",
    "create_match_scorer",
    "create_resume_tailor",
    "create_interview_coach",
    "BaseLLMClient",
    "LLMCallError",
    "LLMClientError",
    "LLMResponse",
    "LLMUnavailableError",
    "create_llm_client",
    "get_shared_llm_client",
]
