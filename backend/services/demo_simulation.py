"""
Scripted replay of a full pipeline run, used when the LLM is unreachable and
by the demo endpoint.

The script is fixed: only the orchestrator's opening line depends on the
request, and each call starts again from the first step.
"""

import asyncio
from typing import AsyncGenerator, List, Optional

from pydantic import BaseModel

from orchestrator.agent_registry import detect_request_focus
from orchestrator.extraction import dump_records
from schemas.events import (
    AgentEvent,
    AgentName,
    AgentStatus,
    InferenceMetadata,
    PipelineSummaryMetadata,
    message_event,
    status_change_event,
    thought_event,
    tokens_per_second,
)
from services.demo_data import DEMO_INTERVIEW_TOPICS, DEMO_JOBS, DEMO_MATCHES, DEMO_MODEL


class StatusUpdate(BaseModel):
    agent_name: AgentName
    status: AgentStatus


class SimulationStep(BaseModel):
    delay_ms: int
    event: AgentEvent
    status_update: Optional[StatusUpdate] = None


FOCUS_OPENINGS = {
    "profile": "Starting with profile analysis.",
    "jobs": "Let me search for matching opportunities.",
    "interview": "Setting up interview preparation.",
    "full": "Running the full pipeline for you.",
}

MARKET_SUMMARY = (
    "Found 3 strong openings: Staff Engineer at Anthropic ($250-400K), Senior Frontend at Stripe "
    "($200-320K, remote) and Full-Stack Growth at Vercel ($180-280K, remote). The market is strong for your profile."
)
MATCH_SUMMARY = (
    "Scoring complete. Top match: Stripe Senior Frontend (92%), where your React/TypeScript depth exceeds the bar. "
    "Vercel Growth (88%) is a strong full-stack fit. Anthropic Staff (78%) has high potential but needs more "
    "distributed systems depth."
)
INTERVIEW_SUMMARY = (
    "Interview prep ready. Focus areas: (1) system design for a real-time payment dashboard, "
    "(2) React performance and virtualized lists, (3) leading cross-functional projects. "
    "Three practice topics are waiting in Interview Prep."
)
PIPELINE_SUMMARY = (
    "Pipeline complete! Here's your summary:\n\n"
    "• Profile analyzed: strong full-stack engineer with AI interest\n"
    "• 3 jobs matched: Stripe (92%), Vercel (88%), Anthropic (78%)\n"
    "• Resume tailored for Stripe: ATS score 91%\n"
    "• Interview prep ready: 3 topics, 9 questions\n\n"
    "Check the Matches and Interview Prep tabs for detailed results."
)


def _stats(input_tokens: int, output_tokens: int, duration_ms: int, tps: float, structured_data=None) -> InferenceMetadata:
    return InferenceMetadata(
        model=DEMO_MODEL,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        duration_ms=duration_ms,
        tokens_per_second=tps,
        structured_data=structured_data,
    )


def _worker_steps(
    agent: AgentName,
    display_name: str,
    activate_delay: int,
    thought_delay: int,
    thought: str,
    message_delay: int,
    message: str,
    stats: InferenceMetadata,
) -> List[SimulationStep]:
    return [
        SimulationStep(
            delay_ms=activate_delay,
            event=status_change_event(agent, AgentStatus.THINKING, f"{display_name} activated"),
            status_update=StatusUpdate(agent_name=agent, status=AgentStatus.THINKING),
        ),
        SimulationStep(
            delay_ms=thought_delay,
            event=thought_event(agent, thought),
            status_update=StatusUpdate(agent_name=agent, status=AgentStatus.EXECUTING),
        ),
        SimulationStep(
            delay_ms=message_delay,
            event=message_event(agent, message, stats),
            status_update=StatusUpdate(agent_name=agent, status=AgentStatus.COMPLETE),
        ),
    ]


def build_simulation_steps(user_message: str) -> List[SimulationStep]:
    orchestrator = AgentName.ORCHESTRATOR
    opening = FOCUS_OPENINGS[detect_request_focus(user_message)]

    steps = [
        SimulationStep(
            delay_ms=300,
            event=status_change_event(orchestrator, AgentStatus.THINKING, "Orchestrator analyzing request..."),
            status_update=StatusUpdate(agent_name=orchestrator, status=AgentStatus.THINKING),
        ),
        SimulationStep(
            delay_ms=800,
            event=thought_event(
                orchestrator,
                f'Understanding your request: "{user_message}". Planning the agent pipeline...',
            ),
        ),
        SimulationStep(
            delay_ms=600,
            event=message_event(orchestrator, f"I'll coordinate the agents to help you. {opening}"),
            status_update=StatusUpdate(agent_name=orchestrator, status=AgentStatus.EXECUTING),
        ),
    ]

    steps += _worker_steps(
        AgentName.PROFILE_ANALYST, "Profile Analyst", 500,
        1200, "Analyzing profile: Alex Chen, Senior Full-Stack Engineer with 7 years of experience. "
              "Scanning the skills matrix and experience timeline...",
        1000, "Profile analyzed. Key strengths: expert TypeScript and React (6 years), strong Node.js and Python "
              "backend skills, proven technical leadership. Growth areas: distributed systems depth and "
              "hands-on ML infrastructure.",
        _stats(142, 87, 2340, 37.2),
    )
    steps += _worker_steps(
        AgentName.MARKET_RESEARCHER, "Market Researcher", 400,
        1100, "Scanning the market for full-stack and AI platform roles in the San Francisco Bay Area, "
              "filtering for $180K-$400K...",
        900, MARKET_SUMMARY,
        _stats(256, 104, 2810, 36.8, {"summary": MARKET_SUMMARY, "jobs": dump_records(DEMO_JOBS)}),
    )
    steps += _worker_steps(
        AgentName.MATCH_SCORER, "Match Scorer", 400,
        1300, "Computing weighted match scores: skills 35%, experience 30%, education 15%, culture fit 20%. "
              "Cross-referencing the profile with each job's requirements...",
        800, MATCH_SUMMARY,
        _stats(384, 118, 3120, 38.1, {"summary": MATCH_SUMMARY, "matches": dump_records(DEMO_MATCHES)}),
    )
    steps += _worker_steps(
        AgentName.RESUME_TAILOR, "Resume Tailor", 400,
        1000, "Optimizing the resume for the top match (Stripe): real-time collaboration work, the component "
              "library and the performance track record...",
        900, "Resume tailored for Stripe. Highlighted the real-time dashboard work (maps to the Stripe Dashboard), "
             "the design-system component library and concrete performance metrics. ATS keyword match "
             "improved from 72% to 91%.",
        _stats(412, 132, 3480, 37.9),
    )
    steps += _worker_steps(
        AgentName.INTERVIEW_COACH, "Interview Coach", 400,
        1100, "Preparing for the Stripe Senior Frontend loop. Reviewing common Stripe interview patterns "
              "and role-specific technical areas...",
        800, INTERVIEW_SUMMARY,
        _stats(468, 145, 3890, 37.5, {"summary": INTERVIEW_SUMMARY, "topics": dump_records(DEMO_INTERVIEW_TOPICS)}),
    )

    total_output_tokens = 586
    total_duration_ms = 15640
    steps.append(SimulationStep(
        delay_ms=500,
        event=message_event(
            orchestrator,
            PIPELINE_SUMMARY,
            PipelineSummaryMetadata(
                total_input_tokens=1662,
                total_output_tokens=total_output_tokens,
                total_duration_ms=total_duration_ms,
                agent_count=5,
                average_tokens_per_second=tokens_per_second(total_output_tokens, total_duration_ms),
            ),
        ),
        status_update=StatusUpdate(agent_name=orchestrator, status=AgentStatus.COMPLETE),
    ))
    return steps


async def run_demo_simulation(user_message: str, delay_scale: float = 1.0) -> AsyncGenerator[SimulationStep, None]:
    """Yield the scripted steps from the top, sleeping each step's delay first."""
    for step in build_simulation_steps(user_message):
        delay = step.delay_ms * delay_scale / 1000
        if delay > 0:
            await asyncio.sleep(delay)
        yield step
