"""
Shared test fixtures for the career agents backend tests.
"""

import asyncio
from typing import Callable, Dict, List, Optional, Union

import pytest
from unittest.mock import AsyncMock

from agents.client import BaseLLMClient, LLMResponse
from schemas.events import InferenceStats

Reply = Union[str, Exception]

PROFILE_ANALYST = "Profile Analyst agent"
MARKET_RESEARCHER = "Market Researcher agent"
MATCH_SCORER = "Match Scorer agent"
RESUME_TAILOR = "Resume Tailor agent"
INTERVIEW_COACH = "Interview Coach agent"
ROUTER = "orchestrator of a career assistant team"


class FakeLLMClient(BaseLLMClient):
    """
    Scripted LLM collaborator.

    Replies are looked up by the first line of the system prompt (so each agent
    can be scripted independently), then taken from a FIFO queue, then default.
    An Exception reply is raised instead of returned.
    """
    provider = "fake"

    def __init__(
        self,
        replies: Optional[Dict[str, Union[Reply, List[Reply]]]] = None,
        queue: Optional[List[Reply]] = None,
        default: str = "ok",
        reachable: bool = True,
        input_tokens: int = 10,
        output_tokens: int = 20,
        duration_ms: int = 1000,
    ):
        super().__init__(model="fake-model", temperature=0.0)
        self.replies = dict(replies or {})
        self.queue = list(queue or [])
        self.default = default
        self.reachable = reachable
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.duration_ms = duration_ms
        self.calls: List[Dict[str, object]] = []
        # Calls whose system prompt contains block_key (all calls when None) wait on block.
        self.block: Optional[asyncio.Event] = None
        self.block_key: Optional[str] = None
        self.started = asyncio.Event()

    def _reply_for(self, system_prompt: str) -> Reply:
        for key, reply in self.replies.items():
            if key in system_prompt:
                # A list scripts successive calls; the last entry repeats.
                if isinstance(reply, list):
                    return reply.pop(0) if len(reply) > 1 else reply[0]
                return reply
        if self.queue:
            return self.queue.pop(0)
        return self.default

    async def complete(self, system_prompt, user_message, max_tokens=None):
        self.calls.append({"system": system_prompt, "user": user_message, "max_tokens": max_tokens})
        if self.block is not None and (self.block_key is None or self.block_key in system_prompt):
            self.started.set()
            await self.block.wait()

        reply = self._reply_for(system_prompt)
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(
            content=reply,
            stats=InferenceStats.from_counts(
                model=self.model,
                input_tokens=self.input_tokens,
                output_tokens=self.output_tokens,
                duration_ms=self.duration_ms,
            ),
        )

    async def ping(self) -> bool:
        return self.reachable


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def make_llm() -> Callable[..., FakeLLMClient]:
    """Factory fixture for clients with scripted replies."""
    return FakeLLMClient


@pytest.fixture
def collected_events():
    """Event callback that records every AgentEvent it receives."""
    events = []

    async def _collect(event):
        events.append(event)

    _collect.events = events
    return _collect


@pytest.fixture
def mock_event_callback():
    """Mock event callback for orchestrator tests."""
    return AsyncMock()


@pytest.fixture
def sample_message():
    """Sample career request for testing."""
    return "I'm a senior full-stack engineer. Find me remote roles and help me prepare for interviews."


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """sse-starlette keeps a process-wide exit event bound to the first loop; reset it per test."""
    from sse_starlette.sse import AppStatus

    if hasattr(AppStatus, "should_exit_event"):
        AppStatus.should_exit_event = None
    yield
    if hasattr(AppStatus, "should_exit_event"):
        AppStatus.should_exit_event = None
