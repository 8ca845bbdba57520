"""
Shared LLM chat client factory for the career pipeline agents.
LLM_PROVIDER chooses between a local Ollama server (native /api/chat) and any
OpenAI-compatible endpoint.

Every call is a single non-streamed chat completion with one system prompt and
one user message, returning the text plus its inference statistics.
"""

import os
import time
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx
from openai import AsyncOpenAI, APIConnectionError, APIStatusError, APITimeoutError, OpenAIError
from pydantic import BaseModel
import structlog

from schemas.events import InferenceStats

logger = structlog.get_logger()

# TTL cache for client instances so a changed endpoint is picked up without a restart
_CLIENT_TTL_SECONDS = 30 * 60  # 30 minutes
_client_cache: dict[str, tuple["BaseLLMClient", float]] = {}
_cache_lock = threading.Lock()

# Configuration from environment
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "ollama")
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "qwen2.5-coder:14b")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.3"))
LLM_DEFAULT_MAX_TOKENS = int(os.getenv("LLM_DEFAULT_MAX_TOKENS", "1024"))
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "300"))
LLM_INPUT_COST_PER_MTOK = float(os.getenv("LLM_INPUT_COST_PER_MTOK", "0"))
LLM_OUTPUT_COST_PER_MTOK = float(os.getenv("LLM_OUTPUT_COST_PER_MTOK", "0"))


class LLMClientError(Exception):
    """Base error for the LLM collaborator."""


class LLMUnavailableError(LLMClientError):
    """The collaborator could not be reached at all (connect failure, DNS, connect timeout)."""


class LLMCallError(LLMClientError):
    """The collaborator answered, but not with a usable completion."""


class LLMResponse(BaseModel):
    content: str
    stats: InferenceStats


def estimate_cost(input_tokens: int, output_tokens: int) -> float:
    """USD cost from the configured per-million-token prices."""
    return (
        input_tokens * LLM_INPUT_COST_PER_MTOK
        + output_tokens * LLM_OUTPUT_COST_PER_MTOK
    ) / 1_000_000


class BaseLLMClient(ABC):
    provider: str = "base"

    def __init__(self, model: str, temperature: Optional[float] = None):
        self.model = model
        self.temperature = LLM_TEMPERATURE if temperature is None else temperature

    @abstractmethod
    async def complete(self, system_prompt: str, user_message: str, max_tokens: Optional[int] = None) -> LLMResponse:
        """Run one chat completion. Raises LLMUnavailableError or LLMCallError."""

    @abstractmethod
    async def ping(self) -> bool:
        """Cheap reachability probe used by the readiness endpoint."""

    async def aclose(self) -> None:
        return None


class OllamaChatClient(BaseLLMClient):
    """Client for Ollama's native /api/chat endpoint."""
    provider = "ollama"

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(model or OLLAMA_MODEL, temperature)
        self.base_url = (base_url or OLLAMA_BASE_URL).rstrip("/")
        timeout = LLM_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    async def complete(self, system_prompt: str, user_message: str, max_tokens: Optional[int] = None) -> LLMResponse:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": max_tokens or LLM_DEFAULT_MAX_TOKENS,
            },
        }

        try:
            response = await self._http.post("/api/chat", json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise LLMUnavailableError(f"Ollama unreachable at {self.base_url}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise LLMCallError(f"Ollama request failed: {exc}") from exc

        if response.status_code >= 400:
            raise LLMCallError(f"Ollama error {response.status_code}: {response.text[:500]}")

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMCallError("Ollama returned a non-JSON response") from exc

        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise LLMCallError("Ollama response is missing message.content")

        return LLMResponse(content=content, stats=self._stats_from_envelope(data))

    def _stats_from_envelope(self, data: Dict[str, Any]) -> InferenceStats:
        # Ollama durations are nanoseconds.
        input_tokens = int(data.get("prompt_eval_count") or 0)
        output_tokens = int(data.get("eval_count") or 0)
        eval_duration_ns = int(data.get("eval_duration") or 0)
        total_duration_ns = int(data.get("total_duration") or 0)

        return InferenceStats(
            model=data.get("model") or self.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=round(total_duration_ns / 1e6),
            tokens_per_second=round(output_tokens / (eval_duration_ns / 1e9), 1) if eval_duration_ns > 0 else 0.0,
            estimated_cost=estimate_cost(input_tokens, output_tokens),
        )

    async def ping(self) -> bool:
        try:
            response = await self._http.get("/api/tags", timeout=5.0)
        except httpx.HTTPError as exc:
            logger.warning("llm_ping_failed", provider=self.provider, error=str(exc))
            return False
        return response.status_code < 400

    async def aclose(self) -> None:
        await self._http.aclose()


class OpenAIChatClient(BaseLLMClient):
    """Client for OpenAI or any OpenAI-compatible chat completions endpoint."""
    provider = "openai"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(model or OPENAI_MODEL, temperature)
        if client is None:
            _api_key = api_key or OPENAI_API_KEY
            if not _api_key:
                raise ValueError("LLM_PROVIDER=openai requires OPENAI_API_KEY")
            client = AsyncOpenAI(
                api_key=_api_key,
                base_url=base_url or OPENAI_BASE_URL or None,
                timeout=LLM_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds,
            )
        self._client = client

    async def complete(self, system_prompt: str, user_message: str, max_tokens: Optional[int] = None) -> LLMResponse:
        started = time.perf_counter()
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                temperature=self.temperature,
                max_tokens=max_tokens or LLM_DEFAULT_MAX_TOKENS,
            )
        except APITimeoutError as exc:
            raise LLMCallError(f"OpenAI request timed out: {exc}") from exc
        except APIConnectionError as exc:
            raise LLMUnavailableError(f"OpenAI endpoint unreachable: {exc}") from exc
        except APIStatusError as exc:
            raise LLMCallError(f"OpenAI error {exc.status_code}: {exc.message}") from exc
        except OpenAIError as exc:
            raise LLMCallError(f"OpenAI request failed: {exc}") from exc
        duration_ms = int((time.perf_counter() - started) * 1000)

        content = response.choices[0].message.content if response.choices else None
        if not isinstance(content, str):
            raise LLMCallError("OpenAI response has no message content")

        usage = response.usage
        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0
        stats = InferenceStats.from_counts(
            model=response.model or self.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
            estimated_cost=estimate_cost(input_tokens, output_tokens),
        )
        return LLMResponse(content=content, stats=stats)

    async def ping(self) -> bool:
        try:
            await self._client.models.list()
        except APIStatusError:
            # Reachable; some compatible servers do not implement /models.
            return True
        except OpenAIError as exc:
            logger.warning("llm_ping_failed", provider=self.provider, error=str(exc))
            return False
        return True

    async def aclose(self) -> None:
        await self._client.close()


def create_llm_client(provider: Optional[str] = None) -> BaseLLMClient:
    """
    Factory for the configured LLM collaborator.

    Args:
        provider: "ollama" or "openai"; defaults to LLM_PROVIDER

    Returns:
        A ready BaseLLMClient
    """
    _provider = (provider or LLM_PROVIDER).strip().lower()
    if _provider == "ollama":
        client = OllamaChatClient()
    elif _provider == "openai":
        client = OpenAIChatClient()
    else:
        raise ValueError(f"Unsupported LLM_PROVIDER '{_provider}'. Use 'ollama' or 'openai'.")
    logger.info("llm_client_created", provider=_provider, model=client.model)
    return client


def get_shared_llm_client() -> BaseLLMClient:
    """Return a cached client, recreating it when the TTL has expired.

    Creation happens outside the lock; on a racing expiry the last writer wins.
    """
    key = LLM_PROVIDER
    now = time.monotonic()
    with _cache_lock:
        entry = _client_cache.get(key)
        if entry is not None:
            client, created_at = entry
            if now - created_at < _CLIENT_TTL_SECONDS:
                return client
            logger.info("client_cache_expired", provider=key, age_seconds=round(now - created_at))

    client = create_llm_client(key)
    now = time.monotonic()
    with _cache_lock:
        _client_cache[key] = (client, now)
    return client


async def close_shared_llm_clients() -> None:
    """Close and forget every cached client (application shutdown)."""
    with _cache_lock:
        clients = [client for client, _ in _client_cache.values()]
        _client_cache.clear()
    for client in clients:
        await client.aclose()
    logger.info("client_cache_cleared", closed=len(clients))
