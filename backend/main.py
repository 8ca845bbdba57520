"""
Career Agents API Server - FastAPI with SSE streaming.
Main entry point for the backend API.
"""

import os
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional
from dotenv import load_dotenv
import structlog

# Load .env from project root (parent of backend/)
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse
from pydantic import BaseModel, ConfigDict, Field

from agents.client import BaseLLMClient, close_shared_llm_clients, get_shared_llm_client
from orchestrator.agent_registry import describe_agents
from orchestrator.workflows import OrchestrationMode
from schemas.events import AgentName
from services.pipeline_stream import stream_demo, stream_orchestration

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper(), format="%(message)s")

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

MAX_MESSAGE_BYTES = 500 * 1024

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - initialize and cleanup resources."""
    logger.info("starting_career_agents_api")
    # Warm the LLM client cache so the first request doesn't pay client setup
    try:
        client = get_shared_llm_client()
        logger.info("llm_client_warmed", provider=client.provider, model=client.model)
    except Exception as e:
        logger.warning("client_warmup_failed", error=str(e))
    yield
    logger.info("shutting_down_career_agents_api")
    await close_shared_llm_clients()


# Create FastAPI app
app = FastAPI(
    title="Career Agents API",
    description="Multi-agent career assistant with real-time SSE event streaming",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure telemetry
from telemetry import configure_telemetry
configure_telemetry(app)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Request Models
# ============================================================================

class OrchestrateRequest(BaseModel):
    """Request to run the agent pipeline for one user turn."""
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    user_id: Optional[str] = Field(default=None, alias="userId")
    orchestration_mode: Optional[str] = Field(default=None, alias="orchestrationMode")
    human_approval_response: Optional[Literal["approved", "rejected"]] = Field(
        default=None, alias="humanApprovalResponse",
    )
    approval_required_for: Optional[List[AgentName]] = Field(default=None, alias="approvalRequiredFor")
    profile: Optional[Dict[str, Any]] = None


def _validated_message(request: OrchestrateRequest) -> str:
    message = (request.message or "").strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message is required")
    if len(message.encode("utf-8")) > MAX_MESSAGE_BYTES:
        raise HTTPException(status_code=413, detail="Message exceeds 500 KB limit")
    return message


def get_llm_client() -> BaseLLMClient:
    """Dependency returning the shared LLM collaborator."""
    try:
        return get_shared_llm_client()
    except ValueError as e:
        logger.error("llm_client_unavailable", error=str(e))
        raise HTTPException(status_code=503, detail=str(e))


# ============================================================================
# Health & Info Endpoints
# ============================================================================

@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/ready")
async def readiness_check(llm_client: BaseLLMClient = Depends(get_llm_client)):
    """Readiness check - verifies the LLM collaborator answers."""
    checks = {"api": True}

    try:
        checks["llm"] = await llm_client.ping()
    except Exception as e:
        checks["llm"] = False
        logger.error("llm_health_check_failed", error=str(e))

    all_healthy = all(checks.values())
    return JSONResponse(
        status_code=200 if all_healthy else 503,
        content={"ready": all_healthy, "checks": checks},
    )


@app.get("/api/agents")
async def list_agents():
    """Agent catalogue for the dashboard."""
    return {"agents": describe_agents()}


# ============================================================================
# Orchestration Endpoints
# ============================================================================

@app.post("/api/orchestrate")
async def orchestrate(request: OrchestrateRequest, llm_client: BaseLLMClient = Depends(get_llm_client)):
    """
    Run the career pipeline and stream agent events as SSE.

    Frames are agent:<type> events, then a final done or error frame.
    """
    message = _validated_message(request)
    mode = request.orchestration_mode
    if mode is not None and mode not in OrchestrationMode.ALL:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown orchestrationMode '{mode}'. Use one of: {', '.join(OrchestrationMode.ALL)}",
        )

    logger.info(
        "orchestrate_requested",
        conversation_id=request.conversation_id,
        mode=mode,
        message_chars=len(message),
    )
    frames = stream_orchestration(
        message,
        llm_client,
        conversation_id=request.conversation_id,
        user_id=request.user_id,
        orchestration_mode=mode,
        human_approval_response=request.human_approval_response,
        approval_required_for=(
            [agent.value for agent in request.approval_required_for]
            if request.approval_required_for is not None else None
        ),
        profile=request.profile,
    )
    return EventSourceResponse(frames, headers=SSE_HEADERS, sep="\n")


@app.post("/api/demo")
async def demo(request: OrchestrateRequest):
    """Stream the scripted demo run without calling the LLM."""
    message = _validated_message(request)
    logger.info("demo_requested", conversation_id=request.conversation_id, message_chars=len(message))
    return EventSourceResponse(stream_demo(message), headers=SSE_HEADERS, sep="\n")


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "5001"))
    uvicorn.run(app, host="0.0.0.0", port=port)
