"""
In-process SSE stream for one orchestration run.

Frames are queued in push order and drained by the HTTP response generator.
The stream carries at most one terminal frame (done or error) and closes once.
"""

import asyncio
import json
from typing import AsyncGenerator, Dict

import structlog

from schemas.events import AgentEvent

logger = structlog.get_logger()

DONE_EVENT = "done"
DONE_SENTINEL = "[DONE]"
ERROR_EVENT = "error"
SYSTEM_EVENT = "system"
STATUS_EVENT = "status"

_CLOSED = object()


class StreamEmitter:
    """
    Ordered single-consumer frame queue.

    Features:
    - agent:<type> frames for AgentEvents
    - one terminal frame per run (done sentinel or JSON error)
    - idempotent close; pushes after close or after the terminal frame are dropped
    """

    def __init__(self, run_id: str):
        self.run_id = run_id
        self._queue: "asyncio.Queue[object]" = asyncio.Queue()
        self._closed = False
        self._terminated = False
        self.frames_pushed = 0

    @classmethod
    def open(cls, run_id: str) -> "StreamEmitter":
        logger.info("event_stream_opened", run_id=run_id)
        return cls(run_id)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def terminated(self) -> bool:
        return self._terminated

    async def push_frame(self, event: str, data: str) -> bool:
        if self._closed or self._terminated:
            logger.debug("event_stream_push_dropped", run_id=self.run_id, sse_event=event)
            return False
        await self._queue.put({"event": event, "data": data})
        self.frames_pushed += 1
        return True

    async def push(self, event: AgentEvent) -> bool:
        return await self.push_frame(event.sse_event_name, event.to_sse_data())

    async def push_status(self, agent_name: str, status: str) -> bool:
        return await self.push_frame(STATUS_EVENT, json.dumps({"agentName": agent_name, "status": status}))

    async def system_notice(self, content: str, reset: bool = False) -> bool:
        """Push a system notice. reset=True tells the client to discard the frames shown so far."""
        notice = {"role": "system", "content": content}
        if reset:
            notice["reset"] = True
        return await self.push_frame(SYSTEM_EVENT, json.dumps(notice))

    async def done(self) -> None:
        if await self.push_frame(DONE_EVENT, DONE_SENTINEL):
            self._terminated = True

    async def fail(self, error: str) -> None:
        if await self.push_frame(ERROR_EVENT, json.dumps({"error": error})):
            self._terminated = True
            logger.warning("event_stream_failed", run_id=self.run_id, error=error)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        logger.info(
            "event_stream_closed",
            run_id=self.run_id,
            frames=self.frames_pushed,
            terminated=self._terminated,
        )

    async def frames(self) -> AsyncGenerator[Dict[str, str], None]:
        """Yield queued frames in push order until the stream is closed."""
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item

