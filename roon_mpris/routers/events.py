import asyncio
import json
import logging

from fastapi import APIRouter, Request
from sse_starlette.sse import EventSourceResponse

router = APIRouter()
logger = logging.getLogger(__name__)

# Connected SSE clients, one queue each
_clients: set[asyncio.Queue] = set()


def broadcast(event: str, data: dict) -> None:
    """Send an event to all connected SSE clients."""
    message = {"event": event, "data": json.dumps(data)}
    for q in _clients.copy():
        try:
            q.put_nowait(message)
        except asyncio.QueueFull:
            logger.debug("Dropping %s event for slow SSE client", event)


def client_count() -> int:
    return len(_clients)


@router.get("/events")
async def sse_events(request: Request):
    """Server-Sent Events stream of bridge status changes."""
    q: asyncio.Queue = asyncio.Queue(maxsize=64)
    _clients.add(q)
    status = request.app.state.status_board

    async def event_generator():
        try:
            # Current status first
            yield {"event": "status", "data": json.dumps(status.as_dict())}
            while True:
                if await request.is_disconnected():
                    break
                try:
                    message = await asyncio.wait_for(q.get(), timeout=30.0)
                    yield message
                except asyncio.TimeoutError:
                    yield {"comment": "keepalive"}
        finally:
            _clients.discard(q)

    return EventSourceResponse(event_generator())
