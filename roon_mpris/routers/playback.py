from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from roon_mpris.sync.commands import TRANSPORT_VERBS

router = APIRouter()


class SeekRequest(BaseModel):
    offset: int


class PositionRequest(BaseModel):
    track_id: str
    position: int


def _result(task) -> dict:
    return {"status": "ok" if task is not None else "ignored"}


@router.post("/player/seek")
async def seek(body: SeekRequest, request: Request):
    """Relative seek by ``offset`` microseconds."""
    return _result(request.app.state.synchronizer.commands.seek(body.offset))


@router.post("/player/position")
async def set_position(body: PositionRequest, request: Request):
    """Absolute seek within the current track, in microseconds."""
    return _result(request.app.state.synchronizer.commands.set_position(body.track_id, body.position))


@router.post("/player/{verb}")
async def control(verb: str, request: Request):
    """Send play, pause, playpause, stop, next or previous to the active zone."""
    if verb not in TRANSPORT_VERBS:
        return JSONResponse(status_code=404, content={"error": "Unknown command", "detail": verb})
    return _result(request.app.state.synchronizer.commands.dispatch(verb))
