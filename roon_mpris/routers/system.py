from fastapi import APIRouter, Request

from roon_mpris.models.state import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """Health check with pairing state and zone count."""
    synchronizer = request.app.state.synchronizer
    active = synchronizer.active_zone
    return HealthResponse(
        status="ok" if synchronizer.session_active else "waiting",
        core=synchronizer.core_name,
        zones=len(synchronizer.registry),
        active_zone=active.zone_id if active else None,
    )
