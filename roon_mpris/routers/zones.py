from fastapi import APIRouter, Request

from roon_mpris.models.state import PlayerResponse, ZoneSummary

router = APIRouter()


@router.get("/zones", response_model=list[ZoneSummary])
async def get_zones(request: Request):
    """All zones known to the bridge, in registry order."""
    synchronizer = request.app.state.synchronizer
    active = synchronizer.active_zone
    return [
        ZoneSummary(
            zone_id=zone.zone_id,
            display_name=zone.display_name,
            state=zone.state,
            active=active is not None and zone.zone_id == active.zone_id,
            outputs=[output.display_name for output in zone.outputs],
        )
        for zone in synchronizer.registry.zones()
    ]


@router.get("/player", response_model=PlayerResponse)
async def get_player(request: Request):
    """What is currently exposed over MPRIS, with the estimated position."""
    synchronizer = request.app.state.synchronizer
    active = synchronizer.active_zone
    return PlayerResponse(
        zone_id=active.zone_id if active else None,
        position=synchronizer.get_position(),
        projection=synchronizer.projection,
    )
