from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, Field, select
from typing import Any, List
import logging

from safario.database import SessionDep
from safario.models.user import UserAccount
from safario.models.zone import DangerZone
from safario.models.emergency import EmergencyAlert, AlertStatus
from safario.core.access import Action
from safario.core.geofencing import Zone, ZoneKind, calculate_distance, route_overlay
from safario.core.reports import compute_safety_score, get_risk_level
from safario.services.maps import get_map_token
from safario.services.places import get_places
from safario.services.weather import get_weather
from safario.api.auth import require_action

logger = logging.getLogger(__name__)

router = APIRouter()

# Active alerts within this distance lower the safety score
NEARBY_ALERT_RADIUS_M = 1000

class PositionRequest(SQLModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

class RouteRequest(SQLModel):
    points: List[PositionRequest] = Field(min_length=2)

async def load_danger_zones(db: AsyncSession) -> List[Zone]:
    result = await db.execute(select(DangerZone))
    return [
        Zone(zone.name, zone.latitude, zone.longitude, zone.radius_m, ZoneKind.DANGER)
        for zone in result.scalars().all()
    ]

@router.get("/token")
async def map_token() -> dict[str, str]:
    return {"token": get_map_token()}

@router.post("/geofence/check")
async def check_geofence(
    db: SessionDep,
    request: Request,
    position: PositionRequest,
    current_user: UserAccount = Depends(require_action(Action.USE_MAP))
) -> dict[str, Any]:
    registry = request.app.state.geofence_registry
    zones = await load_danger_zones(db)
    monitor = registry.monitor_for(str(current_user.id), position.latitude, position.longitude, zones)
    report = monitor.evaluate(position.latitude, position.longitude)

    websocket_manager = request.app.state.websocket_manager
    for event in report.notifications:
        await websocket_manager.send_to_user(str(current_user.id), {
            "type": "geofence",
            "event": event.to_dict()
        })

    return report.to_dict()

@router.post("/geofence/reset")
async def reset_geofence(
    db: SessionDep,
    request: Request,
    position: PositionRequest,
    current_user: UserAccount = Depends(require_action(Action.USE_MAP))
) -> dict[str, Any]:
    registry = request.app.state.geofence_registry
    zones = await load_danger_zones(db)
    monitor = registry.restart(str(current_user.id), position.latitude, position.longitude, zones)
    logger.info(f"Safe perimeter for {current_user.id} restarted")
    return {
        "message": "Safe zone reset to current location",
        "center": {"latitude": position.latitude, "longitude": position.longitude},
        "radius_m": monitor.radius_m
    }

@router.get("/overlay")
async def get_overlay(
    db: SessionDep,
    request: Request,
    current_user: UserAccount = Depends(require_action(Action.USE_MAP))
) -> dict[str, Any]:
    registry = request.app.state.geofence_registry
    zones = await load_danger_zones(db)
    monitor = registry.get(str(current_user.id))
    if monitor is None:
        raise HTTPException(status_code=404, detail="No position reported yet")
    monitor.set_danger_zones(zones)
    return monitor.overlay()

@router.post("/route")
async def plan_route(
    db: SessionDep,
    route: RouteRequest,
    current_user: UserAccount = Depends(require_action(Action.USE_MAP))
) -> dict[str, Any]:
    zones = await load_danger_zones(db)
    points = [(p.latitude, p.longitude) for p in route.points]
    try:
        return route_overlay(points, zones)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.get("/weather")
async def weather(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    current_user: UserAccount = Depends(require_action(Action.USE_MAP))
) -> dict[str, Any]:
    return await get_weather(lat, lng)

@router.get("/places")
async def places(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    current_user: UserAccount = Depends(require_action(Action.USE_MAP))
) -> dict[str, Any]:
    return await get_places(lat, lng)

@router.get("/safety-score")
async def safety_score(
    db: SessionDep,
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    current_user: UserAccount = Depends(require_action(Action.USE_MAP))
) -> dict[str, Any]:
    zones = await load_danger_zones(db)

    result = await db.execute(
        select(EmergencyAlert).where(EmergencyAlert.status == AlertStatus.ACTIVE)
    )
    nearby = sum(
        1 for alert in result.scalars().all()
        if calculate_distance(lat, lng, alert.location_lat, alert.location_lng) <= NEARBY_ALERT_RADIUS_M
    )

    score = compute_safety_score(lat, lng, zones, nearby)
    return {"score": score, "risk": get_risk_level(score), "nearby_alerts": nearby}
