from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import select, desc
from datetime import datetime, timezone
from typing import Any, Dict, List
import logging
import uuid

from safario.database import SessionDep
from safario.models.user import UserAccount
from safario.models.emergency import EmergencyAlert, EmergencyAlertRead, AlertResolution, AlertStatus
from safario.models.report import (
    FIRReport, FIRReportRead, FIRStatusUpdate,
    LostItem, LostItemRead, LostItemStatus
)
from safario.core.access import Action
from safario.core.exceptions import InvalidTransition
from safario.core.reports import check_fir_transition, check_lost_item_transition
from safario.api.auth import require_action
from safario.api.profiles import get_profiles_by_id, reporter_fields

logger = logging.getLogger(__name__)

router = APIRouter()

async def with_reporters(db, rows, read_model) -> List[Dict[str, Any]]:
    """Serialize rows and attach the reporter's name and phone"""
    profiles = await get_profiles_by_id(db, (row.user_id for row in rows))
    return [
        {
            **read_model.model_validate(row).model_dump(mode="json"),
            **reporter_fields(profiles.get(row.user_id)),
        }
        for row in rows
    ]

@router.get("/alerts")
async def list_alerts(
    db: SessionDep,
    current_user: UserAccount = Depends(require_action(Action.VIEW_AUTHORITY_PORTAL))
) -> List[Dict[str, Any]]:
    result = await db.execute(select(EmergencyAlert).order_by(desc(EmergencyAlert.created_at)))
    return await with_reporters(db, result.scalars().all(), EmergencyAlertRead)

@router.get("/fir")
async def list_firs(
    db: SessionDep,
    current_user: UserAccount = Depends(require_action(Action.VIEW_AUTHORITY_PORTAL))
) -> List[Dict[str, Any]]:
    result = await db.execute(select(FIRReport).order_by(desc(FIRReport.created_at)))
    return await with_reporters(db, result.scalars().all(), FIRReportRead)

@router.get("/lost-items")
async def list_lost_items(
    db: SessionDep,
    current_user: UserAccount = Depends(require_action(Action.VIEW_AUTHORITY_PORTAL))
) -> List[Dict[str, Any]]:
    result = await db.execute(select(LostItem).order_by(desc(LostItem.created_at)))
    return await with_reporters(db, result.scalars().all(), LostItemRead)

@router.post("/alerts/{alert_id}/resolve", response_model=EmergencyAlertRead)
async def resolve_alert(
    db: SessionDep,
    alert_id: uuid.UUID,
    resolution: AlertResolution,
    current_user: UserAccount = Depends(require_action(Action.RESPOND_TO_ALERTS))
):
    notes = resolution.response_notes.strip()
    if not notes:
        raise HTTPException(status_code=400, detail="Please add response notes")

    alert = await db.get(EmergencyAlert, alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    if alert.status == AlertStatus.RESOLVED:
        raise InvalidTransition("alert", alert.status.value, AlertStatus.RESOLVED.value)

    alert.status = AlertStatus.RESOLVED
    alert.responder_id = current_user.id
    alert.response_notes = notes
    alert.responded_at = datetime.now(timezone.utc)

    db.add(alert)
    await db.commit()
    await db.refresh(alert)

    logger.info(f"Alert {alert.id} resolved by {current_user.id}")
    return alert

@router.patch("/fir/{fir_id}", response_model=FIRReportRead)
async def update_fir_status(
    db: SessionDep,
    request: Request,
    fir_id: uuid.UUID,
    status_update: FIRStatusUpdate,
    current_user: UserAccount = Depends(require_action(Action.UPDATE_FIR_STATUS))
):
    fir = await db.get(FIRReport, fir_id)
    if fir is None:
        raise HTTPException(status_code=404, detail="FIR not found")

    if not check_fir_transition(fir.status, status_update.status):
        return fir

    fir.status = status_update.status
    fir.updated_at = datetime.now(timezone.utc)
    db.add(fir)
    await db.commit()
    await db.refresh(fir)

    logger.info(f"FIR {fir.fir_number} moved to {fir.status.value}")

    websocket_manager = request.app.state.websocket_manager
    await websocket_manager.send_to_user(str(fir.user_id), {
        "type": "fir_update",
        "fir_id": str(fir.id),
        "fir_number": fir.fir_number,
        "status": fir.status.value,
        "timestamp": fir.updated_at.isoformat()
    })
    return fir

@router.post("/lost-items/{item_id}/found", response_model=LostItemRead)
async def mark_item_found(
    db: SessionDep,
    request: Request,
    item_id: uuid.UUID,
    current_user: UserAccount = Depends(require_action(Action.UPDATE_LOST_ITEM_STATUS))
):
    item = await db.get(LostItem, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Lost item not found")

    if not check_lost_item_transition(item.status, LostItemStatus.FOUND):
        return item

    item.status = LostItemStatus.FOUND
    item.found_at = datetime.now(timezone.utc)
    db.add(item)
    await db.commit()
    await db.refresh(item)

    logger.info(f"Lost item {item.id} marked found")

    websocket_manager = request.app.state.websocket_manager
    await websocket_manager.send_to_user(str(item.user_id), {
        "type": "lost_item_update",
        "item_id": str(item.id),
        "item_name": item.item_name,
        "status": item.status.value,
        "timestamp": item.found_at.isoformat()
    })
    return item
