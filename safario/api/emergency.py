from fastapi import APIRouter, Depends, HTTPException, BackgroundTasks, Request, status
from sqlmodel import select, desc
from typing import Any, List
import logging
import uuid

from safario.database import SessionDep
from safario.models.user import UserAccount
from safario.models.profile import Profile
from safario.models.emergency import (
    EmergencyAlert, EmergencyAlertRead, EmergencyRequest,
    EmergencyContact, EmergencyContactCreate, EmergencyContactRead
)
from safario.core.access import Action
from safario.core.emergency_alert import build_alert_data, contact_targets, send_emergency_notifications
from safario.api.auth import require_action
from safario.api.profiles import reporter_fields

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/alerts", status_code=status.HTTP_201_CREATED)
async def trigger_emergency_alert(
    db: SessionDep,
    request: Request,
    emergency_data: EmergencyRequest,
    background_tasks: BackgroundTasks,
    current_user: UserAccount = Depends(require_action(Action.SEND_EMERGENCY_ALERT))
) -> dict[str, Any]:
    result = await db.execute(
        select(EmergencyContact).where(EmergencyContact.user_id == current_user.id)
    )
    contacts = result.scalars().all()

    alert = EmergencyAlert(
        user_id=current_user.id,
        location_lat=emergency_data.latitude,
        location_lng=emergency_data.longitude,
        alert_type=emergency_data.alert_type,
        contacts_notified=bool(contacts)
    )

    db.add(alert)
    await db.commit()
    await db.refresh(alert)

    reporter = reporter_fields(await db.get(Profile, current_user.id))
    logger.warning(f"Emergency alert {alert.id} raised by {current_user.id}")

    # Send notifications in background
    background_tasks.add_task(
        send_emergency_notifications,
        alert_data=build_alert_data(alert, reporter["full_name"]),
        contacts=contact_targets(contacts)
    )

    # Notify authorities via WebSocket
    websocket_manager = request.app.state.websocket_manager
    await websocket_manager.send_to_authorities({
        "type": "emergency_alert",
        "alert_id": str(alert.id),
        "alert_type": alert.alert_type,
        "latitude": alert.location_lat,
        "longitude": alert.location_lng,
        "full_name": reporter["full_name"],
        "phone_number": reporter["phone_number"],
        "timestamp": alert.created_at.isoformat()
    })

    return {
        "message": "Emergency alert sent successfully",
        "alert": EmergencyAlertRead.model_validate(alert),
        "contacts_notified": len(contacts)
    }

@router.get("/alerts/mine", response_model=List[EmergencyAlertRead])
async def get_my_alerts(
    db: SessionDep,
    current_user: UserAccount = Depends(require_action(Action.SEND_EMERGENCY_ALERT))
):
    result = await db.execute(
        select(EmergencyAlert)
        .where(EmergencyAlert.user_id == current_user.id)
        .order_by(desc(EmergencyAlert.created_at))
    )
    return result.scalars().all()

@router.get("/contacts", response_model=List[EmergencyContactRead])
async def list_contacts(
    db: SessionDep,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_EMERGENCY_CONTACTS))
):
    result = await db.execute(
        select(EmergencyContact)
        .where(EmergencyContact.user_id == current_user.id)
        .order_by(EmergencyContact.created_at)
    )
    return result.scalars().all()

@router.post("/contacts", response_model=EmergencyContactRead, status_code=status.HTTP_201_CREATED)
async def add_contact(
    db: SessionDep,
    contact_data: EmergencyContactCreate,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_EMERGENCY_CONTACTS))
):
    contact = EmergencyContact(**contact_data.model_dump(), user_id=current_user.id)
    db.add(contact)
    await db.commit()
    await db.refresh(contact)
    return contact

@router.delete("/contacts/{contact_id}")
async def delete_contact(
    db: SessionDep,
    contact_id: uuid.UUID,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_EMERGENCY_CONTACTS))
) -> dict[str, str]:
    contact = await db.get(EmergencyContact, contact_id)
    if contact is None or contact.user_id != current_user.id:
        raise HTTPException(status_code=404, detail="Contact not found")

    await db.delete(contact)
    await db.commit()
    return {"message": "Contact removed"}
