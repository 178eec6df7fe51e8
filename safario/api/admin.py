from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, desc
from datetime import datetime, timezone
from typing import Any, Dict, List
import logging
import uuid

from safario.database import SessionDep
from safario.models.user import UserAccount, UserRole, UserRoleRead, RoleAssignment, Role, RoleStatus
from safario.models.zone import DangerZone, DangerZoneCreate, DangerZoneRead
from safario.core import access
from safario.core.access import Action, RoleState
from safario.api.auth import require_action
from safario.api.profiles import get_profiles_by_id, reporter_fields

logger = logging.getLogger(__name__)

router = APIRouter()

def role_entry(role: UserRole, profile) -> Dict[str, Any]:
    return {
        **UserRoleRead.model_validate(role).model_dump(mode="json"),
        "created_at": role.created_at.isoformat(),
        **reporter_fields(profile),
        "profile_image_url": profile.profile_image_url if profile else None,
    }

async def load_role(db: AsyncSession, user_id: uuid.UUID) -> UserRole:
    result = await db.execute(select(UserRole).where(UserRole.user_id == user_id))
    role = result.scalar_one_or_none()
    if role is None:
        raise HTTPException(status_code=404, detail="Role not found")
    return role

async def apply_state(db: AsyncSession, request: Request, role: UserRole, state: RoleState) -> UserRole:
    role.role = state.role
    role.role_status = state.status
    role.updated_at = datetime.now(timezone.utc)
    db.add(role)
    await db.commit()
    await db.refresh(role)

    # Open sockets follow the new role without reconnecting
    websocket_manager = request.app.state.websocket_manager
    websocket_manager.set_authority(
        str(role.user_id),
        access.can(role.role, role.role_status, Action.VIEW_AUTHORITY_PORTAL)
    )
    return role

@router.get("/roles")
async def list_roles(
    db: SessionDep,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_ROLES))
) -> dict[str, Any]:
    result = await db.execute(select(UserRole).order_by(desc(UserRole.created_at)))
    roles = result.scalars().all()
    profiles = await get_profiles_by_id(db, (role.user_id for role in roles))

    pending = [
        role_entry(role, profiles.get(role.user_id))
        for role in roles if role.role_status == RoleStatus.PENDING
    ]
    approved = [
        role_entry(role, profiles.get(role.user_id))
        for role in roles if role.role_status == RoleStatus.APPROVED
    ]

    return {
        "pending": pending,
        "approved": approved,
        "stats": {
            "pending": len(pending),
            "users": sum(1 for role in roles if role.role == Role.USER and role.role_status == RoleStatus.APPROVED),
            "authorities": sum(1 for role in roles if role.role == Role.AUTHORITY and role.role_status == RoleStatus.APPROVED),
            "admins": sum(1 for role in roles if role.role == Role.ADMIN and role.role_status == RoleStatus.APPROVED),
        }
    }

@router.post("/roles/{user_id}/approve", response_model=UserRoleRead)
async def approve_role(
    db: SessionDep,
    request: Request,
    user_id: uuid.UUID,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_ROLES))
):
    role = await load_role(db, user_id)
    state = access.approve(RoleState(role.role, role.role_status))
    role = await apply_state(db, request, role, state)
    logger.info(f"Admin {current_user.id} approved {role.role.value} role for {user_id}")
    return role

@router.post("/roles/{user_id}/reject", response_model=UserRoleRead)
async def reject_role(
    db: SessionDep,
    request: Request,
    user_id: uuid.UUID,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_ROLES))
):
    role = await load_role(db, user_id)
    requested = role.role
    state = access.reject(RoleState(role.role, role.role_status))
    role = await apply_state(db, request, role, state)
    logger.info(f"Admin {current_user.id} rejected {requested.value} request for {user_id}")
    return role

@router.put("/roles/{user_id}", response_model=UserRoleRead)
async def reassign_role(
    db: SessionDep,
    request: Request,
    user_id: uuid.UUID,
    assignment: RoleAssignment,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_ROLES))
):
    role = await load_role(db, user_id)
    state = access.reassign(RoleState(role.role, role.role_status), assignment.role)
    role = await apply_state(db, request, role, state)
    logger.info(f"Admin {current_user.id} set role {role.role.value} for {user_id}")
    return role

@router.get("/zones", response_model=List[DangerZoneRead])
async def list_zones(
    db: SessionDep,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_DANGER_ZONES))
):
    result = await db.execute(select(DangerZone).order_by(DangerZone.name))
    return result.scalars().all()

@router.post("/zones", response_model=DangerZoneRead, status_code=status.HTTP_201_CREATED)
async def create_zone(
    db: SessionDep,
    zone_data: DangerZoneCreate,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_DANGER_ZONES))
):
    name = zone_data.name.strip()
    result = await db.execute(select(DangerZone).where(DangerZone.name == name))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="A zone with this name already exists")

    zone = DangerZone(**zone_data.model_dump(exclude={"name"}), name=name, created_by=current_user.id)
    db.add(zone)
    await db.commit()
    await db.refresh(zone)

    logger.info(f"Danger zone '{zone.name}' added ({zone.radius_m}m)")
    return zone

@router.delete("/zones/{zone_id}")
async def delete_zone(
    db: SessionDep,
    zone_id: uuid.UUID,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_DANGER_ZONES))
) -> dict[str, str]:
    zone = await db.get(DangerZone, zone_id)
    if zone is None:
        raise HTTPException(status_code=404, detail="Zone not found")

    await db.delete(zone)
    await db.commit()
    logger.info(f"Danger zone '{zone.name}' removed")
    return {"message": "Zone removed"}
