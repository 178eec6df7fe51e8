from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional
import logging
import uuid

from safario.database import SessionDep
from safario.models.user import UserAccount
from safario.models.profile import Profile, ProfileCreate, ProfileRead, ProfileUpdate, DigitalIDCard
from safario.core.access import Action
from safario.api.auth import require_action
from safario.utils.storage import object_storage

logger = logging.getLogger(__name__)

router = APIRouter()

UNKNOWN_REPORTER = "Unknown"

def id_card_number(user_id: uuid.UUID) -> str:
    return f"SAF-{user_id.hex[:8].upper()}"

async def get_profiles_by_id(db: AsyncSession, user_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, Profile]:
    ids = set(user_ids)
    if not ids:
        return {}
    result = await db.execute(select(Profile).where(Profile.id.in_(ids)))
    return {profile.id: profile for profile in result.scalars().all()}

def reporter_fields(profile: Optional[Profile]) -> Dict[str, Any]:
    """Name and phone shown next to a record in the authority and admin views"""
    if profile is None:
        return {"full_name": UNKNOWN_REPORTER, "phone_number": UNKNOWN_REPORTER}
    return {
        "full_name": profile.full_name,
        "phone_number": profile.phone_number or UNKNOWN_REPORTER,
    }

async def load_own_profile(db: AsyncSession, user_id: uuid.UUID) -> Profile:
    profile = await db.get(Profile, user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found. Generate your digital ID first.")
    return profile

@router.post("/", response_model=ProfileRead, status_code=status.HTTP_201_CREATED)
async def create_profile(
    db: SessionDep,
    profile_data: ProfileCreate,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_OWN_PROFILE))
):
    if await db.get(Profile, current_user.id) is not None:
        raise HTTPException(status_code=409, detail="Profile already exists")

    profile = Profile(
        **profile_data.model_dump(),
        id=current_user.id,
        phone_number=current_user.phone_number
    )
    db.add(profile)
    await db.commit()
    await db.refresh(profile)

    logger.info(f"Digital ID generated for {current_user.id}")
    return profile

@router.get("/me", response_model=ProfileRead)
async def get_my_profile(
    db: SessionDep,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_OWN_PROFILE))
):
    return await load_own_profile(db, current_user.id)

@router.patch("/me", response_model=ProfileRead)
async def update_my_profile(
    db: SessionDep,
    updates: ProfileUpdate,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_OWN_PROFILE))
):
    profile = await load_own_profile(db, current_user.id)

    changes = updates.model_dump(exclude_unset=True)
    if "full_name" in changes and not (changes["full_name"] or "").strip():
        raise HTTPException(status_code=400, detail="Full name cannot be empty")
    for key, value in changes.items():
        if key in ("passport_number", "aadhar_number"):
            if value is not None and not value.strip():
                value = None
        elif value is None:
            # Required fields cannot be cleared
            continue
        setattr(profile, key, value)

    profile.updated_at = datetime.now(timezone.utc)
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile

@router.post("/me/photo", response_model=ProfileRead)
async def upload_profile_photo(
    db: SessionDep,
    photo: UploadFile = File(...),
    current_user: UserAccount = Depends(require_action(Action.MANAGE_OWN_PROFILE))
):
    profile = await load_own_profile(db, current_user.id)

    content = await photo.read()
    try:
        url = object_storage.upload(
            "profile-photos",
            str(current_user.id),
            content,
            photo.content_type or ""
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    profile.profile_image_url = url
    profile.updated_at = datetime.now(timezone.utc)
    db.add(profile)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        object_storage.delete(url)
        raise
    await db.refresh(profile)
    return profile

@router.get("/me/id-card", response_model=DigitalIDCard)
async def get_my_id_card(
    db: SessionDep,
    current_user: UserAccount = Depends(require_action(Action.MANAGE_OWN_PROFILE))
):
    profile = await load_own_profile(db, current_user.id)
    return DigitalIDCard(
        id_number=id_card_number(profile.id),
        full_name=profile.full_name,
        date_of_birth=profile.date_of_birth,
        gender=profile.gender,
        passport_number=profile.passport_number,
        aadhar_number=profile.aadhar_number,
        preferred_language=profile.preferred_language,
        profile_image_url=profile.profile_image_url,
        issued_at=profile.created_at
    )
