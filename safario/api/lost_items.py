from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form, status
from sqlmodel import select, desc
from typing import Any, List, Optional
import logging

from safario.database import SessionDep
from safario.models.user import UserAccount
from safario.models.report import FIRReport, FIRReportRead, IncidentType, LostItem, LostItemRead
from safario.core.access import Action
from safario.core.geofencing import validate_coordinates
from safario.core.reports import generate_lost_item_fir_number, lost_item_fir_description
from safario.api.auth import require_action
from safario.utils.storage import object_storage

logger = logging.getLogger(__name__)

router = APIRouter()

RECENT_LIMIT = 10

@router.post("/", status_code=status.HTTP_201_CREATED)
async def report_lost_item(
    db: SessionDep,
    item_name: str = Form(...),
    description: str = Form(...),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    image: Optional[UploadFile] = File(None),
    current_user: UserAccount = Depends(require_action(Action.REPORT_LOST_ITEM))
) -> dict[str, Any]:
    item_name = item_name.strip()
    description = description.strip()
    if not item_name or not description:
        raise HTTPException(status_code=400, detail="Please fill in all required fields")

    has_location = latitude is not None and longitude is not None
    if has_location:
        errors = validate_coordinates(latitude, longitude)
        if errors:
            raise HTTPException(status_code=400, detail="; ".join(errors))

    image_url = None
    if image is not None and image.filename:
        content = await image.read()
        try:
            image_url = object_storage.upload(
                "lost-items",
                str(current_user.id),
                content,
                image.content_type or ""
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    item = LostItem(
        user_id=current_user.id,
        item_name=item_name,
        description=description,
        image_url=image_url,
        location_lat=latitude if has_location else None,
        location_lng=longitude if has_location else None
    )

    # A located report also files one FIR in the same commit
    fir = None
    if has_location:
        fir = FIRReport(
            user_id=current_user.id,
            fir_number=generate_lost_item_fir_number(),
            incident_type=IncidentType.LOST_DOCUMENTS,
            description=lost_item_fir_description(item_name, description),
            location_lat=latitude,
            location_lng=longitude
        )
        db.add(fir)
        item.fir_report_id = fir.id

    db.add(item)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        if image_url:
            object_storage.delete(image_url)
        raise
    await db.refresh(item)
    if fir is not None:
        await db.refresh(fir)
        logger.info(f"Lost item {item.id} reported with {fir.fir_number}")
    else:
        logger.info(f"Lost item {item.id} reported without location")

    return {
        "message": "Lost item reported successfully",
        "item": LostItemRead.model_validate(item),
        "fir": FIRReportRead.model_validate(fir) if fir is not None else None
    }

@router.get("/mine", response_model=List[LostItemRead])
async def get_my_lost_items(
    db: SessionDep,
    current_user: UserAccount = Depends(require_action(Action.REPORT_LOST_ITEM))
):
    result = await db.execute(
        select(LostItem)
        .where(LostItem.user_id == current_user.id)
        .order_by(desc(LostItem.created_at))
        .limit(RECENT_LIMIT)
    )
    return result.scalars().all()
