from fastapi import APIRouter, Depends, status
from sqlmodel import select, desc
from typing import List
import logging

from safario.database import SessionDep
from safario.models.user import UserAccount
from safario.models.report import FIRReport, FIRReportCreate, FIRReportRead
from safario.core.access import Action
from safario.core.reports import generate_fir_number
from safario.api.auth import require_action

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/", response_model=FIRReportRead, status_code=status.HTTP_201_CREATED)
async def file_fir(
    db: SessionDep,
    fir_data: FIRReportCreate,
    current_user: UserAccount = Depends(require_action(Action.FILE_FIR))
):
    fir = FIRReport(
        **fir_data.model_dump(),
        user_id=current_user.id,
        fir_number=generate_fir_number()
    )
    db.add(fir)
    await db.commit()
    await db.refresh(fir)

    logger.info(f"FIR {fir.fir_number} filed ({fir.incident_type.value})")
    return fir

@router.get("/mine", response_model=List[FIRReportRead])
async def get_my_firs(
    db: SessionDep,
    current_user: UserAccount = Depends(require_action(Action.FILE_FIR))
):
    result = await db.execute(
        select(FIRReport)
        .where(FIRReport.user_id == current_user.id)
        .order_by(desc(FIRReport.created_at))
    )
    return result.scalars().all()
