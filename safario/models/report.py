from sqlmodel import SQLModel, Field, Column, DateTime
from datetime import datetime, timezone
from typing import Optional
from enum import Enum
import uuid

class IncidentType(str, Enum):
    THEFT = "theft"
    ASSAULT = "assault"
    FRAUD = "fraud"
    LOST_DOCUMENTS = "lost_documents"
    ACCIDENT = "accident"
    HARASSMENT = "harassment"
    OTHER = "other"

class FIRStatus(str, Enum):
    FILED = "filed"
    INVESTIGATING = "investigating"
    CLOSED = "closed"

class LostItemStatus(str, Enum):
    LOST = "lost"
    FOUND = "found"

class FIRReportBase(SQLModel):
    incident_type: IncidentType
    description: str = Field(min_length=1)
    location_lat: float = Field(ge=-90, le=90)
    location_lng: float = Field(ge=-180, le=180)

class FIRReport(FIRReportBase, table=True):
    __tablename__ = "fir_reports"

    id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user_accounts.id", index=True)
    fir_number: str = Field(unique=True, index=True)
    status: FIRStatus = FIRStatus.FILED
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class FIRReportCreate(FIRReportBase):
    pass

class FIRReportRead(FIRReportBase):
    id: uuid.UUID
    user_id: uuid.UUID
    fir_number: str
    status: FIRStatus
    created_at: datetime
    updated_at: datetime

class FIRStatusUpdate(SQLModel):
    status: FIRStatus

class LostItem(SQLModel, table=True):
    __tablename__ = "lost_items"

    id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user_accounts.id", index=True)
    item_name: str
    description: str
    image_url: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    status: LostItemStatus = LostItemStatus.LOST
    fir_report_id: Optional[uuid.UUID] = Field(default=None, foreign_key="fir_reports.id")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    found_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )

class LostItemRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    item_name: str
    description: str
    image_url: Optional[str]
    location_lat: Optional[float]
    location_lng: Optional[float]
    status: LostItemStatus
    fir_report_id: Optional[uuid.UUID]
    created_at: datetime
    found_at: Optional[datetime]
