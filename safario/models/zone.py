from sqlmodel import SQLModel, Field, Column, DateTime
from datetime import datetime, timezone
from typing import Optional
import uuid

class DangerZoneBase(SQLModel):
    name: str = Field(min_length=1, unique=True, index=True)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius_m: float = Field(gt=0)
    description: Optional[str] = None

class DangerZone(DangerZoneBase, table=True):
    __tablename__ = "danger_zones"

    id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, primary_key=True)
    created_by: uuid.UUID = Field(foreign_key="user_accounts.id")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class DangerZoneCreate(DangerZoneBase):
    pass

class DangerZoneRead(DangerZoneBase):
    id: uuid.UUID
    created_by: uuid.UUID
    created_at: datetime
