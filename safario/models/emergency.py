from sqlmodel import SQLModel, Field, Column, DateTime
from datetime import datetime, timezone
from typing import Optional
from enum import Enum
import uuid

class AlertStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"

class EmergencyAlertBase(SQLModel):
    location_lat: float = Field(ge=-90, le=90)
    location_lng: float = Field(ge=-180, le=180)
    alert_type: str = "emergency"

class EmergencyAlert(EmergencyAlertBase, table=True):
    __tablename__ = "emergency_alerts"

    id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user_accounts.id", index=True)
    status: AlertStatus = AlertStatus.ACTIVE
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

    # Response tracking
    responder_id: Optional[uuid.UUID] = Field(default=None, foreign_key="user_accounts.id")
    response_notes: Optional[str] = None
    responded_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    contacts_notified: bool = False

class EmergencyAlertRead(EmergencyAlertBase):
    id: uuid.UUID
    user_id: uuid.UUID
    status: AlertStatus
    created_at: datetime
    responder_id: Optional[uuid.UUID]
    response_notes: Optional[str]
    responded_at: Optional[datetime]
    contacts_notified: bool

class EmergencyRequest(SQLModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    alert_type: str = "emergency"

class AlertResolution(SQLModel):
    response_notes: str

class EmergencyContactBase(SQLModel):
    name: str = Field(min_length=1)
    relationship: str = Field(min_length=1)
    phone_number: str = Field(min_length=5)
    email: Optional[str] = None

class EmergencyContact(EmergencyContactBase, table=True):
    __tablename__ = "emergency_contacts"

    id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user_accounts.id", index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class EmergencyContactCreate(EmergencyContactBase):
    pass

class EmergencyContactRead(EmergencyContactBase):
    id: uuid.UUID
    user_id: uuid.UUID
    created_at: datetime
