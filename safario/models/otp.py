from sqlmodel import SQLModel, Field, Column, DateTime
from datetime import datetime, timezone
from typing import Optional
import uuid

class OTPCode(SQLModel, table=True):
    """Server-held one-time code. Only a hash of the code is stored."""
    __tablename__ = "otp_codes"

    id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, primary_key=True)
    phone_number: str = Field(index=True)
    code_hash: str
    attempts: int = 0
    consumed: bool = False
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    expires_at: datetime = Field(sa_column=Column(DateTime(timezone=True)))

    def is_expired(self) -> bool:
        expires_at = self.expires_at
        # SQLite hands back naive datetimes
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) > expires_at

class OTPRequest(SQLModel):
    phone_number: str

class OTPVerifyRequest(SQLModel):
    phone_number: str
    otp: str
