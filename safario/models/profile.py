from sqlmodel import SQLModel, Field, Column, DateTime
from pydantic import field_validator
from datetime import date, datetime, timezone
from typing import Optional
from enum import Enum
import uuid

SUPPORTED_LANGUAGES = (
    "English", "Hindi", "Marathi", "French", "Spanish",
    "Gujarati", "Tamil", "Telugu", "Bengali",
)

class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"

class ProfileBase(SQLModel):
    full_name: str = Field(min_length=1, max_length=120)
    gender: Gender
    age: int = Field(ge=1, le=120)
    date_of_birth: date
    passport_number: Optional[str] = None
    aadhar_number: Optional[str] = None
    preferred_language: str = "English"

    @field_validator("preferred_language")
    @classmethod
    def check_language(cls, value: str) -> str:
        if value not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {value}")
        return value

    @field_validator("passport_number", "aadhar_number")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

class Profile(ProfileBase, table=True):
    __tablename__ = "profiles"

    # Same id as the owning account
    id: uuid.UUID = Field(foreign_key="user_accounts.id", primary_key=True)
    phone_number: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class ProfileCreate(ProfileBase):
    pass

class ProfileRead(ProfileBase):
    id: uuid.UUID
    phone_number: Optional[str]
    profile_image_url: Optional[str]
    created_at: datetime
    updated_at: datetime

class ProfileUpdate(SQLModel):
    full_name: Optional[str] = None
    gender: Optional[Gender] = None
    age: Optional[int] = Field(default=None, ge=1, le=120)
    date_of_birth: Optional[date] = None
    passport_number: Optional[str] = None
    aadhar_number: Optional[str] = None
    preferred_language: Optional[str] = None

    @field_validator("preferred_language")
    @classmethod
    def check_language(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {value}")
        return value

class DigitalIDCard(SQLModel):
    id_number: str
    full_name: str
    date_of_birth: date
    gender: Gender
    passport_number: Optional[str]
    aadhar_number: Optional[str]
    preferred_language: str
    profile_image_url: Optional[str]
    issued_at: datetime
