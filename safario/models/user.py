from sqlmodel import SQLModel, Field, Column, DateTime
from datetime import datetime, timezone
from typing import Optional
from enum import Enum
import uuid

class Role(str, Enum):
    USER = "user"
    AUTHORITY = "authority"
    ADMIN = "admin"

class RoleStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class UserAccountBase(SQLModel):
    email: Optional[str] = Field(default=None, unique=True, index=True)
    phone_number: Optional[str] = Field(default=None, unique=True, index=True)
    is_active: bool = True

class UserAccount(UserAccountBase, table=True):
    __tablename__ = "user_accounts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    password_hash: Optional[str] = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    last_sign_in_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )

class UserAccountRead(UserAccountBase):
    id: uuid.UUID
    created_at: datetime

class UserRoleBase(SQLModel):
    role: Role = Role.USER
    role_status: RoleStatus = RoleStatus.APPROVED

class UserRole(UserRoleBase, table=True):
    """The single role row that drives access control for a user."""
    __tablename__ = "user_roles"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user_accounts.id", unique=True, index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class UserRoleRead(UserRoleBase):
    id: uuid.UUID
    user_id: uuid.UUID

class RoleAssignment(SQLModel):
    role: Role
