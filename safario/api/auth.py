from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import SQLModel, Field, select
from jose import JWTError, jwt
from datetime import datetime, timezone, timedelta
from typing import Optional, Any, List
import logging
import uuid

import bcrypt
from sqlalchemy.ext.asyncio import AsyncSession

from safario.database import SessionDep
from safario.models.user import UserAccount, UserAccountRead, UserRole, Role, RoleStatus
from safario.models.otp import OTPRequest, OTPVerifyRequest
from safario.core import access
from safario.core.access import Action
from safario.services.otp import normalize_phone, send_otp, verify_otp
from safario.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()
security = HTTPBearer()

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt

def decode_token(token: str) -> Optional[uuid.UUID]:
    """User id carried by a token, or None when it is invalid or expired"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        subject = payload.get("sub")
        return uuid.UUID(subject) if subject else None
    except (JWTError, ValueError):
        return None

async def get_current_user(
    db: SessionDep,
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> UserAccount:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id = decode_token(credentials.credentials)
    if user_id is None:
        raise credentials_exception

    user = await db.get(UserAccount, user_id)
    if user is None or not user.is_active:
        raise credentials_exception

    return user

async def get_role(db: AsyncSession, user_id: uuid.UUID) -> UserRole:
    """The user's role row; accounts without one are plain approved users"""
    result = await db.execute(select(UserRole).where(UserRole.user_id == user_id))
    role = result.scalar_one_or_none()
    if role is None:
        return UserRole(user_id=user_id, role=Role.USER, role_status=RoleStatus.APPROVED)
    return role

def require_action(action: Action):
    """Dependency factory: the caller's role must permit ``action``"""

    async def dependency(
        db: SessionDep,
        current_user: UserAccount = Depends(get_current_user)
    ) -> UserAccount:
        role = await get_role(db, current_user.id)
        if not access.can(role.role, role.role_status, action):
            logger.warning(f"User {current_user.id} denied {action.value} ({role.role.value}/{role.role_status.value})")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You don't have permission to perform this action"
            )
        return current_user

    return dependency

async def assign_initial_role(
    db: AsyncSession,
    user_id: uuid.UUID,
    requested: Role,
    email: Optional[str] = None
) -> UserRole:
    if email is not None and email in settings.bootstrap_admin_emails:
        logger.warning(f"Granting bootstrap admin role to {user_id}")
        state = access.bootstrap_admin()
    else:
        state = access.create(requested)
    role = UserRole(user_id=user_id, role=state.role, role_status=state.status)
    db.add(role)
    return role

class SignUpRequest(SQLModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)
    requested_role: Role = Role.USER

class SignInRequest(SQLModel):
    email: str
    password: str

class TokenResponse(SQLModel):
    access_token: str
    token_type: str = "bearer"
    user_id: uuid.UUID
    role: Role
    role_status: RoleStatus

class MeResponse(UserAccountRead):
    role: Role
    role_status: RoleStatus
    permitted_actions: List[Action]

def token_response(user: UserAccount, role: UserRole) -> TokenResponse:
    access_token = create_access_token(
        data={"sub": str(user.id)},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return TokenResponse(
        access_token=access_token,
        user_id=user.id,
        role=role.role,
        role_status=role.role_status
    )

@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    signup_request: SignUpRequest,
    db: SessionDep
):
    email = signup_request.email.strip().lower()
    result = await db.execute(select(UserAccount).where(UserAccount.email == email))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="An account with this email already exists")

    user = UserAccount(
        email=email,
        password_hash=hash_password(signup_request.password),
        last_sign_in_at=datetime.now(timezone.utc)
    )
    db.add(user)
    role = await assign_initial_role(db, user.id, signup_request.requested_role, email)

    await db.commit()
    await db.refresh(user)
    await db.refresh(role)

    logger.info(f"Account {user.id} created with role {role.role.value} ({role.role_status.value})")
    return token_response(user, role)

@router.post("/signin", response_model=TokenResponse)
async def sign_in(
    signin_request: SignInRequest,
    db: SessionDep
):
    email = signin_request.email.strip().lower()
    result = await db.execute(select(UserAccount).where(UserAccount.email == email))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active or not verify_password(signin_request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    user.last_sign_in_at = datetime.now(timezone.utc)
    db.add(user)
    await db.commit()
    await db.refresh(user)

    role = await get_role(db, user.id)
    return token_response(user, role)

@router.post("/otp/send")
async def send_phone_otp(
    otp_request: OTPRequest,
    db: SessionDep
) -> dict[str, Any]:
    await send_otp(db, otp_request.phone_number)
    return {
        "success": True,
        "message": "OTP sent successfully",
        "expires_in_minutes": settings.OTP_EXPIRY_MINUTES
    }

@router.post("/otp/verify", response_model=TokenResponse)
async def verify_phone_otp(
    verify_request: OTPVerifyRequest,
    db: SessionDep
):
    phone = verify_request.phone_number
    if not await verify_otp(db, phone, verify_request.otp):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired OTP"
        )

    phone = normalize_phone(phone)

    result = await db.execute(select(UserAccount).where(UserAccount.phone_number == phone))
    user = result.scalar_one_or_none()
    if user is None:
        user = UserAccount(phone_number=phone)
        db.add(user)
        await assign_initial_role(db, user.id, Role.USER)
        logger.info(f"Account {user.id} created from phone sign-in")

    user.last_sign_in_at = datetime.now(timezone.utc)
    db.add(user)
    await db.commit()
    await db.refresh(user)

    role = await get_role(db, user.id)
    return token_response(user, role)

@router.get("/me", response_model=MeResponse)
async def get_me(
    db: SessionDep,
    current_user: UserAccount = Depends(get_current_user)
):
    role = await get_role(db, current_user.id)
    return MeResponse(
        **current_user.model_dump(),
        role=role.role,
        role_status=role.role_status,
        permitted_actions=sorted(access.permitted_actions(role.role, role.role_status), key=lambda a: a.value)
    )

@router.post("/signout")
async def sign_out(
    current_user: UserAccount = Depends(get_current_user)
) -> dict[str, str]:
    # Tokens are stateless; the client discards its copy
    logger.info(f"User {current_user.id} signed out")
    return {"message": "Signed out successfully"}
