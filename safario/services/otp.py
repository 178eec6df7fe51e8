import hashlib
import hmac
import logging
import re
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from safario.config import settings
from safario.core.exceptions import InvalidPhoneNumber, UpstreamServiceError
from safario.models.otp import OTPCode
from safario.utils.notifications import SMSService, mask_phone

logger = logging.getLogger(__name__)

sms_service = SMSService()

def normalize_phone(phone_number: str) -> str:
    """
    Reduce a phone number to E.164 form: a leading "+" followed by digits.

    Raises:
        InvalidPhoneNumber: when there is no leading "+" or the digit count is
            outside what E.164 allows
    """
    raw = (phone_number or "").strip()
    if not raw.startswith("+"):
        raise InvalidPhoneNumber("Phone number must include country code (e.g., +91)")

    normalized = "+" + re.sub(r"\D", "", raw[1:])
    if len(normalized) < 10 or len(normalized) > 16:
        raise InvalidPhoneNumber("Invalid phone number")
    return normalized

def generate_code(length: int) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))

def hash_code(phone_number: str, code: str) -> str:
    # Salt with the number so equal codes for different phones hash apart
    return hashlib.sha256(f"{phone_number}:{code}".encode()).hexdigest()

async def send_otp(db: AsyncSession, phone_number: str) -> str:
    """
    Issue a fresh code for the number and text it out.
    Earlier outstanding codes for the same number are consumed.

    Returns:
        The normalized phone number. The code itself never leaves this module.
    """
    phone = normalize_phone(phone_number)

    result = await db.execute(
        select(OTPCode).where(OTPCode.phone_number == phone, OTPCode.consumed == False)  # noqa: E712
    )
    for stale in result.scalars().all():
        stale.consumed = True
        db.add(stale)

    code = generate_code(settings.OTP_LENGTH)
    otp = OTPCode(
        phone_number=phone,
        code_hash=hash_code(phone, code),
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=settings.OTP_EXPIRY_MINUTES),
    )
    db.add(otp)

    message = (
        f"Your Safario verification code is: {code}. "
        f"Valid for {settings.OTP_EXPIRY_MINUTES} minutes."
    )
    sent = await sms_service.send_sms(phone, message)
    if not sent:
        await db.rollback()
        raise UpstreamServiceError("sms", "verification code could not be delivered")

    await db.commit()
    logger.info(f"Verification code issued for {mask_phone(phone)}")
    return phone

async def verify_otp(db: AsyncSession, phone_number: str, code: str) -> bool:
    """
    Check a submitted code against the newest outstanding one for the number.
    A code is spent once verified, expired, or out of attempts.
    """
    phone = normalize_phone(phone_number)

    result = await db.execute(
        select(OTPCode)
        .where(OTPCode.phone_number == phone, OTPCode.consumed == False)  # noqa: E712
        .order_by(OTPCode.created_at.desc())
    )
    otp = result.scalars().first()
    if otp is None:
        logger.warning(f"No outstanding code for {mask_phone(phone)}")
        return False

    if otp.is_expired() or otp.attempts >= settings.OTP_MAX_ATTEMPTS:
        otp.consumed = True
        db.add(otp)
        await db.commit()
        logger.warning(f"Code for {mask_phone(phone)} expired or exhausted")
        return False

    otp.attempts += 1
    matched = hmac.compare_digest(otp.code_hash, hash_code(phone, (code or "").strip()))
    if matched or otp.attempts >= settings.OTP_MAX_ATTEMPTS:
        otp.consumed = True
    db.add(otp)
    await db.commit()

    if matched:
        logger.info(f"Phone {mask_phone(phone)} verified")
    else:
        logger.warning(f"Wrong code for {mask_phone(phone)} (attempt {otp.attempts})")
    return matched
