import re
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlmodel import select

from safario.core.exceptions import InvalidPhoneNumber
from safario.models.otp import OTPCode
from safario.services.otp import normalize_phone

from conftest import run_db

PHONE = "+919876543210"

def sent_code(sms_mock) -> str:
    message = sms_mock.call_args.args[1]
    return re.search(r"code is: (\d+)", message).group(1)

@pytest.mark.parametrize("raw, expected", [
    ("+91 98765-43210", "+919876543210"),
    ("+1 (415) 555-2671", "+14155552671"),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected

@pytest.mark.parametrize("raw", ["9876543210", "+12345", "+1234567890123456789", ""])
def test_normalize_phone_rejects(raw):
    with pytest.raises(InvalidPhoneNumber):
        normalize_phone(raw)

def test_send_otp_never_returns_code(client, engine):
    sms = AsyncMock(return_value=True)
    with patch("safario.services.otp.sms_service.send_sms", new=sms):
        response = client.post("/api/auth/otp/send", json={"phone_number": PHONE})

    assert response.status_code == 200
    code = sent_code(sms)
    assert code not in response.text
    assert response.json()["expires_in_minutes"] == 10

    async def load(session):
        result = await session.execute(select(OTPCode))
        return result.scalars().all()

    rows = run_db(engine, load)
    assert len(rows) == 1
    assert rows[0].code_hash != code
    assert code not in rows[0].code_hash

def test_send_otp_rejects_missing_country_code(client):
    response = client.post("/api/auth/otp/send", json={"phone_number": "9876543210"})
    assert response.status_code == 400

def test_send_otp_sms_failure_is_502(client):
    with patch("safario.services.otp.sms_service.send_sms", new=AsyncMock(return_value=False)):
        response = client.post("/api/auth/otp/send", json={"phone_number": PHONE})
    assert response.status_code == 502

def test_verify_otp_signs_in(client):
    sms = AsyncMock(return_value=True)
    with patch("safario.services.otp.sms_service.send_sms", new=sms):
        client.post("/api/auth/otp/send", json={"phone_number": PHONE})

    response = client.post("/api/auth/otp/verify", json={"phone_number": PHONE, "otp": sent_code(sms)})
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "user"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.json()["phone_number"] == PHONE

    # Spent
    again = client.post("/api/auth/otp/verify", json={"phone_number": PHONE, "otp": sent_code(sms)})
    assert again.status_code == 401

def test_verify_otp_attempt_limit(client):
    sms = AsyncMock(return_value=True)
    with patch("safario.services.otp.sms_service.send_sms", new=sms):
        client.post("/api/auth/otp/send", json={"phone_number": PHONE})
    code = sent_code(sms)
    wrong = "000000" if code != "000000" else "111111"

    for _ in range(3):
        response = client.post("/api/auth/otp/verify", json={"phone_number": PHONE, "otp": wrong})
        assert response.status_code == 401

    response = client.post("/api/auth/otp/verify", json={"phone_number": PHONE, "otp": code})
    assert response.status_code == 401

def test_expired_otp_rejected(client, engine):
    sms = AsyncMock(return_value=True)
    with patch("safario.services.otp.sms_service.send_sms", new=sms):
        client.post("/api/auth/otp/send", json={"phone_number": PHONE})

    async def expire(session):
        result = await session.execute(select(OTPCode))
        otp = result.scalar_one()
        otp.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        session.add(otp)

    run_db(engine, expire)

    response = client.post("/api/auth/otp/verify", json={"phone_number": PHONE, "otp": sent_code(sms)})
    assert response.status_code == 401
