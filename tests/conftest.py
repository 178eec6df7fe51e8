import asyncio
import os
import tempfile
import uuid

# Settings are read at import time
_TMP = tempfile.mkdtemp(prefix="safario-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP}/import.db")
os.environ.setdefault("STORAGE_DIR", os.path.join(_TMP, "storage"))
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

import safario.models  # noqa: F401
from safario import database
from safario.core.geofencing import GeofenceRegistry
from safario.main import app
from safario.models.user import UserRole, Role, RoleStatus

@pytest.fixture
def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db", poolclass=NullPool)

    async def create_all():
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    asyncio.run(create_all())
    database.AsyncSessionLocal.configure(bind=engine)
    yield engine
    asyncio.run(engine.dispose())

@pytest.fixture
def client(engine):
    # Tables come from the engine fixture, so the lifespan is not entered
    app.state.geofence_registry = GeofenceRegistry(2000)
    yield TestClient(app)

def run_db(engine, fn):
    """Run ``fn(session)`` in a fresh session and return its result"""

    async def runner():
        async with database.AsyncSessionLocal() as session:
            result = await fn(session)
            await session.commit()
            return result

    return asyncio.run(runner())

def signup(client, email=None, role="user", password="secret123"):
    email = email or f"{uuid.uuid4().hex[:8]}@example.com"
    response = client.post("/api/auth/signup", json={
        "email": email,
        "password": password,
        "requested_role": role,
    })
    assert response.status_code == 201, response.text
    body = response.json()
    return {
        "id": body["user_id"],
        "email": email,
        "headers": {"Authorization": f"Bearer {body['access_token']}"},
        "body": body,
    }

def force_role(engine, user_id, role: Role, status: RoleStatus = RoleStatus.APPROVED):
    from sqlmodel import select

    async def update(session):
        result = await session.execute(select(UserRole).where(UserRole.user_id == uuid.UUID(user_id)))
        row = result.scalar_one()
        row.role = role
        row.role_status = status
        session.add(row)

    run_db(engine, update)

@pytest.fixture
def traveller(client):
    return signup(client)

@pytest.fixture
def authority(client, engine):
    account = signup(client, role="authority")
    force_role(engine, account["id"], Role.AUTHORITY)
    return account

@pytest.fixture
def admin(client, engine):
    account = signup(client, role="admin")
    force_role(engine, account["id"], Role.ADMIN)
    return account

PROFILE = {
    "full_name": "Asha Traveller",
    "gender": "female",
    "age": 29,
    "date_of_birth": "1996-04-12",
    "passport_number": "P1234567",
    "aadhar_number": "",
    "preferred_language": "Hindi",
}
