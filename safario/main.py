from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from typing import Dict, Set, Any
from datetime import datetime, timezone
from pathlib import Path
import json
import logging

from safario.config import settings
from safario.database import create_db_and_tables, AsyncSessionLocal
from safario.api import auth, profiles, emergency, fir, lost_items, authority, admin
from safario.api import map as map_api
from safario.core import access
from safario.core.access import Action
from safario.core.exceptions import InvalidTransition, InvalidPhoneNumber, UpstreamServiceError
from safario.core.geofencing import GeofenceRegistry
from safario.models.user import UserAccount

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

# Lifespan manager for startup/shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await create_db_and_tables()
    logger.info("Application starting up")
    yield
    # Shutdown
    logger.info("Application shutting down")

app = FastAPI(
    title="Safario API",
    description="Tourist safety: digital ID, SOS alerts, geofencing, FIR and lost & found",
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(profiles.router, prefix="/api/profiles", tags=["Profiles"])
app.include_router(emergency.router, prefix="/api/emergency", tags=["Emergency"])
app.include_router(fir.router, prefix="/api/fir", tags=["FIR"])
app.include_router(lost_items.router, prefix="/api/lost-items", tags=["Lost & Found"])
app.include_router(authority.router, prefix="/api/authority", tags=["Authority"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
app.include_router(map_api.router, prefix="/api/map", tags=["Map"])

# Uploaded images
Path(settings.STORAGE_DIR).mkdir(parents=True, exist_ok=True)
app.mount("/storage", StaticFiles(directory=settings.STORAGE_DIR), name="storage")

@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})

@app.exception_handler(InvalidPhoneNumber)
async def invalid_phone_handler(request: Request, exc: InvalidPhoneNumber):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

@app.exception_handler(UpstreamServiceError)
async def upstream_error_handler(request: Request, exc: UpstreamServiceError):
    logger.error(f"Upstream failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": f"The {exc.service} service is currently unavailable"}
    )

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )

# WebSocket connection manager
class ConnectionManager:
    """
    Per-user channels plus a shared channel for approved authorities.
    Delivery is best effort: no ordering or replay.
    """

    def __init__(self):
        self.active_connections: Dict[str, Set[WebSocket]] = {}
        self.authority_connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket, user_id: str, is_authority: bool = False):
        await websocket.accept()
        self.active_connections.setdefault(user_id, set()).add(websocket)
        if is_authority:
            self.authority_connections.add(websocket)
        logger.info(f"WebSocket connected: {user_id}")

    def disconnect(self, websocket: WebSocket, user_id: str):
        connections = self.active_connections.get(user_id)
        if connections is not None:
            connections.discard(websocket)
            if not connections:
                del self.active_connections[user_id]
        self.authority_connections.discard(websocket)
        logger.info(f"WebSocket disconnected: {user_id}")

    async def _send(self, websocket: WebSocket, data: Dict[str, Any]) -> bool:
        try:
            await websocket.send_text(json.dumps(data, default=str))
            return True
        except (RuntimeError, WebSocketDisconnect) as e:
            logger.warning(f"Dropping WebSocket after send failure: {e}")
            return False

    async def send_to_user(self, user_id: str, data: Dict[str, Any]):
        for websocket in list(self.active_connections.get(user_id, ())):
            if not await self._send(websocket, data):
                self.disconnect(websocket, user_id)

    def set_authority(self, user_id: str, allowed: bool):
        """Add or remove a user's open sockets on the authority channel after a role change"""
        connections = self.active_connections.get(user_id, set())
        if allowed:
            self.authority_connections.update(connections)
        else:
            self.authority_connections.difference_update(connections)
        logger.info(f"Authority channel {'granted to' if allowed else 'revoked for'} {user_id}")

    async def send_to_authorities(self, data: Dict[str, Any]):
        for websocket in list(self.authority_connections):
            if not await self._send(websocket, data):
                self.authority_connections.discard(websocket)

    @property
    def connection_count(self) -> int:
        return sum(len(connections) for connections in self.active_connections.values())

manager = ConnectionManager()

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: str = ""):
    user_id = auth.decode_token(token)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async with AsyncSessionLocal() as db:
        user = await db.get(UserAccount, user_id)
        if user is None or not user.is_active:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return
        role = await auth.get_role(db, user_id)
    is_authority = access.can(role.role, role.role_status, Action.VIEW_AUTHORITY_PORTAL)

    channel = str(user_id)
    await manager.connect(websocket, channel, is_authority)
    try:
        while True:
            # Keep connection alive and handle incoming messages
            await websocket.receive_text()
            await websocket.send_text(json.dumps({
                "type": "heartbeat",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }))
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error for {channel}: {e}")
    finally:
        manager.disconnect(websocket, channel)

@app.get("/")
async def root():
    return {
        "message": "Safario API",
        "status": "active",
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

# Health check endpoint
@app.get("/health")
async def health_check() -> dict[str, Any]:
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "active_connections": manager.connection_count,
        "monitored_users": len(app.state.geofence_registry)
    }

# Make shared state available to routers
app.state.websocket_manager = manager
app.state.geofence_registry = GeofenceRegistry(settings.SAFE_PERIMETER_RADIUS_M)
