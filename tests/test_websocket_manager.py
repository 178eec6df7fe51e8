import asyncio
import json
import uuid

from safario.main import ConnectionManager, app, websocket_endpoint
from safario.models.user import UserAccount

from conftest import run_db, signup

class FakeSocket:
    def __init__(self, broken=False):
        self.broken = broken
        self.accepted = False
        self.closed_with = None
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def close(self, code=1000):
        self.closed_with = code

    async def send_text(self, text):
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(text))

def test_user_and_authority_channels():
    manager = ConnectionManager()
    traveller, officer = FakeSocket(), FakeSocket()

    async def scenario():
        await manager.connect(traveller, "traveller")
        await manager.connect(officer, "officer", is_authority=True)
        await manager.send_to_user("traveller", {"type": "fir_update"})
        await manager.send_to_authorities({"type": "emergency_alert"})
        await manager.send_to_user("nobody", {"type": "ignored"})

    asyncio.run(scenario())

    assert traveller.accepted and officer.accepted
    assert traveller.sent == [{"type": "fir_update"}]
    assert officer.sent == [{"type": "emergency_alert"}]
    assert manager.connection_count == 2

def test_broken_sockets_are_dropped():
    manager = ConnectionManager()
    healthy, broken = FakeSocket(), FakeSocket(broken=True)

    async def scenario():
        await manager.connect(healthy, "traveller")
        await manager.connect(broken, "traveller", is_authority=True)
        await manager.send_to_user("traveller", {"type": "fir_update"})
        await manager.send_to_authorities({"type": "emergency_alert"})

    asyncio.run(scenario())

    assert healthy.sent == [{"type": "fir_update"}]
    assert manager.active_connections == {"traveller": {healthy}}
    assert manager.authority_connections == set()

def test_disconnect_removes_empty_channel():
    manager = ConnectionManager()
    socket = FakeSocket()

    asyncio.run(manager.connect(socket, "traveller", is_authority=True))
    manager.disconnect(socket, "traveller")

    assert manager.active_connections == {}
    assert manager.authority_connections == set()
    assert manager.connection_count == 0

class DroppedSocket(FakeSocket):
    async def receive_text(self):
        raise RuntimeError("transport lost")

def token_of(account):
    return account["headers"]["Authorization"].split()[1]

def send_alert(client, account):
    response = client.post(
        "/api/emergency/alerts",
        json={"latitude": 26.92, "longitude": 75.82},
        headers=account["headers"]
    )
    assert response.status_code == 201

def test_authority_channel_follows_role_changes():
    manager = ConnectionManager()
    socket = FakeSocket()

    async def scenario():
        await manager.connect(socket, "officer", is_authority=True)
        manager.set_authority("officer", False)
        await manager.send_to_authorities({"type": "emergency_alert"})
        manager.set_authority("officer", True)
        await manager.send_to_authorities({"type": "emergency_alert", "n": 2})

    asyncio.run(scenario())

    assert socket.sent == [{"type": "emergency_alert", "n": 2}]
    assert manager.active_connections == {"officer": {socket}}

def test_demoted_authority_stops_receiving_alerts(client, traveller, authority, admin):
    manager = app.state.websocket_manager
    officer = FakeSocket()
    asyncio.run(manager.connect(officer, authority["id"], is_authority=True))
    try:
        send_alert(client, traveller)
        assert [m["type"] for m in officer.sent] == ["emergency_alert"]

        demoted = client.put(
            f"/api/admin/roles/{authority['id']}",
            json={"role": "user"},
            headers=admin["headers"]
        )
        assert demoted.status_code == 200

        send_alert(client, traveller)
        assert len(officer.sent) == 1
    finally:
        manager.disconnect(officer, authority["id"])

def test_approved_authority_joins_alert_channel(client, traveller, admin):
    applicant = signup(client, role="authority")
    manager = app.state.websocket_manager
    socket = FakeSocket()
    asyncio.run(manager.connect(socket, applicant["id"], is_authority=False))
    try:
        client.post(f"/api/admin/roles/{applicant['id']}/approve", headers=admin["headers"])
        send_alert(client, traveller)
    finally:
        manager.disconnect(socket, applicant["id"])

    assert [m["type"] for m in socket.sent] == ["emergency_alert"]

def test_inactive_account_cannot_open_socket(client, engine, traveller):
    async def deactivate(session):
        user = await session.get(UserAccount, uuid.UUID(traveller["id"]))
        user.is_active = False
        session.add(user)

    run_db(engine, deactivate)

    socket = FakeSocket()
    asyncio.run(websocket_endpoint(socket, token=token_of(traveller)))

    assert not socket.accepted
    assert socket.closed_with == 1008

def test_socket_error_releases_channel(client, authority):
    manager = app.state.websocket_manager
    socket = DroppedSocket()

    asyncio.run(websocket_endpoint(socket, token=token_of(authority)))

    assert socket.accepted
    assert authority["id"] not in manager.active_connections
    assert socket not in manager.authority_connections
