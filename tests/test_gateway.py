"""Tests for the real-time messaging gateway, driven with in-memory connections."""

import asyncio
import json
import uuid

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import AsyncClient
from starlette.websockets import WebSocketDisconnect

from app.main import app
from app.services import message_service
from app.services.messaging_gateway import ConnectionManager, GatewayClient, MessagingGateway


OPENING = "Salam, is the room on Avenue Fal Ould Oumeir still free?"


class FakeTransport:
    """Collects every payload sent to the connection."""

    def __init__(self, fail: bool = False, stall: float = 0):
        self.sent: list[dict] = []
        self.fail = fail
        self.stall = stall

    async def send_json(self, payload: dict) -> None:
        if self.fail:
            raise ConnectionError("connection closed")
        if self.stall:
            await asyncio.sleep(self.stall)
        self.sent.append(payload)

    def of_type(self, event_type: str) -> list[dict]:
        return [p for p in self.sent if p["type"] == event_type]


@pytest_asyncio.fixture
async def gateway(session_factory) -> MessagingGateway:
    return MessagingGateway(session_factory, ConnectionManager(), operation_timeout=2.0)


@pytest_asyncio.fixture
async def conversation(client: AsyncClient, make_user) -> dict:
    """Two users whose thread holds one opening message from B, plus an outsider."""
    token_a, user_a = await make_user("amina@example.com")
    token_b, user_b = await make_user("fatima@example.com")
    outsider_token, outsider = await make_user("youssef@example.com")
    response = await client.post(
        "/api/v1/messages/",
        json={"recipient_id": user_a, "content": OPENING},
        headers={"Authorization": f"Bearer {token_b}"},
    )
    return {
        "thread_id": response.json()["thread_id"],
        "token_a": token_a,
        "token_b": token_b,
        "user_a": uuid.UUID(user_a),
        "user_b": uuid.UUID(user_b),
        "outsider": uuid.UUID(outsider),
        "outsider_token": outsider_token,
    }


async def connect(gateway: MessagingGateway, user_id: uuid.UUID, **kwargs):
    transport = FakeTransport(**kwargs)
    client = await gateway.connect(user_id, transport)
    return client, transport


@pytest.mark.asyncio
async def test_authenticate(gateway: MessagingGateway, conversation: dict):
    assert await gateway.authenticate(conversation["token_a"]) == conversation["user_a"]
    assert await gateway.authenticate("not-a-token") is None
    assert await gateway.authenticate(None) is None


@pytest.mark.asyncio
async def test_join_and_send_broadcasts_to_room(gateway: MessagingGateway, conversation: dict):
    thread_id = conversation["thread_id"]
    client_a, transport_a = await connect(gateway, conversation["user_a"])
    client_b, transport_b = await connect(gateway, conversation["user_b"])

    await gateway.handle_event(client_a, {"type": "join_thread", "thread_id": thread_id})
    await gateway.handle_event(client_b, {"type": "join_thread", "thread_id": thread_id})
    await gateway.handle_event(
        client_a,
        {"type": "send_message", "thread_id": thread_id, "content": "Salam! Still looking?"},
    )

    assert transport_a.of_type("joined") == [{"type": "joined", "thread_id": thread_id}]
    received_a = transport_a.of_type("message_new")
    received_b = transport_b.of_type("message_new")
    assert len(received_a) == 1
    assert len(received_b) == 1
    message = received_b[0]["message"]
    assert message["content"] == "Salam! Still looking?"
    assert message["sender_id"] == str(conversation["user_a"])
    assert message["recipient_id"] == str(conversation["user_b"])
    assert transport_a.of_type("error") == []


@pytest.mark.asyncio
async def test_recipient_receipt_marks_delivered(
    gateway: MessagingGateway, conversation: dict, session_factory
):
    thread_id = conversation["thread_id"]
    client_a, _ = await connect(gateway, conversation["user_a"])
    client_b, _ = await connect(gateway, conversation["user_b"])
    for client in (client_a, client_b):
        await gateway.handle_event(client, {"type": "join_thread", "thread_id": thread_id})

    await gateway.handle_event(
        client_a, {"type": "send_message", "thread_id": thread_id, "content": "hello"}
    )

    async with session_factory() as db:
        messages = await message_service.get_messages(db, uuid.UUID(thread_id))
    assert messages[-1].status == "delivered"


@pytest.mark.asyncio
async def test_message_stays_sent_without_recipient_online(
    gateway: MessagingGateway, conversation: dict, session_factory
):
    thread_id = conversation["thread_id"]
    client_a, transport_a = await connect(gateway, conversation["user_a"])
    await gateway.handle_event(client_a, {"type": "join_thread", "thread_id": thread_id})

    await gateway.handle_event(
        client_a, {"type": "send_message", "thread_id": thread_id, "content": "hello"}
    )

    assert len(transport_a.of_type("message_new")) == 1
    async with session_factory() as db:
        messages = await message_service.get_messages(db, uuid.UUID(thread_id))
        thread = await message_service.get_thread_by_id(db, uuid.UUID(thread_id))
    assert messages[-1].status == "sent"
    assert thread.unread_for(conversation["user_b"]) == 1
    assert thread.last_message_id == messages[-1].id


@pytest.mark.asyncio
async def test_outsider_cannot_join(gateway: MessagingGateway, conversation: dict):
    thread_id = conversation["thread_id"]
    client, transport = await connect(gateway, conversation["outsider"])

    await gateway.handle_event(client, {"type": "join_thread", "thread_id": thread_id})

    errors = transport.of_type("error")
    assert len(errors) == 1
    assert errors[0]["code"] == "AUTHZ_NOT_PARTICIPANT"
    assert await gateway.manager.members(uuid.UUID(thread_id)) == []


@pytest.mark.asyncio
async def test_join_unknown_thread(gateway: MessagingGateway, conversation: dict):
    client, transport = await connect(gateway, conversation["user_a"])

    await gateway.handle_event(client, {"type": "join_thread", "thread_id": str(uuid.uuid4())})

    assert transport.of_type("error")[0]["code"] == "RESOURCE_NOT_FOUND"


@pytest.mark.asyncio
async def test_outsider_cannot_send(gateway: MessagingGateway, conversation: dict, session_factory):
    thread_id = conversation["thread_id"]
    client_a, transport_a = await connect(gateway, conversation["user_a"])
    await gateway.handle_event(client_a, {"type": "join_thread", "thread_id": thread_id})
    outsider, outsider_transport = await connect(gateway, conversation["outsider"])

    await gateway.handle_event(
        outsider, {"type": "send_message", "thread_id": thread_id, "content": "spam"}
    )

    assert outsider_transport.of_type("error")[0]["code"] == "AUTHZ_NOT_PARTICIPANT"
    # Errors only go to the originating connection
    assert transport_a.of_type("error") == []
    assert transport_a.of_type("message_new") == []
    async with session_factory() as db:
        messages = await message_service.get_messages(db, uuid.UUID(thread_id))
    assert [m.content for m in messages] == [OPENING]


@pytest.mark.asyncio
async def test_block_after_join_stops_sending(
    gateway: MessagingGateway, conversation: dict, client: AsyncClient, session_factory
):
    thread_id = conversation["thread_id"]
    client_a, transport_a = await connect(gateway, conversation["user_a"])
    client_b, transport_b = await connect(gateway, conversation["user_b"])
    for gateway_client in (client_a, client_b):
        await gateway.handle_event(gateway_client, {"type": "join_thread", "thread_id": thread_id})

    await client.post(
        "/api/v1/blocks/",
        json={"blocked_user_id": str(conversation["user_a"])},
        headers={"Authorization": f"Bearer {conversation['token_b']}"},
    )
    await gateway.handle_event(
        client_a, {"type": "send_message", "thread_id": thread_id, "content": "hello?"}
    )
    await gateway.handle_event(client_a, {"type": "join_thread", "thread_id": thread_id})

    errors = transport_a.of_type("error")
    assert [e["code"] for e in errors] == ["AUTHZ_BLOCKED", "AUTHZ_BLOCKED"]
    assert transport_b.of_type("message_new") == []
    async with session_factory() as db:
        messages = await message_service.get_messages(db, uuid.UUID(thread_id))
    assert [m.content for m in messages] == [OPENING]


@pytest.mark.asyncio
async def test_flagged_message_is_broadcast(gateway: MessagingGateway, conversation: dict):
    thread_id = conversation["thread_id"]
    client_a, transport_a = await connect(gateway, conversation["user_a"])
    await gateway.handle_event(client_a, {"type": "join_thread", "thread_id": thread_id})

    await gateway.handle_event(
        client_a,
        {"type": "send_message", "thread_id": thread_id, "content": "Pay the avance en cash"},
    )

    message = transport_a.of_type("message_new")[0]["message"]
    assert message["flags"] == ["cash", "avance"]


@pytest.mark.asyncio
async def test_leave_thread(gateway: MessagingGateway, conversation: dict):
    thread_id = conversation["thread_id"]
    client_a, _ = await connect(gateway, conversation["user_a"])
    client_b, transport_b = await connect(gateway, conversation["user_b"])
    for gateway_client in (client_a, client_b):
        await gateway.handle_event(gateway_client, {"type": "join_thread", "thread_id": thread_id})

    await gateway.handle_event(client_b, {"type": "leave_thread", "thread_id": thread_id})
    await gateway.handle_event(
        client_a, {"type": "send_message", "thread_id": thread_id, "content": "anyone?"}
    )

    assert transport_b.of_type("left") == [{"type": "left", "thread_id": thread_id}]
    assert transport_b.of_type("message_new") == []


@pytest.mark.asyncio
async def test_mark_read_event(gateway: MessagingGateway, conversation: dict, session_factory):
    thread_id = conversation["thread_id"]
    client_a, transport_a = await connect(gateway, conversation["user_a"])
    client_b, _ = await connect(gateway, conversation["user_b"])
    await gateway.handle_event(client_a, {"type": "join_thread", "thread_id": thread_id})
    await gateway.handle_event(
        client_a, {"type": "send_message", "thread_id": thread_id, "content": "hello"}
    )

    await gateway.handle_event(client_b, {"type": "mark_read", "thread_id": thread_id})

    events = transport_a.of_type("thread_read")
    assert events[0]["reader_id"] == str(conversation["user_b"])
    assert events[0]["marked"] == 1
    async with session_factory() as db:
        thread = await message_service.get_thread_by_id(db, uuid.UUID(thread_id))
    assert thread.unread_for(conversation["user_b"]) == 0


@pytest.mark.asyncio
async def test_invalid_events(gateway: MessagingGateway, conversation: dict):
    client, transport = await connect(gateway, conversation["user_a"])

    await gateway.handle_raw(client, "not json")
    await gateway.handle_event(client, ["not", "an", "object"])
    await gateway.handle_event(client, {"type": "dance"})
    await gateway.handle_event(client, {"type": "join_thread"})
    await gateway.handle_event(client, {"type": "join_thread", "thread_id": "abc"})
    await gateway.handle_event(
        client, {"type": "send_message", "thread_id": conversation["thread_id"]}
    )

    codes = [e["code"] for e in transport.of_type("error")]
    assert codes == [
        "VALIDATION_ERROR",
        "VALIDATION_ERROR",
        "VALIDATION_ERROR",
        "VALIDATION_REQUIRED_FIELD",
        "VALIDATION_ERROR",
        "VALIDATION_REQUIRED_FIELD",
    ]


@pytest.mark.asyncio
async def test_handle_raw_dispatches(gateway: MessagingGateway, conversation: dict):
    client, transport = await connect(gateway, conversation["user_a"])

    await gateway.handle_raw(
        client, json.dumps({"type": "join_thread", "thread_id": conversation["thread_id"]})
    )

    assert transport.of_type("joined")


@pytest.mark.asyncio
async def test_operation_timeout(
    gateway: MessagingGateway, conversation: dict, monkeypatch, session_factory
):
    thread_id = conversation["thread_id"]
    client_a, transport_a = await connect(gateway, conversation["user_a"])
    await gateway.handle_event(client_a, {"type": "join_thread", "thread_id": thread_id})

    async def slow_send(*args, **kwargs):
        await asyncio.sleep(1)

    monkeypatch.setattr(message_service, "send_message", slow_send)
    gateway.operation_timeout = 0.05

    await gateway.handle_event(
        client_a, {"type": "send_message", "thread_id": thread_id, "content": "hello"}
    )

    errors = transport_a.of_type("error")
    assert [e["code"] for e in errors] == ["GATEWAY_TIMEOUT"]
    assert transport_a.of_type("message_new") == []


@pytest.mark.asyncio
async def test_failing_connection_dropped_from_room(gateway: MessagingGateway, conversation: dict):
    thread_id = uuid.UUID(conversation["thread_id"])
    healthy = GatewayClient(conversation["user_a"], FakeTransport())
    broken = GatewayClient(conversation["user_b"], FakeTransport(fail=True))
    await gateway.manager.join(thread_id, healthy)
    await gateway.manager.join(thread_id, broken)

    received = await gateway.manager.broadcast(thread_id, {"type": "ping"})

    assert received == [healthy]
    assert await gateway.manager.members(thread_id) == [healthy]


@pytest.mark.asyncio
async def test_disconnect_leaves_rooms(gateway: MessagingGateway, conversation: dict):
    thread_id = conversation["thread_id"]
    client_a, _ = await connect(gateway, conversation["user_a"])
    await gateway.handle_event(client_a, {"type": "join_thread", "thread_id": thread_id})

    await gateway.disconnect(client_a)

    assert await gateway.manager.members(uuid.UUID(thread_id)) == []
    assert gateway.manager.connection_count == 0


def test_websocket_rejects_invalid_token():
    test_client = TestClient(app)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with test_client.websocket_connect("/api/v1/ws?token=invalid"):
            pass

    assert exc_info.value.code == 1008


def test_websocket_rejects_missing_token():
    test_client = TestClient(app)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with test_client.websocket_connect("/api/v1/ws"):
            pass

    assert exc_info.value.code == 1008


@pytest.mark.asyncio
async def test_send_to_recipient_starts_thread(
    gateway: MessagingGateway, conversation: dict, session_factory
):
    client_a, transport_a = await connect(gateway, conversation["user_a"])

    await gateway.handle_event(
        client_a,
        {
            "type": "send_message",
            "recipient_id": str(conversation["outsider"]),
            "content": "Are you still looking for a roommate?",
        },
    )

    assert transport_a.of_type("error") == []
    joined = transport_a.of_type("joined")
    message = transport_a.of_type("message_new")[0]["message"]
    assert joined == [{"type": "joined", "thread_id": message["thread_id"]}]
    assert message["recipient_id"] == str(conversation["outsider"])
    assert message["thread_id"] != conversation["thread_id"]
    async with session_factory() as db:
        thread = await message_service.get_thread_by_id(db, uuid.UUID(message["thread_id"]))
    assert thread.unread_for(conversation["outsider"]) == 1


@pytest.mark.asyncio
async def test_send_to_recipient_reuses_thread(gateway: MessagingGateway, conversation: dict):
    client_a, transport_a = await connect(gateway, conversation["user_a"])

    await gateway.handle_event(
        client_a,
        {
            "type": "send_message",
            "recipient_id": str(conversation["user_b"]),
            "content": "Yes it is, come visit",
        },
    )

    message = transport_a.of_type("message_new")[0]["message"]
    assert message["thread_id"] == conversation["thread_id"]


@pytest.mark.asyncio
async def test_stalled_connection_dropped_from_room(conversation: dict):
    manager = ConnectionManager(send_timeout=0.05)
    thread_id = uuid.UUID(conversation["thread_id"])
    healthy_transport = FakeTransport()
    healthy = GatewayClient(conversation["user_a"], healthy_transport)
    stalled = GatewayClient(conversation["user_b"], FakeTransport(stall=5))
    await manager.join(thread_id, healthy)
    await manager.join(thread_id, stalled)

    received = await asyncio.wait_for(manager.broadcast(thread_id, {"type": "ping"}), timeout=2)

    assert received == [healthy]
    assert healthy_transport.sent == [{"type": "ping"}]
    assert await manager.members(thread_id) == [healthy]
