"""
Real-time messaging gateway.

Connections join thread rooms and exchange JSON events:

    {"type": "join_thread", "thread_id": ...}
    {"type": "leave_thread", "thread_id": ...}
    {"type": "send_message", "thread_id": ..., "content": ...}
    {"type": "send_message", "recipient_id": ..., "content": ..., "context_id"?: ...}
    {"type": "mark_read", "thread_id": ...}

Every operation re-checks thread access (existence, participation, blocks)
in its own database session, bounded by a timeout. Failures are sent back
to the originating connection only, as an ``error`` event carrying the same
body the REST API returns. ``message_new`` is broadcast to the thread room
only after the message is committed. A send by recipient_id joins the
sender to the room of the thread it lands in.

The gateway is transport-agnostic: a transport is anything with an
``async send_json(payload)`` method, such as a Starlette WebSocket.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.core.exceptions import (
    AppException,
    GatewayTimeoutError,
    RequiredFieldError,
    ServerError,
    ValidationError,
)
from app.core.security import identity_from_token
from app.models.message import Message
from app.schemas.message import MessageResponse
from app.services import message_service, user_service

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GatewayClient:
    """One authenticated connection."""

    def __init__(self, user_id: UUID, transport: Any):
        self.user_id = user_id
        self.transport = transport

    async def send(self, payload: dict[str, Any]) -> None:
        await self.transport.send_json(payload)

    def __repr__(self) -> str:
        return f"<GatewayClient user={self.user_id}>"


class ConnectionManager:
    """Thread rooms and their connections, guarded by a lock."""

    def __init__(self, send_timeout: float | None = None):
        if send_timeout is None:
            send_timeout = settings.GATEWAY_OPERATION_TIMEOUT_SECONDS
        self.send_timeout = send_timeout
        self._rooms: dict[UUID, set[GatewayClient]] = {}
        self._clients: set[GatewayClient] = set()
        self._lock = asyncio.Lock()

    async def connect(self, client: GatewayClient) -> None:
        async with self._lock:
            self._clients.add(client)

    async def disconnect(self, client: GatewayClient) -> None:
        async with self._lock:
            self._clients.discard(client)
            self._drop_from_rooms(client)

    async def join(self, thread_id: UUID, client: GatewayClient) -> None:
        async with self._lock:
            self._rooms.setdefault(thread_id, set()).add(client)

    async def leave(self, thread_id: UUID, client: GatewayClient) -> None:
        async with self._lock:
            members = self._rooms.get(thread_id)
            if members is None:
                return
            members.discard(client)
            if not members:
                del self._rooms[thread_id]

    async def members(self, thread_id: UUID) -> list[GatewayClient]:
        async with self._lock:
            return list(self._rooms.get(thread_id, ()))

    @property
    def connection_count(self) -> int:
        return len(self._clients)

    async def broadcast(self, thread_id: UUID, payload: dict[str, Any]) -> list[GatewayClient]:
        """
        Send to every member of the room. Returns the members that received it.
        A member whose send fails or stalls past send_timeout is dropped
        from all rooms.
        """
        members = await self.members(thread_id)
        delivered = await asyncio.gather(*(self._deliver(client, payload) for client in members))
        return [client for client, ok in zip(members, delivered) if ok]

    async def _deliver(self, client: GatewayClient, payload: dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(client.send(payload), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            logger.warning("Dropping %r after send timed out", client)
        except Exception as e:
            logger.warning("Dropping %r after failed send: %s", client, e)
        else:
            return True
        async with self._lock:
            self._drop_from_rooms(client)
        return False

    def _drop_from_rooms(self, client: GatewayClient) -> None:
        for thread_id in list(self._rooms):
            members = self._rooms[thread_id]
            members.discard(client)
            if not members:
                del self._rooms[thread_id]


def error_event(exc: AppException) -> dict[str, Any]:
    return {"type": "error", **exc.to_dict()}


def message_event(message: Message) -> dict[str, Any]:
    return {
        "type": "message_new",
        "message": MessageResponse.model_validate(message).model_dump(mode="json"),
    }


class MessagingGateway:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        manager: ConnectionManager | None = None,
        operation_timeout: float | None = None,
    ):
        self.session_factory = session_factory
        self.manager = manager or ConnectionManager()
        if operation_timeout is None:
            operation_timeout = settings.GATEWAY_OPERATION_TIMEOUT_SECONDS
        self.operation_timeout = operation_timeout

        self._handlers: dict[str, Callable[[GatewayClient, dict], Awaitable[None]]] = {
            "join_thread": self._join_thread,
            "leave_thread": self._leave_thread,
            "send_message": self._send_message,
            "mark_read": self._mark_read,
        }

    async def authenticate(self, token: str | None) -> UUID | None:
        """User id for a bearer token, or None if the token or user is unknown."""
        user_id = identity_from_token(token)
        if user_id is None:
            return None
        user = await self._run(lambda db: user_service.get_user_by_id(db, user_id))
        if user is None or user.status != "active":
            return None
        return user.id

    async def connect(self, user_id: UUID, transport: Any) -> GatewayClient:
        client = GatewayClient(user_id, transport)
        await self.manager.connect(client)
        logger.info("Gateway connection opened for user %s", user_id)
        return client

    async def disconnect(self, client: GatewayClient) -> None:
        await self.manager.disconnect(client)
        logger.info("Gateway connection closed for user %s", client.user_id)

    async def handle_raw(self, client: GatewayClient, raw: str) -> None:
        """Decode a text frame and dispatch it."""
        try:
            event = json.loads(raw)
        except json.JSONDecodeError:
            await self._reject(client, ValidationError("Event must be valid JSON"))
            return
        await self.handle_event(client, event)

    async def handle_event(self, client: GatewayClient, event: Any) -> None:
        """Dispatch one event. Errors are reported to the client, never raised."""
        try:
            if not isinstance(event, dict):
                raise ValidationError("Event must be a JSON object")
            handler = self._handlers.get(event.get("type"))
            if handler is None:
                raise ValidationError(f"Unknown event type: {event.get('type')}", field="type")
            await handler(client, event)
        except AppException as exc:
            await self._reject(client, exc)
        except Exception:
            logger.exception("Unhandled gateway error for user %s", client.user_id)
            await self._reject(client, ServerError())

    async def broadcast_message(self, message: Message) -> list[GatewayClient]:
        """
        Push a committed message to its thread room, then mark it delivered
        if one of the recipient's connections received it.
        """
        received = await self.manager.broadcast(message.thread_id, message_event(message))
        if any(client.user_id == message.recipient_id for client in received):
            try:
                await self._run(
                    lambda db: message_service.mark_messages_delivered(db, [message.id])
                )
            except GatewayTimeoutError:
                # Already broadcast, the status stays "sent"
                logger.warning("Timed out marking message %s delivered", message.id)
        return received

    async def _run(self, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run one operation in a fresh session, bounded by the operation timeout."""

        async def _with_session() -> T:
            async with self.session_factory() as db:
                return await operation(db)

        try:
            return await asyncio.wait_for(_with_session(), timeout=self.operation_timeout)
        except asyncio.TimeoutError:
            raise GatewayTimeoutError()

    async def _reject(self, client: GatewayClient, exc: AppException) -> None:
        logger.warning(
            "Gateway rejected event from user %s: %s (code=%s)",
            client.user_id,
            exc.message,
            exc.code.value,
        )
        try:
            await client.send(error_event(exc))
        except Exception as e:
            logger.warning("Could not deliver error to %r: %s", client, e)

    @staticmethod
    def _uuid_field(event: dict, field: str) -> UUID:
        value = event.get(field)
        if not value:
            raise RequiredFieldError(field=field)
        try:
            return UUID(str(value))
        except ValueError:
            raise ValidationError(f"{field} must be a UUID", field=field)

    def _thread_id(self, event: dict) -> UUID:
        return self._uuid_field(event, "thread_id")

    async def _join_thread(self, client: GatewayClient, event: dict) -> None:
        thread_id = self._thread_id(event)
        await self._run(
            lambda db: message_service.authorize_thread_access(db, thread_id, client.user_id)
        )
        await self.manager.join(thread_id, client)
        await client.send({"type": "joined", "thread_id": str(thread_id)})

    async def _leave_thread(self, client: GatewayClient, event: dict) -> None:
        thread_id = self._thread_id(event)
        await self.manager.leave(thread_id, client)
        await client.send({"type": "left", "thread_id": str(thread_id)})

    async def _send_message(self, client: GatewayClient, event: dict) -> None:
        """Send into a thread, or to a recipient_id when no thread exists yet."""
        if not event.get("thread_id") and event.get("recipient_id"):
            await self._send_direct(client, event)
            return

        thread_id = self._thread_id(event)
        content = self._content(event)
        message = await self._run(
            lambda db: message_service.send_message(db, client.user_id, thread_id, content)
        )
        await self.broadcast_message(message)

    async def _send_direct(self, client: GatewayClient, event: dict) -> None:
        recipient_id = self._uuid_field(event, "recipient_id")
        context_id = self._uuid_field(event, "context_id") if event.get("context_id") else None
        content = self._content(event)
        message = await self._run(
            lambda db: message_service.send_direct_message(
                db, client.user_id, recipient_id, content, context_id
            )
        )
        # The sender may not have a room for a thread that did not exist before
        await self.manager.join(message.thread_id, client)
        await client.send({"type": "joined", "thread_id": str(message.thread_id)})
        await self.broadcast_message(message)

    @staticmethod
    def _content(event: dict) -> str:
        content = event.get("content")
        if not isinstance(content, str):
            raise RequiredFieldError(field="content")
        return content

    async def _mark_read(self, client: GatewayClient, event: dict) -> None:
        thread_id = self._thread_id(event)

        async def _operation(db: AsyncSession) -> int:
            thread = await message_service.authorize_thread_access(db, thread_id, client.user_id)
            return await message_service.mark_thread_as_read(db, thread, client.user_id)

        marked = await self._run(_operation)
        await self.manager.broadcast(
            thread_id,
            {
                "type": "thread_read",
                "thread_id": str(thread_id),
                "reader_id": str(client.user_id),
                "marked": marked,
            },
        )
