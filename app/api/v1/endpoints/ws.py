import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from app.core.exceptions import AppException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["messaging"])


def _bearer_token(websocket: WebSocket, token: str | None) -> str | None:
    if token:
        return token
    authorization = websocket.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


@router.websocket("/ws")
async def messaging_socket(
    websocket: WebSocket,
    token: str | None = Query(None),
) -> None:
    """
    Real-time messaging.

    Authenticate with ?token=<jwt> or an "Authorization: Bearer" header,
    then send join_thread, leave_thread, send_message and mark_read events.
    """
    gateway = websocket.app.state.gateway

    try:
        user_id = await gateway.authenticate(_bearer_token(websocket, token))
    except AppException as exc:
        logger.warning("Gateway handshake failed: %s", exc.message)
        user_id = None

    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    client = await gateway.connect(user_id, websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            await gateway.handle_raw(client, raw)
    except WebSocketDisconnect:
        pass
    finally:
        await gateway.disconnect(client)
