from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.auth import get_current_user
from app.database import get_db
from app.schemas.message import (
    DirectMessageCreate,
    MarkReadResponse,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
    ThreadListResponse,
    ThreadResponse,
    UnreadCountResponse,
)
from app.schemas.user import UserResponse
from app.services import message_service

router = APIRouter(prefix="", tags=["messages"])


@router.post("/", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_direct_message(
    data: DirectMessageCreate,
    request: Request,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    """
    Message a user directly, optionally about a listing.
    The conversation thread is created with the first message.
    """
    message = await message_service.send_direct_message(
        db, current_user.id, data.recipient_id, data.content, data.context_id
    )
    response = MessageResponse.model_validate(message)
    await request.app.state.gateway.broadcast_message(message)
    return response


@router.get("/threads/with/{user_id}", response_model=ThreadResponse)
async def get_conversation_with(
    user_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    context_id: UUID | None = Query(None),
) -> ThreadResponse:
    """The existing conversation with a user. 404 until a first message is sent."""
    thread = await message_service.find_conversation(db, current_user.id, user_id, context_id)
    return ThreadResponse.model_validate(thread)


@router.get("/threads", response_model=ThreadListResponse)
async def list_my_threads(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ThreadListResponse:
    threads = await message_service.get_user_threads(db, current_user.id)
    return ThreadListResponse(
        threads=[ThreadResponse.model_validate(t) for t in threads],
        total=len(threads),
    )


@router.get("/threads/{thread_id}/messages", response_model=MessageListResponse)
async def get_thread_messages(
    thread_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> MessageListResponse:
    """Messages of a thread in chronological order."""
    await message_service.authorize_thread_access(db, thread_id, current_user.id)
    messages = await message_service.get_messages(db, thread_id, skip, limit)
    return MessageListResponse(
        messages=[MessageResponse.model_validate(m) for m in messages],
    )


@router.post(
    "/threads/{thread_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    thread_id: UUID,
    data: MessageCreate,
    request: Request,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    """Send a message. Connections joined to the thread receive it live."""
    message = await message_service.send_message(db, current_user.id, thread_id, data.content)
    response = MessageResponse.model_validate(message)
    await request.app.state.gateway.broadcast_message(message)
    return response


@router.post("/threads/{thread_id}/read", response_model=MarkReadResponse)
async def mark_thread_read(
    thread_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MarkReadResponse:
    thread = await message_service.authorize_thread_access(db, thread_id, current_user.id)
    marked = await message_service.mark_thread_as_read(db, thread, current_user.id)
    return MarkReadResponse(marked=marked)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UnreadCountResponse:
    count = await message_service.get_unread_count(db, current_user.id)
    return UnreadCountResponse(count=count)
