from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.auth import get_current_user
from app.database import get_db
from app.schemas.block import BlockCreate, BlockListResponse, BlockResponse
from app.schemas.user import UserResponse
from app.services import block_service

router = APIRouter(prefix="", tags=["blocks"])


@router.post("/", response_model=BlockResponse, status_code=status.HTTP_201_CREATED)
async def block_user(
    data: BlockCreate,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BlockResponse:
    """
    Block a user.

    Blocked users cannot message you, join your threads or express
    interest in you, and neither of you appears in the other's candidates.
    """
    block = await block_service.create_block(db, current_user.id, data.blocked_user_id)
    return BlockResponse.model_validate(block)


@router.get("/", response_model=BlockListResponse)
async def list_my_blocks(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BlockListResponse:
    blocks = await block_service.list_blocks(db, current_user.id)
    return BlockListResponse(
        blocks=[BlockResponse.model_validate(b) for b in blocks],
        total=len(blocks),
    )


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unblock_user(
    user_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Response:
    await block_service.remove_block(db, current_user.id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
