from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.database import get_db
from blogapi.dependencies import CommentWindow, Identity, get_identity
from blogapi.schemas import CommentCreate, CommentResponse
from blogapi.services import comment_service

router = APIRouter(prefix="/posts/{post_id}/comments", tags=["comments"])


@router.get("", response_model=list[CommentResponse])
async def list_comments(
    post_id: int,
    window: CommentWindow = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.list_comments(db, post_id, window.limit, window.skip)


@router.post("", status_code=201, response_model=CommentResponse)
async def add_comment(
    post_id: int,
    data: CommentCreate,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.add_comment(
        db, post_id, identity.user_id, data.content, data.parent_id
    )
    await db.commit()
    return comment
