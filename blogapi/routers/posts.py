from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.database import get_db
from blogapi.dependencies import Identity, get_identity
from blogapi.media import LocalMediaStore, get_media_store
from blogapi.schemas import PostResponse
from blogapi.services import post_service

router = APIRouter(tags=["posts"])


@router.get("/posts", response_model=list[PostResponse], dependencies=[Depends(get_identity)])
async def list_posts(db: AsyncSession = Depends(get_db)):
    return await post_service.list_posts(db)


@router.get("/posts/user", response_model=list[PostResponse])
async def list_my_posts(identity: Identity = Depends(get_identity), db: AsyncSession = Depends(get_db)):
    return await post_service.list_posts_by_author(db, identity.user_id)


@router.get("/post/{slug}", response_model=PostResponse, dependencies=[Depends(get_identity)])
async def get_post(slug: str, db: AsyncSession = Depends(get_db)):
    return await post_service.get_post_by_slug(db, slug)


@router.post("/posts", status_code=201, response_model=PostResponse)
async def create_post(
    title: str = Form(..., min_length=1, max_length=300),
    content: str = Form(..., min_length=1),
    images: list[UploadFile] | None = File(None),
    identity: Identity = Depends(get_identity),
    store: LocalMediaStore = Depends(get_media_store),
    db: AsyncSession = Depends(get_db),
):
    filenames = await store.save(images or [])
    try:
        post = await post_service.create_post(db, identity.user_id, title, content, filenames)
        await db.commit()
    except Exception:
        store.discard(filenames)
        raise
    return post
