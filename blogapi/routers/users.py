from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.database import get_db
from blogapi.dependencies import Identity, PaginationParams, get_identity
from blogapi.schemas import (
    AuthResponse,
    LoginRequest,
    Message,
    UserCreate,
    UserEnvelope,
    UserId,
    UserPage,
    UserResponse,
    UserUpdate,
)
from blogapi.services import user_service

router = APIRouter(tags=["users"])


@router.post("/register", status_code=201, response_model=AuthResponse)
async def register(data: UserCreate, db: AsyncSession = Depends(get_db)):
    result = await user_service.register(db, data)
    await db.commit()
    return result


@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    return await user_service.login(db, data.email, data.password)


@router.get("/users", response_model=UserPage)
async def list_users(
    pagination: PaginationParams = Depends(),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.list_users(db, identity, pagination.page, pagination.limit)


@router.get("/users/{user_id}", response_model=UserEnvelope, dependencies=[Depends(get_identity)])
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return {"data": await user_service.get_user(db, user_id)}


@router.delete("/users", response_model=Message)
async def delete_user(
    id: int | None = Query(None, description="Id of the user to delete."),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    result = await user_service.delete_user(db, identity, id)
    await db.commit()
    return result


@router.get("/userId", response_model=UserId)
async def get_self_id(identity: Identity = Depends(get_identity)):
    return {"id": identity.user_id}


@router.get("/user", response_model=UserEnvelope)
async def get_self(identity: Identity = Depends(get_identity), db: AsyncSession = Depends(get_db)):
    return {"data": await user_service.get_self(db, identity)}


@router.patch("/user", response_model=UserResponse)
async def update_self(
    patch: UserUpdate,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    result = await user_service.update_self(db, identity, patch)
    await db.commit()
    return result
