"""
User service — registration, login and account management.

Username and email uniqueness is enforced by the database's unique
constraints; this module never checks for an existing row before inserting.
An ``IntegrityError`` raised on flush is translated to ``Conflict``, which
also covers two registrations racing for the same username.
"""
import logging
import math

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from blogapi.dependencies import Identity, authorize
from blogapi.errors import BadRequest, Conflict, NotFound, Unauthenticated, ValidationError
from blogapi.models import User
from blogapi.schemas import UserCreate, UserUpdate
from blogapi.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

_INVALID_LOGIN = "Invalid email or password"

# Columns that must never be cleared by a patch.
_REQUIRED_FIELDS = frozenset({"username", "email", "password", "role"})


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def user_to_dict(user: User) -> dict:
    """Serialise a User ORM instance; the password hash is never included."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "phone_number": user.phone_number,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def author_summary(user: User | None, with_email: bool = True) -> dict | None:
    if user is None:
        return None
    data = {"id": user.id, "username": user.username}
    if with_email:
        data["email"] = user.email
    return data


async def _get_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def _auth_payload(user: User) -> dict:
    return {
        "data": user_to_dict(user),
        "token": create_access_token(user.id, user.role),
    }


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def register(db: AsyncSession, data: UserCreate) -> dict:
    """
    Create an account and return ``{"data": user, "token": ...}``.

    The password is hashed off the event loop; bcrypt at 12 rounds is slow
    on purpose.
    """
    password_hash = await run_in_threadpool(hash_password, data.password)
    user = User(
        username=data.username,
        email=data.email,
        password_hash=password_hash,
        role=data.role,
        phone_number=data.phone_number,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise Conflict("Username or email already exists") from exc
    await db.refresh(user)

    logger.info("Registered user id=%s username=%s role=%s", user.id, user.username, user.role)
    return _auth_payload(user)


async def login(db: AsyncSession, email: str, password: str) -> dict:
    """
    Exchange credentials for a fresh token.

    An unknown email and a wrong password produce the same error.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None or not await run_in_threadpool(verify_password, password, user.password_hash):
        logger.info("Failed login attempt")
        raise Unauthenticated(_INVALID_LOGIN)
    return _auth_payload(user)


async def get_self(db: AsyncSession, identity: Identity) -> dict:
    return user_to_dict(await _get_or_404(db, identity.user_id))


async def get_user(db: AsyncSession, user_id: int) -> dict:
    return user_to_dict(await _get_or_404(db, user_id))


async def list_users(db: AsyncSession, identity: Identity, page: int = 1, limit: int = 5) -> dict:
    """
    Admin-only page of users: ``{"data", "total", "totalPages"}``.

    The role check runs before any query so a non-admin learns nothing.
    """
    authorize(identity, "list_users")

    total: int = (await db.execute(select(func.count()).select_from(User))).scalar_one()
    q = select(User).order_by(User.id).offset((page - 1) * limit).limit(limit)
    users = (await db.execute(q)).scalars().all()
    return {
        "data": [user_to_dict(u) for u in users],
        "total": total,
        "totalPages": math.ceil(total / limit) if total > 0 else 0,
    }


async def update_self(db: AsyncSession, identity: Identity, patch: UserUpdate) -> dict:
    """
    Apply the fields present in *patch* to the caller's own account.

    Only explicitly supplied fields are touched
    (``model_dump(exclude_unset=True)``).  A new password is re-hashed.
    """
    update_data = patch.model_dump(exclude_unset=True)
    cleared = sorted(f for f, v in update_data.items() if v is None and f in _REQUIRED_FIELDS)
    if cleared:
        raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}")

    user = await _get_or_404(db, identity.user_id)

    password = update_data.pop("password", None)
    if password is not None:
        user.password_hash = await run_in_threadpool(hash_password, password)
    for field, value in update_data.items():
        setattr(user, field, value)

    try:
        await db.flush()
    except IntegrityError as exc:
        raise Conflict("Username or email already exists") from exc
    return user_to_dict(user)


async def delete_user(db: AsyncSession, identity: Identity, target_id: int | None) -> dict:
    """
    Admin-only removal of *target_id*.

    Posts and comments owned by the user go with it (``ON DELETE CASCADE``).
    """
    if target_id is None:
        raise BadRequest("User ID is required to delete")
    authorize(identity, "delete_user")

    user = await _get_or_404(db, target_id)
    await db.delete(user)
    await db.flush()
    logger.warning("User id=%s deleted by admin id=%s", target_id, identity.user_id)
    return {"msg": "User has been deleted"}
