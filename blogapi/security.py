"""
Password hashing and session tokens.

Passwords are hashed with bcrypt through passlib; tokens are HS256 JWTs
carrying the user id (``sub``) and role so the access gate can authorise a
request without a database round-trip.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt  # PyJWT
from passlib.context import CryptContext

from blogapi.config import settings
from blogapi.errors import InvalidToken

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


@dataclass(frozen=True)
class TokenPayload:
    user_id: int
    role: str


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of *plain*. Never store the plaintext."""
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """
    Check *plain* against a stored hash.

    A corrupt or unrecognised hash counts as a mismatch rather than an error
    so callers can treat every failure the same way.
    """
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


def create_access_token(user_id: int, role: str, expires_in: timedelta | None = None) -> str:
    """
    Issue a signed token for *user_id* / *role*.

    Expiry defaults to ``settings.ACCESS_TOKEN_EXPIRE_SECONDS``.
    """
    if expires_in is None:
        expires_in = timedelta(seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS)
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> TokenPayload:
    """
    Verify signature and expiry and return the embedded identity.

    Raises ``InvalidToken`` for tampered, foreign, expired or incomplete
    tokens.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as exc:
        raise InvalidToken(str(exc)) from exc

    role = payload.get("role")
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as exc:
        raise InvalidToken("subject is not a user id") from exc
    if not isinstance(role, str):
        raise InvalidToken("role claim missing")
    return TokenPayload(user_id=user_id, role=role)
