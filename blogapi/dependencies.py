import logging
from dataclasses import dataclass

from fastapi import Header, Query

from blogapi.config import settings
from blogapi.errors import Forbidden, InvalidToken, Unauthenticated
from blogapi.models import ROLE_ADMIN
from blogapi.security import decode_access_token

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Access gate
# ---------------------------------------------------------------------------

# Roles allowed to run each restricted operation.  Operations missing from
# this table only need an authenticated caller.
OPERATION_ROLES: dict[str, frozenset[str]] = {
    "list_users": frozenset({ROLE_ADMIN}),
    "delete_user": frozenset({ROLE_ADMIN}),
}


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as decoded from the bearer token."""

    user_id: int
    role: str


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def get_identity(authorization: str | None = Header(default=None)) -> Identity:
    """
    FastAPI dependency guarding every protected route.

    Reads ``Authorization: Bearer <token>`` and returns the caller's
    identity.  A missing header, a non-bearer scheme or a token that fails
    verification all end the request with 401; there is no anonymous
    fallback.
    """
    token = _bearer_token(authorization)
    if token is None:
        raise Unauthenticated("Authentication token missing or malformed")
    try:
        payload = decode_access_token(token)
    except InvalidToken as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise Unauthenticated("Invalid or expired token") from exc
    return Identity(user_id=payload.user_id, role=payload.role)


def authorize(identity: Identity, operation: str) -> None:
    """Raise ``Forbidden`` unless *identity* may perform *operation*."""
    allowed = OPERATION_ROLES.get(operation)
    if allowed is not None and identity.role not in allowed:
        raise Forbidden(f"Forbidden: only {', '.join(sorted(allowed))} can {operation.replace('_', ' ')}")


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

class PaginationParams:
    """
    Page-based pagination for the admin user listing.

    Attributes
    ----------
    page:
        1-based page number.
    limit:
        Items per page, clamped to ``settings.MAX_PAGE_SIZE``.
    offset:
        Rows to skip, derived from *page* and *limit*.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            description="Number of users per page.",
        ),
    ) -> None:
        self.page = page
        self.limit = min(limit, settings.MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class CommentWindow:
    """limit/skip window over a post's comments."""

    def __init__(
        self,
        limit: int = Query(settings.DEFAULT_COMMENT_LIMIT, ge=1, le=100),
        skip: int = Query(0, ge=0),
    ) -> None:
        self.limit = limit
        self.skip = skip
