"""
Startup tasks that seed required data.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from starlette.concurrency import run_in_threadpool

from blogapi.config import settings
from blogapi.database import Database
from blogapi.models import ROLE_ADMIN, User
from blogapi.security import hash_password

logger = logging.getLogger(__name__)


async def ensure_default_admin(db: Database) -> User | None:
    """
    Create the configured admin account if no admin exists yet.

    Skipped (with a warning) unless ``ADMIN_PASSWORD`` is set, so a fresh
    deployment never ships a known default password.  Returns the created
    user, or None when nothing was done.
    """
    async with db.session_factory() as session:
        has_admin = (
            await session.execute(select(User.id).where(User.role == ROLE_ADMIN).limit(1))
        ).first() is not None
        if has_admin:
            return None

        if not settings.ADMIN_PASSWORD:
            logger.warning("No admin account present and ADMIN_PASSWORD not set; skipping default admin")
            return None

        admin = User(
            username=settings.ADMIN_USERNAME,
            email=settings.ADMIN_EMAIL,
            password_hash=await run_in_threadpool(hash_password, settings.ADMIN_PASSWORD),
            role=ROLE_ADMIN,
        )
        session.add(admin)
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            logger.error(
                "Could not create default admin: username %r or email %r is taken",
                settings.ADMIN_USERNAME,
                settings.ADMIN_EMAIL,
            )
            return None

        logger.warning("Created default admin username=%s id=%s", admin.username, admin.id)
        return admin
