import logging

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from blogapi.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """
    Turn on ``PRAGMA foreign_keys`` for every new SQLite connection.

    SQLite ignores FOREIGN KEY clauses unless this pragma is set per
    connection, so cascades and the comment -> post reference would go
    unchecked in tests without it.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _engine_options(url: str) -> dict:
    if url.startswith("postgresql+asyncpg"):
        return {
            "pool_pre_ping": True,
            "pool_timeout": settings.DB_POOL_TIMEOUT,
            "connect_args": {
                "timeout": settings.DB_CONNECT_TIMEOUT,
                "command_timeout": settings.DB_COMMAND_TIMEOUT,
            },
        }
    return {}


class Database:
    """
    Owns the async engine and session factory for one datastore.

    Built once in the application lifespan and stored on ``app.state.db``;
    request handlers reach it through :func:`get_db`.  Tests construct their
    own instance against SQLite and put it in the same place.
    """

    def __init__(self, url: str, **engine_kwargs) -> None:
        options = _engine_options(url)
        options.update(engine_kwargs)
        self.url = url
        self.engine = create_async_engine(url, echo=settings.DEBUG, **options)
        if self.engine.dialect.name == "sqlite":
            enable_sqlite_foreign_keys(self.engine)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def _select_one(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def connect(self) -> None:
        """Round-trip a trivial query so a bad URL fails at startup, not on the first request."""
        await self._select_one()
        logger.info("Database connected: %s", self.engine.url.render_as_string(hide_password=True))

    async def ping(self) -> bool:
        try:
            await self._select_one()
        except Exception as exc:
            logger.warning("Database ping failed: %s", exc)
            return False
        return True

    async def create_all(self) -> None:
        # Import models so every table is registered on Base.metadata.
        import blogapi.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request):
    """
    Yield a session for one request; roll back if the handler raises.

    Nothing is committed here: this exit code can run after the response
    has been sent.  Mutating handlers call ``session.commit()`` themselves
    before returning.
    """
    database: Database = request.app.state.db
    async with database.session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
