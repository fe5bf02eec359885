import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from blogapi.bootstrap import ensure_default_admin
from blogapi.config import settings
from blogapi.database import Database
from blogapi.errors import APIError
from blogapi.routers import comments, posts, users

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: fail fast if the datastore is unreachable.
    db = Database(settings.DATABASE_URL)
    await db.connect()
    if settings.AUTO_CREATE_SCHEMA:
        await db.create_all()
    app.state.db = db
    await ensure_default_admin(db)
    yield
    # Shutdown
    await db.dispose()


app = FastAPI(
    title="Blog API",
    description="Users, posts and threaded comments behind JWT authentication",
    version="1.0.0",
    lifespan=lifespan,
)


# Error handlers
@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    return JSONResponse(status_code=exc.status_code, content={"msg": exc.msg})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"msg": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"msg": "Internal Server Error"})


# Routers
app.include_router(users.router)
app.include_router(posts.router)
app.include_router(comments.router)


@app.get("/health")
async def health(request: Request):
    db: Database | None = getattr(request.app.state, "db", None)
    connected = db is not None and await db.ping()
    return {"status": "healthy" if connected else "degraded", "database": connected}
