"""Choir Hub attendance API - FastAPI entrypoint."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from choirhub.api import activities, attendance, auth, members
from choirhub.config import settings
from choirhub.db import db_shutdown, db_startup
from choirhub.errors import AttendanceError, StoreError, ValidationError
from choirhub.seed import seed_admin

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await db_startup()
        await seed_admin()
    except ServerSelectionTimeoutError as e:
        logger.error(
            "MongoDB is not reachable at %s. Start it (e.g. docker compose up -d) or set MONGODB_URL.",
            settings.mongodb_url,
        )
        raise RuntimeError("MongoDB connection failed.") from e
    yield
    await db_shutdown()


app = FastAPI(
    title=settings.app_name,
    description="Choir member portal: attendance marking, history, analytics and export",
    version="0.1.0",
    lifespan=lifespan,
)


def _failure(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


@app.exception_handler(AttendanceError)
async def attendance_error_handler(request: Request, exc: AttendanceError):
    extra = {"field": exc.field} if isinstance(exc, ValidationError) and exc.field else {}
    return _failure(exc.status_code, exc.message, **extra)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    return _failure(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Invalid request",
        details=[{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors],
    )


@app.exception_handler(PyMongoError)
async def store_exception_handler(request: Request, exc: PyMongoError):
    logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    return _failure(StoreError.status_code, StoreError.default_message)


app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(members.router, prefix="/api/members", tags=["Members"])
app.include_router(activities.events_router, prefix="/api/events", tags=["Events"])
app.include_router(activities.schedules_router, prefix="/api/schedules", tags=["Practice Schedules"])
app.include_router(attendance.router, prefix="/api/attendance", tags=["Attendance"])


@app.get("/health")
def health():
    return {"status": "ok", "app": settings.app_name}
