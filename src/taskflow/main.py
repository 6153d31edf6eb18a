import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import auth, health, tasks, users
from .config import Settings, configure_logging, get_settings
from .db.session import create_db_and_tables
from .middleware import RateLimitMiddleware
from .services.errors import (
    FileMissingOnDisk,
    Forbidden,
    NotFound,
    StorageFailure,
    TaskFlowError,
)
from .services.rate_limit import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

# Checked in order; anything else is a client error.
ERROR_STATUS = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (FileMissingOnDisk, status.HTTP_404_NOT_FOUND),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (StorageFailure, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(error: TaskFlowError) -> int:
    for kind, code in ERROR_STATUS:
        if isinstance(error, kind):
            return code
    return status.HTTP_400_BAD_REQUEST


async def taskflow_error_handler(request: Request, exc: TaskFlowError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {code}: {exc.message}")
    return JSONResponse(status_code=code, content={"detail": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} -> 400: request validation failed")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "errors": jsonable_encoder(exc.errors())},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings.upload_dir.mkdir(parents=True, exist_ok=True)
        create_db_and_tables()
        yield

    app = FastAPI(title="TaskFlow", lifespan=lifespan)

    # Per-IP limit on /api/ requests, inside CORS
    if settings.rate_limit_max_requests > 0:
        app.add_middleware(
            RateLimitMiddleware,
            limiter=SlidingWindowRateLimiter(
                settings.rate_limit_max_requests, settings.rate_limit_window_seconds
            ),
        )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TaskFlowError, taskflow_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Mount routers
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])

    # Liveness and readiness checks
    app.include_router(health.router, tags=["health"])

    @app.get("/")
    async def read_root():
        return {"message": "Welcome to the TaskFlow API!"}

    return app


app = create_app()
