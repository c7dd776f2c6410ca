import logging
from dataclasses import asdict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import CORS_ORIGINS, SCHEDULER_ENABLED
from .database import create_tables
from .errors import ApiError, ValidationFailed
from .jobs import JobScheduler
from .logging_setup import setup_logging
from .routers import auth, dashboard, tasks
from .validation import to_field_error

logger = logging.getLogger(__name__)


def _envelope(status_code: int, message: str, headers=None, **extra) -> JSONResponse:
    content = {"success": False, "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    headers = getattr(exc, "headers", None)
    if isinstance(exc, ValidationFailed):
        return _envelope(exc.status_code, exc.message, details=exc.details)
    if isinstance(exc, ApiError):
        return _envelope(exc.status_code, exc.message, headers=headers)
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        logger.warning("404 Not Found: %s %s", request.method, request.url.path)
        return _envelope(exc.status_code, "Route not found")
    return _envelope(exc.status_code, str(exc.detail), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [asdict(to_field_error(error)) for error in exc.errors()]
    return _envelope(status.HTTP_400_BAD_REQUEST, "Validation error", details=details)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Error: %s", exc)
    return _envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        error=str(exc),
    )


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="Taskboard API",
        description="Personal task management API with productivity dashboard",
        version="1.0.0",
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include routers
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])
    app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])

    scheduler = JobScheduler()
    app.state.scheduler = scheduler

    @app.on_event("startup")
    def on_startup():
        create_tables()
        if SCHEDULER_ENABLED:
            scheduler.start()

    @app.on_event("shutdown")
    async def on_shutdown():
        await scheduler.stop()

    @app.get("/health")
    def health_check():
        return {"status": "OK"}

    return app


app = create_app()
