"""JourneyBoard backend: FastAPI application entry point."""

import signal
import uuid
from contextlib import asynccontextmanager

# configure_structlog MUST run before the other package imports: structlog
# caches the processor chain on first use.
from journeyboard.core.logging import configure_structlog
from journeyboard.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else "INFO",
    json_logs=not _early_settings.debug,
    service=_early_settings.app_name,
)

import structlog

from fastapi import FastAPI, Request, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from journeyboard.api.routes import api_router
from journeyboard.core.config import get_settings
from journeyboard.core.exceptions import JourneyBoardError, NotFoundError, RemoteError, ValidationError
from journeyboard.db import init_db, close_db
from journeyboard.middleware.correlation import setup_correlation_middleware, get_correlation_id

logger = structlog.get_logger(__name__)

# Pipeline errors that escape a route (board loading, history reads)
ERROR_STATUS = {
    ValidationError: 422,
    NotFoundError: 404,
    RemoteError: 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database on startup, drain and close it on shutdown."""
    # SIGTERM flips this so the health check returns 503 while draining
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    signal.signal(signal.SIGTERM, handle_sigterm)

    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, debug=settings.debug)
    await init_db()
    logger.info("db_initialized")

    yield

    logger.info("shutdown_begin")
    await close_db()
    logger.info("shutdown_complete")


def _error_response(request: Request, status_code: int, detail, event: str, **log_fields) -> JSONResponse:
    """Log with a fresh debug_id and return the sanitized body the client sees."""
    debug_id = str(uuid.uuid4())
    logger.error(
        event,
        status_code=status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
        organization_id=getattr(request.state, "organization_id", None),
        **log_fields,
    )
    return JSONResponse(status_code=status_code, content={"detail": detail, "debug_id": debug_id})


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(request, exc.status_code, exc.detail, "http_exception", detail=exc.detail)


async def pipeline_exception_handler(request: Request, exc: JourneyBoardError) -> JSONResponse:
    """Map a pipeline error that escaped a route to its HTTP status."""
    status_code = next((code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)), 500)
    detail = str(exc) if status_code != 500 else "Internal server error"
    return _error_response(
        request, status_code, detail, "pipeline_exception", error=str(exc), error_type=type(exc).__name__
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(request, 422, jsonable_encoder(exc.errors()), "request_validation_failed")


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unhandled errors: full traceback in the log, generic 500 to the client."""
    return _error_response(
        request,
        500,
        "Internal server error",
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Engagement pipeline for church visitor follow-up",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, *settings.allowed_origins],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware (runs first on incoming requests)
    setup_correlation_middleware(app)

    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(JourneyBoardError)(pipeline_exception_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(generic_exception_handler)

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("journeyboard.main:app", host="0.0.0.0", port=8000, reload=True)
