"""DocSpace API application.

Wires the routers for auth, tenancy, files, extraction, Q&A, agents, the
dashboard and administration under ``/api/v1``, with health and metrics at
the root. ``app`` is built once at import time by ``create_app``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .admin.router import router as admin_router
from .agents.router import router as agents_router
from .auth.router import router as auth_router
from .config import settings
from .dashboard.router import router as dashboard_router
from .database import engine
from .extraction.router import router as extraction_router
from .files.router import router as files_router
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router
from .observability.tracing import configure_tracing, instrument_app
from .qa.router import router as qa_router
from .tenancy.router import router as tenancy_router

API_VERSION = "0.1.0"
API_PREFIX = "/api/v1"

API_ROUTERS = (
    auth_router,
    tenancy_router,
    files_router,
    extraction_router,
    qa_router,
    agents_router,
    dashboard_router,
    admin_router,
)

configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("DocSpace API %s starting (debug=%s)", API_VERSION, settings.DEBUG)
    yield
    logger.info("DocSpace API stopped")


def _error_body(error: str, message: str, **extra: Any) -> dict[str, Any]:
    return {"error": error, "message": message, **extra}


async def on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"Rejected {request.method} {request.url.path}: invalid request body or parameters")
    body = _error_body("validation_error", "Request validation failed", details=jsonable_encoder(exc.errors()))
    return JSONResponse(body, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


async def on_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"Database failure during {request.method} {request.url.path}", exc_info=exc)
    body = _error_body("database_error", "A database error occurred. Please try again later.")
    return JSONResponse(body, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


async def on_unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error during {request.method} {request.url.path}", exc_info=exc)
    body = _error_body("internal_error", "An unexpected error occurred. Please try again later.")
    return JSONResponse(body, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_app() -> FastAPI:
    application = FastAPI(
        title="DocSpace API",
        description="Multi-tenant document workspace with extraction, Q&A generation and agents",
        version=API_VERSION,
        lifespan=lifespan,
    )

    if configure_tracing():
        instrument_app(application, engine)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    # Outermost, so CORS preflight responses carry X-Request-ID too.
    application.add_middleware(RequestIDMiddleware)

    application.add_exception_handler(RequestValidationError, on_validation_error)
    application.add_exception_handler(SQLAlchemyError, on_database_error)
    application.add_exception_handler(Exception, on_unhandled_error)

    application.include_router(observability_router)
    for api_router in API_ROUTERS:
        application.include_router(api_router, prefix=API_PREFIX)

    @application.get("/", include_in_schema=False)
    async def index() -> dict[str, Any]:
        return {"name": "DocSpace API", "version": API_VERSION, "docs": "/docs"}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docspace.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
