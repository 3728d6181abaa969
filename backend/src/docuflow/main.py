"""Docuflow Backend - Main FastAPI Application

Multi-tenant document collection: employee directory, document requests,
email ingestion and rule-based routing of attachments to cloud storage.

This module creates and configures the FastAPI application:
- API routers under /api/v1
- Middleware (request ID correlation, CORS, tenant context)
- Exception handlers rendering the {"success": false, ...} envelope
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.errors import ErrorMessages
from .api.responses import error_response
from .config import get_settings
from .database import get_db
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .storage.port import ReconnectRequiredError
from .tenancy.middleware import TenantContextMiddleware

from .activity.router import router as activity_router
from .auth.router import router as auth_router
from .document_requests.router import router as document_requests_router
from .documents.router import router as documents_router
from .employees.router import router as employees_router
from .ingestion.router import router as ingestion_router
from .organizations.router import router as organizations_router
from .routing.router import router as routing_router
from .storage.router import router as storage_router

settings = get_settings()
configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Docuflow API starting up...")
    logger.info(f"Environment: {settings.ENV}")
    yield
    logger.info("Docuflow API shutting down...")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(
        exc.status_code,
        str(exc.detail),
        code=getattr(exc, "code", None),
        details=getattr(exc, "details", None),
        headers=getattr(exc, "headers", None),
    )


async def reconnect_required_handler(request: Request, exc: ReconnectRequiredError) -> JSONResponse:
    """Provider credentials were revoked or the refresh token expired."""
    logger.warning(f"Provider reconnect required on {request.method} {request.url.path}: {exc}")
    return error_response(
        status.HTTP_401_UNAUTHORIZED,
        ErrorMessages.OAUTH_TOKEN_EXPIRED,
        code="OAUTH_TOKEN_EXPIRED",
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Field-level 422 details without echoing the submitted input."""
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    logger.warning(f"Validation error on {request.method} {request.url.path}", extra={"errors": errors})
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ErrorMessages.INVALID_INPUT,
        code="VALIDATION_ERROR",
        details=errors,
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorMessages.DATABASE_ERROR)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorMessages.INTERNAL_ERROR)


def create_app() -> FastAPI:
    """Build the application (also used by tests)."""
    docs_enabled = settings.ENV != "production"
    app = FastAPI(
        title="Docuflow API",
        description="Document collection and routing for organizations",
        version="0.1.0",
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(TenantContextMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(ReconnectRequiredError, reconnect_required_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    for router in (
        auth_router,
        activity_router,
        employees_router,
        routing_router,
        storage_router,
        document_requests_router,
        documents_router,
        ingestion_router,
        organizations_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/health", include_in_schema=False)
    def health(db: Session = Depends(get_db)) -> dict[str, Any]:
        try:
            db.execute(text("SELECT 1"))
            database = "ok"
        except SQLAlchemyError as e:
            logger.error(f"Health check database error: {e}")
            database = "error"
        return {"status": "ok" if database == "ok" else "degraded", "database": database}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docuflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENV == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
