"""FastAPI application entry point."""
import traceback
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from billingcore.config import settings
from billingcore.database import engine
from billingcore.exceptions import BillingCoreError, IncompleteProfileError
from billingcore.middleware.logging import LoggingMiddleware, get_request_id, setup_logging
from billingcore.middleware.metrics import MetricsMiddleware
from billingcore.schemas.error import REMEDIATION_HINTS, ErrorCode, ErrorDetail

# Setup structured logging
setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    logger.info("application_starting", env=settings.app_env)
    yield
    await engine.dispose()
    logger.info("application_shutting_down")


app = FastAPI(
    title="billingcore",
    description="Credits, billing profiles and invoices for the hosting control panel",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(LoggingMiddleware)

# Mount Prometheus metrics endpoint
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


def error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: list[dict[str, Any]],
    remediation: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """Render the structured error body shared by every handler."""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            {
                "error": error,
                "message": message,
                "details": details,
                "remediation": remediation,
                "request_id": get_request_id(request),
                "timestamp": datetime.utcnow().isoformat() + "Z",
            }
        ),
        headers=headers,
    )


# Pydantic error types mapped to our error codes
VALIDATION_CODE_MAPPING = {
    "json_invalid": ErrorCode.INVALID_JSON,
    "json_type": ErrorCode.INVALID_JSON,
    "model_attributes_type": ErrorCode.INVALID_JSON,
    "dict_type": ErrorCode.INVALID_JSON,
    "missing": ErrorCode.MISSING_REQUIRED_FIELD,
    "enum": ErrorCode.INVALID_ENUM_VALUE,
    "string_too_long": ErrorCode.VALUE_TOO_LONG,
    "date_parsing": ErrorCode.INVALID_DATE,
    "date_from_datetime_parsing": ErrorCode.INVALID_DATE,
    "date_type": ErrorCode.INVALID_DATE,
}

# Fields whose type errors carry a dedicated code
FIELD_CODE_MAPPING = {
    "amount": ErrorCode.INVALID_AMOUNT,
    "user_id": ErrorCode.INVALID_USER_ID,
    "default_currency": ErrorCode.INVALID_CURRENCY,
}


def _validation_code(error: dict[str, Any]) -> str:
    loc = error.get("loc") or ()
    # A missing or non-object body is a JSON problem, not a field problem
    if tuple(loc) == ("body",):
        return ErrorCode.INVALID_JSON

    field = str(loc[-1]) if loc else ""
    if field in FIELD_CODE_MAPPING and error["type"] != "missing":
        return FIELD_CODE_MAPPING[field]

    return VALIDATION_CODE_MAPPING.get(error["type"], ErrorCode.VALIDATION_ERROR)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle request validation errors with structured response.

    Returns 400 with field-level details; malformed JSON is reported as
    ``invalid_json``.
    """
    details = []
    for error in exc.errors():
        details.append(
            ErrorDetail(
                code=_validation_code(error),
                message=error["msg"],
                field=".".join(str(loc) for loc in error["loc"]),
                value=error.get("input"),
            ).model_dump()
        )

    primary_code = details[0]["code"] if details else ErrorCode.VALIDATION_ERROR

    logger.warning(
        "validation_error",
        path=request.url.path,
        method=request.method,
        error_count=len(details),
        code=primary_code,
    )

    return error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        error="ValidationError",
        message="Invalid JSON" if primary_code == ErrorCode.INVALID_JSON else "Request validation failed",
        details=details,
        remediation=REMEDIATION_HINTS.get(primary_code, "Check the API documentation for correct request format at /docs"),
    )


@app.exception_handler(BillingCoreError)
async def billing_exception_handler(request: Request, exc: BillingCoreError) -> JSONResponse:
    """
    Handle domain errors raised by the services.

    Each error carries its own code and HTTP status.
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "billing_error",
        path=request.url.path,
        method=request.method,
        code=exc.code,
        error_message=exc.message,
        **{k: v for k, v in exc.context.items() if k not in ("path", "method", "code")},
    )

    details = [{"code": exc.code, "message": exc.message}]
    if isinstance(exc, IncompleteProfileError):
        details.extend(
            {"code": ErrorCode.MISSING_REQUIRED_FIELD, "message": f"{field} is required", "field": field}
            for field in exc.missing_fields
        )

    return error_response(
        request,
        exc.status_code,
        error=exc.error_type,
        message=exc.message,
        details=details,
        remediation=REMEDIATION_HINTS.get(exc.code),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (401, 403, 404, 405) in the structured format."""
    code, error = {
        status.HTTP_401_UNAUTHORIZED: (ErrorCode.UNAUTHORIZED, "Unauthorized"),
        status.HTTP_403_FORBIDDEN: (ErrorCode.INSUFFICIENT_PERMISSIONS, "Forbidden"),
        status.HTTP_404_NOT_FOUND: ("not_found", "NotFound"),
        status.HTTP_405_METHOD_NOT_ALLOWED: ("method_not_allowed", "MethodNotAllowed"),
    }.get(exc.status_code, ("http_error", "HTTPError"))

    message = exc.detail if isinstance(exc.detail, str) else error

    return error_response(
        request,
        exc.status_code,
        error=error,
        message=message,
        details=[{"code": code, "message": message}],
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """
    Handle database errors.

    Returns 503 Service Unavailable for database connection issues.
    """
    logger.error(
        "database_error",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        error_message=str(exc),
    )

    # Don't expose internal database details in production
    error_message = "Database temporarily unavailable" if settings.app_env == "production" else str(exc)

    return error_response(
        request,
        status.HTTP_503_SERVICE_UNAVAILABLE,
        error="DatabaseError",
        message="A database error occurred",
        details=[{"code": ErrorCode.DATABASE_ERROR, "message": error_message}],
        remediation=REMEDIATION_HINTS.get(ErrorCode.DATABASE_ERROR),
        headers={"Retry-After": "30"},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all other uncaught exceptions.

    Logs full stack trace for debugging but returns safe error message to client.
    """
    logger.exception(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        exception_type=type(exc).__name__,
        exception_message=str(exc),
        stack_trace=traceback.format_exc(),
    )

    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        error="InternalServerError",
        message="An unexpected error occurred",
        details=[
            {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": str(exc) if settings.debug else "Internal server error",
            }
        ],
        remediation="Please contact support with the request ID",
    )


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint with API information."""
    return {
        "service": "billingcore",
        "version": "0.1.0",
        "status": "operational",
        "docs": "/docs",
    }


# Include routers
from billingcore.api.v1 import (  # noqa: E402
    admin_invoices,
    admin_settings,
    admin_users,
    billing_info,
    credits,
    health,
    invoices,
)

app.include_router(health.router, tags=["Health"])
app.include_router(credits.router, prefix="/v1", tags=["Credits"])
app.include_router(billing_info.router, prefix="/v1", tags=["Billing Profile"])
app.include_router(invoices.router, prefix="/v1", tags=["Invoices"])
app.include_router(admin_users.router, prefix="/v1", tags=["Admin - Users"])
app.include_router(admin_invoices.router, prefix="/v1", tags=["Admin - Invoices"])
app.include_router(admin_settings.router, prefix="/v1", tags=["Admin - Settings"])
