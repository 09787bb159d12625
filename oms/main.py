"""Order management API main application module.

This module initializes the FastAPI application and configures
core middleware, routers, exception handlers and startup/shutdown.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from oms.api.customers import router as customers_router
from oms.api.dependencies import ERROR_KIND_STATUS
from oms.api.health import router as health_router
from oms.api.middleware import setup_middleware
from oms.api.orders import router as orders_router
from oms.api.products import router as products_router
from oms.domain.exceptions import DomainError
from oms.infrastructure.bootstrap import get_container, set_container
from oms.infrastructure.config import settings
from oms.infrastructure.database import dispose_engine
from oms.infrastructure.logging import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    configure_logging()
    container = get_container()
    logger.info(
        "Starting order management API",
        version=settings.api_version,
        debug=settings.debug,
        store_backend=settings.store_backend,
    )

    yield

    logger.info("Shutting down order management API")
    await container.dispatcher.drain()
    await container.close()
    set_container(None)
    await dispose_engine()


app = FastAPI(
    title="Order Management API",
    description="Orders and inventory kept consistent across concurrent units of work",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

setup_middleware(app)

app.include_router(health_router, tags=["Health"])
app.include_router(orders_router)
app.include_router(products_router)
app.include_router(customers_router)


# ============================================================================
# Custom Exception Handlers
# ============================================================================


def _error_body(request: Request, error_code: str, message: str, details) -> dict:
    return {
        "error_code": error_code,
        "message": message,
        "details": details,
        "request_id": getattr(request.state, "request_id", None),
    }


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
        details = detail.get("details", {})
    else:
        error_code = "ERROR"
        message = str(detail)
        details = {}

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, error_code, message, details),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as validation errors."""
    return JSONResponse(
        status_code=422,
        content=_error_body(
            request,
            "VALIDATION_ERROR",
            "Request validation failed",
            [
                {"field": ".".join(str(part) for part in error.get("loc", [])), "message": error.get("msg", "")}
                for error in exc.errors()
            ],
        ),
    )


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map a domain error that reached the HTTP layer to its outcome."""
    return JSONResponse(
        status_code=ERROR_KIND_STATUS.get(exc.kind, 400),
        content=_error_body(request, exc.error_code, exc.message, exc.details),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent format."""
    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )
    return JSONResponse(
        status_code=500,
        content=_error_body(request, "INTERNAL_ERROR", "An internal error occurred", {}),
    )
