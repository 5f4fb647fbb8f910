"""FastAPI application factory"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.exceptions import HTTPException
from starlette.responses import Response

from installment_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from installment_gateway.api.v1 import calculate, payments, plans
from installment_gateway.infrastructure.observability.logging import setup_logging
from installment_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTP errors in the {success, error} envelope clients expect"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": "Invalid request",
            "details": {"errors": jsonable_encoder(exc.errors())},
        },
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    logging.error(
        f"Unexpected error: {exc}",
        exc_info=exc,
        extra={"request_id": request_id, "path": request.url.path},
    )
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
        headers={"X-Request-ID": request_id},
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Installment Gateway",
        description="Payment plan quoting, origination and schedule tracking service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(calculate.router, prefix="/api/v1", tags=["quotes"])
    app.include_router(plans.router, prefix="/api/v1", tags=["plans"])
    app.include_router(payments.router, prefix="/api/v1", tags=["payments"])

    return app


app = create_app()
