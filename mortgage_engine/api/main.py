"""FastAPI application factory"""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from mortgage_engine.api.middleware import RequestIDMiddleware, MetricsMiddleware
from mortgage_engine.api.v1 import applications, calculator, rates
from mortgage_engine.domain.exceptions import (
    ConflictError,
    DomainException,
    ForbiddenError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
)
from mortgage_engine.infrastructure.observability.logging import setup_logging
from mortgage_engine.config import settings

# Setup structured logging
setup_logging(settings.log_level)

STATUS_BY_ERROR = {
    InvalidInputError: 422,
    NotFoundError: 404,
    ForbiddenError: 403,
    ConflictError: 409,
    InvalidTransitionError: 409,
}


def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Translate domain errors into HTTP responses"""
    status_code = next(
        (code for error_type, code in STATUS_BY_ERROR.items() if isinstance(exc, error_type)),
        500,
    )
    request_id = getattr(request.state, "request_id", "unknown")

    if status_code == 500:
        logging.error(f"Unhandled domain error: {exc}", extra={"request_id": request_id})
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    logging.warning(f"{type(exc).__name__}: {exc}", extra={"request_id": request_id})
    body = {"detail": str(exc)}
    if isinstance(exc, InvalidInputError):
        body["errors"] = [{"field": e.field, "message": e.message} for e in exc.errors]
    return JSONResponse(status_code=status_code, content=body)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Mortgage Engine",
        description="Mortgage calculation, rate comparison and application lifecycle service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(calculator.router, prefix="/v1", tags=["calculator"])
    app.include_router(rates.router, prefix="/v1", tags=["rates"])
    app.include_router(applications.router, prefix="/v1", tags=["applications"])

    return app


app = create_app()
