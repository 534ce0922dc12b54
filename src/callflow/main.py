"""
FastAPI application entry point.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable
from uuid import uuid4

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from callflow.api.router import router as telephony_router
from callflow.config import get_settings
from callflow.shared.exceptions import InvalidInput
from callflow.shared.logging import correlation_id_var, get_logger, setup_logging
from callflow.telephony.factory import close_dispatcher
from callflow.telephony.interface import INFRASTRUCTURE_ERRORS, TelephonyProviderError
from callflow.workflows.errors import WorkflowError

logger = get_logger(__name__)

INVALID_INPUT = "invalid_input"
WORKFLOW_FAILURE = "workflow_failure"
PROVIDER_REJECTED = "provider_rejected"
INFRASTRUCTURE_FAILURE = "infrastructure_failure"


def _error_response(status_code: int, kind: str, details: dict) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "kind": kind, **details},
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    settings = get_settings()

    logger.info("Application starting", extra={"env": settings.app_env})

    yield

    logger.info("Shutting down application")
    await close_dispatcher()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="callflow API",
        description="Signed telephony client and voice call workflow",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    @app.middleware("http")
    async def correlation_id_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get("X-Request-ID") or uuid4().hex
        token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)
        response.headers["X-Request-ID"] = correlation_id
        return response

    # Map domain exceptions to HTTP responses
    @app.exception_handler(InvalidInput)
    async def _invalid_input(_: Request, exc: InvalidInput) -> JSONResponse:
        return _error_response(status.HTTP_400_BAD_REQUEST, INVALID_INPUT, exc.to_dict())

    @app.exception_handler(WorkflowError)
    async def _workflow_error(_: Request, exc: WorkflowError) -> JSONResponse:
        logger.warning(
            "Workflow failed",
            extra={"step": exc.step, "error_kind": exc.kind, "infrastructure": exc.is_infrastructure},
        )
        if exc.is_infrastructure:
            return _error_response(
                status.HTTP_503_SERVICE_UNAVAILABLE, INFRASTRUCTURE_FAILURE, exc.to_dict()
            )
        return _error_response(status.HTTP_502_BAD_GATEWAY, WORKFLOW_FAILURE, exc.to_dict())

    @app.exception_handler(TelephonyProviderError)
    async def _provider_error(_: Request, exc: TelephonyProviderError) -> JSONResponse:
        logger.warning("Provider call failed", extra={"error_kind": exc.kind})
        if isinstance(exc, INFRASTRUCTURE_ERRORS):
            return _error_response(
                status.HTTP_503_SERVICE_UNAVAILABLE, INFRASTRUCTURE_FAILURE, exc.to_dict()
            )
        return _error_response(status.HTTP_502_BAD_GATEWAY, PROVIDER_REJECTED, exc.to_dict())

    # Request validation (FastAPI/Pydantic) is bad input too
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append(
                {
                    "field": field,
                    "message": error["msg"],
                    "type": error["type"],
                }
            )
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            INVALID_INPUT,
            {
                "error": INVALID_INPUT,
                "message": "Request validation failed",
                "errors": errors,
            },
        )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(telephony_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
