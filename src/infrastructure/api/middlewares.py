from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from src.domain.errors import (
    DecodeError,
    DesignError,
    DimensionReadError,
    EditInProgressError,
    GenerationTimeoutError,
    NoActiveSessionError,
    NoImageReturnedError,
    RenderError,
    SessionNotFoundError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

# Most specific first
_ERROR_STATUS: tuple[tuple[type[Exception], int], ...] = (
    (DecodeError, status.HTTP_400_BAD_REQUEST),
    (DimensionReadError, status.HTTP_400_BAD_REQUEST),
    (NoActiveSessionError, status.HTTP_400_BAD_REQUEST),
    (SessionNotFoundError, status.HTTP_404_NOT_FOUND),
    (EditInProgressError, status.HTTP_409_CONFLICT),
    (NoImageReturnedError, status.HTTP_502_BAD_GATEWAY),
    (GenerationTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (RenderError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: Exception) -> int:
    for error_type, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def add_default_middlewares(app: FastAPI) -> None:
    # CORS configuration
    # In development/demo mode, allow common frontend origins
    env = os.getenv("ENV", "development")

    if env in ("development", "staging"):
        allowed_origins = [
            "http://localhost:3000",
            "http://localhost:5173",  # Vite default
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]
    else:
        allowed_origins = [
            origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",") if origin.strip()
        ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def add_exception_handlers(app: FastAPI) -> None:
    """Present every domain failure as a single human-readable message."""

    @app.exception_handler(DesignError)
    async def design_error_handler(request: Request, exc: DesignError) -> JSONResponse:
        code = status_for(exc)
        if code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=code, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(request: Request, exc: RuntimeError) -> JSONResponse:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": str(exc)}
        )
