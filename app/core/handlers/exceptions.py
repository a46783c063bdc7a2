from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import api_error
from app.core.exceptions import AppError, RateLimitError

logger = logging.getLogger(__name__)


def add_exception_handlers(app: FastAPI) -> None:
    # --- Domain exceptions ---

    @app.exception_handler(AppError)
    async def _domain_handler(request: Request, exc: AppError) -> JSONResponse:
        headers: dict[str, str] | None = None
        if isinstance(exc, RateLimitError):
            headers = {"Retry-After": str(exc.retry_after)}
        return JSONResponse(
            status_code=exc.status_code,
            content=api_error(exc.code, exc.message),
            headers=headers,
        )

    # --- Framework exceptions ---

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> Response:
        return JSONResponse(
            status_code=422,
            content=api_error("validation_error", "Invalid request payload"),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> Response:
        detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content=api_error(f"http_{exc.status_code}", detail),
            headers=getattr(exc, "headers", None),
        )

    # --- Catch-all for unhandled exceptions ---

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=api_error("internal_error", "Unexpected error"),
        )
