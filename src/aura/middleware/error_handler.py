"""Global error handlers: every failure leaves the API as ``{"detail", "code"}`` JSON."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from aura.errors import AuraError

logger = structlog.get_logger()

_HTTP_CODES = {
    401: "unauthenticated",
    403: "permission",
    404: "not_found",
    405: "method_not_allowed",
    429: "rate_limited",
}


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(AuraError)
    async def domain_exception_handler(request: Request, exc: AuraError) -> JSONResponse:
        """Map domain errors to their status code and category."""
        log = logger.warning if exc.status_code >= 500 else logger.info
        log(
            "request_rejected",
            path=request.url.path,
            method=request.method,
            code=exc.code,
            detail=exc.message,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "code": _HTTP_CODES.get(exc.status_code, "error")},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "code": "validation", "errors": exc.errors()},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions, always JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "code": "internal"},
        )
