"""Global error handlers: every failure renders as {"error", "detail", ...}."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from boop.errors import ErrorKind, StakingError

logger = structlog.get_logger()

_HTTP_KINDS = {
    400: ErrorKind.VALIDATION,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.INVALID_STATE,
    429: ErrorKind.TOO_EARLY,
}


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StakingError)
    async def staking_error_handler(request: Request, exc: StakingError) -> JSONResponse:
        """Domain rejections keep their kind and actionable data."""
        if exc.kind == ErrorKind.INTERNAL:
            logger.error("operation_failed", path=request.url.path, detail=exc.message)
        else:
            logger.info("operation_rejected", path=request.url.path, kind=exc.kind.value, detail=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        kind = _HTTP_KINDS.get(exc.status_code, ErrorKind.INTERNAL if exc.status_code >= 500 else ErrorKind.VALIDATION)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": kind.value, "detail": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed requests are VALIDATION errors, not 422s."""
        return JSONResponse(
            status_code=400,
            content={
                "error": ErrorKind.VALIDATION.value,
                "detail": "Validation error",
                "errors": jsonable_errors(exc),
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def storage_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("storage_failure", path=request.url.path, error=str(exc), exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": ErrorKind.INTERNAL.value, "detail": "Storage failure"},
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
            content={"error": ErrorKind.INTERNAL.value, "detail": "Internal server error"},
        )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation error entries without the raw input or exception context."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
