"""
Global exception handlers. Map domain exceptions to HTTP responses.

Bodies are always {"msg": str} or {"errors": [{"msg", ...}]}.
"""
import keyword
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from devconnector.exceptions import AppError
from devconnector.utils.logger import get_logger

logger = get_logger(__name__)

SERVER_ERROR_MSG = "Server Error"


def _param_name(loc: tuple) -> str | None:
    if len(loc) < 2:
        return None
    param = str(loc[-1])
    # Fields named after Python keywords (from_) are sent without the underscore
    if param.endswith("_") and keyword.iskeyword(param[:-1]):
        return param[:-1]
    return param


def format_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Flatten pydantic errors into {msg, param, location, value} entries."""
    formatted = []
    for err in errors:
        loc = err.get("loc") or ()
        formatted.append({
            "msg": err.get("msg", "Invalid value"),
            "param": _param_name(loc),
            "location": str(loc[0]) if loc else None,
            "value": err.get("input"),
        })
    return jsonable_encoder(formatted)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = format_validation_errors(list(exc.errors()))
        logger.debug("Validation error", extra={"path": request.url.path, "count": len(errors)})
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"errors": errors},
        )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed", extra={"path": request.url.path, "error": type(exc).__name__})
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"msg": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Unhandled store error", extra={"path": request.url.path})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"msg": SERVER_ERROR_MSG},
        )

    @app.exception_handler(500)
    async def server_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"msg": SERVER_ERROR_MSG},
        )
