"""Error taxonomy and the centralized translation of errors into JSON responses."""

from __future__ import annotations

import traceback
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cardshelf.core.config import settings
from cardshelf.core.logging import get_logger


logger = get_logger(__name__)


class AppError(Exception):
    """Base exception for all cardshelf errors."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    def payload(self) -> dict[str, Any]:
        return {"status": self.status_code, "message": self.message}


class ValidationFailed(AppError):
    """Constraint violation on user input, reported per field."""

    def __init__(
        self, message: str = "Validation failed", errors: dict[str, str] | None = None
    ) -> None:
        self.errors = errors or {}
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST)

    def payload(self) -> dict[str, Any]:
        data = super().payload()
        data["errors"] = self.errors
        return data


class BadRequestError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST)


class NotFoundError(AppError):
    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class UnauthorizedError(AppError):
    """Missing or unverifiable bearer credential."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED)

    def payload(self) -> dict[str, Any]:
        return {"error": self.message}


class InvalidTokenError(UnauthorizedError):
    """Rendered by the token verification endpoint."""

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)

    def payload(self) -> dict[str, Any]:
        return {"error": self.message, "verified": False}


def serialize_exception(exc: BaseException) -> dict[str, Any]:
    """Serialize an exception and its cause chain, tolerating cycles."""
    seen: set[int] = set()

    def _walk(err: BaseException | None) -> dict[str, Any] | None:
        if err is None:
            return None
        if id(err) in seen:
            return {"type": type(err).__name__, "message": "[Circular]"}
        seen.add(id(err))
        return {
            "type": type(err).__name__,
            "message": str(err),
            "args": [repr(a) for a in err.args],
            "traceback": traceback.format_exception(type(err), err, err.__traceback__),
            "cause": _walk(err.__cause__ or err.__context__),
        }

    return _walk(exc) or {}


def _render(payload: dict[str, Any], status_code: int, exc: BaseException) -> JSONResponse:
    # Full error detail is only ever exposed outside production
    if not settings.app.is_production and "error" not in payload:
        payload = {**payload, "error": serialize_exception(exc)}
    return JSONResponse(status_code=status_code, content=payload)


def _field_errors(exc: RequestValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        errors.setdefault(field, err.get("msg", "Invalid value"))
    return errors


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(exc.message, exc_info=exc)
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return _render(exc.payload(), exc.status_code, exc)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    failed = ValidationFailed(errors=_field_errors(exc))
    logger.info(f"{request.method} {request.url.path} -> 400: {failed.errors}")
    return JSONResponse(status_code=failed.status_code, content=failed.payload())


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": exc.status_code, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = HTTPStatus(code).phrase
    if not settings.app.is_production:
        message = str(exc) or message
    return _render({"status": code, "message": message}, code, exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
