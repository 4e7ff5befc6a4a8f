"""Map card tree errors to JSON responses of the form {"error": code, "detail": msg}."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cardtrees.errors import (
    AuthenticationError,
    CardTreeError,
    CrossTreeError,
    NotFoundError,
    ResolutionError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS: dict[type[CardTreeError], int] = {
    ValidationError: 400,
    AuthenticationError: 401,
    CrossTreeError: 400,
    NotFoundError: 404,
}


def _json_error(code: str, detail: str, status: int, **extra: object) -> JSONResponse:
    return JSONResponse({"error": code, "detail": detail, **extra}, status_code=status)


def _describe(errors: list[dict]) -> str:
    """Flatten request validation errors to "body.position: Input should be ..."."""
    parts = []
    for error in errors:
        loc = ".".join(str(p) for p in error.get("loc", ()))
        parts.append(f"{loc}: {error.get('msg', 'invalid')}")
    return "; ".join(parts)


def register_error_handlers(app: FastAPI) -> None:
    """Register one handler per error class on the app."""

    async def client_error(request: Request, exc: CardTreeError) -> JSONResponse:
        status = next(s for cls, s in _STATUS.items() if isinstance(exc, cls))
        return _json_error(exc.code, str(exc), status)

    async def request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _json_error(ValidationError.code, _describe(exc.errors()), 400)

    async def resolution_error(request: Request, exc: ResolutionError) -> JSONResponse:
        return _json_error(
            exc.code,
            str(exc),
            400,
            tree_index=exc.tree_index,
            dangling=exc.dangling,
            cycles=exc.cycles,
        )

    async def storage_error(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _json_error(exc.code, "A storage error occurred. Please retry.", 500)

    for cls in _STATUS:
        app.add_exception_handler(cls, client_error)
    app.add_exception_handler(RequestValidationError, request_error)
    app.add_exception_handler(ResolutionError, resolution_error)
    app.add_exception_handler(StorageError, storage_error)
