"""Mapping of errors to HTTP responses.

Domain errors carry an ErrorKind; each kind maps to exactly one status code.
Internal kinds hide their message unless the app runs in development.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from parqueo.domain.errors import ErrorKind, ParkingError, StoreError
from parqueo.observability.logging import get_logger
from parqueo.observability.redaction import safe_log_context

logger = get_logger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.RACE_LOST: 500,
    ErrorKind.STORE: 500,
}

INTERNAL_ERROR_MESSAGE = "Internal server error"


def _debug_enabled(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings is not None and settings.debug)


def _field_name(loc: tuple[Any, ...]) -> str:
    # ("body", "RES_ID_USUARIO") / ("query", "JOR_TIPO") / ("body",)
    return str(loc[-1]) if len(loc) > 1 else str(loc[0])


def _validation_message(exc: RequestValidationError) -> str:
    missing: list[str] = []
    invalid: list[str] = []
    for err in exc.errors():
        if err.get("type") == "json_invalid":
            return "Malformed JSON"
        name = _field_name(tuple(err.get("loc", ("body",))))
        if err.get("type") == "missing" or err.get("input") in ("", 0, None):
            target = missing
        else:
            target = invalid
        if name not in target:
            target.append(name)

    if missing:
        return f"Missing required fields: {', '.join(missing)}"
    return f"Invalid fields: {', '.join(invalid)}"


async def handle_parking_error(request: Request, exc: ParkingError) -> JSONResponse:
    status_code = STATUS_BY_KIND[exc.kind]
    log_context = safe_log_context(
        path=request.url.path,
        kind=exc.kind.value,
        **{k: v for k, v in exc.context.items() if k not in ("path", "kind")},
    )

    if exc.internal:
        logger.error(
            exc.message, exc_info=exc, extra={"extra_fields": log_context}
        )
        body: dict[str, Any] = {"success": False, "error": INTERNAL_ERROR_MESSAGE}
        if _debug_enabled(request):
            body["details"] = {
                "kind": exc.kind.value,
                "message": exc.message,
                "code": (exc.code if isinstance(exc, StoreError) else None) or "N/A",
            }
    else:
        logger.warning(exc.message, extra={"extra_fields": log_context})
        body = {"success": False, "error": exc.message}

    return JSONResponse(status_code=status_code, content=body)


async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = _validation_message(exc)
    logger.warning(
        "request rejected",
        extra={"extra_fields": safe_log_context(path=request.url.path, reason=message)},
    )
    return JSONResponse(status_code=400, content={"success": False, "error": message})


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled error",
        exc_info=exc,
        extra={"extra_fields": safe_log_context(path=request.url.path, method=request.method)},
    )
    body: dict[str, Any] = {"success": False, "error": INTERNAL_ERROR_MESSAGE}
    if _debug_enabled(request):
        body["details"] = {"kind": "unexpected", "message": str(exc), "code": "N/A"}
    return JSONResponse(status_code=500, content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ParkingError, handle_parking_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)
