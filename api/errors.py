"""
Exception handlers.

Every error response has the same JSON shape:

    {"success": false, "error": "<message>", ...}

- domain ValidationError / pydantic request errors -> 400 with `validation_errors`
- NotFoundError -> 404
- TransitionRejected -> 409
- HTTPException -> its own status code
"""

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from domain.errors import NotFoundError, TransitionRejected, ValidationError

logger = logging.getLogger(__name__)


def error_body(message: str, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": message}
    body.update(extra)
    return body


def _request_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return errors


async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=400,
        content=error_body(
            exc.message,
            validation_errors=[e.to_dict() for e in exc.errors],
            **exc.context,
        ),
    )


async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    logger.info("Not found on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=404, content=error_body(exc.message))


async def handle_transition_rejected(request: Request, exc: TransitionRejected) -> JSONResponse:
    logger.info("Transition rejected on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=409,
        content=error_body(exc.message, current_status=exc.current, event=exc.event),
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_body("Invalid request payload", validation_errors=_request_errors(exc)),
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(NotFoundError, handle_not_found)
    app.add_exception_handler(TransitionRejected, handle_transition_rejected)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)


__all__ = ["error_body", "register_exception_handlers"]
