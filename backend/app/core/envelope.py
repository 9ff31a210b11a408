# app/core/envelope.py
import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.chat_llm import AuthError, OtherError, QuotaExceeded, Success, UpstreamOutcome

log = logging.getLogger("uvicorn.error")

INVALID_REQUEST_ERROR = "Message is required and must be a string"
QUOTA_ERROR = "Service temporarily unavailable. Please try again later."
AUTH_ERROR = "Service configuration error. Please contact support."
PROCESSING_ERROR = "An error occurred while processing your request. Please try again."
NOT_FOUND_ERROR = "Endpoint not found"
METHOD_NOT_ALLOWED_ERROR = "Method not allowed"
INTERNAL_ERROR = "Internal server error"


class InvalidRequest(Exception):
    """Chat payload without a usable `message`."""


def error_response(status_code: int, message: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def translate_outcome(outcome: UpstreamOutcome) -> Tuple[int, Dict[str, Any]]:
    """Status code and envelope for a relay outcome. Upstream details never leak."""
    if isinstance(outcome, Success):
        return 200, {"response": outcome.text}
    if isinstance(outcome, QuotaExceeded):
        return 503, {"error": QUOTA_ERROR}
    if isinstance(outcome, AuthError):
        return 500, {"error": AUTH_ERROR}
    if isinstance(outcome, OtherError):
        return 500, {"error": PROCESSING_ERROR}
    raise TypeError(f"unexpected relay outcome: {type(outcome).__name__}")


async def _invalid_request_handler(request: Request, exc: InvalidRequest):
    return error_response(400, INVALID_REQUEST_ERROR)


async def _validation_handler(request: Request, exc: RequestValidationError):
    # only reachable for bodies that are not JSON at all
    log.info(f"[chat] rejected undecodable body on {request.url.path}")
    return error_response(400, INVALID_REQUEST_ERROR)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(404, NOT_FOUND_ERROR)
    if exc.status_code == 405:
        return error_response(405, METHOD_NOT_ALLOWED_ERROR, headers=getattr(exc, "headers", None))
    detail = exc.detail if isinstance(exc.detail, str) else INTERNAL_ERROR
    return error_response(exc.status_code, detail, headers=getattr(exc, "headers", None))


# Last resort for failures in the outer middleware; route errors are caught by UnhandledErrorMiddleware
async def _unhandled_handler(request: Request, exc: Exception):
    log.exception(f"[main] unhandled error on {request.method} {request.url.path}")
    return error_response(500, INTERNAL_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidRequest, _invalid_request_handler)
    app.add_exception_handler(RequestValidationError, _validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_handler)
