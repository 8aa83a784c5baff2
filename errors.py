"""
Error translation.

Every failure leaving a route is rendered as ``{"success": false, "error": msg}``
with the status code of its category.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class QueryError(Exception):
    """Raised when query string parameters cannot be turned into a query."""


class UpstreamError(Exception):
    """Raised when an external collaborator (geocoder, object store, mail) fails."""


def error_response(status_code: int, message: str, request: Request) -> JSONResponse:
    if status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, status_code, message)
    else:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, status_code, message)
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def http_exception_handler(request: Request, exc: HTTPException):
    response = error_response(exc.status_code, str(exc.detail), request)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        messages.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", "Invalid value"))
    return error_response(400, "ValidationError - " + ", ".join(messages), request)


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    key_value = (exc.details or {}).get("keyValue") or {}
    if key_value:
        values = ", ".join(f'{k} "{v}"' for k, v in key_value.items())
        message = f"Duplicate field value entered: {values} already exists"
    else:
        message = "Duplicate field value entered"
    return error_response(400, message, request)


async def query_error_handler(request: Request, exc: QueryError):
    return error_response(400, str(exc), request)


async def upstream_error_handler(request: Request, exc: UpstreamError):
    return error_response(500, str(exc), request)


# SlowAPIMiddleware calls this synchronously
def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return error_response(429, "Too many requests, please try again later.", request)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Server Error", request)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(QueryError, query_error_handler)
    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
