"""
API error types

Every failure a handler can report is one of these. They are rendered as
``{"error": message}`` with the matching status code by the handlers that
``register_error_handlers`` installs on the app.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class APIError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token"


class InvalidCredentials(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid credentials"


class Forbidden(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class NotFound(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class DuplicateEmail(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "User already exists"


class InvalidOperation(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid operation"


class InternalError(APIError):
    pass


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        headers = None
        if isinstance(exc, Unauthenticated):
            headers = {"WWW-Authenticate": "Bearer"}
        return error_response(exc.status_code, exc.message, headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = []
        for err in exc.errors():
            loc = [str(p) for p in err.get("loc", ()) if p != "body"]
            fields.append(f"{'.'.join(loc) or 'body'}: {err.get('msg')}")
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request: " + "; ".join(fields))

    @app.exception_handler(PyMongoError)
    async def store_error_handler(request: Request, exc: PyMongoError):
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
        return error_response(InternalError.status_code, InternalError.default_message)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(InternalError.status_code, InternalError.default_message)
