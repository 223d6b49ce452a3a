import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from outreach.core.exceptions import MessagingError

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as {"ok": false, "error": ...}."""

    @app.exception_handler(MessagingError)
    async def messaging_error_handler(request: Request, exc: MessagingError):
        if exc.status_code >= 500:
            logger.error(f"[{request.method} {request.url.path}] {exc.message}")
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        # Backstop for queries that run outside store_guard
        message = str(getattr(exc, "orig", None) or exc)
        logger.error(f"[{request.method} {request.url.path}] {message}")
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg')}" if location else first.get("msg")
        else:
            message = "Invalid request"
        return _error_response(status.HTTP_400_BAD_REQUEST, message)
