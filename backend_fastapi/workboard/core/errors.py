"""Application errors and the FastAPI handlers that render them.

Every failure leaves the API in the same envelope as a success:
``{"status": "error", "message": ...}``. Services raise :class:`AppError`;
anything else that escapes a handler is treated as an internal failure.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Error with an HTTP status and a message that is safe to show the caller.

    ``internal_message`` goes to the log only. ``is_operational`` is False for
    failures nobody expected, which are logged with a traceback.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        internal_message: Optional[str] = None,
        is_operational: bool = True,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.internal_message = internal_message
        self.is_operational = is_operational
        self.data = data

    @classmethod
    def bad_request(cls, message: str, internal_message: Optional[str] = None, data: Optional[Dict[str, Any]] = None) -> "AppError":
        return cls(message, status.HTTP_400_BAD_REQUEST, internal_message=internal_message, data=data)

    @classmethod
    def unauthorized(cls, message: str = "Authentication required") -> "AppError":
        return cls(message, status.HTTP_401_UNAUTHORIZED)

    @classmethod
    def forbidden(cls, message: str = "Access denied") -> "AppError":
        return cls(message, status.HTTP_403_FORBIDDEN)

    @classmethod
    def not_found(cls, message: str = "Resource not found", data: Optional[Dict[str, Any]] = None) -> "AppError":
        return cls(message, status.HTTP_404_NOT_FOUND, data=data)

    @classmethod
    def conflict(cls, message: str, internal_message: Optional[str] = None, data: Optional[Dict[str, Any]] = None) -> "AppError":
        return cls(message, status.HTTP_409_CONFLICT, internal_message=internal_message, data=data)

    @classmethod
    def internal(cls, message: str = "Internal server error", internal_message: Optional[str] = None) -> "AppError":
        return cls(message, status.HTTP_500_INTERNAL_SERVER_ERROR, internal_message=internal_message, is_operational=False)


def error_payload(message: str, data: Optional[Dict[str, Any]] = None, error: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"status": "error", "message": message}
    if data is not None:
        payload["data"] = data
    if error is not None:
        payload["error"] = error
    return payload


def register_exception_handlers(app: FastAPI, show_error_details: bool) -> None:
    """Attach the envelope-producing handlers to ``app``.

    ``show_error_details`` adds the raw exception text to 500 responses and
    must be off in production.
    """

    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        log_message = exc.internal_message or exc.message
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {log_message}", exc_info=not exc.is_operational)
        else:
            logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {log_message}")
        return JSONResponse(status_code=exc.status_code, content=error_payload(exc.message, data=exc.data))

    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            message = first.get("msg", message)
            # pydantic prefixes custom ValueError messages
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
        logger.warning(f"{request.method} {request.url.path} -> 400: {message}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_payload(message))

    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_payload("Internal server error", error=str(exc) if show_error_details else None),
        )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
