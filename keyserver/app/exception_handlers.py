from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from keyserver.core import exceptions
from keyserver.core.config import settings
from keyserver.core.notify import send_ntfy_notification
import logging

logger = logging.getLogger(__name__)

def _error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "code": status_code, **extra},
    )

def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"

async def keyserver_exception_handler(request: Request, exc: exceptions.KeyServerError):
    status_code = status.HTTP_400_BAD_REQUEST

    if isinstance(exc, exceptions.EntityNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND

    elif isinstance(exc, exceptions.EntityAlreadyExistsError):
        status_code = status.HTTP_409_CONFLICT

    elif isinstance(exc, exceptions.AuthError):
        status_code = status.HTTP_401_UNAUTHORIZED

    elif isinstance(exc, exceptions.StoreFailureError):
        # Full context goes to the log; the client only sees a generic failure
        logger.error(
            f"Store failure: {exc.message} "
            f"[{request.method} {request.url.path} from {_client_ip(request)}]",
            exc_info=exc,
        )
        await send_ntfy_notification(
            message=f"{exc.message}\nPath: {request.url.path}",
            title="Key store failure",
            priority="high"
        )
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error")

    return _error_response(status_code, exc.message)

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Malformed bodies are plain bad input (400), same shape as every other error
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else "Invalid request"
    return _error_response(status.HTTP_400_BAD_REQUEST, message)

async def general_exception_handler(request: Request, exc: Exception):
    # Anything unexpected, raw SQLAlchemy errors included
    error_msg = f"Unhandled Exception: {str(exc)}\nPath: {request.url.path}"
    logger.error(f"{error_msg} [{request.method} from {_client_ip(request)}]", exc_info=exc)

    await send_ntfy_notification(
        message=error_msg,
        title="500 Internal Server Error",
        priority="max"
    )

    extra = {"details": str(exc)} if settings.DEBUG else {}
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", **extra)
