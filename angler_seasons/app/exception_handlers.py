import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from angler_seasons.core import exceptions
from angler_seasons.core.notify import send_ntfy_notification

logger = logging.getLogger(__name__)

# 도메인 예외 -> HTTP 상태 코드 (위에서부터 먼저 매칭)
STATUS_BY_ERROR = (
    (exceptions.EntityNotFoundError, status.HTTP_404_NOT_FOUND),
    (exceptions.EntityAlreadyExistsError, status.HTTP_409_CONFLICT),
    (exceptions.BusinessLogicError, status.HTTP_400_BAD_REQUEST),
)

async def seasons_exception_handler(request: Request, exc: exceptions.SeasonsError):
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break

    logger.info(f"{request.method} {request.url.path} -> {status_code} ({type(exc).__name__}: {exc.message})")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )

async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")

    await send_ntfy_notification(
        message=f"Unhandled {type(exc).__name__} on {request.url.path}: {exc}",
        title="🔥 Season API 500",
        priority="max"
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error. Admin has been notified."},
    )
