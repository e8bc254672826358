# hn_digest/exception_handling.py
from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .errors import ConfigError, DeliveryError, DigestError
from .logging_setup import get_logger

logger = get_logger("hn_digest.exceptions")


async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(
        "HTTP_EXCEPTION",
        extra={"handled": True, "path": str(request.url.path), "status_code": exc.status_code},
    )
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


async def digest_exception_handler(request: Request, exc: DigestError):
    # Telegram unreachable is an upstream problem, bad config is ours
    if isinstance(exc, DeliveryError):
        status_code = 502
    elif isinstance(exc, ConfigError):
        status_code = 500
    else:
        status_code = 503
    logger.exception(
        "DIGEST_EXCEPTION",
        extra={"handled": True, "path": str(request.url.path), "status_code": status_code, "error": type(exc).__name__},
    )
    return JSONResponse({"detail": str(exc), "error": type(exc).__name__}, status_code=status_code)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "UNHANDLED_EXCEPTION",
        extra={"handled": False, "path": str(request.url.path)},
    )
    return JSONResponse({"detail": "Internal Server Error"}, status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers in one place.
    Call from hn_digest/main.py after creating the FastAPI app.
    """
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(DigestError, digest_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
