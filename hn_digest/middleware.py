# hn_digest/middleware.py
import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .logging_setup import request_id_var, get_logger

logger = get_logger("hn_digest.http")

# Probes hit these every few seconds; keep them out of INFO
QUIET_PATHS = {"/health", "/health/ready"}


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Reuse an upstream request id when a proxy already set one
        req_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        token = request_id_var.set(req_id)
        level = 10 if request.url.path in QUIET_PATHS else 20  # DEBUG / INFO

        start = time.perf_counter()
        response: Optional[Response] = None

        try:
            logger.log(level, f"REQUEST START: {request.method} {request.url.path}")
            response = await call_next(request)
            response.headers["X-Request-ID"] = req_id
            return response
        except Exception:
            # re-raised so the registered exception handlers build the response
            logger.exception(f"REQUEST EXCEPTION: {request.method} {request.url.path}")
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            status = getattr(response, "status_code", 500)
            logger.log(
                level,
                f"REQUEST END: {request.method} {request.url.path} -> {status} ({elapsed_ms:.1f} ms)",
                extra={"status_code": status, "elapsed_ms": round(elapsed_ms, 1)},
            )
            request_id_var.reset(token)
