"""
Middleware for request logging and error handling.

Every request gets an id (``req_<ms>_<hex>``) stored on ``request.state`` so
routers and exception handlers can tag their log lines with it. Responses
carry X-Request-ID, X-Engine-Version and X-Processing-Time.
"""

import json
import logging
import os
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .config import ENGINE_VERSION, SLOW_REQUEST_SECONDS

logger = logging.getLogger("quiniela_api.middleware")

# Polled by monitors; logged at debug only
QUIET_PATHS = frozenset({"/health"})


def new_request_id(now: float) -> str:
    return f"req_{int(now * 1000)}_{os.urandom(4).hex()}"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Request id, timing and engine headers for every request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        request_id = new_request_id(start_time)
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"
        log = logger.debug if path in QUIET_PATHS else logger.info

        request.state.request_id = request_id
        log(f"[{request_id}] {request.method} {path} | Client: {client_ip}")

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            logger.error("=" * 80)
            logger.exception(
                f"[{request_id}] CRASHED | {request.method} {path} | "
                f"Duration: {duration:.4f}s | Error: {e}"
            )
            logger.error("=" * 80)

            return Response(
                content=json.dumps({
                    "error": "Internal server error",
                    "error_code": "INTERNAL_ERROR",
                    "request_id": request_id,
                    "message": str(e)
                }),
                status_code=500,
                media_type="application/json",
                headers=self._headers(request_id, duration)
            )

        duration = time.time() - start_time
        if duration > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"[{request_id}] SLOW | {request.method} {path} took {duration:.2f}s "
                f"(threshold {SLOW_REQUEST_SECONDS:.0f}s); consider fewer trials or tickets"
            )
        log(
            f"[{request_id}] COMPLETED | Status: {response.status_code} | "
            f"Duration: {duration:.4f}s"
        )

        response.headers.update(self._headers(request_id, duration))
        return response

    @staticmethod
    def _headers(request_id: str, duration: float) -> dict:
        return {
            "X-Request-ID": request_id,
            "X-Engine-Version": ENGINE_VERSION,
            "X-Processing-Time": f"{duration:.4f}",
        }
