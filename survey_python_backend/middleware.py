"""
HTTP middleware for the survey backend.

CORS for the browser survey frontend and a request body size limit.
Authentication and rate limiting are out of scope for this deployment.
"""

import logging
import os
from typing import Callable, Iterable

from fastapi import Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("survey_backend")

# ---------------------------------------------------------------------------
# Configuration from environment
# ---------------------------------------------------------------------------

MAX_JSON_BYTES: int = int(os.getenv("MAX_JSON_BYTES", str(1 * 1024 * 1024)))    # 1 MB default
MAX_BODY_BYTES: int = int(os.getenv("MAX_BODY_BYTES", str(5 * 1024 * 1024)))    # 5 MB default


# ---------------------------------------------------------------------------
# Body Size Limit Middleware
# ---------------------------------------------------------------------------

class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Reject requests with bodies exceeding configured limits.

    JSON content types are limited to MAX_JSON_BYTES.
    All other content types are limited to MAX_BODY_BYTES.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        content_length = request.headers.get("content-length")
        content_type = request.headers.get("content-type", "")

        if content_length is not None:
            try:
                length = int(content_length)
            except ValueError:
                return JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={"error": "Invalid Content-Length header."},
                )

            limit = MAX_JSON_BYTES if "application/json" in content_type else MAX_BODY_BYTES
            if length > limit:
                limit_mb = limit / (1024 * 1024)
                logger.warning(
                    "[SECURITY] Rejected oversized request to %s (%d bytes, limit %.1f MB)",
                    request.url.path,
                    length,
                    limit_mb,
                )
                return JSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={"error": f"Request body too large. Limit: {limit_mb:.1f} MB."},
                )

        return await call_next(request)


# ---------------------------------------------------------------------------
# Wiring helper
# ---------------------------------------------------------------------------

def configure_middleware(app, allow_origins: Iterable[str] = ("*",)):
    """
    Wire CORS and body limits onto the FastAPI app.

    Middleware executes in reverse registration order (last added = outermost),
    so CORS headers are present on 413 responses too.
    """
    origins = list(allow_origins)
    app.add_middleware(BodySizeLimitMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.info("[HTTP] Middleware configured: CORS origins=%s, JSON limit=%d bytes, other=%d bytes",
                ",".join(origins), MAX_JSON_BYTES, MAX_BODY_BYTES)
