"""Request logging middleware."""

import time
from typing import Callable

from fastapi import Request

from tempvortex.utils.logging import get_logger

logger = get_logger(__name__)

# Provider calls behind these can be slow; worth flagging
SLOW_REQUEST_MS = 5000


async def request_logging_middleware(request: Request, call_next: Callable):
    """
    Log every request with timing and response status.

    Query strings are left out: recovery links carry mailbox tokens.
    """
    start_time = time.perf_counter()
    response = await call_next(request)
    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

    log_data = {
        "method": request.method,
        "path": request.url.path,
        "status_code": response.status_code,
        "duration_ms": duration_ms,
    }
    if request.client:
        log_data["client_ip"] = request.client.host

    if response.status_code >= 500:
        logger.error("Request failed", **log_data)
    elif response.status_code >= 400:
        logger.warning("Request error", **log_data)
    elif duration_ms > SLOW_REQUEST_MS:
        logger.warning("Slow request", **log_data)
    else:
        logger.info("Request completed", **log_data)

    return response
