"""
Transit Store Backend - Request Logging Middleware
====================================================

What:  One access log line per request, naming the route and the resource it hit.
How:   After the handler returns, the matched route template and its path
       parameters are read back from the ASGI scope (the router writes them
       there), so lines group by endpoint while still naming the record,
       folder or project involved:

           POST /data -> 201 12.4ms [1f0c2d3e]
           GET /data/{record_id} record_id=7 -> 200 8.1ms [9a8b7c6d]
           DELETE /folders/{folder_name} folder_name=alpha -> 400 3.0ms [4e5f6a7b]

       Requests that matched no route are logged with their raw path.
       Level follows the status class (5xx ERROR, 4xx WARNING, else INFO).

Never logged: request or response bodies (they carry plaintext on the
/data routes), query strings, Authorization headers.
"""

import logging
import time
from typing import Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from transit_store.middleware.request_id import request_id_var

logger = logging.getLogger("transit_store.access")


def describe_route(request: Request) -> Tuple[str, str]:
    """(route template, "name=value ..." path parameters) for a handled request."""
    route = request.scope.get("route")
    template = getattr(route, "path", None) or request.url.path
    params = " ".join(
        f"{name}={value}" for name, value in sorted(request.path_params.items())
    )
    return template, params


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log for every endpoint except /health (polled by probes)."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        template, params = describe_route(request)
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        target = f"{template} {params}" if params else template
        rid = request_id_var.get("")
        logger.log(
            log_level,
            "%s %s -> %d %.1fms [%s]",
            request.method,
            target,
            status,
            duration_ms,
            rid,
            extra={
                "request_id": rid,
                "route": template,
                "path_params": dict(request.path_params),
                "status": status,
                "duration_ms": round(duration_ms, 2),
            },
        )

        return response
