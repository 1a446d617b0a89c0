"""Per-request id binding, access logging and HTTP metrics."""

import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from .logging_config import get_logger
from .metrics import http_request_duration_seconds
from .request_id import accept_request_id, reset_request_id, set_request_id

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _route_template(request: Request) -> str:
    """Route template for metric labels, e.g. ``/api/v1/files/{file_id}``.

    Routes included under a prefix may only know their own part of the
    path; the prefix is recovered from the shortest leading segment run
    after which the route's pattern matches the rest of the URL.
    """
    route = request.scope.get("route")
    template = getattr(route, "path_format", None)
    if template is None:
        return "unmatched"
    path = request.url.path
    for cut in [0] + [i for i, ch in enumerate(path) if ch == "/" and i > 0]:
        if route.path_regex.match(path[cut:]):
            return path[:cut] + template
    return template


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the duration of the request and echo it back."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = accept_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = set_request_id(request_id)
        started = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(f"{request.method} {request.url.path} raised")
                raise

            elapsed = time.perf_counter() - started
            http_request_duration_seconds.labels(
                method=request.method,
                route=_route_template(request),
                status=str(response.status_code),
            ).observe(elapsed)
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} in {elapsed * 1000:.1f}ms",
                extra={"status_code": response.status_code, "duration_ms": round(elapsed * 1000, 2)},
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            reset_request_id(token)
