"""FastAPI middleware for request tracing and metrics"""

import uuid
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from kot_ledger.infrastructure.observability.metrics import request_duration_histogram

REQUEST_ID_HEADER = "X-Request-ID"
UNMATCHED_ENDPOINT = "unmatched"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID, reusing the one the till sent if any"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _segments(path: str):
    return [part for part in path.split("/") if part]


def route_template(request: Request, raw_path: str) -> str:
    """
    '/v1/customers/{customer_id}/credit' rather than one label per customer.

    Must be called after the router ran, which leaves the matched route in
    the scope. Routes of an included router may report their path without
    the router prefix; the prefix is then taken from the leading segments of
    the requested path.
    """
    template = getattr(request.scope.get("route"), "path", None)
    if template is None:
        return UNMATCHED_ENDPOINT

    requested = _segments(raw_path)
    matched = _segments(template)
    if len(requested) <= len(matched):
        return template
    prefix = requested[: len(requested) - len(matched)]
    return "/" + "/".join(prefix + matched)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record HTTP request metrics"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        raw_path = request.url.path

        response = await call_next(request)

        duration = time.time() - start_time
        request_duration_histogram.labels(
            method=request.method,
            endpoint=route_template(request, raw_path),
            status=response.status_code,
        ).observe(duration)

        return response
