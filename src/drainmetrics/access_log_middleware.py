from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from drainmetrics.request_context import new_request_id, reset_context, set_context

logger = logging.getLogger("drainmetrics.access")


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    One log line per drain request, e.g.
    POST / 200 12.3ms tenant=shop lines=40 emitted=112 dropped=0
    """

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        request_id = request.headers.get("x-request-id") or new_request_id()
        request.state.request_id = request_id
        tokens = set_context(request_id=request_id)
        status = 500
        try:
            resp = await call_next(request)
            status = resp.status_code
            resp.headers["x-request-id"] = request_id
            return resp
        finally:
            dur_ms = (time.time() - start) * 1000.0
            state = request.state
            logger.info(
                "%s %s %d %.1fms tenant=%s lines=%d emitted=%d dropped=%d%s",
                request.method,
                request.url.path,
                int(status),
                dur_ms,
                getattr(state, "tenant", None) or "-",
                getattr(state, "lines", 0),
                getattr(state, "emitted", 0),
                getattr(state, "dropped", 0),
                " throttled" if getattr(state, "throttled", False) else "",
            )
            reset_context(tokens)
