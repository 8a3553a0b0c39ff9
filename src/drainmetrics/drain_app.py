from __future__ import annotations

import inspect
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from starlette.concurrency import run_in_threadpool
from starlette.requests import ClientDisconnect

from drainmetrics.access_log_middleware import AccessLogMiddleware
from drainmetrics.config import Settings, load_settings
from drainmetrics.emitter import MetricEmitter, MetricsClient
from drainmetrics.flood import FloodProtector
from drainmetrics.logfmt import iter_lines
from drainmetrics.pipeline import LineProcessor
from drainmetrics.request_context import configure_logging, set_tenant
from drainmetrics.statsd_client import StatsdClient
from drainmetrics.tenants import authenticate

logger = logging.getLogger(__name__)

_basic = HTTPBasic(auto_error=False)


async def basic_credentials(request: Request) -> HTTPBasicCredentials | None:
    # undecodable credentials are answered like missing ones
    try:
        return await _basic(request)
    except HTTPException:
        return None


def create_app(
    settings: Optional[Settings] = None,
    *,
    statsd: Optional[MetricsClient] = None,
    store: Any = None,
) -> FastAPI:
    """
    Build the drain app. Settings are read from the environment once, here;
    a missing tenant configuration raises ConfigError and the process does not start.
    """
    settings = settings or load_settings()
    configure_logging(settings.debug)

    owned = []
    if statsd is None:
        statsd = StatsdClient(settings.statsd_host, settings.statsd_port, debug=settings.debug)
        owned.append(statsd.close)
    if store is None and settings.redis_url and settings.flood_protection:
        store = aioredis.from_url(settings.redis_url, decode_responses=True)
        owned.append(store.aclose)

    emitter = MetricEmitter(statsd)
    flood = FloodProtector(
        store,
        limit=settings.limit_req,
        window_s=settings.expire_req,
        enabled=settings.flood_protection,
        policy=settings.flood_policy,
    )
    if settings.flood_protection and store is None:
        logger.warning("FLOOD_PROTECTION is on but REDIS_URL is not set; every request is admitted")

    app = FastAPI(title="drainmetrics")
    app.state.settings = settings
    app.state.emitter = emitter
    app.state.flood = flood
    app.add_middleware(AccessLogMiddleware)

    logger.debug("Allowed apps %s", [t.name for t in settings.tenants])

    @app.get("/health", response_class=PlainTextResponse)
    def health():
        return "OK"

    @app.post("/", response_class=PlainTextResponse)
    async def drain(request: Request, credentials: HTTPBasicCredentials | None = Depends(basic_credentials)):
        tenant = authenticate(credentials, settings.tenants)
        if tenant is None:
            logger.debug("Unauthorized access by %s", credentials.username if credentials else None)
            return PlainTextResponse("Unauthorized", status_code=401)

        set_tenant(tenant.name)
        request.state.tenant = tenant.name
        proc = LineProcessor(tenant, emitter, flood, settings.flood_scope)
        await proc.open()
        try:
            async for line in iter_lines(request.stream()):
                await proc.process(line)
        except ClientDisconnect:
            logger.debug("Client disconnected after %d lines", proc.lines)
        finally:
            request.state.lines = proc.lines
            request.state.emitted = proc.emitted
            request.state.dropped = proc.dropped
            request.state.throttled = proc.throttled
        return PlainTextResponse("OK")

    @app.on_event("shutdown")
    async def _shutdown():
        for close in owned:
            if inspect.iscoroutinefunction(close):
                await close()
            else:
                await run_in_threadpool(close)

    return app
