from __future__ import annotations

import contextvars
import logging
import uuid
from typing import Dict, Optional

REQUEST_ID = contextvars.ContextVar("request_id", default=None)
TENANT = contextvars.ContextVar("tenant", default=None)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s %(tenant)s]: %(message)s"


def new_request_id() -> str:
    return uuid.uuid4().hex


def set_context(*, request_id: str, tenant: Optional[str] = None) -> Dict[str, contextvars.Token]:
    return {
        "request_id": REQUEST_ID.set(request_id),
        "tenant": TENANT.set(tenant),
    }


def set_tenant(tenant: str) -> contextvars.Token:
    return TENANT.set(tenant)


def reset_context(tokens: Dict[str, contextvars.Token]) -> None:
    REQUEST_ID.reset(tokens["request_id"])
    TENANT.reset(tokens["tenant"])


def get_context() -> Dict[str, str]:
    out: Dict[str, str] = {}
    request_id = REQUEST_ID.get()
    tenant = TENANT.get()
    if request_id:
        out["request_id"] = request_id
    if tenant:
        out["tenant"] = tenant
    return out


class RequestContextFilter(logging.Filter):
    """Stamps request_id / tenant on every record ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = get_context()
        record.request_id = ctx.get("request_id", "-")
        record.tenant = ctx.get("tenant", "-")
        return True


def configure_logging(debug: bool = False) -> None:
    root = logging.getLogger()
    level = logging.DEBUG if debug else logging.INFO
    root.setLevel(level)
    for h in root.handlers:
        if getattr(h, "_drainmetrics", False):
            return

    handler = logging.StreamHandler()
    handler._drainmetrics = True
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestContextFilter())
    root.addHandler(handler)
