from __future__ import annotations

import os
from enum import Enum
from typing import Mapping, Optional, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict

from drainmetrics.tags import leading_int
from drainmetrics.tenants import ConfigError, Tenant, load_tenants


class FloodScope(str, Enum):
    TENANT = "tenant"
    VARIANT = "variant"


class FloodPolicy(str, Enum):
    OBSERVE = "observe"   # throttled requests are logged, still emitted
    DROP = "drop"         # the request that trips the limit is not emitted


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 3000
    workers: int = 1
    debug: bool = False

    statsd_host: str = "localhost"
    statsd_port: int = 8125

    redis_url: Optional[str] = None
    flood_protection: bool = False
    flood_scope: FloodScope = FloodScope.TENANT
    flood_policy: FloodPolicy = FloodPolicy.OBSERVE
    limit_req: int = 5
    expire_req: int = 10

    tenants: Tuple[Tenant, ...] = ()


def _flag(value: Optional[str]) -> bool:
    # "1", "2" -> on; "0", "", "yes" -> off
    n = leading_int(value)
    return n is not None and n != 0


def _int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"Environment variable {name} must be an integer, got {raw!r}") from None


def _choice(environ: Mapping[str, str], name: str, enum_cls, default):
    raw = environ.get(name)
    if not raw:
        return default
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ConfigError(f"Environment variable {name} must be one of: {allowed}") from None


def parse_statsd_url(url: Optional[str]) -> Tuple[str, int]:
    """
    "statsd://metrics.internal:8125" -> ("metrics.internal", 8125)
    Missing parts fall back to localhost:8125.
    """
    if not url:
        return "localhost", 8125
    parsed = urlparse(url if "//" in url else f"//{url}")
    try:
        port = parsed.port
    except ValueError:
        raise ConfigError(f"Invalid STATSD_URL port: {url!r}") from None
    return parsed.hostname or "localhost", port or 8125


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    statsd_host, statsd_port = parse_statsd_url(env.get("STATSD_URL"))

    limit_req = _int(env, "LIMIT_REQ", 5)
    expire_req = _int(env, "EXPIRE_REQ", 10)
    if limit_req < 1:
        raise ConfigError("LIMIT_REQ must be at least 1")
    if expire_req < 1:
        raise ConfigError("EXPIRE_REQ must be at least 1")

    return Settings(
        host=env.get("HOST", "0.0.0.0"),
        port=_int(env, "PORT", 3000),
        workers=max(1, _int(env, "WEB_CONCURRENCY", 1)),
        debug=_flag(env.get("DEBUG")),
        statsd_host=statsd_host,
        statsd_port=statsd_port,
        redis_url=env.get("REDIS_URL") or None,
        flood_protection=_flag(env.get("FLOOD_PROTECTION")),
        flood_scope=_choice(env, "FLOOD_PROTECTION_SCOPE", FloodScope, FloodScope.TENANT),
        flood_policy=_choice(env, "FLOOD_POLICY", FloodPolicy, FloodPolicy.OBSERVE),
        limit_req=limit_req,
        expire_req=expire_req,
        tenants=load_tenants(env),
    )
