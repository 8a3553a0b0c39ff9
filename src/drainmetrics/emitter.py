from __future__ import annotations

from typing import List, Optional, Protocol

from drainmetrics.classifier import Line, LineKind
from drainmetrics.tags import build_tags, extract_number, leading_int, merge_tags
from drainmetrics.tenants import TenantContext

SAMPLE_PREFIX = "sample#"
ROUTER_TAG_KEYS = ("dyno", "method", "status", "path", "host", "code", "desc", "at")


class MetricsClient(Protocol):
    def histogram(self, name: str, value: Optional[float], tags: List[str]) -> None: ...
    def increment(self, name: str, value: float, tags: List[str]) -> None: ...
    def gauge(self, name: str, value: Optional[float], tags: List[str]) -> None: ...


def _samples(line: Line):
    for key, value in line.items():
        if key.startswith(SAMPLE_PREFIX) and value is not None:
            yield key[len(SAMPLE_PREFIX):], value


class MetricEmitter:
    """Turns a classified line into histogram / counter / gauge calls."""

    def __init__(self, client: MetricsClient):
        self.client = client

    def emit(self, kind: LineKind, line: Line, tenant: TenantContext) -> int:
        if kind is LineKind.DYNO:
            return self.dyno_metrics(line, tenant)
        if kind is LineKind.ROUTER:
            return self.router_metrics(line, tenant)
        if kind is LineKind.POSTGRES:
            return self.postgres_metrics(line, tenant)
        if kind is LineKind.SCALING:
            return self.scaling_event(line, tenant)
        if kind is LineKind.UNMATCHED:
            return 0
        raise ValueError(f"unhandled line kind: {kind!r}")

    def dyno_metrics(self, line: Line, tenant: TenantContext) -> int:
        tags = merge_tags(build_tags({"dyno": line.get("source")}), tenant.tags)
        n = 0
        for key, value in _samples(line):
            name = f"{tenant.prefix}heroku.dyno.{key.replace('_', '.')}"
            self.client.histogram(name, extract_number(value), tags)
            n += 1
        return n

    def router_metrics(self, line: Line, tenant: TenantContext) -> int:
        picked = {k: line[k] for k in ROUTER_TAG_KEYS if line.get(k) is not None}
        tags = merge_tags(build_tags(picked), tenant.tags)
        p = tenant.prefix
        self.client.histogram(f"{p}heroku.router.request.connect", extract_number(line.get("connect")), tags)
        self.client.histogram(f"{p}heroku.router.request.service", extract_number(line.get("service")), tags)
        if line.get("at") == "error":
            self.client.increment(f"{p}heroku.router.error", 1, tags)
            return 3
        return 2

    def postgres_metrics(self, line: Line, tenant: TenantContext) -> int:
        tags = merge_tags(build_tags({"source": line.get("source")}), tenant.tags)
        n = 0
        for key, value in _samples(line):
            # TODO: db size and table counts would read better as gauges than histograms
            self.client.histogram(f"{tenant.prefix}heroku.postgres.{key}", extract_number(value), tags)
            n += 1
        return n

    def scaling_event(self, line: Line, tenant: TenantContext) -> int:
        tags = list(tenant.tags)
        n = 0
        for key, value in line.items():
            if value is True:
                continue
            count = leading_int(value)
            if count is None:
                continue
            self.client.gauge(f"{tenant.prefix}heroku.dyno.{key}", count, tags)
            n += 1
        return n
