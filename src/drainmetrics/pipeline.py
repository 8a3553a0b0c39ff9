from __future__ import annotations

import logging
from typing import Dict, Optional

from drainmetrics.classifier import Line, LineKind, classify
from drainmetrics.config import FloodScope
from drainmetrics.emitter import MetricEmitter
from drainmetrics.flood import FloodCheck, FloodProtector, flood_key
from drainmetrics.tenants import TenantContext

logger = logging.getLogger(__name__)

# flood key suffix per variant with FloodScope.VARIANT, e.g. "shop.routerMetrics"
VARIANT_KEYS = {
    LineKind.DYNO: "dynoMetrics",
    LineKind.ROUTER: "routerMetrics",
    LineKind.POSTGRES: "postgresMetrics",
}


class LineProcessor:
    """
    Per-request state: one tenant, one flood decision per key, counters for the access log.

    With FloodScope.TENANT the decision is taken in open(), before any line is read.
    With FloodScope.VARIANT it is taken the first time each variant shows up.
    Scaling events are never flood-gated.
    """

    def __init__(
        self,
        tenant: TenantContext,
        emitter: MetricEmitter,
        flood: FloodProtector,
        scope: FloodScope = FloodScope.TENANT,
    ):
        self.tenant = tenant
        self.emitter = emitter
        self.flood = flood
        self.scope = scope
        self._decisions: Dict[str, FloodCheck] = {}
        self.lines = 0
        self.emitted = 0
        self.dropped = 0

    async def open(self) -> None:
        if self.scope is FloodScope.TENANT and self.flood.active:
            await self._decide(flood_key(self.tenant.name))

    async def _decide(self, key: str) -> FloodCheck:
        decision = self._decisions.get(key)
        if decision is None:
            logger.debug("Protection for key: %s", key)
            decision = await self.flood.check(key)
            self._decisions[key] = decision
        return decision

    async def _admitted(self, kind: LineKind) -> bool:
        if kind is LineKind.SCALING or not self.flood.active:
            return True
        variant: Optional[str] = VARIANT_KEYS[kind] if self.scope is FloodScope.VARIANT else None
        decision = await self._decide(flood_key(self.tenant.name, variant))
        return decision.admitted

    @property
    def throttled(self) -> bool:
        return any(d.throttled for d in self._decisions.values())

    async def process(self, line: Line) -> LineKind:
        self.lines += 1
        kind = classify(line)
        if kind is LineKind.UNMATCHED:
            logger.debug("No match for line")
            return kind

        logger.debug("Processing %s metrics", kind.value)
        if not await self._admitted(kind):
            self.dropped += 1
            return kind

        self.emitted += self.emitter.emit(kind, line, self.tenant)
        return kind
