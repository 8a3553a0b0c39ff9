"""
Flood protection: a fixed-window counter per tenant (or tenant+variant) kept in Redis.

The counter is incremented and its expiry re-armed on every check below the limit.
Once a check finds the counter at or above the limit, the counter is deleted and the
window starts over. Every Redis failure fails open.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from redis.exceptions import RedisError

from drainmetrics.config import FloodPolicy

logger = logging.getLogger(__name__)

STORE_ERRORS = (RedisError, OSError)


@dataclass(frozen=True)
class FloodCheck:
    admitted: bool
    throttled: bool = False
    count: Optional[int] = None


ADMIT = FloodCheck(admitted=True)


def flood_key(tenant: str, variant: Optional[str] = None) -> str:
    return f"{tenant}.{variant}" if variant else tenant


class FloodProtector:
    def __init__(
        self,
        store: Any,
        *,
        limit: int,
        window_s: int,
        enabled: bool = True,
        policy: FloodPolicy = FloodPolicy.OBSERVE,
    ):
        self.store = store
        self.limit = limit
        self.window_s = window_s
        self.enabled = enabled
        self.policy = policy

    @property
    def active(self) -> bool:
        return self.enabled and self.store is not None

    async def check(self, key: str) -> FloodCheck:
        if not self.active:
            return ADMIT

        try:
            raw = await self.store.get(key)
        except STORE_ERRORS as e:
            logger.debug("Redis get error for %s: %s", key, e)
            return ADMIT

        count = _to_int(raw)
        if count is not None and count >= self.limit:
            try:
                await self.store.delete(key)
            except STORE_ERRORS as e:
                logger.debug("Redis del error for %s: %s", key, e)
            # flood gate opens; counter starts over
            admitted = self.policy is not FloodPolicy.DROP
            logger.info("Flood limit reached for %s (count=%d, admitted=%s)", key, count, admitted)
            return FloodCheck(admitted=admitted, throttled=True, count=count)

        try:
            await self.store.incr(key)
            await self.store.expire(key, self.window_s)
        except STORE_ERRORS as e:
            logger.debug("Redis incr/expire error for %s: %s", key, e)
        return FloodCheck(admitted=True, count=count or 0)


def _to_int(raw: Any) -> Optional[int]:
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("ascii", errors="replace")
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None
