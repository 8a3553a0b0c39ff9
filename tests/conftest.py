"""Shared test fixtures for all test modules."""

from typing import Any, Dict, List, Optional, Tuple

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from drainmetrics.config import Settings
from drainmetrics.tenants import Tenant, TenantContext


class FakeStore:
    """In-memory stand-in for the few redis.asyncio calls the flood protector makes.

    Values are kept as strings, like a client built with decode_responses=True.
    Expiry is driven by an explicit clock so tests can jump past a window.
    """

    def __init__(self, fail: Tuple[str, ...] = ()):
        self.now = 0.0
        self.fail = set(fail)
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, float] = {}
        self.calls: List[Tuple[str, str]] = []

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _check(self, op: str, key: str) -> None:
        self.calls.append((op, key))
        if op in self.fail:
            raise RedisConnectionError(f"{op} failed")
        exp = self.expiry.get(key)
        if exp is not None and self.now >= exp:
            self.data.pop(key, None)
            self.expiry.pop(key, None)

    async def get(self, key: str) -> Optional[str]:
        self._check("get", key)
        return self.data.get(key)

    async def incr(self, key: str) -> int:
        self._check("incr", key)
        value = int(self.data.get(key, "0")) + 1
        self.data[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        self._check("expire", key)
        if key not in self.data:
            return False
        self.expiry[key] = self.now + seconds
        return True

    async def delete(self, key: str) -> int:
        self._check("delete", key)
        self.expiry.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0


class RecordingStatsd:
    """Collects (kind, name, value, tags) for every emission call."""

    def __init__(self):
        self.calls: List[Tuple[str, str, Any, List[str]]] = []

    def histogram(self, name, value, tags=None):
        self.calls.append(("histogram", name, value, list(tags or [])))

    def increment(self, name, value=1, tags=None):
        self.calls.append(("increment", name, value, list(tags or [])))

    def gauge(self, name, value, tags=None):
        self.calls.append(("gauge", name, value, list(tags or [])))

    def names(self) -> List[str]:
        return [c[1] for c in self.calls]


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def failing_store():
    """Factory fixture: FakeStore whose named operations raise a Redis connection error."""

    def _store(*ops: str) -> FakeStore:
        return FakeStore(fail=ops)

    return _store


@pytest.fixture
def statsd() -> RecordingStatsd:
    return RecordingStatsd()


@pytest.fixture
def tenant() -> TenantContext:
    return TenantContext(name="shop", tags=("env:prod", "app:shop"), prefix="")


@pytest.fixture
def prefixed_tenant() -> TenantContext:
    return TenantContext(name="blog", tags=("app:blog",), prefix="blog.")


@pytest.fixture
def settings_factory():
    """Factory fixture building Settings with two tenants and overridable fields."""

    def _settings(**overrides) -> Settings:
        base = dict(
            tenants=(
                Tenant(password="s3cret", context=TenantContext(name="shop", tags=("app:shop",), prefix="")),
                Tenant(password="hunter2", context=TenantContext(name="blog", tags=("app:blog",), prefix="blog.")),
            ),
        )
        base.update(overrides)
        return Settings(**base)

    return _settings


@pytest.fixture
def dyno_line() -> Dict[str, Any]:
    return {
        "heroku": True,
        "source": "web.1",
        "dyno": "web.1",
        "sample#load_avg_1m": "0.5",
    }


@pytest.fixture
def router_line() -> Dict[str, Any]:
    return {
        "heroku": True,
        "router": True,
        "path": "/",
        "method": "GET",
        "dyno": "web.1",
        "status": "200",
        "connect": "1ms",
        "service": "5ms",
        "at": "info",
    }
