from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Sequence

Line = Mapping[str, Any]


class LineKind(str, Enum):
    DYNO = "dyno"
    ROUTER = "router"
    POSTGRES = "postgres"
    SCALING = "scaling"
    UNMATCHED = "unmatched"


DYNO_KEYS = ("heroku", "source", "dyno")
ROUTER_KEYS = ("heroku", "router", "path", "method", "dyno", "status", "connect", "service", "at")
POSTGRES_KEYS = ("source", "heroku-postgres")


def has_keys(line: Line, keys: Sequence[str]) -> bool:
    return all(line.get(k) is not None for k in keys)


def classify(line: Line) -> LineKind:
    """First match wins; order is dyno, router, postgres, scaling."""
    if has_keys(line, DYNO_KEYS):
        return LineKind.DYNO
    if has_keys(line, ROUTER_KEYS):
        return LineKind.ROUTER
    if has_keys(line, POSTGRES_KEYS):
        return LineKind.POSTGRES
    if line.get("api") is True and line.get("Scale") is True:
        return LineKind.SCALING
    return LineKind.UNMATCHED
