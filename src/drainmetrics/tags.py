from __future__ import annotations

import re
from typing import Any, Iterable, List, Mapping, Optional

_DIGITS_RE = re.compile(r"[\d.]+", re.ASCII)
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)", re.ASCII)


def _render(value: Any) -> str:
    if value is True:
        return "true"
    if value is False:
        return "false"
    return str(value)


def build_tags(mapping: Mapping[str, Any]) -> List[str]:
    """{"dyno": "web.1", "host": None} -> ["dyno:web.1"]"""
    return [f"{k}:{_render(v)}" for k, v in mapping.items() if v is not None]


def merge_tags(*groups: Iterable[str]) -> List[str]:
    # union, first occurrence wins the position
    out = {}
    for group in groups:
        for tag in group:
            out.setdefault(tag, None)
    return list(out)


def extract_number(value: Any) -> Optional[float]:
    """
    Pull the first run of digits/periods out of a string value.

    "12.3ms" -> 12.3, "42" -> 42.0, "n/a" -> None, True -> None.
    A run that is not a valid float ("1.2.3", ".") also gives None.
    """
    if not isinstance(value, str):
        return None
    m = _DIGITS_RE.search(value)
    if not m:
        return None
    try:
        return float(m.group(0))
    except ValueError:
        return None


def leading_int(value: Any) -> Optional[int]:
    if not isinstance(value, str):
        return None
    m = _LEADING_INT_RE.match(value)
    return int(m.group(1)) if m else None
