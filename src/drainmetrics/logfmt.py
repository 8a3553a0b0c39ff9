from __future__ import annotations

import re
from typing import Any, AsyncIterable, AsyncIterator, Dict

_PAIR_RE = re.compile(
    r"""
    (?P<key>[^\s="]+)
    (?:
        =
        (?:
            "(?P<quoted>(?:[^"\\]|\\.)*)"?
          | (?P<bare>[^\s]*)
        )
    )?
    """,
    re.VERBOSE,
)
_ESCAPE_RE = re.compile(r"\\(.)")


def _coerce(value: str, quoted: bool) -> Any:
    if value == "true":
        return True
    if value == "false":
        return False
    if value == "" and not quoted:
        return None
    return value


def parse(line: str) -> Dict[str, Any]:
    """
    'at=info path="/a b" heroku router connect=1ms x=' ->
      {"at": "info", "path": "/a b", "heroku": True, "router": True, "connect": "1ms", "x": None}
    """
    out: Dict[str, Any] = {}
    for m in _PAIR_RE.finditer(line.rstrip("\r\n")):
        key = m.group("key")
        quoted = m.group("quoted")
        bare = m.group("bare")
        if quoted is not None:
            out[key] = _coerce(_ESCAPE_RE.sub(r"\1", quoted), quoted=True)
        elif bare is not None:
            out[key] = _coerce(bare, quoted=False)
        else:
            out[key] = True
    return out


async def iter_lines(chunks: AsyncIterable[bytes]) -> AsyncIterator[Dict[str, Any]]:
    buf = b""
    async for chunk in chunks:
        if not chunk:
            continue
        buf += chunk
        while b"\n" in buf:
            raw, buf = buf.split(b"\n", 1)
            text = raw.decode("utf-8", errors="replace")
            if text.strip():
                yield parse(text)
    text = buf.decode("utf-8", errors="replace")
    if text.strip():
        yield parse(text)
