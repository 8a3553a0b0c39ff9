from __future__ import annotations

import logging
import queue
import socket
import threading
from typing import List, Optional

logger = logging.getLogger(__name__)


def _format_value(value: float) -> str:
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return str(value)


def format_datagram(name: str, value: float, kind: str, tags: Optional[List[str]] = None) -> str:
    """("heroku.dyno.load.avg.1m", 0.5, "h", ["dyno:web.1"]) -> "heroku.dyno.load.avg.1m:0.5|h|#dyno:web.1" """
    out = f"{name}:{_format_value(value)}|{kind}"
    if tags:
        out += "|#" + ",".join(tags)
    return out


class StatsdClient:
    """
    DogStatsD over UDP. Calls never block on the network: datagrams are queued
    and a daemon thread sends them. A full queue drops the datagram.
    """

    def __init__(self, host: str = "localhost", port: int = 8125, *, debug: bool = False, max_q: int = 8000):
        self.addr = (host, port)
        self.debug = debug
        self.q: "queue.Queue[Optional[bytes]]" = queue.Queue(maxsize=max_q)
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._worker_thread = threading.Thread(target=self._worker, daemon=True)
        self._worker_thread.start()

    def histogram(self, name: str, value: Optional[float], tags: Optional[List[str]] = None) -> None:
        self._submit(name, value, "h", tags)

    def increment(self, name: str, value: float = 1, tags: Optional[List[str]] = None) -> None:
        self._submit(name, value, "c", tags)

    def gauge(self, name: str, value: Optional[float], tags: Optional[List[str]] = None) -> None:
        self._submit(name, value, "g", tags)

    def _submit(self, name: str, value: Optional[float], kind: str, tags: Optional[List[str]]) -> None:
        if value is None:
            logger.debug("No value for %s, nothing sent", name)
            return
        line = format_datagram(name, value, kind, tags)
        if self.debug:
            logger.debug("Intercepted: statsd.send(%s)", line)
        try:
            self.q.put_nowait(line.encode("utf-8"))
        except queue.Full:
            # drop under pressure
            logger.debug("StatsD queue full, dropping %s", name)

    def _worker(self):
        while True:
            item = self.q.get()
            try:
                if item is None:
                    return
                self.sock.sendto(item, self.addr)
            except OSError as e:
                logger.debug("StatsD send failed: %s", e)
            finally:
                self.q.task_done()

    def flush(self) -> None:
        self.q.join()

    def close(self, timeout: float = 0.5) -> None:
        try:
            self.q.put_nowait(None)
        except queue.Full:
            logger.debug("StatsD queue full on close, %d datagrams dropped", self.q.qsize())
        self._worker_thread.join(timeout=timeout)
        self.sock.close()
