"""In-process transport backed by queues, for embedding and validation runs."""

from __future__ import annotations

import queue
from collections import defaultdict
from threading import Lock
from typing import Optional

from reservations.transport.base import MessageTransport, ReplyDeliveryError, TransportError


class InMemoryTransport(MessageTransport):
    """Frames are pushed with ``submit``; replies are kept per channel."""

    def __init__(self) -> None:
        self._inbound: "queue.Queue[bytes]" = queue.Queue()
        self._replies: dict[str, list[bytes]] = defaultdict(list)
        self._unreachable: set[str] = set()
        self._lock = Lock()
        self._opened = False

    def open(self) -> None:
        self._opened = True

    @property
    def is_open(self) -> bool:
        return self._opened

    def submit(self, frame: bytes) -> None:
        self._inbound.put(frame)

    def mark_unreachable(self, reply_channel: str) -> None:
        """Make deliveries to ``reply_channel`` fail, like an agent that went away."""
        with self._lock:
            self._unreachable.add(reply_channel)

    def receive(self, timeout: float) -> Optional[bytes]:
        if not self._opened:
            raise TransportError("transport is not open")
        try:
            return self._inbound.get(timeout=timeout)
        except queue.Empty:
            return None

    def send(self, reply_channel: str, payload: bytes) -> None:
        with self._lock:
            if reply_channel in self._unreachable:
                raise ReplyDeliveryError(f"reply channel {reply_channel} is unreachable")
            self._replies[reply_channel].append(payload)

    def replies(self, reply_channel: str) -> list[bytes]:
        with self._lock:
            return list(self._replies.get(reply_channel, []))

    def pending(self) -> int:
        return self._inbound.qsize()

    def close(self) -> None:
        self._opened = False
