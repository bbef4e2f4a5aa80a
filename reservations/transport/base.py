"""Transport interface used by the dispatcher."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class TransportError(Exception):
    """Raised when the inbound endpoint cannot be created or read."""


class ReplyDeliveryError(Exception):
    """Raised when a reply channel cannot be opened or written."""


class MessageTransport(ABC):
    """Inbound endpoint plus delivery to per-request reply channels."""

    @abstractmethod
    def open(self) -> None:
        """Create the inbound endpoint. Raises ``TransportError``."""

    @abstractmethod
    def receive(self, timeout: float) -> Optional[bytes]:
        """Return one inbound frame, or None when nothing arrives within ``timeout`` seconds."""

    @abstractmethod
    def send(self, reply_channel: str, payload: bytes) -> None:
        """Deliver ``payload`` on ``reply_channel``. Raises ``ReplyDeliveryError``."""

    @abstractmethod
    def close(self) -> None:
        """Tear down the inbound endpoint. Safe to call more than once."""
