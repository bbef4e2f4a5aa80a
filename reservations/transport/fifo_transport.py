"""Named-pipe (FIFO) transport for controller and agents.

The controller listens on one FIFO that every agent writes to. Each inbound
frame is smaller than ``PIPE_BUF``, so writes from different agents are
atomic and never interleave. Replies go to a FIFO that the agent creates and
opens for reading before it sends the request.
"""

from __future__ import annotations

import errno
import os
import select
import stat
import time
from contextlib import suppress
from pathlib import Path
from typing import Optional

from reservations.transport.base import MessageTransport, ReplyDeliveryError, TransportError
from reservations.transport.protocol import INBOUND_FRAME_SIZE
from reservations.utils.logger import get_logger


logger = get_logger(__name__)

_OPEN_RETRY_SECONDS = 0.01


def create_fifo(path: Path) -> None:
    """Create a FIFO at ``path``, replacing whatever was there."""
    with suppress(FileNotFoundError):
        path.unlink()
    os.mkfifo(path, 0o666)


class FifoTransport(MessageTransport):
    """Controller side of the named-pipe transport."""

    def __init__(
        self,
        pipe_path: str | Path,
        reply_open_timeout_seconds: float = 0.5,
        frame_size: int = INBOUND_FRAME_SIZE,
    ) -> None:
        self._path = Path(pipe_path)
        self._reply_open_timeout = reply_open_timeout_seconds
        self._frame_size = frame_size
        self._read_fd: Optional[int] = None
        # Held open so the reader never sees end-of-file between agents.
        self._keepalive_fd: Optional[int] = None

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> None:
        try:
            create_fifo(self._path)
            self._read_fd = os.open(self._path, os.O_RDONLY | os.O_NONBLOCK)
            self._keepalive_fd = os.open(self._path, os.O_WRONLY | os.O_NONBLOCK)
        except OSError as exc:
            self.close()
            raise TransportError(f"cannot create controller pipe {self._path}: {exc}") from exc
        logger.info("Controller pipe ready at %s", self._path)

    def receive(self, timeout: float) -> Optional[bytes]:
        fd = self._read_fd
        if fd is None:
            raise TransportError("controller pipe is not open")
        try:
            ready, _, _ = select.select([fd], [], [], timeout)
        except (OSError, ValueError) as exc:
            raise TransportError(f"controller pipe wait failed: {exc}") from exc
        if not ready:
            return None
        try:
            data = os.read(fd, self._frame_size)
        except BlockingIOError:
            return None
        except OSError as exc:
            raise TransportError(f"controller pipe read failed: {exc}") from exc
        return data or None

    def send(self, reply_channel: str, payload: bytes) -> None:
        path = Path(reply_channel)
        try:
            if not stat.S_ISFIFO(os.stat(path).st_mode):
                raise ReplyDeliveryError(f"{path} is not a named pipe")
        except OSError as exc:
            raise ReplyDeliveryError(f"reply channel {path} is unavailable: {exc}") from exc

        deadline = time.monotonic() + self._reply_open_timeout
        while True:
            try:
                fd = os.open(path, os.O_WRONLY | os.O_NONBLOCK)
                break
            except OSError as exc:
                # ENXIO: the agent has not opened its end for reading yet.
                if exc.errno == errno.ENXIO and time.monotonic() < deadline:
                    time.sleep(_OPEN_RETRY_SECONDS)
                    continue
                raise ReplyDeliveryError(f"cannot open reply channel {path}: {exc}") from exc

        try:
            written = os.write(fd, payload)
        except OSError as exc:
            raise ReplyDeliveryError(f"cannot write reply channel {path}: {exc}") from exc
        finally:
            os.close(fd)
        if written != len(payload):
            raise ReplyDeliveryError(
                f"short write on reply channel {path}: {written}/{len(payload)} bytes"
            )

    def close(self) -> None:
        for attr in ("_read_fd", "_keepalive_fd"):
            fd = getattr(self, attr)
            if fd is not None:
                with suppress(OSError):
                    os.close(fd)
                setattr(self, attr, None)
        with suppress(FileNotFoundError):
            self._path.unlink()


def send_frame(pipe_path: str | Path, payload: bytes) -> None:
    """Write one frame to the controller pipe (agent side)."""
    try:
        fd = os.open(pipe_path, os.O_WRONLY | os.O_NONBLOCK)
    except OSError as exc:
        raise TransportError(f"controller is not listening on {pipe_path}: {exc}") from exc
    try:
        os.set_blocking(fd, True)
        written = os.write(fd, payload)
    except OSError as exc:
        raise TransportError(f"cannot write to controller pipe {pipe_path}: {exc}") from exc
    finally:
        os.close(fd)
    if written != len(payload):
        raise TransportError(f"short write to controller pipe: {written}/{len(payload)} bytes")


class FifoReplyChannel:
    """Single-use reply FIFO owned by an agent.

    Opened for reading on enter, before the request goes out, so the
    controller can open it for writing without blocking.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._fd: Optional[int] = None

    def __enter__(self) -> "FifoReplyChannel":
        try:
            create_fifo(self.path)
            self._fd = os.open(self.path, os.O_RDONLY | os.O_NONBLOCK)
        except OSError as exc:
            self.close()
            raise TransportError(f"cannot create reply channel {self.path}: {exc}") from exc
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def read(self, size: int, timeout: float) -> Optional[bytes]:
        """Collect one ``size``-byte record, or return None on timeout."""
        if self._fd is None:
            raise TransportError("reply channel is not open")
        buffer = b""
        deadline = time.monotonic() + timeout
        while len(buffer) < size:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            ready, _, _ = select.select([self._fd], [], [], remaining)
            if not ready:
                return None
            try:
                chunk = os.read(self._fd, size - len(buffer))
            except BlockingIOError:
                continue
            if not chunk:
                # Writer closed without a full record.
                break
            buffer += chunk
        return buffer

    def close(self) -> None:
        if self._fd is not None:
            with suppress(OSError):
                os.close(self._fd)
            self._fd = None
        with suppress(FileNotFoundError):
            self.path.unlink()
