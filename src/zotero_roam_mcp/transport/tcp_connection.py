"""TCP connection to the reference manager's document-integration port.

One connection per process. The socket is opened lazily on the first
send and reopened if it has been observed closed. Inbound bytes are
accumulated and split into frames with the codec; every complete frame
is handed to ``on_frame`` in arrival order before the next is examined.
"""

from __future__ import annotations

import logging
import socket
from typing import Callable

from ..protocol.framing import HEADER_SIZE, Frame, decode_frame, peek_header

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 23116
RECV_SIZE = 65536


class TCPConnection:
    """Manages the streaming connection and frame reassembly.

    Usage::

        conn = TCPConnection(on_frame=handle)
        conn.send(frame_bytes)
        while conn.receive_once():
            ...
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        on_frame: Callable[[Frame], None] | None = None,
        socket_factory: Callable[[tuple[str, int]], socket.socket] = socket.create_connection,
    ) -> None:
        self._host = host
        self._port = port
        self._socket_factory = socket_factory
        self._sock: socket.socket | None = None
        self._buffer = bytearray()
        self._draining = False
        self.on_frame = on_frame

    @property
    def connected(self) -> bool:
        return self._sock is not None and self._sock.fileno() != -1

    @property
    def buffered(self) -> int:
        """Bytes received but not yet part of a complete frame."""
        return len(self._buffer)

    def open(self) -> None:
        """Open a fresh socket, discarding any partially received frame.

        Raises:
            ConnectionError: If the reference manager is not listening.
        """
        self.close()
        try:
            self._sock = self._socket_factory((self._host, self._port))
        except OSError as e:
            raise ConnectionError(
                f"Could not connect to the reference manager at "
                f"{self._host}:{self._port}. Is it running? Last error: {e}"
            ) from e
        self._buffer = bytearray()
        logger.info("Connected to %s:%d", self._host, self._port)

    def ensure_open(self) -> socket.socket:
        if not self.connected:
            self.open()
        return self._sock

    def close(self) -> None:
        """Close the socket and discard any partially received frame."""
        self._buffer = bytearray()
        if self._sock is None:
            return
        try:
            self._sock.close()
        except OSError as e:
            logger.warning("Error closing socket: %s", e)
        finally:
            self._sock = None
            logger.info("Disconnected")

    def send(self, data: bytes) -> None:
        """Write ``data`` synchronously. Failures are not retried.

        Raises:
            ConnectionError: If the write fails.
        """
        sock = self.ensure_open()
        try:
            sock.sendall(data)
        except OSError as e:
            self.close()
            raise ConnectionError(f"Send failed: {e}") from e
        logger.debug("Sent %d bytes", len(data))

    def receive_once(self, size: int = RECV_SIZE) -> int:
        """Block for one transport delivery and process it.

        Returns:
            Number of bytes received; 0 when the remote side closed.
        """
        sock = self.ensure_open()
        try:
            data = sock.recv(size)
        except OSError as e:
            self.close()
            raise ConnectionError(f"Receive failed: {e}") from e
        if not data:
            logger.info("Remote side closed the connection")
            self.close()
            return 0
        self.on_bytes_received(data)
        return len(data)

    def on_bytes_received(self, data: bytes) -> int:
        """Buffer ``data`` and deliver every complete frame.

        A nested call made while frames are being delivered only appends;
        the outer loop picks the bytes up, so frames stay in order.

        Returns:
            Number of frames delivered by this call.
        """
        self._buffer.extend(data)
        if self._draining:
            return 0

        delivered = 0
        self._draining = True
        try:
            while len(self._buffer) >= HEADER_SIZE:
                _, length = peek_header(self._buffer)
                end = HEADER_SIZE + length
                if len(self._buffer) < end:
                    break
                chunk = bytes(self._buffer[:end])
                del self._buffer[:end]
                frame = decode_frame(chunk)
                logger.debug("Received %r", frame)
                delivered += 1
                if self.on_frame is not None:
                    self.on_frame(frame)
        finally:
            self._draining = False
        return delivered
