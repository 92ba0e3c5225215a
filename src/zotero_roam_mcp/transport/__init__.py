"""Transport layer: the TCP connection to the reference manager."""

from .tcp_connection import TCPConnection, DEFAULT_HOST, DEFAULT_PORT
