"""
UDP transport: binds the listening socket and reads one datagram at a time.
"""

import errno
import logging
import socket
from typing import Optional, Tuple, Union

from hostlog.core.models import Datagram, ErrorKind, ProcessingError

logger = logging.getLogger(__name__)

# errno values meaning the socket itself is unusable
FATAL_ERRNOS = frozenset({errno.EBADF, errno.ENOTSOCK, errno.EINVAL})


class TransportClosedError(Exception):
    """The socket is gone; the receive loop cannot continue."""


class UdpTransport:
    """
    Blocking UDP socket wrapper.

    Usage:
        with UdpTransport("0.0.0.0", 2000) as transport:
            item = transport.receive()
    """

    def __init__(
        self,
        bind_address: str = "0.0.0.0",
        port: int = 2000,
        buffer_size: int = 65535,
        reuse_address: bool = True,
    ):
        """
        Initialize transport.

        Args:
            bind_address: Local address to bind to
            port: UDP port (0 picks a free port)
            buffer_size: Maximum number of bytes read per datagram
            reuse_address: Set SO_REUSEADDR before binding
        """
        self.bind_address = bind_address
        self.port = port
        self.buffer_size = buffer_size
        self.reuse_address = reuse_address
        self._sock: Optional[socket.socket] = None

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    @property
    def local_address(self) -> Tuple[str, int]:
        """Address the socket is bound to."""
        if self._sock is None:
            raise TransportClosedError("transport is not open")
        return self._sock.getsockname()[:2]

    def open(self) -> None:
        """Create and bind the socket."""
        if self._sock is not None:
            return
        family = socket.AF_INET6 if ":" in self.bind_address else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            if self.reuse_address:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.bind_address, self.port))
        except OSError:
            sock.close()
            raise
        self._sock = sock
        logger.info(f"Listening for UDP on {self.local_address[0]}:{self.local_address[1]}")

    def receive(self) -> Union[Datagram, ProcessingError]:
        """
        Block until one datagram arrives.

        Returns:
            Datagram, or ProcessingError(kind=transport) for a failure the
            loop can survive

        Raises:
            TransportClosedError: If the socket is closed or invalid
        """
        if self._sock is None:
            raise TransportClosedError("transport is not open")
        try:
            payload, address = self._sock.recvfrom(self.buffer_size)
        except OSError as e:
            if e.errno in FATAL_ERRNOS or self._sock.fileno() == -1:
                raise TransportClosedError(f"socket unusable: {e}") from e
            # e.g. ICMP port unreachable surfacing as a connection reset
            return ProcessingError(kind=ErrorKind.TRANSPORT, message=str(e))
        return Datagram(remote_address=address[0], payload=payload)

    def close(self) -> None:
        """Release the socket."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            logger.info("UDP socket closed")

    def __enter__(self) -> "UdpTransport":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def send_message(host: str, port: int, filename: str, message: str) -> int:
    """
    Send one ``<filename>:<message>`` datagram, as an agent would.

    Returns:
        Number of bytes sent
    """
    payload = f"{filename}:{message}".encode("utf-8")
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    with socket.socket(family, socket.SOCK_DGRAM) as sock:
        return sock.sendto(payload, (host, port))
