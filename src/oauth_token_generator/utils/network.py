"""Socket helpers for the local callback listener."""

import logging
import socket

from .constants import LISTEN_HOST
from .errors import BindError

logger = logging.getLogger(__name__)


def bind_listen_socket(port: int, host: str = LISTEN_HOST) -> socket.socket:
    """
    Bind and listen on a TCP socket for the callback server.

    Args:
        port: Port to bind, or 0 for an ephemeral port.
        host: Interface to bind (loopback by default).

    Returns:
        A listening socket, owned by the caller.

    Raises:
        BindError: If the port is in use or cannot be bound.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(16)
    except OSError as e:
        sock.close()
        logger.error(f"Could not bind {host}:{port}: {e}")
        raise BindError(port, e.strerror or str(e)) from e
    sock.setblocking(False)
    return sock


def find_free_port(host: str = LISTEN_HOST) -> int:
    """Ask the OS for a currently unused local port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((host, 0))
        return s.getsockname()[1]
