"""Local TCP port helpers for tunnel binding."""

import socket

from mysql_dumper.core.errors import ResourceError

LOOPBACK = "127.0.0.1"


def allocate_local_port(host: str = LOOPBACK) -> int:
    """Ask the OS for a currently unused TCP port on ``host``.

    The socket is released before returning, so another process may claim
    the port before the tunnel binds it.

    Raises:
        ResourceError: If the socket cannot be created or bound
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind((host, 0))
            _, port = sock.getsockname()
    except OSError as exc:
        raise ResourceError(
            f"Failed to allocate a local port on {host}: {exc}"
        ) from exc
    return int(port)


def is_port_listening(host: str, port: int, timeout: float = 0.1) -> bool:
    """Check whether something accepts TCP connections on ``host:port``.

    Args:
        host: Host to connect to
        port: Port number to check
        timeout: Connect timeout in seconds

    Returns:
        True if a connection could be opened, False otherwise
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False
