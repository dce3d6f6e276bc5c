"""Generic networking-related utility functions."""

from typing import Any, Tuple

import platform
import trio.socket

__all__ = (
    "create_socket",
    "enable_tcp_keepalive",
    "format_socket_address",
    "resolve_bind_address",
)


def create_socket(socket_type, family=trio.socket.AF_INET) -> trio.socket.socket:
    """Creates an asynchronous socket with the given type and address family,
    with address reuse enabled.

    Parameters:
        socket_type: the type of the socket (``socket.SOCK_STREAM`` for
            TCP sockets, ``socket.SOCK_DGRAM`` for UDP sockets)
        family: the address family of the socket

    Returns:
        the newly created socket
    """
    sock = trio.socket.socket(family, socket_type)
    if hasattr(trio.socket, "SO_REUSEADDR"):
        # SO_REUSEADDR does not exist on Windows, but we don't really need
        # it on Windows either
        sock.setsockopt(trio.socket.SOL_SOCKET, trio.socket.SO_REUSEADDR, 1)
    if hasattr(trio.socket, "SO_REUSEPORT") and socket_type == trio.socket.SOCK_DGRAM:
        sock.setsockopt(trio.socket.SOL_SOCKET, trio.socket.SO_REUSEPORT, 1)
    if family == trio.socket.AF_INET6 and hasattr(trio.socket, "IPV6_V6ONLY"):
        sock.setsockopt(trio.socket.IPPROTO_IPV6, trio.socket.IPV6_V6ONLY, 1)
    return sock


def enable_tcp_keepalive(
    sock, after_idle_sec: int = 1, interval_sec: int = 3, max_fails: int = 5
) -> None:
    """Enables TCP keepalive settings on the given socket.

    Parameters:
        after_idle_sec: number of seconds after which the socket should start
            sending TCP keepalive packets
        interval_sec: number of seconds between consecutive TCP keepalive
            packets
        max_fails: maximum number of failures allowed before terminating the
            TCP connection
    """
    sock.setsockopt(trio.socket.SOL_SOCKET, trio.socket.SO_KEEPALIVE, 1)

    if hasattr(trio.socket, "TCP_KEEPIDLE"):
        sock.setsockopt(
            trio.socket.IPPROTO_TCP, trio.socket.TCP_KEEPIDLE, after_idle_sec
        )
    elif platform.system() == "Darwin":
        TCP_KEEPALIVE = 0x10  # scraped from the Darwin headers
        sock.setsockopt(trio.socket.IPPROTO_TCP, TCP_KEEPALIVE, after_idle_sec)

    if hasattr(trio.socket, "TCP_KEEPINTVL"):
        sock.setsockopt(
            trio.socket.IPPROTO_TCP, trio.socket.TCP_KEEPINTVL, interval_sec
        )

    if hasattr(trio.socket, "TCP_KEEPCNT"):
        sock.setsockopt(trio.socket.IPPROTO_TCP, trio.socket.TCP_KEEPCNT, max_fails)


def format_socket_address(address: Any, format: str = "{host}:{port}") -> str:
    """Formats a socket address in the standard hostname-port format.

    Parameters:
        address: the address to format; either a host-port tuple as returned
            by ``getsockname()`` (possibly with IPv6 flow info and scope ID)
            or a path for Unix domain sockets
        format: format string in brace-style that is used by
            ``str.format()``. The tokens ``{host}`` and ``{port}`` will be
            replaced by the hostname and port.

    Returns:
        str: a formatted representation of the address
    """
    if isinstance(address, bytes):
        return address.decode("utf-8", errors="replace")
    if not isinstance(address, tuple) or len(address) < 2:
        return str(address)

    host, port = address[:2]
    if ":" in host:
        host = f"[{host}]"
    return format.format(host=host, port=port)


async def resolve_bind_address(host: str, port: int) -> Tuple[int, Tuple[Any, ...]]:
    """Resolves the address family and socket address that a stream socket
    should be bound to in order to listen on the given host and port.

    An empty host means all IPv4 interfaces.
    """
    results = await trio.socket.getaddrinfo(
        host or None,
        port,
        family=trio.socket.AF_INET if not host else trio.socket.AF_UNSPEC,
        type=trio.socket.SOCK_STREAM,
        flags=trio.socket.AI_PASSIVE,
    )
    if not results:
        raise OSError(f"Cannot resolve address to bind to: {host!r}")

    family, _, _, _, sockaddr = results[0]
    return family, sockaddr
