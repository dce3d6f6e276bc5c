"""Listeners for stream sockets: TCP sockets and Unix domain sockets."""

import logging

from trio import SocketListener, SocketStream
from trio.socket import SOCK_STREAM
from typing import Optional, Tuple

from ..networking import create_socket, enable_tcp_keepalive, resolve_bind_address
from .base import ListenContext, Listener, TransportProtocol
from .registry import register_transport_listener
from .servers import open_unix_socket_listener, remove_unix_socket

__all__ = ("DomainSocketListener", "TCPListener", "listen_domain_socket", "listen_tcp")


log = logging.getLogger(__name__.rpartition(".")[0])


class SocketListenerBase(Listener):
    """Base class for listeners that wrap a Trio SocketListener_."""

    _wrapped: SocketListener

    def __init__(self, wrapped: SocketListener):
        """Constructor.

        Parameters:
            wrapped: the Trio socket listener to wrap; it must be bound and
                listening already
        """
        self._wrapped = wrapped

    async def accept(self) -> SocketStream:
        return await self._wrapped.accept()

    async def close(self) -> None:
        await self._wrapped.aclose()

    @property
    def socket(self):
        """Returns the listening socket itself."""
        return self._wrapped.socket


class TCPListener(SocketListenerBase):
    """Listener that accepts incoming TCP connections on a given host and
    port.
    """

    def __init__(self, wrapped: SocketListener, *, keepalive: bool = False):
        """Constructor.

        Parameters:
            wrapped: the Trio socket listener to wrap
            keepalive: whether to enable TCP keepalive on accepted sockets
        """
        super().__init__(wrapped)
        self._keepalive = keepalive

    @property
    def address(self) -> Tuple[str, int]:
        """Returns the IP address and port of the socket, in the form of a
        tuple.
        """
        return self.socket.getsockname()[:2]

    async def accept(self) -> SocketStream:
        stream = await super().accept()
        if self._keepalive:
            enable_tcp_keepalive(stream.socket)
        return stream


class DomainSocketListener(SocketListenerBase):
    """Listener that accepts incoming connections on a given Unix domain
    socket. The socket file is removed when the listener is closed.
    """

    def __init__(self, wrapped: SocketListener, path: str, inode: int):
        super().__init__(wrapped)
        self._path = path
        self._inode = inode

    @property
    def address(self) -> str:
        return self._path

    @property
    def path(self) -> str:
        return self._path

    async def close(self) -> None:
        try:
            await super().close()
        finally:
            remove_unix_socket(self._path, self._inode)


def _get_backlog(context: ListenContext) -> Optional[int]:
    backlog = context.options.get("backlog")
    return int(backlog) if backlog is not None else None


@register_transport_listener(TransportProtocol.TCP)
async def listen_tcp(context: ListenContext, address: str, port: int) -> TCPListener:
    """Binds a new TCP listener to the given address and port.

    Supported transport options are ``backlog`` (size of the backlog of
    pending connections) and ``keepalive`` (whether to enable TCP keepalive
    on accepted connections).
    """
    family, sockaddr = await resolve_bind_address(address, port)

    sock = create_socket(SOCK_STREAM, family)
    try:
        await sock.bind(sockaddr)
        backlog = _get_backlog(context)
        if backlog is not None and backlog >= 0:
            sock.listen(backlog)
        else:
            sock.listen()
    except BaseException:
        sock.close()
        raise

    listener = TCPListener(
        SocketListener(sock), keepalive=bool(context.options.get("keepalive"))
    )
    log.debug("TCP listener bound to %r", listener.address)
    return listener


@register_transport_listener(TransportProtocol.DOMAIN_SOCKET)
async def listen_domain_socket(
    context: ListenContext, address: str, port: int
) -> DomainSocketListener:
    """Binds a new Unix domain socket listener to the given path. The port is
    ignored.

    Supported transport options are ``mode`` (permissions of the socket file)
    and ``backlog``.
    """
    mode = int(context.options.get("mode", 0o666))
    wrapped, inode = await open_unix_socket_listener(
        address, mode=mode, backlog=_get_backlog(context)
    )
    return DomainSocketListener(wrapped, address, inode)
