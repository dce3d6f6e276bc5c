"""Base classes and type aliases shared by all transports."""

from abc import ABCMeta, abstractmethod, abstractproperty
from dataclasses import dataclass
from enum import Enum
from trio.abc import Stream
from typing import Any, Awaitable, Callable, Optional, TYPE_CHECKING

from ..errors import UnknownTransportProtocolError

if TYPE_CHECKING:
    from .config import SecuritySettings, TransportSettings


__all__ = (
    "ConnectionHandler",
    "ListenContext",
    "ListenFunc",
    "Listener",
    "TransportProtocol",
)


class TransportProtocol(Enum):
    """Wire-level transport mechanisms that a listener may be registered for."""

    TCP = "tcp"
    UDP = "udp"
    MKCP = "mkcp"
    WEBSOCKET = "websocket"
    HTTP = "http"
    DOMAIN_SOCKET = "domainsocket"
    QUIC = "quic"

    @classmethod
    def from_name(cls, name: str) -> "TransportProtocol":
        """Parses a transport protocol from its (case-insensitive) name or
        one of its common aliases.

        Raises:
            UnknownTransportProtocolError: if the name is not known
        """
        if isinstance(name, cls):
            return name

        key = str(name).strip().lower()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UnknownTransportProtocolError(name) from None

    def __str__(self) -> str:
        return self.value


_ALIASES = {
    "kcp": "mkcp",
    "ws": "websocket",
    "h2": "http",
    "ds": "domainsocket",
    "unix": "domainsocket",
}


@dataclass(frozen=True)
class ListenContext:
    """Settings passed to a listen function when a new listener is bound."""

    transport_settings: "TransportSettings"
    security_settings: Optional["SecuritySettings"] = None

    @property
    def options(self):
        """Shortcut to the transport-specific options."""
        return self.transport_settings.options


class Listener(metaclass=ABCMeta):
    """Interface specification for listener objects that accept incoming
    connections on a bound address.

    Implementations must ensure that closing the listener makes any pending
    `accept()` call raise an exception.
    """

    @abstractmethod
    async def accept(self) -> Stream:
        """Waits for the next incoming connection and returns a stream
        representing the connection when it arrives.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Closes the listener."""
        raise NotImplementedError

    @abstractproperty
    def address(self) -> Any:
        """Returns the address that the listener is bound to."""
        raise NotImplementedError


ListenFunc = Callable[[ListenContext, str, int], Awaitable[Listener]]
"""Type specification for functions that bind a new listener for a given
transport protocol.
"""

ConnectionHandler = Callable[[Stream], Awaitable[Any]]
"""Type specification for functions that handle accepted connections."""
