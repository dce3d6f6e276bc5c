"""Registry that maps transport protocols to the functions that bind
listeners for them.

Each transport implementation registers its listen function once, when its
module is imported. Registration must be complete before the first listener
is bound; entries are never removed afterwards.
"""

from functools import partial
from typing import Dict, Iterator, Optional

from ..errors import DuplicateRegistrationError
from .base import ListenFunc, TransportProtocol

__all__ = (
    "TransportRegistry",
    "get_transport_listener",
    "register_transport_listener",
    "transport_listeners",
)


class TransportRegistry:
    """Mapping from transport protocols to listen functions."""

    _registry: Dict[TransportProtocol, ListenFunc]
    """Dictionary mapping transport protocols to functions that bind a new
    listener for the protocol.
    """

    def __init__(self):
        """Constructor."""
        self._registry = {}

    def lookup(self, protocol: TransportProtocol) -> Optional[ListenFunc]:
        """Returns the listen function registered for the given protocol, or
        ``None`` if the protocol has no registered listen function.
        """
        return self._registry.get(protocol)

    def register(self, protocol: TransportProtocol, func: Optional[ListenFunc] = None):
        """Registers the given listen function for the given transport
        protocol, or returns a decorator that will register an arbitrary
        function with the given protocol (if no function is specified).

        Parameters:
            protocol: the transport protocol
            func: an async function that binds a new listener when called
                with a listen context, an address and a port

        Returns:
            when ``func`` is not ``None``, returns the function itself. When
            ``func`` is ``None``, returns a decorator that can be applied
            on a function to register it with the given protocol.

        Raises:
            DuplicateRegistrationError: if the protocol already has a
                registered listen function. The existing registration is kept.
        """
        if func is None:
            return partial(self.register, protocol)

        if protocol in self._registry:
            raise DuplicateRegistrationError(protocol)

        self._registry[protocol] = func
        return func

    def __contains__(self, protocol) -> bool:
        return protocol in self._registry

    def __iter__(self) -> Iterator[TransportProtocol]:
        return iter(self._registry)

    def __len__(self) -> int:
        return len(self._registry)


transport_listeners = TransportRegistry()
"""Singleton transport listener registry."""


def register_transport_listener(
    protocol: TransportProtocol, func: Optional[ListenFunc] = None
):
    """Registers a listen function in the global transport listener registry.

    See `TransportRegistry.register()` for more details.
    """
    return transport_listeners.register(protocol, func)


def get_transport_listener(protocol: TransportProtocol) -> Optional[ListenFunc]:
    """Returns the listen function registered for the given protocol in the
    global transport listener registry.
    """
    return transport_listeners.lookup(protocol)
