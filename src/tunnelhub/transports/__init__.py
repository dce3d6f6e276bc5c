"""Package that holds the transport protocol registry and the listeners of
the built-in transports.

Each transport registers a *listen function* for its transport protocol in
the global registry when its module is imported. A listen function binds a
new listener to an address and a port, using the transport and security
settings passed to it in a listen context. Listeners accept incoming
connections one by one; the accept loop itself is run by a hub (see
`tunnelhub.hub`).
"""

from .base import (
    ConnectionHandler,
    ListenContext,
    ListenFunc,
    Listener,
    TransportProtocol,
)
from .config import (
    SecuritySettings,
    StaticStreamConfig,
    StreamConfig,
    TransportSettings,
    parse_listen_url,
)
from .registry import (
    TransportRegistry,
    get_transport_listener,
    register_transport_listener,
    transport_listeners,
)
from .socket import DomainSocketListener, TCPListener, listen_domain_socket, listen_tcp

__all__ = (
    "ConnectionHandler",
    "DomainSocketListener",
    "ListenContext",
    "ListenFunc",
    "Listener",
    "SecuritySettings",
    "StaticStreamConfig",
    "StreamConfig",
    "TCPListener",
    "TransportProtocol",
    "TransportRegistry",
    "TransportSettings",
    "get_transport_listener",
    "listen_domain_socket",
    "listen_tcp",
    "parse_listen_url",
    "register_transport_listener",
    "transport_listeners",
)
