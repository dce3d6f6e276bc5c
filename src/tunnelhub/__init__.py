"""Transport listener hub: binds listeners for pluggable transport protocols
and runs their accept loops with retries and clean shutdown.
"""

from .errors import (
    AcceptError,
    BindError,
    ConfigurationError,
    DuplicateRegistrationError,
    RetryExhausted,
    SettingsError,
    TransportError,
    UnknownTransportProtocolError,
    UnregisteredProtocolError,
)
from .hub import ListenerHub, bind
from .transports import (
    StaticStreamConfig,
    TransportProtocol,
    parse_listen_url,
    register_transport_listener,
    transport_listeners,
)
from .version import __version__

__all__ = (
    "AcceptError",
    "BindError",
    "ConfigurationError",
    "DuplicateRegistrationError",
    "ListenerHub",
    "RetryExhausted",
    "SettingsError",
    "StaticStreamConfig",
    "TransportError",
    "TransportProtocol",
    "UnknownTransportProtocolError",
    "UnregisteredProtocolError",
    "__version__",
    "bind",
    "parse_listen_url",
    "register_transport_listener",
    "transport_listeners",
)
