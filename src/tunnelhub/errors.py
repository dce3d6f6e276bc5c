"""Exception classes used throughout the transport hub."""

import errno

from typing import Optional

__all__ = (
    "AcceptError",
    "BindError",
    "ConfigurationError",
    "DuplicateRegistrationError",
    "RetryExhausted",
    "SettingsError",
    "TransportError",
    "UnknownTransportProtocolError",
    "UnregisteredProtocolError",
    "classify_accept_error",
    "requires_user_action",
)


class TransportError(RuntimeError):
    """Base class for transport-related errors."""

    pass


class ConfigurationError(TransportError):
    """Base class for errors that stem from an invalid configuration. These
    errors are never retried.
    """

    pass


class DuplicateRegistrationError(ConfigurationError):
    """Exception thrown when trying to register a listener for a transport
    protocol that already has one.
    """

    def __init__(self, protocol):
        """Constructor.

        Parameters:
            protocol: the transport protocol that was already registered
        """
        super().__init__(f"Listener already registered for protocol: {protocol}")
        self.protocol = protocol


class UnregisteredProtocolError(ConfigurationError):
    """Exception thrown when trying to listen on a transport protocol that
    has no registered listener.
    """

    def __init__(self, protocol):
        """Constructor.

        Parameters:
            protocol: the transport protocol that the user tried to listen on
        """
        super().__init__(f"No listener registered for protocol: {protocol}")
        self.protocol = protocol


class UnknownTransportProtocolError(ConfigurationError):
    """Exception thrown when a transport protocol name cannot be parsed."""

    def __init__(self, name: str):
        super().__init__(f"Unknown transport protocol: {name!r}")
        self.name = name


class SettingsError(ConfigurationError):
    """Exception thrown when the effective transport or security settings
    cannot be resolved from a stream configuration.
    """

    pass


class BindError(TransportError):
    """Exception thrown when a listener could not be bound to its target
    address and port.
    """

    def __init__(self, address: str, port: int):
        super().__init__(f"Failed to listen on address: {address}:{port}")
        self.address = address
        self.port = port


class AcceptError(TransportError):
    """Exception thrown when a listener fails to accept a new connection.

    The ``requires_user_action`` attribute tells whether the failure likely
    needs the attention of an operator (as opposed to routine transient
    noise such as a client aborting its connection attempt).
    """

    def __init__(self, message: str = "", *, requires_user_action: bool = False):
        super().__init__(message or "Failed to accept new connection")
        self.requires_user_action = requires_user_action


class RetryExhausted(TransportError):
    """Exception thrown by a retry policy when all attempts have failed.

    The last error is available in ``last_error`` and also as the cause of
    this exception.
    """

    def __init__(self, last_error: BaseException, attempts: int):
        super().__init__(f"All {attempts} attempts failed: {last_error}")
        self.last_error = last_error
        self.attempts = attempts


_TRANSIENT_ACCEPT_ERRNOS = frozenset(
    code
    for code in (
        getattr(errno, name, None)
        for name in (
            "ECONNABORTED",
            "ECONNRESET",
            "EPROTO",
            "EINTR",
            "EAGAIN",
            "EWOULDBLOCK",
            "EPERM",
            "ENETDOWN",
            "ENETUNREACH",
            "EHOSTDOWN",
            "EHOSTUNREACH",
            "ENONET",
            "EOPNOTSUPP",
        )
    )
    if code is not None
)
"""Error codes of ``accept()`` that concern a single incoming connection only
and that say nothing about the health of the listener itself.
"""


def classify_accept_error(ex: BaseException) -> bool:
    """Returns whether an error raised from ``accept()`` requires the attention
    of an operator.

    Resource exhaustion (``EMFILE``, ``ENFILE``, ``ENOBUFS``, ``ENOMEM``),
    unexpected OS-level errors and errors that are not OS-level at all (e.g.,
    the listener entered a bad state) require attention. Errors concerning a
    single aborted connection attempt do not.
    """
    if isinstance(ex, OSError) and ex.errno in _TRANSIENT_ACCEPT_ERRNOS:
        return False
    return True


def requires_user_action(ex: Optional[BaseException]) -> bool:
    """Returns whether the given error, or any error in its chain of causes,
    is an AcceptError_ that was flagged as requiring operator attention.
    """
    seen = set()
    while ex is not None and id(ex) not in seen:
        seen.add(id(ex))
        if isinstance(ex, AcceptError) and ex.requires_user_action:
            return True
        if isinstance(ex, RetryExhausted):
            ex = ex.last_error
        else:
            ex = ex.__cause__
    return False
