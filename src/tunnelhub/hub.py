"""Listener hub that owns the accept loop of a single bound listener and
dispatches accepted connections to a handler.

A hub is created by `bind()`, which resolves the effective transport
protocol and settings from a stream configuration, looks up the listen
function of the protocol in the transport registry and binds a new listener
with it. The hub then accepts connections in a background task until it is
closed. Each accepted connection is passed to the handler in a task of its
own so a slow handler never stalls the acceptance of subsequent connections.

Failed accept attempts are retried with exponential backoff. When all the
attempts of an accept cycle fail, the failure is logged (as a warning if it
needs the attention of an operator, as an informational message otherwise)
and the hub starts a new accept cycle; accept failures never stop the hub.
"""

import logging

from blinker import Signal
from trio import Nursery, move_on_after
from trio.abc import Stream
from trio_util import AsyncBool
from typing import Any, Optional

from .concurrency import RetryPolicy
from .errors import (
    AcceptError,
    BindError,
    RetryExhausted,
    UnregisteredProtocolError,
    classify_accept_error,
    requires_user_action,
)
from .networking import format_socket_address
from .transports.base import ConnectionHandler, ListenContext, Listener
from .transports.config import StreamConfig
from .transports.registry import TransportRegistry, transport_listeners

__all__ = ("ListenerHub", "bind")


log = logging.getLogger(__name__.rpartition(".")[0])


DEFAULT_ACCEPT_RETRY_POLICY = RetryPolicy(max_attempts=10, base_delay=0.5)
"""Retry policy used by the accept loop of a hub unless specified otherwise."""

CLOSE_TIMEOUT = 1
"""Number of seconds to wait for the listener to close during shutdown."""


class ListenerHub:
    """Lifecycle manager that owns a listener, runs its accept loop and
    dispatches accepted connections to a handler.

    The listener is owned exclusively by the hub; nobody else may call its
    methods. The hub is closed at most once and it must not be reused after
    it was closed.
    """

    accepted = Signal(
        doc="""\
        Signal sent when the hub accepted a new connection, right after the
        connection was dispatched to the handler. Exceptions raised by
        receivers are logged and do not stop the hub.

        Parameters:
            connection: the accepted connection
        """
    )
    accept_failed = Signal(
        doc="""\
        Signal sent when all the attempts of an accept cycle failed.

        Parameters:
            error: the error of the last attempt
            requires_user_action: whether the error needs operator attention
        """
    )
    closed = Signal(doc="Signal sent after the hub closed its listener.")

    def __init__(
        self,
        listener: Listener,
        handler: ConnectionHandler,
        *,
        handler_nursery: Nursery,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """Constructor.

        Parameters:
            listener: the listener to accept connections from
            handler: the handler function that will be called for every
                connection that was accepted
            handler_nursery: the Trio nursery that the handler tasks will be
                spawned in
            retry_policy: the retry policy of a single accept cycle
        """
        self._listener = listener
        self._handler = handler
        self._handler_nursery = handler_nursery
        self._retry_policy = retry_policy or DEFAULT_ACCEPT_RETRY_POLICY

        self._close_requested = False
        self._shutdown = AsyncBool(False)
        self._is_closed = AsyncBool(False)

    @property
    def address(self) -> Any:
        """The address that the listener of the hub is bound to."""
        return self._listener.address

    @property
    def handler(self) -> ConnectionHandler:
        return self._handler

    @property
    def is_closed(self) -> bool:
        """Whether the hub was asked to shut down."""
        return self._close_requested

    async def close(self) -> None:
        """Shuts down the hub and closes its listener.

        Idempotent; calling it again or calling it concurrently from multiple
        tasks is a no-op while the first call is closing the listener. Errors
        raised while closing the listener are logged and not propagated.
        The listener is closed even if the calling task is being cancelled.
        """
        if self._close_requested:
            return

        self._close_requested = True
        self._shutdown.value = True

        with move_on_after(CLOSE_TIMEOUT) as cleanup:
            cleanup.shield = True
            try:
                await self._listener.close()
            except Exception as ex:
                log.debug(f"Error while closing listener: {ex!r}")

        if cleanup.cancelled_caught:
            log.debug("Timed out while closing listener")

        self._is_closed.value = True
        self._notify(self.closed)

    async def run(self) -> None:
        """Runs the accept loop of the hub until the hub is closed."""
        while not self._close_requested:
            try:
                connection = await self._retry_policy.run(
                    self._accept_once, sleep=self._wait_before_retry
                )
            except RetryExhausted as ex:
                if self._close_requested:
                    break
                self._report_accept_failure(ex)
                continue

            if connection is not None:
                self._handler_nursery.start_soon(self._handle_connection, connection)
                self._notify(self.accepted, connection=connection)

    async def wait_until_closed(self) -> None:
        """Blocks the current task until the hub has closed its listener."""
        await self._is_closed.wait_value(True)

    async def _accept_once(self) -> Optional[Stream]:
        """Makes a single attempt to accept a new connection.

        Returns ``None`` without touching the listener when the hub is being
        shut down. An accept failure caused by the shutdown is also turned
        into ``None`` so the retry policy stops retrying against a closed
        listener.

        Raises:
            AcceptError: if the listener failed to accept a connection
        """
        if self._close_requested:
            return None

        try:
            return await self._listener.accept()
        except Exception as ex:
            if self._close_requested:
                return None
            raise AcceptError(
                f"Failed to accept new connection: {ex!r}",
                requires_user_action=classify_accept_error(ex),
            ) from ex

    async def _handle_connection(self, connection: Stream) -> None:
        """Runs the handler on a connection, logging any exception that it
        raises so it does not affect the hub or other connections.
        """
        try:
            await self._handler(connection)
        except Exception:
            log.exception("Unhandled exception in connection handler")

    def _report_accept_failure(self, ex: RetryExhausted) -> None:
        needs_attention = requires_user_action(ex)
        if needs_attention:
            log.warning(str(ex.last_error))
        else:
            log.info(str(ex.last_error))
        self._notify(
            self.accept_failed,
            error=ex.last_error,
            requires_user_action=needs_attention,
        )

    def _notify(self, signal: Signal, **kwds) -> None:
        """Sends a signal of the hub, logging exceptions raised by receivers."""
        try:
            signal.send(self, **kwds)
        except Exception:
            log.exception("Unhandled exception in signal receiver")

    async def _wait_before_retry(self, delay: float) -> None:
        """Waits before the next accept attempt, returning early if the hub is
        closed in the meanwhile.
        """
        with move_on_after(delay):
            await self._shutdown.wait_value(True)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        await self.close()


async def bind(
    address: str,
    port: int,
    handler: ConnectionHandler,
    stream_config: StreamConfig,
    *,
    nursery: Nursery,
    handler_nursery: Optional[Nursery] = None,
    registry: TransportRegistry = transport_listeners,
    retry_policy: Optional[RetryPolicy] = None,
) -> ListenerHub:
    """Binds a new listener to the given address and port and starts
    accepting connections on it in the background.

    Parameters:
        address: the address to listen on; its interpretation depends on the
            transport protocol (e.g., a hostname for TCP, a path for Unix
            domain sockets)
        port: the port to listen on
        handler: async function that will be called with every accepted
            connection in a separate task. Its return value is ignored.
        stream_config: the stream configuration that determines the
            transport protocol and the transport and security settings
        nursery: the Trio nursery that the accept loop will be spawned in
        handler_nursery: the Trio nursery that the handler tasks will be
            spawned in; defaults to ``nursery``
        registry: the registry to look up the listen function in
        retry_policy: the retry policy of a single accept cycle

    Returns:
        the hub that owns the new listener. The accept loop is already
        scheduled when this function returns.

    Raises:
        ConfigurationError: if the settings cannot be resolved or the
            transport protocol has no registered listen function
        BindError: if the listen function failed to bind the listener
    """
    protocol = stream_config.effective_protocol()
    transport_settings = stream_config.effective_transport_settings()

    security_settings = None
    if stream_config.has_security_settings():
        security_settings = stream_config.effective_security_settings()

    context = ListenContext(
        transport_settings=transport_settings, security_settings=security_settings
    )

    listen = registry.lookup(protocol)
    if listen is None:
        raise UnregisteredProtocolError(protocol)

    try:
        listener = await listen(context, address, port)
    except Exception as ex:
        raise BindError(address, port) from ex

    hub = ListenerHub(
        listener,
        handler,
        handler_nursery=handler_nursery or nursery,
        retry_policy=retry_policy,
    )
    nursery.start_soon(hub.run)

    log.debug(
        f"Listening on {format_socket_address(listener.address)} via {protocol}"
    )
    return hub

