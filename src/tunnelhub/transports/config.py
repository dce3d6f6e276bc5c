"""Stream configuration objects that determine which transport protocol a
hub listens on and with what transport and security settings.

The hub itself consumes stream configurations only via the StreamConfig_
protocol; StaticStreamConfig_ is the implementation that is constructed from
a JSON-like dict or from a URL-like string.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Sequence, Union
from urllib.parse import parse_qs, urlparse

import re

from ..errors import ConfigurationError, SettingsError
from .base import TransportProtocol

__all__ = (
    "SecuritySettings",
    "StaticStreamConfig",
    "StreamConfig",
    "TransportSettings",
    "parse_listen_url",
)


@dataclass(frozen=True)
class TransportSettings:
    """Transport-specific settings of a single transport protocol."""

    protocol: TransportProtocol
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SecuritySettings:
    """Settings of a security layer (e.g., ``tls``) on top of a transport."""

    type: str
    options: Mapping[str, Any] = field(default_factory=dict)


class StreamConfig(Protocol):
    """Interface specification for objects that resolve the effective
    transport protocol and settings of a listener.
    """

    def has_security_settings(self) -> bool: ...

    def effective_protocol(self) -> TransportProtocol: ...

    def effective_transport_settings(self) -> TransportSettings: ...

    def effective_security_settings(self) -> SecuritySettings: ...


@dataclass(frozen=True)
class StaticStreamConfig:
    """Stream configuration with a fixed list of transport and security
    settings.
    """

    protocol: TransportProtocol = TransportProtocol.TCP
    transport_settings: Sequence[TransportSettings] = ()
    security_type: Optional[str] = None
    security_settings: Sequence[SecuritySettings] = ()

    @classmethod
    def from_dict(cls, spec: Mapping[str, Any]) -> "StaticStreamConfig":
        """Creates a stream configuration from its dict representation.

        The dict may contain the following keys, all of them optional::

            {
                "protocol": "tcp",
                "transport": {
                    "tcp": {"backlog": 128},
                    "ws": {"path": "/"}
                },
                "security": "tls",
                "security_settings": {
                    "tls": {"certificate": "..."}
                }
            }

        ``transport`` and ``security_settings`` may also be given as lists of
        dicts, each with a ``protocol`` (or ``type``) key and a ``settings``
        key.

        Raises:
            SettingsError: if the specification is malformed
        """
        if not isinstance(spec, Mapping):
            raise SettingsError("stream configuration must be a mapping")

        try:
            protocol = TransportProtocol.from_name(spec.get("protocol", "tcp"))
            transport = tuple(
                TransportSettings(TransportProtocol.from_name(key), options)
                for key, options in _iter_settings(spec.get("transport"), "protocol")
            )
        except ConfigurationError as ex:
            if isinstance(ex, SettingsError):
                raise
            raise SettingsError(str(ex)) from ex

        security = tuple(
            SecuritySettings(str(key), options)
            for key, options in _iter_settings(spec.get("security_settings"), "type")
        )

        return cls(
            protocol=protocol,
            transport_settings=transport,
            security_type=spec.get("security") or None,
            security_settings=security,
        )

    def has_security_settings(self) -> bool:
        return bool(self.security_type)

    def effective_protocol(self) -> TransportProtocol:
        return self.protocol

    def effective_transport_settings(self) -> TransportSettings:
        """Returns the transport settings that belong to the effective
        protocol, or empty settings if none were given.

        Raises:
            SettingsError: if more than one set of settings is given for the
                effective protocol
        """
        protocol = self.effective_protocol()
        matches = [s for s in self.transport_settings if s.protocol is protocol]
        if len(matches) > 1:
            raise SettingsError(
                f"Ambiguous transport settings for protocol: {protocol}"
            )
        return matches[0] if matches else TransportSettings(protocol)

    def effective_security_settings(self) -> SecuritySettings:
        """Returns the security settings whose type matches the declared
        security type.

        Raises:
            SettingsError: if there is no matching security setting or if
                there is more than one
        """
        matches = [s for s in self.security_settings if s.type == self.security_type]
        if not matches:
            raise SettingsError(
                f"No security settings for security type: {self.security_type!r}"
            )
        if len(matches) > 1:
            raise SettingsError(
                f"Ambiguous security settings for security type: {self.security_type!r}"
            )
        return matches[0]


def _iter_settings(value, key_name: str):
    """Iterates over a mapping-styled or list-styled settings specification
    and yields key-options pairs.
    """
    if value is None:
        return

    if isinstance(value, Mapping):
        items = value.items()
    elif isinstance(value, Sequence) and not isinstance(value, str):
        items = []
        for entry in value:
            if not isinstance(entry, Mapping) or key_name not in entry:
                raise SettingsError(
                    f"settings entries must be mappings with a {key_name!r} key"
                )
            items.append((entry[key_name], entry.get("settings") or {}))
    else:
        raise SettingsError(f"invalid settings specification: {value!r}")

    for key, options in items:
        if not isinstance(options, Mapping):
            raise SettingsError(f"settings of {key!r} must be a mapping")
        yield key, dict(options)


_INTEGER = re.compile(r"[+-]?[0-9]+")
"""Pattern of query parameter values that are cast to integers."""


def parse_listen_url(url: str) -> tuple[str, int, StaticStreamConfig]:
    """Converts a URL-styled listener specification to an address, a port and
    a stream configuration.

    The URL must follow the following format::

        protocol[+security]://host:port?param1=value1&param2=value2&...

    or, for transports that listen on a path::

        protocol[+security]:/path?param1=value1&...

    Query parameters become the options of the transport settings. Parameter
    values that contain digits and positive/negative signs only are cast to
    integers.

    Raises:
        SettingsError: if the URL is malformed
    """
    parts = urlparse(url, allow_fragments=False)
    if not parts.scheme:
        raise SettingsError(f"listener URL has no protocol: {url!r}")

    protocol_name, *security = parts.scheme.split("+")
    if len(security) > 1:
        raise SettingsError(f"at most one security layer is supported: {url!r}")

    try:
        protocol = TransportProtocol.from_name(protocol_name)
    except ConfigurationError as ex:
        raise SettingsError(str(ex)) from ex

    raw_parameters = parse_qs(parts.query) if parts.query else {}
    options: dict[str, Union[int, str]] = {}
    for k, v in raw_parameters.items():
        if len(v) > 1:
            raise SettingsError("repeated parameters are not supported")
        v = v[0]
        options[k] = int(v) if _INTEGER.fullmatch(v) else v

    try:
        port = parts.port or 0
    except ValueError as ex:
        raise SettingsError(f"invalid port in listener URL: {url!r}") from ex

    address = parts.hostname or parts.path or ""

    config = StaticStreamConfig(
        protocol=protocol,
        transport_settings=(TransportSettings(protocol, options),),
        security_type=security[0] if security else None,
        security_settings=(SecuritySettings(security[0]),) if security else (),
    )
    return address, port, config
