from pytest import raises

from tunnelhub.errors import SettingsError, UnknownTransportProtocolError
from tunnelhub.transports import (
    SecuritySettings,
    StaticStreamConfig,
    TransportProtocol,
    TransportSettings,
    parse_listen_url,
)


def test_protocol_from_name():
    assert TransportProtocol.from_name("tcp") is TransportProtocol.TCP
    assert TransportProtocol.from_name(" TCP ") is TransportProtocol.TCP
    assert TransportProtocol.from_name("ws") is TransportProtocol.WEBSOCKET
    assert TransportProtocol.from_name("unix") is TransportProtocol.DOMAIN_SOCKET
    assert TransportProtocol.from_name("kcp") is TransportProtocol.MKCP
    assert TransportProtocol.from_name(TransportProtocol.QUIC) is TransportProtocol.QUIC

    with raises(UnknownTransportProtocolError, match="'carrier-pigeon'"):
        TransportProtocol.from_name("carrier-pigeon")


def test_default_config():
    config = StaticStreamConfig()
    assert config.effective_protocol() is TransportProtocol.TCP
    assert config.effective_transport_settings() == TransportSettings(
        TransportProtocol.TCP, {}
    )
    assert not config.has_security_settings()


def test_effective_transport_settings_picks_matching_protocol():
    config = StaticStreamConfig(
        protocol=TransportProtocol.WEBSOCKET,
        transport_settings=(
            TransportSettings(TransportProtocol.TCP, {"backlog": 5}),
            TransportSettings(TransportProtocol.WEBSOCKET, {"path": "/ws"}),
        ),
    )
    settings = config.effective_transport_settings()
    assert settings.protocol is TransportProtocol.WEBSOCKET
    assert settings.options == {"path": "/ws"}


def test_ambiguous_transport_settings():
    config = StaticStreamConfig(
        transport_settings=(
            TransportSettings(TransportProtocol.TCP, {"backlog": 5}),
            TransportSettings(TransportProtocol.TCP, {"backlog": 10}),
        ),
    )
    with raises(SettingsError, match="Ambiguous"):
        config.effective_transport_settings()


def test_security_settings():
    config = StaticStreamConfig(
        security_type="tls",
        security_settings=(
            SecuritySettings("reality", {}),
            SecuritySettings("tls", {"server_name": "example.com"}),
        ),
    )
    assert config.has_security_settings()
    assert config.effective_security_settings().options == {
        "server_name": "example.com"
    }

    config = StaticStreamConfig(security_type="tls")
    with raises(SettingsError, match="No security settings"):
        config.effective_security_settings()


def test_from_dict():
    config = StaticStreamConfig.from_dict(
        {
            "protocol": "ws",
            "transport": {"ws": {"path": "/"}, "tcp": {"backlog": 16}},
            "security": "tls",
            "security_settings": [{"type": "tls", "settings": {"alpn": "h2"}}],
        }
    )
    assert config.effective_protocol() is TransportProtocol.WEBSOCKET
    assert config.effective_transport_settings().options == {"path": "/"}
    assert config.effective_security_settings() == SecuritySettings(
        "tls", {"alpn": "h2"}
    )


def test_from_dict_errors():
    with raises(SettingsError):
        StaticStreamConfig.from_dict("tcp")
    with raises(SettingsError, match="Unknown transport protocol"):
        StaticStreamConfig.from_dict({"protocol": "smoke-signals"})
    with raises(SettingsError, match="must be a mapping"):
        StaticStreamConfig.from_dict({"transport": {"tcp": 42}})
    with raises(SettingsError, match="'protocol' key"):
        StaticStreamConfig.from_dict({"transport": [{"settings": {}}]})


def test_parse_listen_url():
    address, port, config = parse_listen_url("tcp://0.0.0.0:1080?backlog=128&keepalive=1")
    assert address == "0.0.0.0"
    assert port == 1080
    assert config.effective_protocol() is TransportProtocol.TCP
    assert config.effective_transport_settings().options == {
        "backlog": 128,
        "keepalive": 1,
    }
    assert not config.has_security_settings()


def test_parse_listen_url_with_path_and_security():
    address, port, config = parse_listen_url("unix+tls:/run/hub.sock?mode=384")
    assert address == "/run/hub.sock"
    assert port == 0
    assert config.effective_protocol() is TransportProtocol.DOMAIN_SOCKET
    assert config.effective_transport_settings().options == {"mode": 384}
    assert config.effective_security_settings() == SecuritySettings("tls")


def test_parse_listen_url_errors():
    with raises(SettingsError, match="no protocol"):
        parse_listen_url("localhost")
    with raises(SettingsError, match="Unknown transport protocol"):
        parse_listen_url("gopher://localhost:70")
    with raises(SettingsError, match="at most one"):
        parse_listen_url("tcp+tls+tls://localhost:443")
    with raises(SettingsError, match="repeated"):
        parse_listen_url("tcp://localhost:80?backlog=1&backlog=2")


def test_parse_listen_url_casts_plain_integers_only():
    _, _, config = parse_listen_url(
        "tcp://localhost:80?a=-7&b=%2B3&c=1_000&d=%205&e=0x10"
    )
    assert config.effective_transport_settings().options == {
        "a": -7,
        "b": 3,
        "c": "1_000",
        "d": " 5",
        "e": "0x10",
    }
