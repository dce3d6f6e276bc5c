import os
import sys

from pytest import mark, raises
from trio import Event, move_on_after, open_unix_socket
from trio.socket import AF_UNIX, SOCK_STREAM, socket

from tunnelhub import BindError, StaticStreamConfig, TransportProtocol, bind
from tunnelhub.transports import TransportSettings

pytestmark = mark.skipif(
    sys.platform == "win32", reason="Unix domain sockets are not available"
)


def get_socket_path(tmp_path_factory):
    tmp_path = tmp_path_factory.mktemp("u")  # make it as short as possible
    return str(
        tmp_path / "t"
    )  # same here; on macOS, it is easy to hit the socket path length limit


def unix_config(**options):
    return StaticStreamConfig(
        protocol=TransportProtocol.DOMAIN_SOCKET,
        transport_settings=(
            TransportSettings(TransportProtocol.DOMAIN_SOCKET, options),
        ),
    )


async def echo(stream):
    async with stream:
        data = await stream.receive_some()
        await stream.send_all(data)


async def test_unix_socket_hub_echo(nursery, tmp_path_factory):
    socket_path = get_socket_path(tmp_path_factory)

    hub = await bind(socket_path, 0, echo, unix_config(mode=0o600), nursery=nursery)
    assert hub.address == socket_path
    assert os.stat(socket_path).st_mode & 0o777 == 0o600

    with move_on_after(10):
        stream = await open_unix_socket(socket_path)
        async with stream:
            await stream.send_all(b"helo")
            data = await stream.receive_some()
            assert data == b"helo"

    await hub.close()

    assert not os.path.exists(socket_path)


async def test_unix_socket_when_pathname_is_already_taken(nursery, tmp_path_factory):
    socket_path = get_socket_path(tmp_path_factory)
    with open(socket_path, "w") as fp:
        fp.write("placeholder")

    with raises(BindError) as excinfo:
        await bind(socket_path, 0, echo, unix_config(), nursery=nursery)

    assert isinstance(excinfo.value.__cause__, FileExistsError)
    assert "Existing file is not a socket" in str(excinfo.value.__cause__)


async def test_unix_socket_cleanup_on_start(nursery, tmp_path_factory):
    socket_path = get_socket_path(tmp_path_factory)
    sock = socket(AF_UNIX, SOCK_STREAM)
    await sock.bind(socket_path)

    handled = Event()

    async def handler(stream):
        await echo(stream)
        handled.set()

    hub = await bind(socket_path, 0, handler, unix_config(), nursery=nursery)

    with move_on_after(10):
        stream = await open_unix_socket(socket_path)
        async with stream:
            await stream.send_all(b"helo")
            assert await stream.receive_some() == b"helo"
        await handled.wait()

    await hub.close()
    sock.close()

    assert not os.path.exists(socket_path)
