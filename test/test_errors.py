import errno

from trio import ClosedResourceError

from tunnelhub.errors import (
    AcceptError,
    BindError,
    RetryExhausted,
    UnregisteredProtocolError,
    classify_accept_error,
    requires_user_action,
)
from tunnelhub.transports import TransportProtocol


def test_classify_accept_error():
    for code in (errno.EMFILE, errno.ENFILE, errno.ENOBUFS, errno.ENOMEM):
        assert classify_accept_error(OSError(code, "resources exhausted"))

    assert classify_accept_error(OSError(errno.EBADF, "bad file descriptor"))
    assert classify_accept_error(ClosedResourceError())
    assert classify_accept_error(RuntimeError("listener is broken"))

    assert not classify_accept_error(OSError(errno.ECONNABORTED, "aborted"))
    assert not classify_accept_error(OSError(errno.ECONNRESET, "reset"))
    assert not classify_accept_error(OSError(errno.EPROTO, "protocol error"))


def test_requires_user_action():
    assert not requires_user_action(None)
    assert not requires_user_action(RuntimeError())
    assert requires_user_action(AcceptError(requires_user_action=True))
    assert not requires_user_action(AcceptError(requires_user_action=False))

    error = AcceptError(requires_user_action=True)
    assert requires_user_action(RetryExhausted(error, 10))

    try:
        try:
            raise error
        except AcceptError as ex:
            raise RuntimeError("wrapped") from ex
    except RuntimeError as ex:
        assert requires_user_action(ex)


def test_error_messages():
    assert "127.0.0.1:1080" in str(BindError("127.0.0.1", 1080))
    assert "quic" in str(UnregisteredProtocolError(TransportProtocol.QUIC))
