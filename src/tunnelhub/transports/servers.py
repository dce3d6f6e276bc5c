"""Helper functions that create listening sockets for Unix domain socket
listeners.
"""

import os
import stat

from socket import socket
from typing import Optional, Tuple
from uuid import uuid4

from trio import SocketListener, to_thread
from trio.socket import from_stdlib_socket

__all__ = ("open_unix_socket_listener", "remove_unix_socket")


def _create_unix_socket(path: str, mode: int, backlog: int) -> Tuple[socket, int]:
    try:
        from socket import AF_UNIX
    except ImportError:
        raise RuntimeError(
            "UNIX domain sockets are not supported on this platform"
        ) from None

    if os.path.exists(path) and not stat.S_ISSOCK(os.stat(path).st_mode):
        raise FileExistsError(f"Existing file is not a socket: {path}")

    sock = socket(AF_UNIX)
    try:
        # Using umask prevents others tampering with the socket during creation.
        # Unfortunately it also might affect other threads and signal handlers.
        tmp_path = f"{path}.{uuid4().hex[:8]}"
        old_mask = os.umask(0o777)
        try:
            sock.bind(tmp_path)
        finally:
            os.umask(old_mask)
        try:
            inode = os.stat(tmp_path).st_ino
            os.chmod(tmp_path, mode)  # os.fchmod doesn't work on sockets on MacOS
            sock.listen(backlog)
            os.rename(tmp_path, path)
        except BaseException:
            os.unlink(tmp_path)
            raise
    except BaseException:
        sock.close()
        raise
    return sock, inode


async def open_unix_socket_listener(
    path: str, *, mode: int = 0o666, backlog: Optional[int] = None
) -> Tuple[SocketListener, int]:
    """Creates a :class:`SocketListener` object to listen on a UNIX domain
    socket.

    An existing socket at the given path is replaced atomically.

    Args:
        path: The path to listen on.
        mode: The mode of the UNIX domain socket.
        backlog: The listen backlog to use, or ``None`` to use the largest
            backlog that the system allows.

    Returns:
        the listener and the inode of the newly created socket file

    Raises:
        FileExistsError: if the path exists and it is not a socket
    """
    sock, inode = await to_thread.run_sync(
        _create_unix_socket, path, mode, backlog or 0xFFFF
    )
    return SocketListener(from_stdlib_socket(sock)), inode


def remove_unix_socket(path: str, inode: int) -> None:
    """Removes the socket file at the given path if it still belongs to the
    socket with the given inode and nobody is listening on it any more.
    """
    from socket import AF_UNIX

    try:
        s = socket(AF_UNIX)
        try:
            s.connect(path)
        except ConnectionRefusedError:
            if inode == os.stat(path).st_ino:
                os.unlink(path)
        finally:
            s.close()
    except OSError:
        pass
