"""Network sockets built on the shared file-descriptor handle."""

from __future__ import annotations

import socket
import struct
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Union

from minnow.address import Address
from minnow.errors import UnixError
from minnow.file_descriptor import FileDescriptor

Payload = Union[bytes, bytearray, memoryview, str]

_SO_BINDTODEVICE = getattr(socket, "SO_BINDTODEVICE", 25)
_SOL_PACKET = getattr(socket, "SOL_PACKET", 263)
_PACKET_ADD_MEMBERSHIP = 1
_PACKET_MR_PROMISC = 1
_AF_PACKET = getattr(socket, "AF_PACKET", 17)
_PACKET_MREQ = struct.Struct("=iHH8s")


def _as_bytes(payload: Payload) -> bytes:
    if isinstance(payload, str):
        return payload.encode()
    return bytes(payload)


class Socket(FileDescriptor):
    """Base class for network sockets; normally used through a subclass."""

    def __init__(
        self,
        domain: int,
        type: int,
        protocol: int = 0,
        *,
        fd: FileDescriptor | None = None,
    ) -> None:
        """Create a new socket, or adopt ``fd`` after checking it matches."""
        if fd is not None:
            self._fd = fd._fd
            self._verify(domain, type, protocol)
            return
        try:
            sock = socket.socket(domain, type, protocol)
        except OSError as exc:
            raise UnixError("socket", exc.errno) from exc
        super().__init__(sock.detach())

    @contextmanager
    def _socket(self) -> Iterator[socket.socket]:
        """A temporary socket object on our descriptor, which it never closes."""
        try:
            sock = socket.socket(fileno=self.fd_num())
        except OSError as exc:
            raise UnixError("socket", exc.errno) from exc
        try:
            yield sock
        finally:
            sock.detach()

    def _getsockopt(self, level: int, option: int) -> int:
        try:
            sock = socket.socket(fileno=self.fd_num())
        except OSError as exc:
            raise UnixError("getsockopt", exc.errno) from exc
        try:
            return sock.getsockopt(level, option)
        except OSError as exc:
            raise UnixError("getsockopt", exc.errno) from exc
        finally:
            sock.detach()

    def _setsockopt(self, level: int, option: int, value: int | bytes) -> None:
        with self._socket() as sock:
            self._call("setsockopt", sock.setsockopt, level, option, value)

    def _verify(self, domain: int, type: int, protocol: int) -> None:
        if self._getsockopt(socket.SOL_SOCKET, socket.SO_DOMAIN) != domain:
            raise RuntimeError("socket domain mismatch")
        if self._getsockopt(socket.SOL_SOCKET, socket.SO_TYPE) != type:
            raise RuntimeError("socket type mismatch")
        if self._getsockopt(socket.SOL_SOCKET, socket.SO_PROTOCOL) != protocol:
            raise RuntimeError("socket protocol mismatch")

    def bind(self, address: Address) -> None:
        """Bind to a local address, usually before listen/accept."""
        with self._socket() as sock:
            self._call("bind", sock.bind, address.sockaddr())

    def bind_to_device(self, device_name: str) -> None:
        """Bind to a named network device."""
        self._setsockopt(socket.SOL_SOCKET, _SO_BINDTODEVICE, device_name.encode())

    def connect(self, address: Address) -> None:
        """Connect to a peer (returns at once on a non-blocking socket)."""
        with self._socket() as sock:
            self._call("connect", sock.connect, address.sockaddr())

    def shutdown(self, how: int) -> None:
        """Shut down reading (SHUT_RD), writing (SHUT_WR) or both (SHUT_RDWR)."""
        with self._socket() as sock:
            self._call("shutdown", sock.shutdown, how)
        if how == socket.SHUT_RD:
            self._register_read()
        elif how == socket.SHUT_WR:
            self._register_write()
        elif how == socket.SHUT_RDWR:
            self._register_read()
            self._register_write()
        else:
            raise RuntimeError("Socket.shutdown() called with invalid `how`")

    def local_address(self) -> Address:
        """The address this socket is bound to."""
        with self._socket() as sock:
            try:
                sockaddr = sock.getsockname()
            except OSError as exc:
                raise UnixError("getsockname", exc.errno) from exc
            return Address.from_sockaddr(sock.family, sockaddr)

    def peer_address(self) -> Address:
        """The address of the connected peer."""
        with self._socket() as sock:
            try:
                sockaddr = sock.getpeername()
            except OSError as exc:
                raise UnixError("getpeername", exc.errno) from exc
            return Address.from_sockaddr(sock.family, sockaddr)

    def set_reuseaddr(self) -> None:
        """Allow the local address to be reused sooner (SO_REUSEADDR)."""
        self._setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

    def throw_if_error(self) -> None:
        """Raise the pending socket error, if any (seen on non-blocking sockets)."""
        socket_error = self._getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        if socket_error:
            raise UnixError("socket error", socket_error)


class DatagramSocket(Socket):
    """A socket that sends and receives whole datagrams."""

    def recv(self) -> tuple[Address | None, bytes]:
        """Receive one datagram and its sender's address.

        On a non-blocking socket with nothing to read, the address is None
        and the payload empty. A datagram longer than READ_BUFFER_SIZE raises.
        """
        buffer = bytearray(self.READ_BUFFER_SIZE)
        with self._socket() as sock:
            result = self._call(
                "recvfrom",
                sock.recvfrom_into,
                buffer,
                len(buffer),
                socket.MSG_TRUNC,
                blocked=None,
            )
            family = sock.family
        if result is None:
            self._register_read()
            return None, b""
        length, sockaddr = result
        if length > len(buffer):
            raise RuntimeError("recvfrom (oversized datagram)")
        self._register_read()
        return Address.from_sockaddr(family, sockaddr), bytes(buffer[:length])

    def sendto(self, destination: Address, payload: Payload) -> None:
        """Send a datagram to ``destination``."""
        with self._socket() as sock:
            self._call("sendto", sock.sendto, _as_bytes(payload), destination.sockaddr())
        self._register_write()

    def send(self, payload: Payload) -> None:
        """Send a datagram to the connected peer."""
        with self._socket() as sock:
            self._call("send", sock.send, _as_bytes(payload))
        self._register_write()


class UDPSocket(DatagramSocket):
    """An unbound, unconnected UDP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_DGRAM)


class TCPSocket(Socket):
    """An unbound, unconnected TCP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_STREAM)

    def listen(self, backlog: int = 16) -> None:
        """Mark the socket as accepting connections."""
        with self._socket() as sock:
            self._call("listen", sock.listen, backlog)

    def accept(self) -> TCPSocket:
        """Wait for and return a new connection."""
        self._register_read()
        with self._socket() as sock:
            try:
                conn, _peer = sock.accept()
            except OSError as exc:
                raise UnixError("accept", exc.errno) from exc
        accepted = TCPSocket.__new__(TCPSocket)
        Socket.__init__(
            accepted,
            socket.AF_INET,
            socket.SOCK_STREAM,
            socket.IPPROTO_TCP,
            fd=FileDescriptor(conn.detach()),
        )
        return accepted


class PacketSocket(DatagramSocket):
    """A link-layer packet socket."""

    def __init__(self, type: int, protocol: int) -> None:
        super().__init__(_AF_PACKET, type, protocol)

    def set_promiscuous(self) -> None:
        """Put the bound interface into promiscuous mode."""
        local = self.local_address()
        if local.family != _AF_PACKET:
            raise RuntimeError("Address.as() conversion failure")
        ifname = local.sockaddr()[0]
        try:
            ifindex = socket.if_nametoindex(ifname) if ifname else 0
        except OSError as exc:
            raise UnixError("if_nametoindex", exc.errno) from exc
        mreq = _PACKET_MREQ.pack(ifindex, _PACKET_MR_PROMISC, 0, b"")
        self._setsockopt(_SOL_PACKET, _PACKET_ADD_MEMBERSHIP, mreq)


class LocalStreamSocket(Socket):
    """A Unix-domain stream socket adopted from an existing descriptor."""

    def __init__(self, fd: FileDescriptor) -> None:
        super().__init__(socket.AF_UNIX, socket.SOCK_STREAM, fd=fd)


class LocalDatagramSocket(DatagramSocket):
    """An unbound, unconnected Unix-domain datagram socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_UNIX, socket.SOCK_DGRAM)