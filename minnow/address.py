"""Socket addresses: numeric IPv4/IPv6 endpoints and name resolution."""

from __future__ import annotations

import socket
from typing import Any

from minnow.errors import TaggedError

_INTERNET_FAMILIES = (socket.AF_INET, socket.AF_INET6)
_MAX_PORT = 0xFFFF
_MAX_IPV4 = 0xFFFFFFFF


def _lookup(node: str, service: str, flags: int) -> tuple[int, Any]:
    try:
        results = socket.getaddrinfo(node, service, socket.AF_INET, 0, 0, flags)
    except socket.gaierror as exc:
        raise TaggedError(
            f"getaddrinfo({node}, {service})", exc.errno, exc.strerror
        ) from exc
    if not results:
        raise RuntimeError("getaddrinfo returned successfully but with no results")
    family, _type, _proto, _canonname, sockaddr = results[0]
    return family, tuple(sockaddr)


class Address:
    """A socket address of some family, compared by family and raw address."""

    __slots__ = ("_family", "_sockaddr")

    def __init__(self, ip: str, port: int = 0) -> None:
        """Build from a dotted-quad string and numeric port, without any lookup."""
        if not 0 <= port <= _MAX_PORT:
            raise ValueError(f"port out of range: {port}")
        self._family, self._sockaddr = _lookup(
            ip, str(port), socket.AI_NUMERICHOST | socket.AI_NUMERICSERV
        )

    @classmethod
    def _make(cls, family: int, sockaddr: Any) -> Address:
        address = cls.__new__(cls)
        address._family = family
        address._sockaddr = sockaddr
        return address

    @classmethod
    def resolve(cls, hostname: str, service: str) -> Address:
        """Resolve a host name and a service name (e.g. "http") to an IPv4 address."""
        family, sockaddr = _lookup(hostname, service, socket.AI_ALL)
        return cls._make(family, sockaddr)

    @classmethod
    def from_sockaddr(cls, family: int, sockaddr: Any) -> Address:
        """Wrap an address as the socket module reports it for ``family``."""
        if family == socket.AF_INET:
            sockaddr = tuple(sockaddr)
            if len(sockaddr) != 2:
                raise RuntimeError("invalid sockaddr size")
        elif family == socket.AF_INET6:
            sockaddr = tuple(sockaddr)
            if not 2 <= len(sockaddr) <= 4:
                raise RuntimeError("invalid sockaddr size")
            sockaddr = sockaddr + (0,) * (4 - len(sockaddr))
        elif isinstance(sockaddr, list):
            sockaddr = tuple(sockaddr)
        return cls._make(family, sockaddr)

    @classmethod
    def from_ipv4_numeric(cls, ip_address: int) -> Address:
        """Build an IPv4 address (port 0) from its 32-bit numeric value."""
        if not 0 <= ip_address <= _MAX_IPV4:
            raise ValueError(f"IPv4 address out of range: {ip_address}")
        ip = socket.inet_ntoa(ip_address.to_bytes(4, "big"))
        return cls._make(socket.AF_INET, (ip, 0))

    @property
    def family(self) -> int:
        """The address family, e.g. ``socket.AF_INET``."""
        return self._family

    def ip_port(self) -> tuple[str, int]:
        """The numeric host string and port."""
        if self._family not in _INTERNET_FAMILIES:
            raise RuntimeError("Address.ip_port() called on non-Internet address")
        try:
            host, port = socket.getnameinfo(
                self._sockaddr, socket.NI_NUMERICHOST | socket.NI_NUMERICSERV
            )
        except socket.gaierror as exc:
            raise TaggedError("getnameinfo", exc.errno, exc.strerror) from exc
        return host, int(port)

    def ip(self) -> str:
        return self.ip_port()[0]

    def port(self) -> int:
        return self.ip_port()[1]

    def ipv4_numeric(self) -> int:
        """The IPv4 address as an integer in host order."""
        if self._family != socket.AF_INET:
            raise RuntimeError("ipv4_numeric called on non-IPV4 address")
        return int.from_bytes(socket.inet_aton(self._sockaddr[0]), "big")

    def sockaddr(self) -> Any:
        """The address in the form the socket module takes."""
        return self._sockaddr

    def __str__(self) -> str:
        if self._family in _INTERNET_FAMILIES:
            ip, port = self.ip_port()
            return f"{ip}:{port}"
        return "(non-Internet address)"

    def __repr__(self) -> str:
        return f"Address({self._family!r}, {self._sockaddr!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._family == other._family and self._sockaddr == other._sockaddr

    def __hash__(self) -> int:
        return hash((self._family, self._sockaddr))