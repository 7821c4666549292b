"""Conveniences for serializing, parsing and printing byte buffers."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from minnow.parser import BytesLike, Parser, Serializer
from minnow.ref import Ref


def serialize(obj: Any) -> list[Ref[bytes]]:
    """Serialize any object that has a ``serialize(serializer)`` method."""
    serializer = Serializer()
    obj.serialize(serializer)
    return serializer.finish()


def parse(obj: Any, buffers: Iterable[Ref | BytesLike] | BytesLike, *args: Any) -> bool:
    """Fill ``obj`` through its ``parse(parser, *args)`` method; True on success."""
    parser = Parser(buffers)
    obj.parse(parser, *args)
    return not parser.has_error()


def concat(buffers: Iterable[Ref | BytesLike]) -> bytes:
    """Join a sequence of buffers into one."""
    return b"".join(item.get() if isinstance(item, Ref) else item for item in buffers)


def _is_printable(byte: int) -> bool:
    return 0x20 <= byte <= 0x7E


def pretty_print(data: bytes | str, max_length: int = 32) -> str:
    """Escape unprintable bytes and quotes, truncating with '...' past ``max_length``."""
    if isinstance(data, str):
        data = data.encode()
    out = ""
    truncated = False
    for byte in data:
        if len(out) >= max_length:
            truncated = True
            break
        if _is_printable(byte) and byte != ord('"'):
            out += chr(byte)
        else:
            out += f"\\x{byte:02x}"
    if truncated:
        out = out[:-3] + "..." if len(out) >= 3 else out + "..."
    return out