"""Big-endian parsing from, and serialization to, lists of byte buffers."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import Union

from minnow.ref import Ref

BytesLike = Union[bytes, bytearray, memoryview]
_INTEGER_SIZES = (1, 2, 4, 8)


def _check_integer_size(size: int) -> None:
    if size not in _INTEGER_SIZES:
        raise ValueError(f"unsupported integer size: {size}")


def _as_bytes(item: Ref | BytesLike) -> bytes:
    if isinstance(item, Ref):
        if item.is_borrowed():
            raise RuntimeError("cannot parse borrowed string")
        return bytes(item.get())
    return bytes(item)


class Parser:
    """Reads fields from a sequence of buffers; a short read sets the error flag."""

    def __init__(self, buffers: Iterable[Ref | BytesLike] | BytesLike) -> None:
        if isinstance(buffers, (bytes, bytearray, memoryview)):
            buffers = [buffers]
        self._chunks: deque[bytes] = deque()
        self._size = 0
        self._error = False
        for item in buffers:
            data = _as_bytes(item)
            if data:
                self._chunks.append(data)
                self._size += len(data)

    def __len__(self) -> int:
        return self._size

    def has_error(self) -> bool:
        return self._error

    def set_error(self) -> None:
        self._error = True

    def _check_size(self, size: int) -> None:
        if size > self._size:
            self._error = True

    def _take(self, n: int) -> bytes:
        parts = []
        while n:
            chunk = self._chunks[0]
            if len(chunk) <= n:
                parts.append(self._chunks.popleft())
                n -= len(chunk)
            else:
                parts.append(chunk[:n])
                self._chunks[0] = chunk[n:]
                n = 0
        data = b"".join(parts)
        self._size -= len(data)
        return data

    def remove_prefix(self, n: int) -> None:
        """Discard the first ``n`` bytes."""
        if n > self._size:
            raise ValueError("remove_prefix: not enough data")
        self._take(n)

    def truncate(self, length: int) -> None:
        """Keep only the first ``length`` bytes."""
        if length >= self._size:
            return
        kept: deque[bytes] = deque()
        remaining = length
        for chunk in self._chunks:
            if not remaining:
                break
            piece = chunk[:remaining]
            kept.append(piece)
            remaining -= len(piece)
        self._chunks = kept
        self._size = length

    def all_remaining(self) -> list[Ref[bytes]]:
        """Take every remaining buffer as an owned reference."""
        out = [Ref(chunk) for chunk in self._chunks]
        self._chunks.clear()
        self._size = 0
        return out

    def buffer(self) -> list[bytes]:
        """The remaining buffers, without consuming them."""
        return list(self._chunks)

    def string(self, length: int) -> bytes:
        """Read exactly ``length`` bytes (empty on error)."""
        self._check_size(length)
        if self._error:
            return b""
        return self._take(length)

    def concatenate_all_remaining(self) -> bytes:
        """Take all remaining bytes joined into one."""
        data = b"".join(self._chunks)
        self._chunks.clear()
        self._size = 0
        return data

    def integer(self, size: int) -> int:
        """Read a big-endian unsigned integer of ``size`` bytes (0 on error)."""
        _check_integer_size(size)
        self._check_size(size)
        if self._error:
            return 0
        return int.from_bytes(self._take(size), "big")


class Serializer:
    """Accumulates big-endian integers and buffers into a list of buffers."""

    def __init__(self) -> None:
        self._output: list[Ref[bytes]] = []
        self._pending = bytearray()

    def _flush(self) -> None:
        if self._pending:
            self._output.append(Ref(bytes(self._pending)))
            self._pending.clear()

    def integer(self, value: int, size: int) -> None:
        """Append ``value`` as a big-endian unsigned integer of ``size`` bytes."""
        _check_integer_size(size)
        if not 0 <= value < 1 << (8 * size):
            raise ValueError(f"value {value} does not fit in {size} bytes")
        self._pending += value.to_bytes(size, "big")

    def buffer(self, buf: Ref | BytesLike | Iterable[Ref | BytesLike]) -> None:
        """Append a buffer, a reference to one, or a sequence of them."""
        self._flush()
        if isinstance(buf, Ref):
            self._output.append(buf)
        elif isinstance(buf, (bytes, bytearray, memoryview)):
            self._output.append(Ref(bytes(buf)))
        else:
            self._output.extend(
                item if isinstance(item, Ref) else Ref(bytes(item)) for item in buf
            )

    def finish(self) -> list[Ref[bytes]]:
        """Return everything written so far and start afresh."""
        self._flush()
        out, self._output = self._output, []
        return out