"""A shared handle on a kernel file descriptor, closed when its last user goes."""

from __future__ import annotations

import errno
import fcntl
import os
import sys
from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypeVar, Union

from minnow.errors import UnixError
from minnow.ref import Ref

T = TypeVar("T")
Writable = Union[bytes, bytearray, memoryview, str, Ref]

_WOULD_BLOCK = (errno.EAGAIN, errno.EINPROGRESS)


class _FDWrapper:
    """The descriptor itself and the state shared by every handle on it."""

    __slots__ = ("fd", "eof", "closed", "non_blocking", "read_count", "write_count")

    def __init__(self, fd: int) -> None:
        self.closed = True  # nothing to release until the descriptor is validated
        if fd < 0:
            raise RuntimeError(f"invalid fd number:{fd}")
        self.fd = fd
        try:
            flags = fcntl.fcntl(fd, fcntl.F_GETFL)
        except OSError as exc:
            raise UnixError("fcntl", exc.errno) from exc
        self.non_blocking = bool(flags & os.O_NONBLOCK)
        self.eof = False
        self.read_count = 0
        self.write_count = 0
        self.closed = False

    def would_block(self, exc: OSError) -> bool:
        return self.non_blocking and exc.errno in _WOULD_BLOCK

    def close(self) -> None:
        try:
            os.close(self.fd)
        except OSError as exc:
            raise UnixError("close", exc.errno) from exc
        self.eof = self.closed = True

    def __del__(self) -> None:
        if self.closed:
            return
        try:
            self.close()
        except Exception as exc:  # never raise from a finalizer
            print(f"Exception destructing FDWrapper: {exc}", file=sys.stderr)


def _as_buffers(data: Writable | Iterable[Writable]) -> list[Any]:
    if isinstance(data, (bytes, bytearray, memoryview, str, Ref)):
        data = [data]
    buffers = []
    for item in data:
        if isinstance(item, Ref):
            item = item.get()
        if isinstance(item, str):
            item = item.encode()
        buffers.append(item)
    return buffers


class FileDescriptor:
    """Reference-counted file descriptor; ``duplicate`` shares the same one."""

    READ_BUFFER_SIZE = 16384

    def __init__(self, fd: int) -> None:
        self._fd = _FDWrapper(fd)

    @classmethod
    def _sharing(cls, wrapper: _FDWrapper) -> FileDescriptor:
        handle = FileDescriptor.__new__(FileDescriptor)
        handle._fd = wrapper
        return handle

    def _call(self, attempt: str, func: Callable[..., T], *args: Any, blocked: Any = 0) -> T:
        """Run a system call; a would-block error on a non-blocking fd yields ``blocked``."""
        try:
            return func(*args)
        except OSError as exc:
            if self._fd.would_block(exc):
                return blocked
            raise UnixError(attempt, exc.errno) from exc

    def _set_eof(self) -> None:
        self._fd.eof = True

    def _register_read(self) -> None:
        self._fd.read_count += 1

    def _register_write(self) -> None:
        self._fd.write_count += 1

    def read(self) -> bytes:
        """Read up to READ_BUFFER_SIZE bytes; empty at EOF or if it would block."""
        try:
            data = os.read(self._fd.fd, self.READ_BUFFER_SIZE)
        except OSError as exc:
            if self._fd.would_block(exc):
                return b""
            raise UnixError("read", exc.errno) from exc
        self._register_read()
        if not data:
            self._set_eof()
        return data

    def read_many(self, sizes: Sequence[int]) -> list[bytes]:
        """Scatter-read into buffers of the given sizes, the last always READ_BUFFER_SIZE long.

        Returns one result per buffer, trimmed to what was read; an empty
        list if the read would block.
        """
        if not sizes:
            return []
        capacities = [*sizes[:-1], self.READ_BUFFER_SIZE]
        buffers = [bytearray(size) for size in capacities]
        try:
            count = os.readv(self._fd.fd, buffers)
        except OSError as exc:
            if self._fd.would_block(exc):
                return []
            raise UnixError("read", exc.errno) from exc
        self._register_read()
        if count > sum(capacities):
            raise RuntimeError("read() read more than requested")
        out = []
        remaining = count
        for buf in buffers:
            taken = min(remaining, len(buf))
            out.append(bytes(buf[:taken]))
            remaining -= taken
        return out

    def write(self, data: Writable | Iterable[Writable]) -> int:
        """Write one buffer or a sequence of them; return the number of bytes written."""
        buffers = _as_buffers(data)
        total = sum(len(memoryview(buf)) for buf in buffers)
        written = self._call("writev", os.writev, self._fd.fd, buffers)
        self._register_write()
        if written == 0 and total != 0:
            raise RuntimeError("write returned 0 given non-empty input buffer")
        if written > total:
            raise RuntimeError("write wrote more than length of input buffer")
        return written

    def close(self) -> None:
        """Close the descriptor for every handle sharing it."""
        self._fd.close()

    def duplicate(self) -> FileDescriptor:
        """Another handle on the same descriptor."""
        return FileDescriptor._sharing(self._fd)

    def set_blocking(self, blocking: bool) -> None:
        flags = self._call("fcntl", fcntl.fcntl, self._fd.fd, fcntl.F_GETFL)
        if blocking:
            flags &= ~os.O_NONBLOCK
        else:
            flags |= os.O_NONBLOCK
        self._call("fcntl", fcntl.fcntl, self._fd.fd, fcntl.F_SETFL, flags)
        self._fd.non_blocking = not blocking

    def fd_num(self) -> int:
        return self._fd.fd

    def eof(self) -> bool:
        return self._fd.eof

    def closed(self) -> bool:
        return self._fd.closed

    def read_count(self) -> int:
        return self._fd.read_count

    def write_count(self) -> int:
        return self._fd.write_count

    def __enter__(self) -> FileDescriptor:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if not self.closed():
            self.close()