# minnow

Small building blocks for networking programs on Linux. Everything is plain
standard-library Python; there are no third-party dependencies.

## What is in it

- `minnow.address.Address`: a socket address.
  - `Address(ip, port=0)` takes a numeric IPv4 address and port; no name
    lookup is done.
  - `Address.resolve(hostname, service)` looks up a host name and service
    name (such as `"http"`) and gives an IPv4 address.
  - `Address.from_ipv4_numeric(n)` builds an address with port 0 from a
    32-bit number; `ipv4_numeric()` goes the other way.
  - `Address.from_sockaddr(family, sockaddr)` wraps an address as the
    `socket` module reports it.
  - `ip_port()`, `ip()`, `port()`, `sockaddr()`, `family`, `str(address)`
    (e.g. `"8.8.8.8:53"`) and equality by family and raw address.
- `minnow.file_descriptor.FileDescriptor`: a shared handle on a kernel file
  descriptor. `duplicate()` gives another handle on the same descriptor, and
  all handles see the same state: `eof()`, `closed()`, `read_count()`,
  `write_count()`. `read()` reads up to 16384 bytes, `read_many(sizes)`
  does a scatter read, `write(data)` takes one buffer or a sequence of them
  (bytes, `str` or `Ref`) and returns the number of bytes written.
  `set_blocking(flag)` switches blocking mode; on a non-blocking descriptor
  a read that would block returns empty data. The handle is a context
  manager that closes the descriptor on exit, and the descriptor is also
  closed when the last handle is garbage-collected.
- `minnow.sockets`: `Socket` (with `bind`, `bind_to_device`, `connect`,
  `shutdown`, `local_address`, `peer_address`, `set_reuseaddr`,
  `throw_if_error`), `DatagramSocket` (`recv`, `sendto`, `send`),
  `UDPSocket`, `TCPSocket` (`listen`, `accept`), `PacketSocket`
  (`set_promiscuous`), `LocalStreamSocket` and `LocalDatagramSocket`. All
  are `FileDescriptor`s, so they count reads and writes and can be watched
  by the event loop.
- `minnow.eventloop.EventLoop`: runs callbacks when descriptors become
  readable (`Direction.IN`) or writable (`Direction.OUT`), or, for rules
  added with `add_basic_rule`, whenever their interest function holds. Each
  `wait_next_event(timeout_ms)` serves at most one rule and returns
  `Result.SUCCESS`, `Result.TIMEOUT` or `Result.EXIT`. Rules are grouped in
  named categories (at most 64); `add_rule` and `add_basic_rule` take a
  category id from `add_category`, or a name for which a new category is
  made. Each returns a `RuleHandle` whose `cancel()` drops the rule. A rule
  whose callback neither reads nor writes its descriptor yet stays
  interested raises `RuntimeError` as a busy wait.
- `minnow.parser`: `Parser` reads big-endian unsigned integers of 1, 2, 4 or
  8 bytes and byte strings from a list of buffers, setting an error flag
  instead of raising on a short read; `Serializer` writes them.
  `minnow.helpers.serialize(obj)` and `minnow.helpers.parse(obj, buffers)`
  work with any object that has `serialize(serializer)` and
  `parse(parser)` methods. `concat` joins buffers, and `pretty_print`
  escapes unprintable bytes and truncates long data with `...`.
- `minnow.ref.Ref`: an owned-or-borrowed reference; only an owned one can
  be mutated through `get_mut()`.
- `minnow.debug`: `debug(fmt, *args)` formats with `str.format` and sends the
  message to a handler (standard error by default), replaceable with
  `set_debug_handler` and restored with `reset_debug_handler`.
- `minnow.rng.get_random_engine()`: a `random.Random` seeded from the
  operating system's entropy.
- `minnow.errors`: failing system calls raise `UnixError`, which names the
  call and carries the errno as `error_code`; name-lookup failures raise
  `TaggedError`.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

Sending a UDP datagram to ourselves:

```python
from minnow.address import Address
from minnow.sockets import UDPSocket

server = UDPSocket()
server.bind(Address("127.0.0.1", 0))

client = UDPSocket()
client.sendto(server.local_address(), b"hello")

source, payload = server.recv()
print(source, payload)  # e.g. 127.0.0.1:54321 b'hello'
```

An event loop that reads a pipe until its end:

```python
import os

from minnow.eventloop import Direction, EventLoop, Result
from minnow.file_descriptor import FileDescriptor

read_end, write_end = os.pipe()
reader = FileDescriptor(read_end)
with FileDescriptor(write_end) as writer:
    writer.write(b"some data")

loop = EventLoop()
loop.add_rule("reader", reader, Direction.IN, lambda: print(reader.read()))

while loop.wait_next_event(1000) is not Result.EXIT:
    pass
```

The loop prints `b'some data'`, then `b''` at end of file, after which the
rule is dropped and `wait_next_event` returns `Result.EXIT`.

## What it does not do

This is a library of parts, not a program: it has no command to run, and
it contains no TCP protocol machinery of its own (no sender, receiver or
reassembler). `TCPSocket` uses the operating system's TCP. Packet sockets,
`bind_to_device` and promiscuous mode need the privileges Linux asks for.