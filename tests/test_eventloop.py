import os

import pytest

from minnow.eventloop import Direction, EventLoop, Result
from minnow.file_descriptor import FileDescriptor


@pytest.fixture
def pipe():
    r, w = os.pipe()
    reader, writer = FileDescriptor(r), FileDescriptor(w)
    yield reader, writer
    for fd in (reader, writer):
        if not fd.closed():
            fd.close()


def test_categories_get_sequential_ids():
    loop = EventLoop()
    assert loop.add_category("a") == 0
    assert loop.add_category("b") == 1


def test_category_limit():
    loop = EventLoop()
    ids = [loop.add_category(f"c{n}") for n in range(64)]
    assert ids == list(range(64))
    with pytest.raises(RuntimeError, match="maximum categories reached"):
        loop.add_category("one too many")


def test_bad_category_id(pipe):
    reader, _ = pipe
    loop = EventLoop()
    with pytest.raises(IndexError, match="bad category_id"):
        loop.add_basic_rule(0, lambda: None)
    with pytest.raises(IndexError, match="bad category_id"):
        loop.add_rule(3, reader, Direction.IN, lambda: None)


def test_empty_loop_exits():
    assert EventLoop().wait_next_event(0) is Result.EXIT


def test_basic_rule_fires_while_interested():
    loop = EventLoop()
    calls = []
    loop.add_basic_rule("count", lambda: calls.append(1), lambda: len(calls) < 5)
    assert loop.wait_next_event(0) is Result.SUCCESS
    assert len(calls) == 5
    assert loop.wait_next_event(0) is Result.EXIT


def test_basic_rule_busy_wait_detected():
    loop = EventLoop()
    loop.add_basic_rule("spin", lambda: None)
    with pytest.raises(RuntimeError, match='busy wait detected: rule "spin"'):
        loop.wait_next_event(0)


def test_cancelled_basic_rule_is_dropped():
    loop = EventLoop()
    calls = []
    handle = loop.add_basic_rule("x", lambda: calls.append(1), lambda: not calls)
    handle.cancel()
    assert loop.wait_next_event(0) is Result.EXIT
    handle.cancel()  # rule already gone
    assert calls == []


def test_string_category_is_created(pipe):
    loop = EventLoop()
    loop.add_category("first")
    calls = []
    loop.add_basic_rule("second", lambda: calls.append(1), lambda: not calls)
    assert loop.add_category("third") == 2
    assert loop.wait_next_event(0) is Result.SUCCESS
    assert calls == [1]


def test_read_rule_serves_data(pipe):
    reader, writer = pipe
    loop = EventLoop()
    received = []
    loop.add_rule("read", reader, Direction.IN, lambda: received.append(reader.read()))
    writer.write(b"hello")
    assert loop.wait_next_event(1000) is Result.SUCCESS
    assert received == [b"hello"]


def test_read_rule_times_out(pipe):
    reader, _ = pipe
    loop = EventLoop()
    received = []
    loop.add_rule("read", reader, Direction.IN, lambda: received.append(reader.read()))
    assert loop.wait_next_event(0) is Result.TIMEOUT
    assert received == []


def test_uninterested_rule_exits(pipe):
    reader, writer = pipe
    writer.write(b"data")
    loop = EventLoop()
    loop.add_rule("read", reader, Direction.IN, reader.read, lambda: False)
    assert loop.wait_next_event(0) is Result.EXIT


def test_hangup_cancels_read_rule(pipe):
    reader, writer = pipe
    loop = EventLoop()
    received = []
    cancelled = []
    loop.add_rule(
        "read",
        reader,
        Direction.IN,
        lambda: received.append(reader.read()),
        cancel=lambda: cancelled.append(True),
    )
    writer.write(b"abc")
    writer.close()
    results = [loop.wait_next_event(1000) for _ in range(3)]
    assert results == [Result.SUCCESS, Result.SUCCESS, Result.EXIT]
    assert received == [b"abc"]
    assert cancelled == [True]


def test_closed_fd_cancels_rule(pipe):
    reader, _ = pipe
    loop = EventLoop()
    cancelled = []
    loop.add_rule("read", reader, Direction.IN, reader.read, cancel=lambda: cancelled.append(1))
    reader.close()
    assert loop.wait_next_event(0) is Result.EXIT
    assert cancelled == [1]


def test_cancelled_fd_rule_skips_cancel_callback(pipe):
    reader, writer = pipe
    writer.write(b"x")
    loop = EventLoop()
    cancelled = []
    handle = loop.add_rule(
        "read", reader, Direction.IN, reader.read, cancel=lambda: cancelled.append(1)
    )
    handle.cancel()
    assert loop.wait_next_event(0) is Result.EXIT
    assert cancelled == []


def test_fd_busy_wait_detected(pipe):
    reader, writer = pipe
    writer.write(b"x")
    loop = EventLoop()
    loop.add_rule("lazy", reader, Direction.IN, lambda: None)
    with pytest.raises(RuntimeError, match='rule "lazy" did not read/write fd'):
        loop.wait_next_event(1000)


def test_write_rule(pipe):
    reader, writer = pipe
    loop = EventLoop()
    done = []

    def send():
        writer.write(b"hello")
        done.append(True)

    loop.add_rule("write", writer, Direction.OUT, send, lambda: not done)
    assert loop.wait_next_event(1000) is Result.SUCCESS
    assert reader.read() == b"hello"
    assert loop.wait_next_event(0) is Result.EXIT
    assert writer.write_count() == 1


def test_error_on_write_end_runs_error_and_cancel(pipe):
    reader, writer = pipe
    reader.close()
    loop = EventLoop()
    events = []
    loop.add_rule(
        "write",
        writer,
        Direction.OUT,
        lambda: events.append("callback"),
        cancel=lambda: events.append("cancel"),
        error=lambda: events.append("error"),
    )
    assert loop.wait_next_event(1000) is Result.SUCCESS
    assert events == ["error", "cancel"]
    assert loop.wait_next_event(0) is Result.EXIT


def test_basic_rules_served_before_fd_rules(pipe):
    reader, writer = pipe
    writer.write(b"x")
    loop = EventLoop()
    order = []
    loop.add_rule("read", reader, Direction.IN, lambda: order.append(reader.read()))
    loop.add_basic_rule("basic", lambda: order.append("basic"), lambda: "basic" not in order)
    assert loop.wait_next_event(1000) is Result.SUCCESS
    assert order == ["basic"]
    assert loop.wait_next_event(1000) is Result.SUCCESS
    assert order == ["basic", b"x"]