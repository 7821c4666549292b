import pytest

from minnow.parser import Parser, Serializer
from minnow.ref import Ref


def _joined(refs):
    return b"".join(r.get() for r in refs)


def test_serializer_writes_big_endian():
    s = Serializer()
    s.integer(0x0102, 2)
    s.integer(0xAB, 1)
    assert _joined(s.finish()) == b"\x01\x02\xab"


@pytest.mark.parametrize("size", [1, 2, 4, 8])
def test_integer_round_trip(size):
    value = (1 << (8 * size)) - 2
    s = Serializer()
    s.integer(value, size)
    p = Parser(s.finish())
    assert p.integer(size) == value
    assert not p.has_error()
    assert len(p) == 0


def test_integer_across_buffer_boundary():
    p = Parser([Ref(b"\x12"), Ref(b"\x34\x56")])
    assert p.integer(2) == 0x1234
    assert p.integer(1) == 0x56
    assert not p.has_error()


def test_short_read_sets_error_and_stays_errored():
    p = Parser([Ref(b"\x01\x02")])
    assert p.integer(4) == 0
    assert p.has_error()
    assert p.integer(1) == 0
    assert len(p) == 2


def test_borrowed_input_is_rejected():
    with pytest.raises(RuntimeError, match="cannot parse borrowed string"):
        Parser([Ref.borrowed(b"abc")])


def test_bad_integer_size():
    with pytest.raises(ValueError):
        Parser([b"abcd"]).integer(3)
    with pytest.raises(ValueError):
        Serializer().integer(1, 3)


def test_serializer_rejects_value_too_large():
    with pytest.raises(ValueError):
        Serializer().integer(256, 1)


def test_string_and_remaining():
    p = Parser([b"hel", b"lo world"])
    assert p.string(5) == b"hello"
    p.remove_prefix(1)
    assert p.concatenate_all_remaining() == b"world"
    assert len(p) == 0


def test_string_too_long_sets_error():
    p = Parser([b"ab"])
    assert p.string(3) == b""
    assert p.has_error()


def test_remove_prefix_too_long_raises():
    p = Parser([b"ab"])
    with pytest.raises(ValueError):
        p.remove_prefix(3)


def test_truncate_keeps_prefix():
    p = Parser([b"abc", b"def"])
    p.truncate(4)
    assert p.buffer() == [b"abc", b"d"]
    p.truncate(10)
    assert len(p) == 4


def test_all_remaining_returns_owned_refs():
    p = Parser([b"abc", b"de"])
    p.remove_prefix(1)
    refs = p.all_remaining()
    assert all(r.is_owned() for r in refs)
    assert _joined(refs) == b"bcde"
    assert p.buffer() == []


def test_serializer_buffers_keep_order():
    s = Serializer()
    s.integer(1, 1)
    s.buffer(b"xy")
    s.integer(2, 1)
    s.buffer([Ref(b"z"), b"w"])
    out = s.finish()
    assert _joined(out) == b"\x01xy\x02zw"
    assert s.finish() == []