import errno
import os

import pytest

from minnow.errors import TaggedError, UnixError, check_system_call, notnull


def test_tagged_error_message_joins_attempt_and_message():
    err = TaggedError("getaddrinfo", 7, "no such host")
    assert str(err) == "getaddrinfo: no such host"
    assert err.error_code == 7
    assert err.attempt == "getaddrinfo"


def test_unix_error_uses_strerror():
    err = UnixError("open", errno.ENOENT)
    assert err.error_code == errno.ENOENT
    assert str(err) == "open: " + os.strerror(errno.ENOENT)
    assert isinstance(err, TaggedError) and isinstance(err, RuntimeError)


def test_check_system_call_passes_through_non_negative():
    assert check_system_call("poll", 0) == 0
    assert check_system_call("read", 42) == 42


def test_check_system_call_raises_on_negative():
    with pytest.raises(UnixError) as info:
        check_system_call("connect", -errno.ECONNREFUSED)
    assert info.value.error_code == errno.ECONNREFUSED
    assert str(info.value).startswith("connect: ")


def test_notnull_returns_value():
    value = object()
    assert notnull("lookup", value) is value
    assert notnull("count", 0) == 0


def test_notnull_raises_on_none():
    with pytest.raises(RuntimeError, match="lookup: returned null pointer"):
        notnull("lookup", None)