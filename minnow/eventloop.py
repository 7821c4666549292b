"""Waits for activity on file descriptors and runs the matching callbacks."""

from __future__ import annotations

import errno
import os
import select
import socket
import sys
import weakref
from collections.abc import Callable
from enum import Enum
from typing import Union

from minnow.errors import UnixError
from minnow.file_descriptor import FileDescriptor

Callback = Callable[[], None]
Interest = Callable[[], bool]
Category = Union[int, str]

_MAX_CATEGORIES = 64
_MAX_BASIC_ITERATIONS = 128


def _always() -> bool:
    return True


def _nothing() -> None:
    return None


class Direction(Enum):
    """Whether a rule waits for its descriptor to be readable or writable."""

    IN = "in"
    OUT = "out"


class Result(Enum):
    """The outcome of one call to ``EventLoop.wait_next_event``."""

    SUCCESS = "success"
    """A rule was served."""
    TIMEOUT = "timeout"
    """No rule was served before the timeout."""
    EXIT = "exit"
    """Every rule is cancelled or uninterested; stop calling."""


class _BasicRule:
    def __init__(self, category_id: int, interest: Interest, callback: Callback) -> None:
        self.category_id = category_id
        self.interest = interest
        self.callback = callback
        self.cancel_requested = False


class _FDRule(_BasicRule):
    def __init__(
        self,
        category_id: int,
        interest: Interest,
        callback: Callback,
        fd: FileDescriptor,
        direction: Direction,
        on_cancel: Callback,
        on_error: Callback,
    ) -> None:
        super().__init__(category_id, interest, callback)
        self.fd = fd
        self.direction = direction
        self.on_cancel = on_cancel
        self.on_error = on_error

    def service_count(self) -> int:
        """How many times the descriptor was read or written, by direction."""
        if self.direction is Direction.IN:
            return self.fd.read_count()
        return self.fd.write_count()

    def poll_events(self) -> int:
        return select.POLLIN if self.direction is Direction.IN else select.POLLOUT


class RuleHandle:
    """Lets a caller cancel a rule; does nothing once the rule is gone."""

    __slots__ = ("_rule",)

    def __init__(self, rule: _BasicRule) -> None:
        self._rule = weakref.ref(rule)

    def cancel(self) -> None:
        """Ask the loop to drop the rule (its cancel callback is not run)."""
        rule = self._rule()
        if rule is not None:
            rule.cancel_requested = True


def _socket_error(fd_num: int) -> int | None:
    """The pending socket error, or None if the descriptor is not a socket."""
    try:
        sock = socket.socket(fileno=fd_num)
    except OSError as exc:
        if exc.errno == errno.ENOTSOCK:
            return None
        raise UnixError("getsockopt", exc.errno) from exc
    try:
        return sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
    except OSError as exc:
        if exc.errno == errno.ENOTSOCK:
            return None
        raise UnixError("getsockopt", exc.errno) from exc
    finally:
        sock.detach()


class EventLoop:
    """Runs callbacks for rules, serving at most one rule per call."""

    def __init__(self) -> None:
        self._categories: list[str] = []
        self._fd_rules: list[_FDRule] = []
        self._basic_rules: list[_BasicRule] = []

    def add_category(self, name: str) -> int:
        """Register a named category of rules and return its id."""
        if len(self._categories) >= _MAX_CATEGORIES:
            raise RuntimeError("maximum categories reached")
        self._categories.append(name)
        return len(self._categories) - 1

    def _category_id(self, category: Category) -> int:
        if isinstance(category, str):
            return self.add_category(category)
        if not 0 <= category < len(self._categories):
            raise IndexError("bad category_id")
        return category

    def _name(self, rule: _BasicRule) -> str:
        return self._categories[rule.category_id]

    def add_rule(
        self,
        category: Category,
        fd: FileDescriptor,
        direction: Direction,
        callback: Callback,
        interest: Interest = _always,
        cancel: Callback = _nothing,
        error: Callback = _nothing,
    ) -> RuleHandle:
        """Run ``callback`` when ``fd`` is ready in ``direction`` and ``interest()`` holds.

        ``category`` is a category id, or a name for which a new category is made.
        ``cancel`` runs when the rule ends on its own (EOF, hangup, close, error);
        ``error`` runs first when the descriptor reports an error.
        """
        category_id = self._category_id(category)
        rule = _FDRule(category_id, interest, callback, fd.duplicate(), direction, cancel, error)
        self._fd_rules.append(rule)
        return RuleHandle(rule)

    def add_basic_rule(
        self, category: Category, callback: Callback, interest: Interest = _always
    ) -> RuleHandle:
        """Run ``callback`` whenever ``interest()`` holds, with no descriptor involved."""
        category_id = self._category_id(category)
        rule = _BasicRule(category_id, interest, callback)
        self._basic_rules.append(rule)
        return RuleHandle(rule)

    def _serve_basic_rules(self) -> bool:
        for rule in list(self._basic_rules):
            if rule.cancel_requested:
                self._basic_rules.remove(rule)
                continue
            fired = False
            iterations = 0
            while rule.interest():
                iterations += 1
                if iterations > _MAX_BASIC_ITERATIONS:
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        f"is still interested after {iterations} iterations"
                    )
                fired = True
                rule.callback()
            if fired:
                return True
        return False

    def _drop(self, rule: _FDRule, *, run_cancel: bool) -> None:
        if run_cancel:
            rule.on_cancel()
        self._fd_rules.remove(rule)

    def _report_error(self, rule: _FDRule) -> None:
        socket_error = _socket_error(rule.fd.fd_num())
        if socket_error is None:
            print(
                f'error on polled file descriptor for rule "{self._name(rule)}"',
                file=sys.stderr,
            )
        elif socket_error:
            print(
                f'error on polled socket for rule "{self._name(rule)}": '
                f"{os.strerror(socket_error)}",
                file=sys.stderr,
            )

    def wait_next_event(self, timeout_ms: int) -> Result:
        """Serve one ready rule, waiting up to ``timeout_ms`` (negative: forever)."""
        if self._serve_basic_rules():
            return Result.SUCCESS

        polled: list[tuple[_FDRule, int]] = []
        something_to_poll = False
        for rule in list(self._fd_rules):
            if rule.cancel_requested:
                self._drop(rule, run_cancel=False)
                continue
            if rule.direction is Direction.IN and rule.fd.eof():
                self._drop(rule, run_cancel=True)
                continue
            if rule.fd.closed():
                self._drop(rule, run_cancel=True)
                continue
            if rule.interest():
                polled.append((rule, rule.poll_events()))
                something_to_poll = True
            else:
                polled.append((rule, 0))  # still watched for errors

        if not something_to_poll:
            return Result.EXIT

        masks: dict[int, int] = {}
        for rule, events in polled:
            fd_num = rule.fd.fd_num()
            masks[fd_num] = masks.get(fd_num, 0) | events
        poller = select.poll()
        for fd_num, mask in masks.items():
            poller.register(fd_num, mask)
        try:
            ready = poller.poll(timeout_ms)
        except OSError as exc:
            raise UnixError("poll", exc.errno) from exc
        if not ready:
            return Result.TIMEOUT
        revents_by_fd = dict(ready)

        for rule, events in polled:
            revents = revents_by_fd.get(rule.fd.fd_num(), 0)

            if revents & (select.POLLERR | select.POLLNVAL):
                self._report_error(rule)
                rule.on_error()
                self._drop(rule, run_cancel=True)
                continue

            poll_ready = bool(revents & events)
            poll_hup = bool(revents & select.POLLHUP)
            if poll_hup and ((events and not poll_ready) or rule.direction is Direction.OUT):
                # only a hangup: nothing more will ever be read or written here
                self._drop(rule, run_cancel=True)
                continue

            if poll_ready:
                count_before = rule.service_count()
                rule.callback()
                if (
                    count_before == rule.service_count()
                    and not rule.fd.closed()
                    and rule.interest()
                ):
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        "did not read/write fd and is still interested"
                    )
                return Result.SUCCESS

        return Result.SUCCESS