"""A reference that either owns its object or borrows one owned elsewhere."""

from __future__ import annotations

import copy
from typing import Generic, TypeVar

T = TypeVar("T")


class Ref(Generic[T]):
    """Owned-or-borrowed reference; only an owned one may be mutated."""

    __slots__ = ("_obj", "_owned")

    def __init__(self, obj: T) -> None:
        self._obj = obj
        self._owned = True

    @classmethod
    def borrowed(cls, obj: T) -> Ref[T]:
        """Make a borrowed reference to ``obj``."""
        ref = cls.__new__(cls)
        ref._obj = obj
        ref._owned = False
        return ref

    def borrow(self) -> Ref[T]:
        """Make a borrowed reference to the same object."""
        return type(self).borrowed(self._obj)

    def is_owned(self) -> bool:
        return self._owned

    def is_borrowed(self) -> bool:
        return not self._owned

    def get(self) -> T:
        """The referenced object, for reading."""
        return self._obj

    def get_mut(self) -> T:
        """The referenced object, for mutation; only allowed when owned."""
        if not self._owned:
            raise RuntimeError("attempt to mutate borrowed Ref")
        return self._obj

    def release(self) -> T:
        """Hand over the object if owned, otherwise a copy of it."""
        if self._owned:
            return self._obj
        return copy.copy(self._obj)

    def __copy__(self) -> Ref[T]:
        return type(self)(copy.copy(self._obj))

    def __repr__(self) -> str:
        kind = "owned" if self._owned else "borrowed"
        return f"Ref({kind}, {self._obj!r})"