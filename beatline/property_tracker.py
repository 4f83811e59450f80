from __future__ import annotations

from typing import Generic, TypeVar


T = TypeVar("T")


class ChangeTracker(Generic[T]):
    """Holds a value alongside the last value that was accepted.

    Owners read `is_dirty` to decide whether something needs announcing,
    then call `accept()` once they have acted on the change.
    """

    __slots__ = ("value", "old_value")

    def __init__(self, init_value: T) -> None:
        self.value: T = init_value
        self.old_value: T = init_value

    @property
    def is_dirty(self) -> bool:
        return self.value != self.old_value

    def accept(self) -> None:
        self.old_value = self.value

    def undo(self) -> None:
        self.value = self.old_value

    def __repr__(self) -> str:
        return f"ChangeTracker(value={self.value!r}, old_value={self.old_value!r})"
