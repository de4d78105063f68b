"""Ordered container returned by bulk reads."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, MutableSequence
from typing import Any, Generic, TypeVar, overload

T = TypeVar("T")


class Collection(MutableSequence[T], Generic[T]):
    """List-like sequence of hydrated entities, in the order rows arrived.

    Supports indexing (slices return a Collection), iteration, ``len`` and
    in-place mutation. ``to_dicts()`` exports every member's ``to_dict()``.
    """

    def __init__(self, items: Iterable[T] = ()):
        self._items: list[T] = list(items)

    @overload
    def __getitem__(self, index: int) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> Collection[T]: ...

    def __getitem__(self, index: int | slice) -> T | Collection[T]:
        if isinstance(index, slice):
            return Collection(self._items[index])
        return self._items[index]

    def __setitem__(self, index: Any, value: Any) -> None:
        self._items[index] = value

    def __delitem__(self, index: int | slice) -> None:
        del self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def insert(self, index: int, value: T) -> None:
        self._items.insert(index, value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Collection):
            return self._items == other._items
        if isinstance(other, list):
            return self._items == other
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Collection({self._items!r})"

    def first(self) -> T | None:
        return self._items[0] if self._items else None

    def all(self) -> list[T]:
        """Shallow copy of the members as a list."""
        return list(self._items)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [item.to_dict() for item in self._items]


__all__ = ["Collection"]
