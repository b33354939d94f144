"""Small list helpers shared by the hierarchy and the binding engine."""

from __future__ import annotations

from functools import reduce
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

T = TypeVar("T")


def combine(columns: Sequence[Sequence[T]]) -> list[tuple[T, ...]]:
    """Return every combination taking one element from each column.

    The product is built as a fold over the columns rather than by recursion,
    so long parameter lists do not grow the stack. Any empty column makes the
    whole product empty; no columns at all yields a single empty combination.

    Examples:
        >>> combine([[1, 2], ["a"]])
        [(1, 'a'), (2, 'a')]

    """
    return reduce(
        lambda acc, column: [(*combo, item) for combo in acc for item in column],
        columns,
        [()],
    )


def unique(items: Iterable[T]) -> list[T]:
    """Drop duplicates while keeping the first occurrence of each item."""
    result: list[T] = []
    for item in items:
        if item not in result:
            result.append(item)
    return result
