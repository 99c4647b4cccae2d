"""Fractional ordering keys for drag-and-drop sorted siblings."""

from typing import Iterable, Protocol, TypeVar


class _Ordered(Protocol):
    order: float
    created_at: float


T = TypeVar("T", bound=_Ordered)


def order_between(before: float | None, after: float | None) -> float:
    """
    Compute an order key that sorts between two neighbouring siblings.

    Callers must pass the order values of the *immediate* neighbours at the
    drop position (None for "no neighbour on this side").

    Examples:
        >>> order_between(None, None)
        1
        >>> order_between(None, 4)
        2.0
        >>> order_between(4, None)
        5
        >>> order_between(2, 4)
        3.0
    """
    if before is None and after is None:
        return 1
    if before is None:
        return after / 2
    if after is None:
        return before + 1
    return (before + after) / 2


def next_order(orders: Iterable[float]) -> float:
    """Order key for appending after every existing sibling."""
    return max(orders, default=0) + 1


def sort_siblings(items: Iterable[T]) -> list[T]:
    """Sort ascending by order; equal orders keep creation order."""
    return sorted(items, key=lambda item: (item.order, item.created_at))
