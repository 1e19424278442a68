"""Range expressions over action ids and timestamps used by log queries."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Final, Generic, Literal, TypeVar

T = TypeVar("T")
R = TypeVar("R")

LAST: Final = "last"
IdBound = int | Literal["last"]

MAX_ACTION_ID: Final = 2**63 - 1
MAX_QUERY_COUNT: Final = 100
DEFAULT_QUERY_COUNT: Final = 20


class InvalidQueryError(ValueError):
    """Raised when query parameters cannot be turned into a store lookup."""


class QueryActionType(StrEnum):
    """Type filter accepted by log queries."""

    STATUS = "status"
    ANNOUNCEMENT = "announcement"
    PRESENCE = "presence"
    ALL = "all"


class Take(StrEnum):
    """Which end of an oversized, id-ordered match set is returned."""

    FIRST = "first"
    LAST = "last"


def _id_sort_key(bound: IdBound) -> tuple[int, int]:
    if bound == LAST:
        return (1, 0)
    assert isinstance(bound, int)
    return (0, bound)


@dataclass(frozen=True)
class RangeExpr(Generic[T]):
    """A single value (`end is None`) or an inclusive `[start, end]` range."""

    start: T
    end: T | None = None

    @property
    def is_single(self) -> bool:
        return self.end is None

    def map(self, func: Callable[[T], R]) -> RangeExpr[R]:
        if self.end is None:
            return RangeExpr(func(self.start))
        return RangeExpr(func(self.start), func(self.end))


def time_range(first: int, second: int) -> RangeExpr[int]:
    """Build a normalized time range: endpoints sorted, equal ones collapsed."""

    if first == second:
        return RangeExpr(first)
    return RangeExpr(min(first, second), max(first, second))


def id_range(first: IdBound, second: IdBound) -> RangeExpr[IdBound]:
    """Build a normalized id range where `last` sorts above every integer id."""

    if first == second:
        return RangeExpr(first)
    low, high = sorted((first, second), key=_id_sort_key)
    return RangeExpr(low, high)


def parse_id_bound(raw: str) -> IdBound:
    text = raw.strip()
    if text == LAST:
        return LAST
    try:
        value = int(text)
    except ValueError as exc:
        raise InvalidQueryError(f"bad id value: {raw!r}") from exc
    if value < 0 or value > MAX_ACTION_ID:
        raise InvalidQueryError(f"bad id value: {raw!r}")
    return value


def parse_id_range(raw: str) -> RangeExpr[IdBound]:
    """Parse `N`, `last`, `N:M` or `N:last` into a normalized id range."""

    parts = raw.split(":", 1)
    start = parse_id_bound(parts[0])
    if len(parts) == 1:
        return RangeExpr(start)
    return id_range(start, parse_id_bound(parts[1]))


def split_range(raw: str) -> RangeExpr[str]:
    """Split `a` or `a:b` without interpreting the endpoints."""

    parts = raw.split(":", 1)
    if len(parts) == 1:
        return RangeExpr(parts[0])
    return RangeExpr(parts[0], parts[1])


@dataclass(frozen=True)
class ActionQuery:
    """Validated query over the action log."""

    type_filter: QueryActionType = QueryActionType.ALL
    id_range: RangeExpr[IdBound] = RangeExpr(0, LAST)
    time_range: RangeExpr[int] | None = None
    count: int = DEFAULT_QUERY_COUNT
    take: Take = Take.LAST

    @property
    def effective_count(self) -> int:
        """Result cap; a single-id query can only ever match one row."""

        if self.id_range.is_single:
            return 1
        return max(self.count, 0)


def capped_count(count: int) -> int:
    """Clamp a caller-requested count into `[0, 100]`."""

    if count < 0:
        raise InvalidQueryError("count must not be negative")
    return min(count, MAX_QUERY_COUNT)
