"""Absolute and `now`-relative time expressions used by requests and queries."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Final

from clubstatus.domain.ranges import InvalidQueryError

I64_MIN: Final = -(2**63)
I64_MAX: Final = 2**63 - 1

_RELATIVE_PATTERN: Final = re.compile(r"^now(?:([+-])(\d+))?$")


class InvalidTimeExpressionError(InvalidQueryError):
    """Raised when a time value is neither a 64-bit timestamp nor `now[+-N]`."""


@dataclass(frozen=True)
class TimeExpr:
    """Either an absolute unix timestamp or an offset relative to `now`."""

    value: int
    relative: bool = False

    def absolute(self, now: int) -> int:
        if self.relative:
            return _checked_i64(now + self.value)
        return self.value


def _checked_i64(value: int) -> int:
    if value < I64_MIN or value > I64_MAX:
        raise InvalidTimeExpressionError("timestamp must fit into 64 bit signed int")
    return value


def parse_time_expr(raw: str | int | float) -> TimeExpr:
    """Parse an integer, a float (rounded) or a `now`, `now+N`, `now-N` string."""

    if isinstance(raw, bool):
        raise InvalidTimeExpressionError("bad time specification")
    if isinstance(raw, int):
        return TimeExpr(_checked_i64(raw))
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise InvalidTimeExpressionError("timestamp must be a finite number")
        return TimeExpr(_checked_i64(round(raw)))

    text = raw.strip()
    try:
        absolute = int(text)
    except ValueError:
        absolute = None
    if absolute is not None:
        return TimeExpr(_checked_i64(absolute))

    match = _RELATIVE_PATTERN.match(text)
    if match is None:
        raise InvalidTimeExpressionError(
            "bad time specification, expected UNIX timestamp or 'now', 'now+N', 'now-N'"
        )
    sign, digits = match.groups()
    offset = int(digits) if digits is not None else 0
    if sign == "-":
        offset = -offset
    return TimeExpr(_checked_i64(offset), relative=True)


def parse_time(raw: str | int | float, *, now: int) -> int:
    """Resolve a time expression to an absolute unix timestamp."""

    return parse_time_expr(raw).absolute(now)
