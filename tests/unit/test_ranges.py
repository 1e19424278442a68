from __future__ import annotations

import pytest

from clubstatus.domain.ranges import (
    LAST,
    MAX_ACTION_ID,
    MAX_QUERY_COUNT,
    ActionQuery,
    InvalidQueryError,
    RangeExpr,
    capped_count,
    id_range,
    parse_id_range,
    split_range,
    time_range,
)


def test_time_range_sorts_endpoints() -> None:
    assert time_range(20, 10) == RangeExpr(10, 20)
    assert time_range(10, 20) == RangeExpr(10, 20)


def test_equal_endpoints_collapse_to_single_value() -> None:
    assert time_range(5, 5) == RangeExpr(5)
    assert id_range(3, 3) == RangeExpr(3)
    assert id_range(LAST, LAST) == RangeExpr(LAST)


def test_last_sorts_above_every_integer_id() -> None:
    assert id_range(LAST, 4) == RangeExpr(4, LAST)
    assert id_range(4, LAST) == RangeExpr(4, LAST)
    assert id_range(9, 2) == RangeExpr(2, 9)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("7", RangeExpr(7)),
        ("last", RangeExpr(LAST)),
        ("3:9", RangeExpr(3, 9)),
        ("9:3", RangeExpr(3, 9)),
        ("3:last", RangeExpr(3, LAST)),
        ("last:3", RangeExpr(3, LAST)),
    ],
)
def test_parse_id_range(raw: str, expected: RangeExpr[object]) -> None:
    assert parse_id_range(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["", "abc", "-1", "3:x", "1.5", "99999999999999999999", "1:9223372036854775808"],
)
def test_parse_id_range_rejects_garbage(raw: str) -> None:
    with pytest.raises(InvalidQueryError):
        parse_id_range(raw)


def test_largest_i64_id_is_accepted() -> None:
    assert parse_id_range("9223372036854775807") == RangeExpr(MAX_ACTION_ID)


def test_split_range_keeps_endpoints_verbatim() -> None:
    assert split_range("now-10:now") == RangeExpr("now-10", "now")
    assert split_range("now") == RangeExpr("now")


def test_map_preserves_shape() -> None:
    assert RangeExpr("1").map(int) == RangeExpr(1)
    assert RangeExpr("1", "2").map(int) == RangeExpr(1, 2)


def test_single_id_query_forces_count_one() -> None:
    query = ActionQuery(id_range=RangeExpr(5), count=50)

    assert query.effective_count == 1


def test_range_query_uses_requested_count() -> None:
    assert ActionQuery(count=3).effective_count == 3
    assert ActionQuery().effective_count == 20


def test_capped_count_clamps_to_maximum() -> None:
    assert capped_count(0) == 0
    assert capped_count(50) == 50
    assert capped_count(1000) == MAX_QUERY_COUNT

    with pytest.raises(InvalidQueryError):
        capped_count(-1)
