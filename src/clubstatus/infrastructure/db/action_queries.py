"""Id/time range queries over the action log."""

from __future__ import annotations

import logging
from typing import Any, cast

import sqlalchemy as sa

from clubstatus.application.ports.action_query_port import ActionQueryPort
from clubstatus.domain.actions import ActionType, TypedAction
from clubstatus.domain.ranges import (
    LAST,
    ActionQuery,
    IdBound,
    InvalidQueryError,
    QueryActionType,
    RangeExpr,
    Take,
)
from clubstatus.infrastructure.db import action_rows
from clubstatus.infrastructure.db.action_store import SqlAlchemyActionStore
from clubstatus.infrastructure.db.codec import decode_action_type, encode_action_type
from clubstatus.infrastructure.db.metadata import action

logger = logging.getLogger(__name__)

_TYPE_FILTERS: dict[QueryActionType, ActionType | None] = {
    QueryActionType.STATUS: ActionType.STATUS,
    QueryActionType.ANNOUNCEMENT: ActionType.ANNOUNCEMENT,
    QueryActionType.PRESENCE: ActionType.PRESENCE,
    QueryActionType.ALL: None,
}


def build_id_predicate(id_range: RangeExpr[IdBound]) -> sa.ColumnElement[bool] | None:
    """Translate an id range into a predicate; `None` means unrestricted."""

    start, end = id_range.start, id_range.end
    if end is None:
        if start == LAST:
            # newest match: resolved by DESC ordering with limit 1
            return None
        return action.c.id == start
    if start == LAST:
        raise InvalidQueryError("id range cannot start at 'last'")
    if end == LAST:
        return action.c.id >= start
    return action.c.id.between(start, end)


def build_time_predicate(time_range: RangeExpr[int] | None) -> sa.ColumnElement[bool] | None:
    if time_range is None:
        return None
    if time_range.end is None:
        return action.c.time == time_range.start
    return action.c.time.between(time_range.start, time_range.end)


def effective_take(query: ActionQuery) -> Take:
    """Direction of the scan; `last` as a single id always means the newest row."""

    if query.id_range.is_single and query.id_range.start == LAST:
        return Take.LAST
    return query.take


def build_query_statement(query: ActionQuery) -> sa.Select[Any]:
    """Build the id/type scan for one query, ordered per `take` and limited."""

    predicates: list[sa.ColumnElement[bool]] = []
    id_predicate = build_id_predicate(query.id_range)
    if id_predicate is not None:
        predicates.append(id_predicate)
    time_predicate = build_time_predicate(query.time_range)
    if time_predicate is not None:
        predicates.append(time_predicate)
    action_type = _TYPE_FILTERS[query.type_filter]
    if action_type is not None:
        predicates.append(action.c.type == encode_action_type(action_type))

    ordering = action.c.id.asc() if effective_take(query) is Take.FIRST else action.c.id.desc()

    return (
        sa.select(action.c.id, action.c.type)
        .where(sa.and_(sa.true(), *predicates))
        .order_by(ordering)
        .limit(query.effective_count)
    )


class SqlAlchemyActionQueries(ActionQueryPort):
    """Query engine that scans `action` and materializes each typed row."""

    def __init__(self, store: SqlAlchemyActionStore) -> None:
        self._store = store

    async def query(self, query: ActionQuery) -> list[TypedAction]:
        """Return matching actions in ascending id order regardless of `take`."""

        statement = build_query_statement(query)

        actions: list[TypedAction] = []
        async with self._store.transaction() as session:
            result = await session.execute(statement)
            matches = [
                (int(row["id"]), decode_action_type(cast(int, row["type"])))
                for row in result.mappings().all()
            ]
            for action_id, action_type in matches:
                typed = await action_rows.fetch_by_id(session, action_id, action_type)
                if typed is not None:
                    actions.append(typed)

        if effective_take(query) is Take.LAST:
            actions.reverse()
        logger.debug(
            "actions_queried type=%s count=%s take=%s returned=%s",
            query.type_filter.value,
            query.effective_count,
            query.take.value,
            len(actions),
        )
        return actions
