"""Session-level reads and writes over the `action` + `<kind>_action` tables.

Callers own the session and the surrounding transaction; these helpers never
commit.
"""

from __future__ import annotations

from typing import Any, Final, cast

import sqlalchemy as sa
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncSession

from clubstatus.domain.actions import (
    ActionType,
    AnnouncementAction,
    AnnouncementMethod,
    BaseAction,
    PresenceAction,
    PresentNamedUser,
    StatusAction,
    TypedAction,
)
from clubstatus.infrastructure.db.codec import (
    decode_bool,
    decode_method,
    decode_status,
    encode_action_type,
    encode_bool,
    encode_method,
    encode_status,
)
from clubstatus.infrastructure.db.metadata import (
    action,
    announcement_action,
    presence_action,
    presence_anon_action,
    status_action,
)

CURRENT_ANNOUNCEMENTS_LIMIT: Final = 30

_STATUS_COLUMNS = (
    action.c.id,
    action.c.time,
    action.c.note,
    status_action.c.user,
    status_action.c.status,
    status_action.c.changed,
    status_action.c.public_changed,
)
_ANNOUNCEMENT_COLUMNS = (
    action.c.id,
    action.c.time,
    action.c.note,
    announcement_action.c.method,
    announcement_action.c.aid,
    announcement_action.c.user,
    announcement_action.c["from"],
    announcement_action.c["to"],
    announcement_action.c.public,
)


def _base_from_row(row: RowMapping) -> BaseAction:
    return BaseAction(
        id=int(row["id"]),
        time=int(row["time"]),
        note=cast(str, row["note"]),
    )


def _to_status_action(row: RowMapping) -> StatusAction:
    return StatusAction(
        action=_base_from_row(row),
        user=cast(str, row["user"]),
        status=decode_status(cast(int, row["status"])),
        changed=decode_bool(cast(int, row["changed"])),
        public_changed=decode_bool(cast(int, row["public_changed"])),
    )


def _to_announcement_action(row: RowMapping) -> AnnouncementAction:
    return AnnouncementAction(
        action=_base_from_row(row),
        method=decode_method(cast(int, row["method"])),
        aid=int(row["aid"]),
        user=cast(str, row["user"]),
        from_time=int(row["from"]),
        to_time=int(row["to"]),
        public=decode_bool(cast(int, row["public"])),
    )


def _status_select() -> sa.Select[Any]:
    return sa.select(*_STATUS_COLUMNS).join(status_action, status_action.c.id == action.c.id)


def _announcement_select() -> sa.Select[Any]:
    return sa.select(*_ANNOUNCEMENT_COLUMNS).join(
        announcement_action, announcement_action.c.id == action.c.id
    )


async def insert_base_action(
    session: AsyncSession,
    base: BaseAction,
    action_type: ActionType,
) -> int:
    """Insert the shared `action` row and return the assigned log id."""

    statement = (
        sa.insert(action)
        .values(time=base.time, type=encode_action_type(action_type), note=base.note)
        .returning(action.c.id)
    )
    result = await session.execute(statement)
    return int(result.scalar_one())


async def insert_status_row(
    session: AsyncSession,
    *,
    action_id: int,
    stored: StatusAction,
) -> None:
    assert stored.changed is not None and stored.public_changed is not None
    await session.execute(
        sa.insert(status_action).values(
            id=action_id,
            user=stored.user,
            status=encode_status(stored.status),
            changed=encode_bool(stored.changed),
            public_changed=encode_bool(stored.public_changed),
        )
    )


async def insert_announcement_row(
    session: AsyncSession,
    *,
    action_id: int,
    stored: AnnouncementAction,
) -> None:
    assert stored.aid is not None
    await session.execute(
        sa.insert(announcement_action).values(
            {
                "id": action_id,
                "method": encode_method(stored.method),
                "aid": stored.aid,
                "user": stored.user,
                "from": stored.from_time,
                "to": stored.to_time,
                "public": encode_bool(stored.public),
            }
        )
    )


async def insert_presence_rows(
    session: AsyncSession,
    *,
    action_id: int,
    stored: PresenceAction,
) -> None:
    """Write one row per user that has not left plus the anonymous estimate."""

    user_rows = [
        {"id": action_id, "user": user.name, "since": user.since}
        for user in stored.present_users
    ]
    if user_rows:
        await session.execute(sa.insert(presence_action), user_rows)
    await session.execute(
        sa.insert(presence_anon_action).values(
            id=action_id,
            anonymous_users=float(stored.anonymous_users),
        )
    )


async def fetch_last_status(
    session: AsyncSession,
    *,
    changed_only: bool = False,
    public_changed_only: bool = False,
) -> StatusAction | None:
    statement = _status_select()
    if changed_only:
        statement = statement.where(status_action.c.changed == 1)
    if public_changed_only:
        statement = statement.where(status_action.c.public_changed == 1)
    statement = statement.order_by(action.c.id.desc()).limit(1)

    result = await session.execute(statement)
    row = result.mappings().first()
    if row is None:
        return None
    return _to_status_action(row)


async def fetch_status_by_id(session: AsyncSession, action_id: int) -> StatusAction | None:
    result = await session.execute(_status_select().where(action.c.id == action_id))
    row = result.mappings().first()
    if row is None:
        return None
    return _to_status_action(row)


async def fetch_announcement_by_id(
    session: AsyncSession,
    action_id: int,
) -> AnnouncementAction | None:
    result = await session.execute(_announcement_select().where(action.c.id == action_id))
    row = result.mappings().first()
    if row is None:
        return None
    return _to_announcement_action(row)


async def fetch_last_announcement(session: AsyncSession, aid: int) -> AnnouncementAction | None:
    statement = (
        _announcement_select()
        .where(announcement_action.c.aid == aid)
        .order_by(action.c.id.desc())
        .limit(1)
    )
    result = await session.execute(statement)
    row = result.mappings().first()
    if row is None:
        return None
    return _to_announcement_action(row)


async def fetch_current_announcements(
    session: AsyncSession,
    *,
    now: int,
    public_only: bool,
) -> list[AnnouncementAction]:
    """Return the latest live revision per chain that ends at or after `now`."""

    latest_revisions = (
        sa.select(sa.func.max(announcement_action.c.id).label("id"))
        .group_by(announcement_action.c.aid)
        .subquery("latest_revisions")
    )
    statement = (
        _announcement_select()
        .join(latest_revisions, latest_revisions.c.id == action.c.id)
        .where(
            announcement_action.c.method != encode_method(AnnouncementMethod.DEL),
            announcement_action.c["to"] >= now,
        )
    )
    if public_only:
        statement = statement.where(announcement_action.c.public == 1)
    statement = statement.order_by(
        announcement_action.c["from"].asc(),
        action.c.id.asc(),
    ).limit(CURRENT_ANNOUNCEMENTS_LIMIT)

    result = await session.execute(statement)
    return [_to_announcement_action(row) for row in result.mappings().all()]


async def _load_presence(session: AsyncSession, base_row: RowMapping) -> PresenceAction:
    base = _base_from_row(base_row)
    users_result = await session.execute(
        sa.select(presence_action.c.user, presence_action.c.since)
        .where(presence_action.c.id == base.id)
        .order_by(presence_action.c.user.asc())
    )
    users = tuple(
        PresentNamedUser(name=cast(str, row["user"]), since=int(row["since"]))
        for row in users_result.mappings().all()
    )
    anonymous_result = await session.execute(
        sa.select(presence_anon_action.c.anonymous_users).where(
            presence_anon_action.c.id == base.id
        )
    )
    anonymous_users = anonymous_result.scalar_one_or_none()
    return PresenceAction(
        action=base,
        users=users,
        anonymous_users=float(anonymous_users) if anonymous_users is not None else 0.0,
    )


def _presence_base_select() -> sa.Select[Any]:
    return sa.select(action.c.id, action.c.time, action.c.note).where(
        action.c.type == encode_action_type(ActionType.PRESENCE)
    )


async def fetch_last_presence(session: AsyncSession) -> PresenceAction | None:
    result = await session.execute(
        _presence_base_select().order_by(action.c.id.desc()).limit(1)
    )
    row = result.mappings().first()
    if row is None:
        return None
    return await _load_presence(session, row)


async def fetch_presence_by_id(session: AsyncSession, action_id: int) -> PresenceAction | None:
    result = await session.execute(_presence_base_select().where(action.c.id == action_id))
    row = result.mappings().first()
    if row is None:
        return None
    return await _load_presence(session, row)


async def fetch_by_id(
    session: AsyncSession,
    action_id: int,
    action_type: ActionType,
) -> TypedAction | None:
    """Materialize one typed action from its base and kind-specific rows."""

    match action_type:
        case ActionType.STATUS:
            return await fetch_status_by_id(session, action_id)
        case ActionType.ANNOUNCEMENT:
            return await fetch_announcement_by_id(session, action_id)
        case ActionType.PRESENCE:
            return await fetch_presence_by_id(session, action_id)
