from __future__ import annotations

from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic.config import Config

from alembic import command
from clubstatus.domain.actions import (
    ActionType,
    AnnouncementAction,
    AnnouncementMethod,
    PresenceAction,
    PresentNamedUser,
    PresentUserStatus,
    Status,
    StatusAction,
)
from clubstatus.infrastructure.db.action_store import SqlAlchemyActionStore
from clubstatus.infrastructure.db.session import create_session_factory
from clubstatus.infrastructure.notify.queue_notifier import QueueActionNotifier


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"

    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")

    return sync_url, async_url


def _status(status: Status, *, time: int = 100, note: str = "") -> StatusAction:
    return StatusAction.create(user="alice", status=status, note=note, time=time)


def _announcement(
    method: AnnouncementMethod,
    *,
    aid: int | None = None,
    note: str = "",
    from_time: int = 0,
    to_time: int = 0,
    public: bool = False,
    time: int = 100,
) -> AnnouncementAction:
    return AnnouncementAction.create(
        method=method,
        user="bob",
        note=note,
        time=time,
        from_time=from_time,
        to_time=to_time,
        public=public,
        aid=aid,
    )


@pytest.mark.asyncio
async def test_first_status_is_changed_and_public_changed(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "store_first_status.db")
    store = SqlAlchemyActionStore(create_session_factory(async_url))

    stored = await store.store(_status(Status.CLOSED, note="hello"))

    assert stored is not None
    assert stored.action.id == 1
    assert stored.changed is True
    assert stored.public_changed is True
    assert await store.get_last_status() == stored


@pytest.mark.asyncio
async def test_status_flags_follow_previous_status(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "store_status_flags.db")
    store = SqlAlchemyActionStore(create_session_factory(async_url))

    await store.store(_status(Status.CLOSED))
    private = await store.store(_status(Status.PRIVATE))
    private_again = await store.store(_status(Status.PRIVATE))
    public = await store.store(_status(Status.PUBLIC))

    assert private is not None and private_again is not None and public is not None
    assert (private.changed, private.public_changed) == (True, False)
    assert (private_again.changed, private_again.public_changed) == (False, False)
    assert (public.changed, public.public_changed) == (True, True)

    assert await store.get_last_status() == public
    assert await store.get_last_changed_status() == public
    assert await store.get_last_changed_public_status() == public


@pytest.mark.asyncio
async def test_last_changed_skips_unchanged_repeats(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "store_last_changed.db")
    store = SqlAlchemyActionStore(create_session_factory(async_url))

    first = await store.store(_status(Status.PUBLIC))
    private = await store.store(_status(Status.PRIVATE))
    repeat = await store.store(_status(Status.PRIVATE))

    assert await store.get_last_status() == repeat
    assert await store.get_last_changed_status() == private
    assert await store.get_last_changed_public_status() == private
    assert first is not None
    assert await store.get_status_by_id(2) == private
    assert await store.get_status_by_id(99) is None


@pytest.mark.asyncio
async def test_already_stored_action_is_rejected(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "store_resubmit.db")
    store = SqlAlchemyActionStore(create_session_factory(async_url))

    stored = await store.store(_status(Status.CLOSED))
    assert stored is not None

    assert await store.store(stored) is None
    assert await store.get_by_id(2, ActionType.STATUS) is None


@pytest.mark.asyncio
async def test_ids_are_strictly_increasing_across_kinds(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "store_ids.db")
    store = SqlAlchemyActionStore(create_session_factory(async_url))

    status = await store.store(_status(Status.CLOSED))
    announcement = await store.store(_announcement(AnnouncementMethod.NEW))
    presence = await store.store(PresenceAction.create(users=[], anonymous_users=0.0, time=1))

    assert status is not None and announcement is not None and presence is not None
    assert [status.action.id, announcement.action.id, presence.action.id] == [1, 2, 3]


@pytest.mark.asyncio
async def test_new_announcement_gets_own_id_as_aid(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "store_ann_new.db")
    store = SqlAlchemyActionStore(create_session_factory(async_url))
    await store.store(_status(Status.CLOSED))

    stored = await store.store(
        _announcement(AnnouncementMethod.NEW, note="party", from_time=10, to_time=20)
    )

    assert stored is not None
    assert stored.action.id == 2
    assert stored.aid == 2
    assert await store.get_announcement_by_id(2) == stored
    assert await store.get_last_announcement(2) == stored


@pytest.mark.asyncio
async def test_announcement_chain_rejections(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "store_ann_reject.db")
    store = SqlAlchemyActionStore(create_session_factory(async_url))

    assert await store.store(_announcement(AnnouncementMethod.NEW, aid=5)) is None
    assert await store.store(_announcement(AnnouncementMethod.MOD)) is None
    assert await store.store(_announcement(AnnouncementMethod.MOD, aid=99)) is None
    assert await store.store(_announcement(AnnouncementMethod.DEL, aid=99)) is None

    created = await store.store(_announcement(AnnouncementMethod.NEW))
    assert created is not None and created.aid is not None
    deleted = await store.store(_announcement(AnnouncementMethod.DEL, aid=created.aid))
    assert deleted is not None

    assert await store.store(_announcement(AnnouncementMethod.MOD, aid=created.aid)) is None
    assert await store.store(_announcement(AnnouncementMethod.DEL, aid=created.aid)) is None
    assert await store.get_last_announcement(created.aid) == deleted


@pytest.mark.asyncio
async def test_delete_copies_schedule_and_note_from_last_revision(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "store_ann_del.db")
    store = SqlAlchemyActionStore(create_session_factory(async_url))

    created = await store.store(
        _announcement(AnnouncementMethod.NEW, note="v1", from_time=10, to_time=20)
    )
    assert created is not None and created.aid is not None
    modified = await store.store(
        _announcement(
            AnnouncementMethod.MOD,
            aid=created.aid,
            note="v2",
            from_time=30,
            to_time=40,
            public=True,
        )
    )
    deleted = await store.store(
        _announcement(AnnouncementMethod.DEL, aid=created.aid, note="ignored", time=500)
    )

    assert modified is not None and deleted is not None
    assert deleted.action.note == "v2"
    assert (deleted.from_time, deleted.to_time, deleted.public) == (30, 40, True)
    assert deleted.action.time == 500
    assert deleted.aid == created.aid


@pytest.mark.asyncio
async def test_current_announcements_take_latest_live_revision(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "store_ann_current.db")
    store = SqlAlchemyActionStore(create_session_factory(async_url))

    expired = await store.store(
        _announcement(AnnouncementMethod.NEW, note="old", from_time=1, to_time=50)
    )
    private = await store.store(
        _announcement(AnnouncementMethod.NEW, note="private", from_time=300, to_time=400)
    )
    public = await store.store(
        _announcement(AnnouncementMethod.NEW, note="draft", from_time=200, to_time=300)
    )
    gone = await store.store(
        _announcement(AnnouncementMethod.NEW, note="gone", from_time=100, to_time=900)
    )
    assert expired is not None and private is not None
    assert public is not None and gone is not None
    assert public.aid is not None and gone.aid is not None
    revised = await store.store(
        _announcement(
            AnnouncementMethod.MOD,
            aid=public.aid,
            note="final",
            from_time=200,
            to_time=300,
            public=True,
        )
    )
    await store.store(_announcement(AnnouncementMethod.DEL, aid=gone.aid))

    current = await store.get_current_announcements(now=100)
    current_public = await store.get_current_public_announcements(now=100)

    assert [announcement.action.note for announcement in current] == ["final", "private"]
    assert current_public == [revised]


@pytest.mark.asyncio
async def test_presence_snapshot_round_trip_drops_left_users(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "store_presence.db")
    store = SqlAlchemyActionStore(create_session_factory(async_url))

    stored = await store.store(
        PresenceAction.create(
            users=[
                PresentNamedUser(name="carol", since=5, status=PresentUserStatus.JOINED),
                PresentNamedUser(name="alice", since=3),
                PresentNamedUser(name="bob", since=4, status=PresentUserStatus.LEFT),
            ],
            anonymous_users=2.5,
            time=10,
        )
    )
    assert stored is not None and stored.action.id is not None

    loaded = await store.get_presence_by_id(stored.action.id)

    assert loaded is not None
    assert loaded.users == (
        PresentNamedUser(name="alice", since=3),
        PresentNamedUser(name="carol", since=5),
    )
    assert loaded.anonymous_users == 2.5
    assert await store.get_last_presence() == loaded

    engine = sa.create_engine(sync_url)
    with engine.begin() as connection:
        rows = connection.execute(sa.text('SELECT "user" FROM presence_action')).scalars().all()
    assert sorted(rows) == ["alice", "carol"]


@pytest.mark.asyncio
async def test_get_by_id_requires_matching_kind(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "store_get_by_id.db")
    store = SqlAlchemyActionStore(create_session_factory(async_url))
    stored = await store.store(_status(Status.PUBLIC, note="open"))

    assert await store.get_by_id(1, ActionType.STATUS) == stored
    assert await store.get_by_id(1, ActionType.PRESENCE) is None
    assert await store.get_by_id(42, ActionType.STATUS) is None


@pytest.mark.asyncio
async def test_stored_actions_are_notified_after_commit(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "store_notify.db")
    notifier = QueueActionNotifier(maxsize=8)
    store = SqlAlchemyActionStore(create_session_factory(async_url), notifier=notifier)

    stored = await store.store(_status(Status.PUBLIC))
    rejected = await store.store(_announcement(AnnouncementMethod.MOD, aid=1))

    assert rejected is None
    assert notifier.queue.qsize() == 1
    assert await notifier.next_action() == stored
