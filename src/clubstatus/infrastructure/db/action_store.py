"""SQLAlchemy adapter for the append-only action log."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import overload

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clubstatus.application.ports.action_notifier_port import ActionNotifierPort
from clubstatus.application.ports.action_store_port import ActionStorePort
from clubstatus.domain.actions import (
    ActionType,
    AnnouncementAction,
    AnnouncementMethod,
    PresenceAction,
    StatusAction,
    TypedAction,
    action_type_of,
)
from clubstatus.domain.public_projection import public_status
from clubstatus.infrastructure.db import action_rows

logger = logging.getLogger(__name__)


class SqlAlchemyActionStore(ActionStorePort):
    """Action log backed by SQLAlchemy async sessions.

    Every read and write holds one process-wide lock for the duration of a
    single short transaction, so derived fields computed from the current log
    state can never race a concurrent insert.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        notifier: ActionNotifierPort | None = None,
        lock: asyncio.Lock | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._notifier = notifier
        self._lock = lock or asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Hold the storage lock and yield a session inside one transaction."""

        async with self._lock:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session

    @overload
    async def store(self, action: StatusAction) -> StatusAction | None: ...

    @overload
    async def store(self, action: AnnouncementAction) -> AnnouncementAction | None: ...

    @overload
    async def store(self, action: PresenceAction) -> PresenceAction | None: ...

    async def store(self, action: TypedAction) -> TypedAction | None:
        """Append an action atomically and return it with all generated fields."""

        if action.action.id is not None:
            logger.warning(
                "action_rejected type=%s action_id=%s reason=already_stored",
                action_type_of(action).value,
                action.action.id,
            )
            return None

        stored: TypedAction | None
        async with self.transaction() as session:
            match action:
                case StatusAction():
                    stored = await self._store_status(session, action)
                case AnnouncementAction():
                    stored = await self._store_announcement(session, action)
                case PresenceAction():
                    stored = await self._store_presence(session, action)

        if stored is not None and self._notifier is not None:
            await self._notifier.notify(stored)
        return stored

    async def _store_status(self, session: AsyncSession, status: StatusAction) -> StatusAction:
        last = await action_rows.fetch_last_status(session)
        if last is None:
            changed = True
            public_changed = True
        else:
            changed = last.status != status.status
            public_changed = public_status(last.status) != public_status(status.status)

        action_id = await action_rows.insert_base_action(
            session, status.action, ActionType.STATUS
        )
        stored = replace(
            status,
            action=status.action.with_id(action_id),
            changed=changed,
            public_changed=public_changed,
        )
        await action_rows.insert_status_row(session, action_id=action_id, stored=stored)
        logger.info(
            "status_stored action_id=%s status=%s changed=%s public_changed=%s",
            action_id,
            stored.status.value,
            changed,
            public_changed,
        )
        return stored

    async def _store_announcement(
        self,
        session: AsyncSession,
        announcement: AnnouncementAction,
    ) -> AnnouncementAction | None:
        if announcement.method is AnnouncementMethod.NEW:
            if announcement.aid is not None:
                _log_announcement_rejected(announcement, reason="new_with_aid")
                return None
            action_id = await action_rows.insert_base_action(
                session, announcement.action, ActionType.ANNOUNCEMENT
            )
            stored = replace(
                announcement,
                action=announcement.action.with_id(action_id),
                aid=action_id,
            )
        else:
            if announcement.aid is None:
                _log_announcement_rejected(announcement, reason="missing_aid")
                return None
            last = await action_rows.fetch_last_announcement(session, announcement.aid)
            if last is None:
                _log_announcement_rejected(announcement, reason="unknown_aid")
                return None
            if last.method is AnnouncementMethod.DEL:
                _log_announcement_rejected(announcement, reason="deleted")
                return None

            if announcement.method is AnnouncementMethod.DEL:
                base = replace(announcement.action, note=last.action.note)
                announcement = replace(
                    announcement,
                    action=base,
                    from_time=last.from_time,
                    to_time=last.to_time,
                    public=last.public,
                )
            action_id = await action_rows.insert_base_action(
                session, announcement.action, ActionType.ANNOUNCEMENT
            )
            stored = replace(announcement, action=announcement.action.with_id(action_id))

        await action_rows.insert_announcement_row(session, action_id=action_id, stored=stored)
        logger.info(
            "announcement_stored action_id=%s aid=%s method=%s public=%s",
            action_id,
            stored.aid,
            stored.method.value,
            stored.public,
        )
        return stored

    async def _store_presence(
        self,
        session: AsyncSession,
        presence: PresenceAction,
    ) -> PresenceAction:
        action_id = await action_rows.insert_base_action(
            session, presence.action, ActionType.PRESENCE
        )
        stored = replace(presence, action=presence.action.with_id(action_id))
        await action_rows.insert_presence_rows(session, action_id=action_id, stored=stored)
        logger.info(
            "presence_stored action_id=%s users=%s anonymous=%s",
            action_id,
            len(stored.present_users),
            stored.anonymous_users,
        )
        return stored

    async def get_last_status(self) -> StatusAction | None:
        async with self.transaction() as session:
            return await action_rows.fetch_last_status(session)

    async def get_last_changed_status(self) -> StatusAction | None:
        async with self.transaction() as session:
            return await action_rows.fetch_last_status(session, changed_only=True)

    async def get_last_changed_public_status(self) -> StatusAction | None:
        async with self.transaction() as session:
            return await action_rows.fetch_last_status(session, public_changed_only=True)

    async def get_status_by_id(self, action_id: int) -> StatusAction | None:
        async with self.transaction() as session:
            return await action_rows.fetch_status_by_id(session, action_id)

    async def get_announcement_by_id(self, action_id: int) -> AnnouncementAction | None:
        async with self.transaction() as session:
            return await action_rows.fetch_announcement_by_id(session, action_id)

    async def get_last_announcement(self, aid: int) -> AnnouncementAction | None:
        async with self.transaction() as session:
            return await action_rows.fetch_last_announcement(session, aid)

    async def get_current_announcements(self, *, now: int) -> list[AnnouncementAction]:
        async with self.transaction() as session:
            return await action_rows.fetch_current_announcements(
                session, now=now, public_only=False
            )

    async def get_current_public_announcements(self, *, now: int) -> list[AnnouncementAction]:
        async with self.transaction() as session:
            return await action_rows.fetch_current_announcements(
                session, now=now, public_only=True
            )

    async def get_last_presence(self) -> PresenceAction | None:
        async with self.transaction() as session:
            return await action_rows.fetch_last_presence(session)

    async def get_presence_by_id(self, action_id: int) -> PresenceAction | None:
        async with self.transaction() as session:
            return await action_rows.fetch_presence_by_id(session, action_id)

    async def get_by_id(self, action_id: int, action_type: ActionType) -> TypedAction | None:
        async with self.transaction() as session:
            return await action_rows.fetch_by_id(session, action_id, action_type)


def _log_announcement_rejected(announcement: AnnouncementAction, *, reason: str) -> None:
    logger.warning(
        "announcement_rejected method=%s aid=%s reason=%s",
        announcement.method.value,
        announcement.aid,
        reason,
    )
