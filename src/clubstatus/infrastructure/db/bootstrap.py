"""Startup seeding of an empty action log."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from clubstatus.domain.actions import PresenceAction, Status, StatusAction
from clubstatus.infrastructure.db.action_store import SqlAlchemyActionStore

logger = logging.getLogger(__name__)

INITIAL_NOTE = "initial state"
INITIAL_USER = "Hans Acker"


@dataclass(frozen=True)
class InitialStateResult:
    status_id: int | None
    presence_id: int | None


async def ensure_initial_state(store: SqlAlchemyActionStore) -> InitialStateResult:
    """Seed a closed status and an empty presence snapshot when none exist yet."""

    status_id: int | None = None
    presence_id: int | None = None

    if await store.get_last_status() is None:
        stored_status = await store.store(
            StatusAction.create(user=INITIAL_USER, status=Status.CLOSED, note=INITIAL_NOTE, time=0)
        )
        status_id = stored_status.action.id if stored_status is not None else None

    if await store.get_last_presence() is None:
        stored_presence = await store.store(
            PresenceAction.create(users=[], anonymous_users=0.0, time=0, note=INITIAL_NOTE)
        )
        presence_id = stored_presence.action.id if stored_presence is not None else None

    if status_id is not None or presence_id is not None:
        logger.info(
            "initial_state_seeded status_id=%s presence_id=%s",
            status_id,
            presence_id,
        )
    return InitialStateResult(status_id=status_id, presence_id=presence_id)
