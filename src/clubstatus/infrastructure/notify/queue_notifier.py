"""Bounded in-process channel handing stored actions to subscribers."""

from __future__ import annotations

import asyncio
import logging

from clubstatus.application.ports.action_notifier_port import ActionNotifierPort
from clubstatus.domain.actions import TypedAction, action_type_of

logger = logging.getLogger(__name__)


class QueueActionNotifier(ActionNotifierPort):
    """Notifier writing into a bounded queue drained by an external publisher.

    A full queue makes `notify` wait for free capacity; nothing is retried or
    buffered beyond `maxsize`.
    """

    def __init__(self, *, maxsize: int) -> None:
        self._queue: asyncio.Queue[TypedAction] = asyncio.Queue(maxsize=maxsize)

    @property
    def queue(self) -> asyncio.Queue[TypedAction]:
        return self._queue

    async def notify(self, action: TypedAction) -> None:
        await self._queue.put(action)
        logger.debug(
            "action_notified type=%s action_id=%s pending=%s",
            action_type_of(action).value,
            action.action.id,
            self._queue.qsize(),
        )

    async def next_action(self) -> TypedAction:
        """Wait for the next stored action; used by publishers."""

        action = await self._queue.get()
        self._queue.task_done()
        return action
