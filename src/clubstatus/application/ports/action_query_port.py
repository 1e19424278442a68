"""Port for range queries over the action log."""

from __future__ import annotations

from typing import Protocol

from clubstatus.domain.actions import TypedAction
from clubstatus.domain.ranges import ActionQuery


class ActionQueryPort(Protocol):
    """Async action log query contract."""

    async def query(self, query: ActionQuery) -> list[TypedAction]:
        """Return matching actions in ascending id order."""
