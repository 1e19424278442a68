"""Port for the outbound channel receiving stored actions."""

from __future__ import annotations

from typing import Protocol

from clubstatus.domain.actions import TypedAction


class ActionNotifierPort(Protocol):
    """Sink receiving each action once it has been committed."""

    async def notify(self, action: TypedAction) -> None:
        """Hand one stored action to external subscribers."""
