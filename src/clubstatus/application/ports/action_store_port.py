"""Port for the append-only action log store."""

from __future__ import annotations

from typing import Protocol, overload

from clubstatus.domain.actions import (
    ActionType,
    AnnouncementAction,
    PresenceAction,
    StatusAction,
    TypedAction,
)


class ActionStorePort(Protocol):
    """Async action log contract.

    `store` returns the fully populated stored action, or `None` when the
    action is rejected (already stored, or an invalid announcement chain
    transition). Storage failures propagate as exceptions.
    """

    @overload
    async def store(self, action: StatusAction) -> StatusAction | None: ...

    @overload
    async def store(self, action: AnnouncementAction) -> AnnouncementAction | None: ...

    @overload
    async def store(self, action: PresenceAction) -> PresenceAction | None: ...

    async def store(self, action: TypedAction) -> TypedAction | None:
        """Append an action and return the stored value, or `None` on rejection."""

    async def get_last_status(self) -> StatusAction | None:
        """Return the newest status action."""

    async def get_last_changed_status(self) -> StatusAction | None:
        """Return the newest status action that changed the status."""

    async def get_last_changed_public_status(self) -> StatusAction | None:
        """Return the newest status action that changed the public status."""

    async def get_status_by_id(self, action_id: int) -> StatusAction | None:
        """Return one status action by id."""

    async def get_announcement_by_id(self, action_id: int) -> AnnouncementAction | None:
        """Return one announcement revision by action id."""

    async def get_last_announcement(self, aid: int) -> AnnouncementAction | None:
        """Return the newest revision of one announcement chain."""

    async def get_current_announcements(self, *, now: int) -> list[AnnouncementAction]:
        """Return live announcements that have not ended, ordered by start."""

    async def get_current_public_announcements(self, *, now: int) -> list[AnnouncementAction]:
        """Return live public announcements that have not ended, ordered by start."""

    async def get_last_presence(self) -> PresenceAction | None:
        """Return the newest presence snapshot."""

    async def get_presence_by_id(self, action_id: int) -> PresenceAction | None:
        """Return one presence snapshot by action id."""

    async def get_by_id(self, action_id: int, action_type: ActionType) -> TypedAction | None:
        """Return one action of the given kind by id."""
