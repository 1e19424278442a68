"""Action log entries: status, announcement and presence kinds."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Final

MAX_USERNAME_BYTES: Final = 15
MAX_NOTE_BYTES: Final = 80


class InvalidActionError(ValueError):
    """Raised when action fields violate length or range constraints."""


class ActionType(StrEnum):
    """Kinds of entries sharing the single action log."""

    STATUS = "status"
    ANNOUNCEMENT = "announcement"
    PRESENCE = "presence"


class Status(StrEnum):
    """Operational state of the space."""

    PUBLIC = "public"
    PRIVATE = "private"
    CLOSED = "closed"


class AnnouncementMethod(StrEnum):
    """Revision method inside one announcement chain."""

    NEW = "new"
    MOD = "mod"
    DEL = "del"


class PresentUserStatus(StrEnum):
    """Lifecycle tag carried by a named user inside a presence snapshot."""

    JOINED = "joined"
    PRESENT = "present"
    LEFT = "left"


def validate_username(user: str) -> str:
    """Return username when it is 1-15 UTF-8 bytes long."""

    size = len(user.encode("utf-8"))
    if size == 0 or size > MAX_USERNAME_BYTES:
        raise InvalidActionError(
            f"Username '{user}' is either empty or longer than {MAX_USERNAME_BYTES} bytes."
        )
    return user


def validate_note(note: str) -> str:
    """Return note when it is at most 80 UTF-8 bytes long."""

    if len(note.encode("utf-8")) > MAX_NOTE_BYTES:
        raise InvalidActionError(f"Note '{note}' cannot be longer than {MAX_NOTE_BYTES} bytes.")
    return note


@dataclass(frozen=True)
class BaseAction:
    """Fields shared by every log entry; `id` is assigned by the store."""

    time: int
    note: str
    id: int | None = None

    def with_id(self, action_id: int) -> BaseAction:
        return replace(self, id=action_id)


@dataclass(frozen=True)
class StatusAction:
    """Status change request or stored status entry.

    `changed` and `public_changed` are derived on insert and stay `None` until
    the action has been stored.
    """

    action: BaseAction
    user: str
    status: Status
    changed: bool | None = None
    public_changed: bool | None = None

    @classmethod
    def create(cls, *, user: str, status: Status, note: str, time: int) -> StatusAction:
        """Build a not-yet-stored status action with validated fields."""

        return cls(
            action=BaseAction(time=time, note=validate_note(note)),
            user=validate_username(user),
            status=status,
        )


@dataclass(frozen=True)
class AnnouncementAction:
    """One revision of an announcement chain grouped by `aid`."""

    action: BaseAction
    method: AnnouncementMethod
    user: str
    from_time: int
    to_time: int
    public: bool
    aid: int | None = None

    @classmethod
    def create(
        cls,
        *,
        method: AnnouncementMethod,
        user: str,
        note: str,
        time: int,
        from_time: int = 0,
        to_time: int = 0,
        public: bool = False,
        aid: int | None = None,
    ) -> AnnouncementAction:
        """Build a not-yet-stored announcement revision with validated fields."""

        return cls(
            action=BaseAction(time=time, note=validate_note(note)),
            method=method,
            user=validate_username(user),
            from_time=from_time,
            to_time=to_time,
            public=public,
            aid=aid,
        )


@dataclass(frozen=True)
class PresentNamedUser:
    """Named member inside a presence snapshot."""

    name: str
    since: int
    status: PresentUserStatus = PresentUserStatus.PRESENT


@dataclass(frozen=True)
class PresenceAction:
    """Snapshot of present named users plus an anonymous head-count estimate."""

    action: BaseAction
    users: tuple[PresentNamedUser, ...] = field(default_factory=tuple)
    anonymous_users: float = 0.0

    @classmethod
    def create(
        cls,
        *,
        users: list[PresentNamedUser] | tuple[PresentNamedUser, ...],
        anonymous_users: float,
        time: int,
        note: str = "",
    ) -> PresenceAction:
        """Build a not-yet-stored presence snapshot."""

        if not math.isfinite(anonymous_users) or anonymous_users < 0:
            raise InvalidActionError("Anonymous user estimate must be a finite, non-negative number.")
        for user in users:
            validate_username(user.name)
        return cls(
            action=BaseAction(time=time, note=validate_note(note)),
            users=tuple(users),
            anonymous_users=anonymous_users,
        )

    @property
    def present_users(self) -> tuple[PresentNamedUser, ...]:
        """Users that have not left; the rows persisted for this snapshot."""

        return tuple(user for user in self.users if user.status is not PresentUserStatus.LEFT)


TypedAction = StatusAction | AnnouncementAction | PresenceAction


def action_type_of(action: TypedAction) -> ActionType:
    """Return the log kind of a typed action."""

    match action:
        case StatusAction():
            return ActionType.STATUS
        case AnnouncementAction():
            return ActionType.ANNOUNCEMENT
        case PresenceAction():
            return ActionType.PRESENCE
