"""Redacted public views of stored actions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from clubstatus.domain.actions import (
    AnnouncementAction,
    AnnouncementMethod,
    BaseAction,
    PresenceAction,
    Status,
    StatusAction,
)


class PublicStatus(StrEnum):
    """Coarse status visible without authentication."""

    PUBLIC = "public"
    CLOSED = "closed"


@dataclass(frozen=True)
class PublicStatusAction:
    id: int
    time: int
    status: PublicStatus


@dataclass(frozen=True)
class PublicAnnouncementAction:
    id: int
    time: int
    method: AnnouncementMethod
    aid: int
    from_time: int
    to_time: int
    note: str


@dataclass(frozen=True)
class PublicPresenceAction:
    id: int
    time: int
    present: int


def public_status(status: Status) -> PublicStatus:
    """Map status to its public form; private is indistinguishable from closed."""

    if status is Status.PUBLIC:
        return PublicStatus.PUBLIC
    return PublicStatus.CLOSED


def _stored_id(action: BaseAction) -> int:
    assert action.id is not None, "only stored actions have a public view"
    return action.id


def to_public_status_action(status_action: StatusAction) -> PublicStatusAction:
    """Strip user and note from a stored status action."""

    return PublicStatusAction(
        id=_stored_id(status_action.action),
        time=status_action.action.time,
        status=public_status(status_action.status),
    )


def to_public_announcement(announcement: AnnouncementAction) -> PublicAnnouncementAction:
    """Strip user and visibility from a stored public announcement revision.

    Callers filter on `public` first; a private announcement here is a bug.
    """

    assert announcement.public, "private announcements have no public view"
    assert announcement.aid is not None
    return PublicAnnouncementAction(
        id=_stored_id(announcement.action),
        time=announcement.action.time,
        method=announcement.method,
        aid=announcement.aid,
        from_time=announcement.from_time,
        to_time=announcement.to_time,
        note=announcement.action.note,
    )


def to_public_presence(presence: PresenceAction) -> PublicPresenceAction:
    """Reduce a snapshot to an anonymous head count."""

    head_count = len(presence.present_users) + presence.anonymous_users
    return PublicPresenceAction(
        id=_stored_id(presence.action),
        time=presence.action.time,
        present=round(head_count),
    )
