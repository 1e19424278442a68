from __future__ import annotations

from dataclasses import replace

import pytest

from clubstatus.domain.actions import (
    AnnouncementAction,
    AnnouncementMethod,
    PresenceAction,
    PresentNamedUser,
    PresentUserStatus,
    Status,
    StatusAction,
)
from clubstatus.domain.public_projection import (
    PublicAnnouncementAction,
    PublicPresenceAction,
    PublicStatus,
    PublicStatusAction,
    public_status,
    to_public_announcement,
    to_public_presence,
    to_public_status_action,
)


def _stored_status(status: Status) -> StatusAction:
    action = StatusAction.create(user="alice", status=status, note="secret", time=50)
    return replace(action, action=action.action.with_id(4), changed=True, public_changed=True)


def test_private_is_indistinguishable_from_closed() -> None:
    assert public_status(Status.PUBLIC) is PublicStatus.PUBLIC
    assert public_status(Status.PRIVATE) is PublicStatus.CLOSED
    assert public_status(Status.CLOSED) is PublicStatus.CLOSED


def test_public_status_drops_user_and_note() -> None:
    assert to_public_status_action(_stored_status(Status.PRIVATE)) == PublicStatusAction(
        id=4,
        time=50,
        status=PublicStatus.CLOSED,
    )


def test_public_announcement_keeps_schedule_and_note() -> None:
    announcement = AnnouncementAction.create(
        method=AnnouncementMethod.MOD,
        user="bob",
        note="open day",
        time=10,
        from_time=100,
        to_time=200,
        public=True,
        aid=3,
    )
    stored = replace(announcement, action=announcement.action.with_id(9))

    assert to_public_announcement(stored) == PublicAnnouncementAction(
        id=9,
        time=10,
        method=AnnouncementMethod.MOD,
        aid=3,
        from_time=100,
        to_time=200,
        note="open day",
    )


def test_private_announcement_has_no_public_view() -> None:
    announcement = AnnouncementAction.create(
        method=AnnouncementMethod.NEW, user="bob", note="", time=0, aid=1
    )
    stored = replace(announcement, action=announcement.action.with_id(1))

    with pytest.raises(AssertionError):
        to_public_announcement(stored)


def test_public_presence_is_rounded_head_count() -> None:
    presence = PresenceAction.create(
        users=[
            PresentNamedUser(name="alice", since=1),
            PresentNamedUser(name="bob", since=2, status=PresentUserStatus.JOINED),
            PresentNamedUser(name="carol", since=3, status=PresentUserStatus.LEFT),
        ],
        anonymous_users=1.7,
        time=30,
    )
    stored = replace(presence, action=presence.action.with_id(12))

    assert to_public_presence(stored) == PublicPresenceAction(id=12, time=30, present=4)
