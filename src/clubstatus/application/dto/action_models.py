"""Pydantic models for action requests and JSON views of stored actions."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from clubstatus.domain.actions import (
    AnnouncementAction,
    AnnouncementMethod,
    PresenceAction,
    PresentUserStatus,
    Status,
    StatusAction,
    TypedAction,
    validate_note,
    validate_username,
)
from clubstatus.domain.ranges import MAX_ACTION_ID
from clubstatus.domain.public_projection import (
    PublicStatus,
    to_public_announcement,
    to_public_presence,
    to_public_status_action,
)
from clubstatus.domain.time_expr import parse_time, parse_time_expr

TimeValue = int | float | str


class StrictModel(BaseModel):
    """Base model with strict unknown-field rejection."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class _UserNoteModel(StrictModel):
    user: str
    note: str = ""

    @field_validator("user")
    @classmethod
    def _validate_user(cls, value: str) -> str:
        return validate_username(value)

    @field_validator("note")
    @classmethod
    def _validate_note(cls, value: str) -> str:
        return validate_note(value)


class StatusActionRequest(_UserNoteModel):
    """Request to append a status change."""

    type: Literal["status"]
    status: Status

    def to_action(self, *, now: int) -> StatusAction:
        return StatusAction.create(user=self.user, status=self.status, note=self.note, time=now)


class AnnouncementActionRequest(_UserNoteModel):
    """Request to append one announcement revision.

    `from`/`to` accept UNIX timestamps or `now`, `now+N`, `now-N`.
    """

    type: Literal["announcement"]
    method: AnnouncementMethod
    aid: int | None = Field(default=None, ge=0, le=MAX_ACTION_ID)
    from_time: TimeValue = Field(default=0, alias="from")
    to_time: TimeValue = Field(default=0, alias="to")
    public: bool = False

    @field_validator("from_time", "to_time")
    @classmethod
    def _validate_time(cls, value: TimeValue) -> TimeValue:
        parse_time_expr(value)
        return value

    def to_action(self, *, now: int) -> AnnouncementAction:
        return AnnouncementAction.create(
            method=self.method,
            user=self.user,
            note=self.note,
            time=now,
            from_time=parse_time(self.from_time, now=now),
            to_time=parse_time(self.to_time, now=now),
            public=self.public,
            aid=self.aid,
        )


class PresenceActionRequest(StrictModel):
    """Liveness ping of a named member."""

    type: Literal["presence"]
    user: str

    @field_validator("user")
    @classmethod
    def _validate_user(cls, value: str) -> str:
        return validate_username(value)


class AnonymousPresenceRequest(StrictModel):
    """Head-count report from one anonymous observer."""

    type: Literal["anonymous_presence"]
    client_id: str = Field(min_length=1, max_length=64)
    count: float = Field(ge=0.0, allow_inf_nan=False)


ActionRequest = Annotated[
    StatusActionRequest
    | AnnouncementActionRequest
    | PresenceActionRequest
    | AnonymousPresenceRequest,
    Field(discriminator="type"),
]
action_request_adapter: TypeAdapter[ActionRequest] = TypeAdapter(ActionRequest)


class ActionCreatedResponse(StrictModel):
    id: int


class PresenceRecordedResponse(StrictModel):
    presence: Literal["recorded"] = "recorded"


class ApiVersionsResponse(StrictModel):
    versions: list[int]


class StatusActionView(StrictModel):
    type: Literal["status"] = "status"
    id: int
    time: int
    note: str
    user: str
    status: Status
    changed: bool
    public_changed: bool


class AnnouncementActionView(StrictModel):
    type: Literal["announcement"] = "announcement"
    id: int
    time: int
    note: str
    method: AnnouncementMethod
    aid: int
    user: str
    from_time: int = Field(alias="from")
    to_time: int = Field(alias="to")
    public: bool


class PresentUserView(StrictModel):
    name: str
    since: int
    status: PresentUserStatus


class PresenceActionView(StrictModel):
    type: Literal["presence"] = "presence"
    id: int
    time: int
    note: str
    users: list[PresentUserView]
    anonymous_users: float


ActionView = Annotated[
    StatusActionView | AnnouncementActionView | PresenceActionView,
    Field(discriminator="type"),
]


class PublicStatusView(StrictModel):
    id: int
    time: int
    status: PublicStatus


class PublicAnnouncementView(StrictModel):
    id: int
    time: int
    method: AnnouncementMethod
    aid: int
    from_time: int = Field(alias="from")
    to_time: int = Field(alias="to")
    note: str


class PublicPresenceView(StrictModel):
    id: int
    time: int
    present: int


class StatusCurrentResponse(StrictModel):
    last: StatusActionView
    changed: StatusActionView


class StatusCurrentPublicResponse(StrictModel):
    changed: PublicStatusView


class AnnouncementCurrentResponse(StrictModel):
    actions: list[AnnouncementActionView]


class AnnouncementCurrentPublicResponse(StrictModel):
    actions: list[PublicAnnouncementView]


class ActionListResponse(StrictModel):
    actions: list[ActionView]


def _stored_id(action: TypedAction) -> int:
    assert action.action.id is not None, "views are only rendered for stored actions"
    return action.action.id


def status_view(status: StatusAction) -> StatusActionView:
    return StatusActionView(
        id=_stored_id(status),
        time=status.action.time,
        note=status.action.note,
        user=status.user,
        status=status.status,
        changed=bool(status.changed),
        public_changed=bool(status.public_changed),
    )


def announcement_view(announcement: AnnouncementAction) -> AnnouncementActionView:
    assert announcement.aid is not None
    return AnnouncementActionView(
        id=_stored_id(announcement),
        time=announcement.action.time,
        note=announcement.action.note,
        method=announcement.method,
        aid=announcement.aid,
        user=announcement.user,
        from_time=announcement.from_time,
        to_time=announcement.to_time,
        public=announcement.public,
    )


def presence_view(presence: PresenceAction) -> PresenceActionView:
    return PresenceActionView(
        id=_stored_id(presence),
        time=presence.action.time,
        note=presence.action.note,
        users=[
            PresentUserView(name=user.name, since=user.since, status=user.status)
            for user in presence.users
        ],
        anonymous_users=presence.anonymous_users,
    )


def action_view(
    action: TypedAction,
) -> StatusActionView | AnnouncementActionView | PresenceActionView:
    match action:
        case StatusAction():
            return status_view(action)
        case AnnouncementAction():
            return announcement_view(action)
        case PresenceAction():
            return presence_view(action)


def public_status_view(status: StatusAction) -> PublicStatusView:
    public = to_public_status_action(status)
    return PublicStatusView(id=public.id, time=public.time, status=public.status)


def public_announcement_view(announcement: AnnouncementAction) -> PublicAnnouncementView:
    public = to_public_announcement(announcement)
    return PublicAnnouncementView(
        id=public.id,
        time=public.time,
        method=public.method,
        aid=public.aid,
        from_time=public.from_time,
        to_time=public.to_time,
        note=public.note,
    )


def public_presence_view(presence: PresenceAction) -> PublicPresenceView:
    public = to_public_presence(presence)
    return PublicPresenceView(id=public.id, time=public.time, present=public.present)
