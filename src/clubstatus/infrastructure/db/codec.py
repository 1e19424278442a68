"""Integer encodings of enum columns, kept stable for on-disk compatibility."""

from __future__ import annotations

from typing import Final, TypeVar

from clubstatus.domain.actions import ActionType, AnnouncementMethod, Status

E = TypeVar("E")


class UnknownEncodingError(ValueError):
    """Raised when a stored integer has no enum counterpart."""


_ACTION_TYPES: Final[dict[ActionType, int]] = {
    ActionType.STATUS: 0,
    ActionType.ANNOUNCEMENT: 1,
    ActionType.PRESENCE: 2,
}
_STATUSES: Final[dict[Status, int]] = {
    Status.CLOSED: 0,
    Status.PRIVATE: 1,
    Status.PUBLIC: 2,
}
_METHODS: Final[dict[AnnouncementMethod, int]] = {
    AnnouncementMethod.NEW: 0,
    AnnouncementMethod.MOD: 1,
    AnnouncementMethod.DEL: 2,
}


def _decode(table: dict[E, int], value: int, label: str) -> E:
    for member, encoded in table.items():
        if encoded == value:
            return member
    raise UnknownEncodingError(f"unknown {label} value: {value}")


def encode_action_type(value: ActionType) -> int:
    return _ACTION_TYPES[value]


def decode_action_type(value: int) -> ActionType:
    return _decode(_ACTION_TYPES, int(value), "action type")


def encode_status(value: Status) -> int:
    return _STATUSES[value]


def decode_status(value: int) -> Status:
    return _decode(_STATUSES, int(value), "status")


def encode_method(value: AnnouncementMethod) -> int:
    return _METHODS[value]


def decode_method(value: int) -> AnnouncementMethod:
    return _decode(_METHODS, int(value), "announcement method")


def encode_bool(value: bool) -> int:
    return 1 if value else 0


def decode_bool(value: int) -> bool:
    if value not in (0, 1):
        raise UnknownEncodingError(f"unknown boolean value: {value}")
    return value == 1
