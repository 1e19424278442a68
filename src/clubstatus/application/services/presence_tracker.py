"""Presence tracker loop merging liveness pings into stored presence snapshots."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from clubstatus.application.ports.action_store_port import ActionStorePort
from clubstatus.domain.actions import PresenceAction, PresentNamedUser, PresentUserStatus

SleepCallable = Callable[[float], Awaitable[None]]
NowCallable = Callable[[], int]
logger = logging.getLogger(__name__)

DEFAULT_CYCLE_SECONDS = 20.0
DEFAULT_TIMEOUT_SECONDS = 15 * 60
ANONYMOUS_COUNT_EPSILON = 1e-3


def _unix_now() -> int:
    return int(time.time())


class PresenceInboxFullError(RuntimeError):
    """Raised when a presence signal cannot be queued without waiting."""


@dataclass(frozen=True)
class NamedUserPing:
    """Liveness ping of one named member."""

    user: str


@dataclass(frozen=True)
class AnonymousUsersReport:
    """Head-count estimate reported periodically by one anonymous observer."""

    client_id: str
    count: float


PresenceRequest = NamedUserPing | AnonymousUsersReport


@dataclass
class TrackedUser:
    since: int
    last_seen: int
    status: PresentUserStatus


@dataclass
class TrackedAnonymousClient:
    count: float
    last_seen: int


class PresenceTracker:
    """Single-owner presence state driven by a fixed cadence.

    Only the tracker loop touches `users` and `anonymous`; other components
    send signals through `submit` and observe stored snapshots through the
    action store.
    """

    def __init__(
        self,
        *,
        store: ActionStorePort,
        inbox_size: int = 256,
        cycle_seconds: float = DEFAULT_CYCLE_SECONDS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        sleep: SleepCallable = asyncio.sleep,
        now: NowCallable = _unix_now,
    ) -> None:
        self._store = store
        self._inbox: asyncio.Queue[PresenceRequest] = asyncio.Queue(maxsize=inbox_size)
        self._cycle_seconds = cycle_seconds
        self._timeout_seconds = timeout_seconds
        self._sleep = sleep
        self._now = now
        self._users: dict[str, TrackedUser] = {}
        self._anonymous: dict[str, TrackedAnonymousClient] = {}
        self._changed = False

    @property
    def users(self) -> dict[str, TrackedUser]:
        return dict(self._users)

    @property
    def anonymous(self) -> dict[str, TrackedAnonymousClient]:
        return dict(self._anonymous)

    @property
    def changed(self) -> bool:
        return self._changed

    def submit(self, request: PresenceRequest) -> None:
        """Queue a presence signal for the next drain without waiting."""

        try:
            self._inbox.put_nowait(request)
        except asyncio.QueueFull as error:
            raise PresenceInboxFullError("presence inbox is full") from error

    async def seed(self) -> None:
        """Load users of the last stored snapshot as present."""

        last = await self._store.get_last_presence()
        if last is None:
            return
        now = self._now()
        for user in last.present_users:
            self._users[user.name] = TrackedUser(
                since=user.since,
                last_seen=now,
                status=PresentUserStatus.PRESENT,
            )
        logger.info(
            "presence_tracker_seeded snapshot_id=%s users=%s",
            last.action.id,
            len(self._users),
        )

    async def run_once(self) -> PresenceAction | None:
        """Run eviction, persistence and promotion steps of one cycle."""

        now = self._now()
        self._evict(now)
        self._expire(now)

        stored: PresenceAction | None = None
        if self._changed:
            stored = await self._persist_snapshot(now)
            self._changed = False

        for user in self._users.values():
            if user.status is PresentUserStatus.JOINED:
                user.status = PresentUserStatus.PRESENT
                self._changed = True

        return stored

    def drain(self) -> int:
        """Apply every queued signal without blocking and return how many were read."""

        now = self._now()
        drained = 0
        while True:
            try:
                request = self._inbox.get_nowait()
            except asyncio.QueueEmpty:
                return drained
            drained += 1
            match request:
                case NamedUserPing(user=name):
                    self._apply_ping(name, now)
                case AnonymousUsersReport(client_id=client_id, count=count):
                    self._apply_anonymous_report(client_id, count, now)

    async def run_until_stopped(self, stop_event: asyncio.Event) -> None:
        """Seed state, then cycle until stop_event is set."""

        await self.seed()
        logger.info(
            "presence_tracker_started cycle_seconds=%s timeout_seconds=%s",
            self._cycle_seconds,
            self._timeout_seconds,
        )
        while not stop_event.is_set():
            await self.run_once()
            await self._sleep(self._cycle_seconds)
            self.drain()
        logger.info("presence_tracker_stopped")

    def _evict(self, now: int) -> None:
        for name in [n for n, u in self._users.items() if u.status is PresentUserStatus.LEFT]:
            del self._users[name]
            self._changed = True
        for client_id in [
            c for c, a in self._anonymous.items() if now - a.last_seen > self._timeout_seconds
        ]:
            del self._anonymous[client_id]
            self._changed = True
            logger.info("presence_anonymous_evicted client_id=%s", client_id)

    def _expire(self, now: int) -> None:
        for name, user in self._users.items():
            if now - user.last_seen > self._timeout_seconds:
                user.status = PresentUserStatus.LEFT
                self._changed = True
                logger.info("presence_user_left user=%s", name)

    async def _persist_snapshot(self, now: int) -> PresenceAction | None:
        snapshot = PresenceAction.create(
            users=[
                PresentNamedUser(name=name, since=user.since, status=user.status)
                for name, user in sorted(self._users.items())
            ],
            anonymous_users=sum(client.count for client in self._anonymous.values()),
            time=now,
        )
        stored = await self._store.store(snapshot)
        if stored is not None:
            logger.info(
                "presence_snapshot_stored action_id=%s users=%s anonymous=%s",
                stored.action.id,
                len(stored.present_users),
                stored.anonymous_users,
            )
        return stored

    def _apply_ping(self, name: str, now: int) -> None:
        user = self._users.get(name)
        if user is None or user.status is PresentUserStatus.LEFT:
            self._users[name] = TrackedUser(
                since=now,
                last_seen=now,
                status=PresentUserStatus.JOINED,
            )
            self._changed = True
            logger.info("presence_user_joined user=%s", name)
            return
        user.last_seen = now

    def _apply_anonymous_report(self, client_id: str, count: float, now: int) -> None:
        client = self._anonymous.get(client_id)
        if client is None:
            self._anonymous[client_id] = TrackedAnonymousClient(count=count, last_seen=now)
            self._changed = True
            return
        client.last_seen = now
        if not math.isclose(client.count, count, rel_tol=0.0, abs_tol=ANONYMOUS_COUNT_EPSILON):
            client.count = count
            self._changed = True
