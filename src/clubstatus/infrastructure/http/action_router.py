"""FastAPI router exposing the action log over HTTP."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from fastapi import APIRouter, HTTPException, Query, Request, Response
from pydantic import ValidationError

from clubstatus.application.dto.action_models import (
    ActionCreatedResponse,
    ActionListResponse,
    AnnouncementCurrentPublicResponse,
    AnnouncementCurrentResponse,
    AnonymousPresenceRequest,
    ApiVersionsResponse,
    PresenceActionRequest,
    PresenceActionView,
    PresenceRecordedResponse,
    PublicPresenceView,
    StatusCurrentPublicResponse,
    StatusCurrentResponse,
    action_request_adapter,
    action_view,
    announcement_view,
    presence_view,
    public_announcement_view,
    public_presence_view,
    public_status_view,
    status_view,
)
from clubstatus.application.ports.action_query_port import ActionQueryPort
from clubstatus.application.ports.action_store_port import ActionStorePort
from clubstatus.application.services.presence_tracker import (
    AnonymousUsersReport,
    NamedUserPing,
    PresenceInboxFullError,
    PresenceTracker,
)
from clubstatus.domain.ranges import (
    DEFAULT_QUERY_COUNT,
    ActionQuery,
    InvalidQueryError,
    QueryActionType,
    RangeExpr,
    Take,
    capped_count,
    id_range,
    parse_id_range,
    split_range,
    time_range,
)
from clubstatus.domain.time_expr import parse_time
from clubstatus.infrastructure.http.auth_guard import (
    InvalidCredentialsError,
    MissingCredentialsError,
    PasswordGuard,
)

NowCallable = Callable[[], int]
logger = logging.getLogger(__name__)

_MAX_BODY_BYTES = 1024


def _unix_now() -> int:
    return int(time.time())


def _allow_any_origin(response: Response) -> None:
    response.headers["Access-Control-Allow-Origin"] = "*"


def parse_time_range(raw: str, *, now: int) -> RangeExpr[int]:
    """Parse `t` or `t1:t2` where each side is a timestamp or `now[+-N]`."""

    resolved = split_range(raw).map(lambda value: parse_time(value, now=now))
    if resolved.end is None:
        return resolved
    return time_range(resolved.start, resolved.end)


def build_action_router(
    *,
    store: ActionStorePort,
    queries: ActionQueryPort,
    presence_tracker: PresenceTracker,
    auth_guard: PasswordGuard,
    now: NowCallable = _unix_now,
) -> APIRouter:
    """Build router for action creation, current-state views and log queries."""

    router = APIRouter(tags=["actions"])

    def require_auth(request: Request) -> None:
        try:
            auth_guard.require_authenticated(
                authorization_header=request.headers.get("authorization")
            )
        except (MissingCredentialsError, InvalidCredentialsError) as exc:
            raise HTTPException(
                status_code=401,
                detail=str(exc),
                headers={"WWW-Authenticate": "Basic"},
            ) from exc

    @router.get("/api/versions", response_model=ApiVersionsResponse)
    async def api_versions(response: Response) -> ApiVersionsResponse:
        _allow_any_origin(response)
        return ApiVersionsResponse(versions=[0])

    @router.put(
        "/api/v0",
        response_model=ActionCreatedResponse | PresenceRecordedResponse,
    )
    async def create_action(request: Request) -> ActionCreatedResponse | PresenceRecordedResponse:
        require_auth(request)
        raw_body = await request.body()
        if len(raw_body) > _MAX_BODY_BYTES:
            raise HTTPException(status_code=413, detail="request body too large")
        try:
            action_request = action_request_adapter.validate_json(raw_body)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

        if isinstance(action_request, PresenceActionRequest | AnonymousPresenceRequest):
            signal: NamedUserPing | AnonymousUsersReport
            if isinstance(action_request, PresenceActionRequest):
                signal = NamedUserPing(user=action_request.user)
            else:
                signal = AnonymousUsersReport(
                    client_id=action_request.client_id,
                    count=action_request.count,
                )
            try:
                presence_tracker.submit(signal)
            except PresenceInboxFullError as exc:
                raise HTTPException(status_code=503, detail=str(exc)) from exc
            return PresenceRecordedResponse()

        try:
            action = action_request.to_action(now=now())
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        stored = await store.store(action)
        if stored is None or stored.action.id is None:
            logger.info("action_request_rejected type=%s", action_request.type)
            raise HTTPException(status_code=400, detail="action rejected")
        return ActionCreatedResponse(id=stored.action.id)

    @router.get(
        "/api/v0/status/current",
        response_model=StatusCurrentResponse | StatusCurrentPublicResponse,
    )
    async def status_current(
        request: Request,
        response: Response,
    ) -> StatusCurrentResponse | StatusCurrentPublicResponse:
        if "public" in request.query_params:
            changed_public = await store.get_last_changed_public_status()
            if changed_public is None:
                raise HTTPException(status_code=404, detail="no status recorded")
            _allow_any_origin(response)
            return StatusCurrentPublicResponse(changed=public_status_view(changed_public))

        require_auth(request)
        last = await store.get_last_status()
        changed = await store.get_last_changed_status()
        if last is None or changed is None:
            raise HTTPException(status_code=404, detail="no status recorded")
        return StatusCurrentResponse(last=status_view(last), changed=status_view(changed))

    @router.get(
        "/api/v0/announcement/current",
        response_model=AnnouncementCurrentResponse | AnnouncementCurrentPublicResponse,
    )
    async def announcement_current(
        request: Request,
        response: Response,
    ) -> AnnouncementCurrentResponse | AnnouncementCurrentPublicResponse:
        if "public" in request.query_params:
            public_actions = await store.get_current_public_announcements(now=now())
            _allow_any_origin(response)
            return AnnouncementCurrentPublicResponse(
                actions=[public_announcement_view(action) for action in public_actions]
            )

        require_auth(request)
        actions = await store.get_current_announcements(now=now())
        return AnnouncementCurrentResponse(
            actions=[announcement_view(action) for action in actions]
        )

    @router.get(
        "/api/v0/presence/current",
        response_model=PresenceActionView | PublicPresenceView,
    )
    async def presence_current(
        request: Request,
        response: Response,
    ) -> PresenceActionView | PublicPresenceView:
        public_api = "public" in request.query_params
        if not public_api:
            require_auth(request)
        last = await store.get_last_presence()
        if last is None:
            raise HTTPException(status_code=404, detail="no presence recorded")
        if public_api:
            _allow_any_origin(response)
            return public_presence_view(last)
        return presence_view(last)

    @router.get("/api/v0/{action_type}", response_model=ActionListResponse)
    async def query_actions(
        request: Request,
        action_type: QueryActionType,
        id: str | None = None,  # noqa: A002
        time: str | None = None,
        count: int = Query(default=DEFAULT_QUERY_COUNT),
        take: Take = Take.LAST,
    ) -> ActionListResponse:
        require_auth(request)
        try:
            query = ActionQuery(
                type_filter=action_type,
                id_range=parse_id_range(id) if id else id_range(0, "last"),
                time_range=parse_time_range(time, now=now()) if time else None,
                count=capped_count(count),
                take=take,
            )
            actions = await queries.query(query)
        except InvalidQueryError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        return ActionListResponse(actions=[action_view(action) for action in actions])

    return router
