"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse

from anime_match.api.admin import router as admin_router
from anime_match.api.models import (
    CreateSessionRequest,
    JoinSessionRequest,
    RatingsRequest,
    SelectionRequest,
)
from anime_match.api.views import participant_ticket, report_payload, session_payload
from anime_match.app_logging import configure_logging
from anime_match.containers import AppContainer
from anime_match.domain.errors import (
    Conflict,
    DuplicateNickname,
    Full,
    InvalidInput,
    MatchError,
    NotFound,
)
from anime_match.services.sessions import RatingInput, SessionTicket

_STATUS_BY_ERROR: tuple[tuple[type[MatchError], int], ...] = (
    (NotFound, 404),
    (Full, 409),
    (DuplicateNickname, 409),
    (InvalidInput, 422),
    (Conflict, 409),
)


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.debug)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(MatchError)
    async def match_error_handler(request: Request, exc: MatchError) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= 500:
            logger.error("Unmapped error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.kind, "detail": exc.message},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/sessions", status_code=201)
    async def create_session(
        body: CreateSessionRequest, request: Request
    ) -> dict[str, object]:
        """Create a session and return the creator's token."""
        state_container: AppContainer = request.app.state.container
        ticket = await state_container.session_service.create_session(body.nickname)
        return _ticket_payload(ticket)

    @app.post("/sessions/join")
    async def join_session(
        body: JoinSessionRequest, request: Request
    ) -> dict[str, object]:
        """Join a waiting session by code."""
        state_container: AppContainer = request.app.state.container
        ticket = await state_container.session_service.join_session(
            body.code, body.nickname
        )
        return _ticket_payload(ticket)

    @app.get("/sessions/code/{code}")
    async def get_session_by_code(code: str, request: Request) -> dict[str, object]:
        """Look a session up by its join code."""
        state_container: AppContainer = request.app.state.container
        state = await state_container.session_service.get_session_by_code(code)
        return session_payload(state)

    @app.get("/sessions/{session_id}")
    async def get_session(
        session_id: UUID,
        request: Request,
        x_participant_id: UUID | None = Header(default=None),
    ) -> dict[str, object]:
        """Return the session as seen by the calling participant."""
        state_container: AppContainer = request.app.state.container
        state = await state_container.session_service.get_session(session_id)
        return session_payload(state, x_participant_id)

    @app.get("/sessions/{session_id}/events")
    async def list_events(
        session_id: UUID, request: Request, after: int = -1
    ) -> dict[str, object]:
        """Return change snapshots newer than ``after`` for polling clients."""
        state_container: AppContainer = request.app.state.container
        await state_container.session_service.get_session(session_id)
        events = state_container.event_log.events_for(session_id, after)
        return {"events": [event.to_payload() for event in events]}

    @app.post("/sessions/{session_id}/selections")
    async def submit_selections(
        session_id: UUID,
        body: SelectionRequest,
        request: Request,
        x_participant_id: UUID = Header(),
    ) -> dict[str, object]:
        """Submit the caller's three picks."""
        state_container: AppContainer = request.app.state.container
        state = await state_container.session_service.submit_selections(
            session_id, x_participant_id, body.item_ids
        )
        return session_payload(state, x_participant_id)

    @app.post("/sessions/{session_id}/ratings")
    async def submit_ratings(
        session_id: UUID,
        body: RatingsRequest,
        request: Request,
        x_participant_id: UUID = Header(),
    ) -> dict[str, object]:
        """Submit the caller's self and cross ratings."""
        state_container: AppContainer = request.app.state.container
        ratings = [
            RatingInput(
                item_id=entry.item_id,
                q1=entry.q1,
                q2=entry.q2,
                q3=entry.q3,
                is_self_rating=entry.is_self_rating,
            )
            for entry in body.ratings
        ]
        state = await state_container.session_service.submit_ratings(
            session_id, x_participant_id, ratings
        )
        return session_payload(state, x_participant_id)

    @app.get("/sessions/{session_id}/results")
    async def get_results(session_id: UUID, request: Request) -> dict[str, object]:
        """Return the ranked outcome of a completed session."""
        state_container: AppContainer = request.app.state.container
        report = await state_container.session_service.get_results(session_id)
        return report_payload(report)

    @app.get("/catalog/search")
    async def search_catalog(
        request: Request,
        q: str = "",
        limit: int = Query(default=10, ge=1, le=25),
    ) -> dict[str, object]:
        """Search selectable titles."""
        state_container: AppContainer = request.app.state.container
        items = await state_container.catalog_service.search(q, limit)
        return {"query": q, "total": len(items), "items": [i.to_dict() for i in items]}

    @app.get("/catalog/popular")
    async def popular_catalog(
        request: Request, limit: int = Query(default=10, ge=1, le=25)
    ) -> dict[str, object]:
        """Return popular titles."""
        state_container: AppContainer = request.app.state.container
        items = await state_container.catalog_service.popular(limit)
        return {"items": [i.to_dict() for i in items]}

    @app.get("/catalog/{item_id}")
    async def get_catalog_item(item_id: str, request: Request) -> dict[str, object]:
        """Return one title."""
        state_container: AppContainer = request.app.state.container
        item = await state_container.catalog_service.get_item(item_id)
        if item is None:
            raise NotFound(f"Unknown item {item_id}")
        return item.to_dict()

    return app


def _status_for(exc: MatchError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def _ticket_payload(ticket: SessionTicket) -> dict[str, object]:
    return {
        "session": session_payload(ticket.state, ticket.participant.id),
        "participant": participant_ticket(ticket.participant),
    }
