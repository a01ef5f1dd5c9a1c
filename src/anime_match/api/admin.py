"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from anime_match.api.views import session_payload

if TYPE_CHECKING:
    from anime_match.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/sessions", dependencies=[Depends(require_admin)])
async def list_sessions(request: Request, limit: int = 20) -> dict[str, object]:
    """Return recent sessions, expired ones included."""
    container: AppContainer = request.app.state.container
    states = container.session_store.list_sessions(limit)
    return {"sessions": [session_payload(state) for state in states]}


@router.post("/sessions/{session_id}/expire", dependencies=[Depends(require_admin)])
async def expire_session(session_id: UUID, request: Request) -> dict[str, object]:
    """Expire a session early, e.g. when a participant abandons it."""
    container: AppContainer = request.app.state.container
    state = await container.session_service.expire_session(session_id)
    return session_payload(state)


@router.post("/sessions/purge", dependencies=[Depends(require_admin)])
async def purge_sessions(request: Request) -> dict[str, int]:
    """Remove sessions past their expiry time."""
    container: AppContainer = request.app.state.container
    removed = container.session_store.purge_expired()
    for session_id in removed:
        container.event_log.forget(session_id)
    return {"removed": len(removed)}
