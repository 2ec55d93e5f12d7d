# =======================================================================================
# sedp/api/dependencies.py - FastAPI Dependencies
# =======================================================================================
from typing import Iterator, Optional

from fastapi import Depends, Header, HTTPException, Request

from ..models.schemas import Identity
from ..services.sync_service import SyncService, SyncSession


def get_sync_service(request: Request) -> SyncService:
    return request.app.state.sync_service


def get_identity(
    x_user_id: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
) -> Optional[Identity]:
    """Identity asserted by the upstream auth gateway; anonymous when absent."""
    if not x_user_id or not x_user_id.strip():
        return None
    return Identity(user_id=x_user_id.strip(), email=(x_user_email or "").strip() or None)


def get_session(
    service: SyncService = Depends(get_sync_service),
    identity: Optional[Identity] = Depends(get_identity),
) -> Iterator[SyncSession]:
    """A mounted session for the duration of one request."""
    session = service.session(identity)
    try:
        session.mount()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Session error: {str(e)}")
    try:
        yield session
    finally:
        session.teardown()
