# =======================================================================================
# sedp/api/routes/content.py - Snapshot and admin content endpoints
# =======================================================================================
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from ...models.schemas import SnapshotResponse
from ...services.sync_service import SyncSession
from ..dependencies import get_session
from ..responses import respond

router = APIRouter()


@router.get("/snapshot", response_model=SnapshotResponse)
def snapshot(session: SyncSession = Depends(get_session)):
    """Everything the caller's session has loaded."""
    return SnapshotResponse(
        user_id=session.user.user_id if session.user else None,
        is_admin=session.is_admin,
        registrations=list(session.registrations),
        categories=list(session.categories),
        panchayaths=list(session.panchayaths),
        announcements=list(session.announcements),
        photo_gallery=list(session.photo_gallery),
        notifications=list(session.notifications),
    )


@router.post("/content/{kind}")
def create_content(kind: str, fields: Dict[str, Any] = Body(...), session: SyncSession = Depends(get_session)):
    record = session.save_content(kind, fields)
    return respond(session, record is not None, f"{kind} saved", data=record, status_code=201)


@router.patch("/content/{kind}/{record_id}")
def update_content(
    kind: str, record_id: str, fields: Dict[str, Any] = Body(...), session: SyncSession = Depends(get_session)
):
    record = session.update_content(kind, record_id, fields)
    return respond(session, record is not None, f"{kind} updated", data=record)


@router.delete("/content/{kind}/{record_id}")
def delete_content(kind: str, record_id: str, session: SyncSession = Depends(get_session)):
    ok = session.delete_content(kind, record_id)
    return respond(session, ok, f"{kind} deleted")
