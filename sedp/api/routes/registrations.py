# =======================================================================================
# sedp/api/routes/registrations.py - Registration Endpoints
# =======================================================================================
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from ...models.schemas import StatusUpdate
from ...services.sync_service import SyncSession
from ..dependencies import get_session
from ..responses import respond

router = APIRouter()


@router.post("/registrations")
def create_registration(
    fields: Dict[str, Any] = Body(...),
    session: SyncSession = Depends(get_session),
):
    registration = session.create_registration(fields)
    preview = None
    if registration is not None:
        preview = session.preview_reference_code(registration.full_name, registration.mobile_number)
    return respond(
        session,
        registration is not None,
        "Registration submitted",
        data={"registration": registration, "reference_preview": preview},
        status_code=201,
    )


@router.get("/registrations")
def list_registrations(
    search: Optional[str] = Query(None),
    category: str = Query("all"),
    status: str = Query("all"),
    session: SyncSession = Depends(get_session),
):
    if session.user is None:
        return respond(session, True, "Sign in to see registrations", data=[])
    return respond(session, True, "OK", data=session.filter_registrations(search, category, status))


@router.get("/registrations/stats")
def registration_stats(session: SyncSession = Depends(get_session)):
    return respond(session, True, "OK", data=session.stats())


@router.get("/registrations/status")
def check_status(
    query: str = Query(..., description="Mobile number or reference code"),
    session: SyncSession = Depends(get_session),
):
    registration = session.check_application_status(query)
    if registration is None and session.last_error is not None:
        return respond(session, False, "Status lookup failed")
    if registration is None:
        found = {"found": False, "registration": None}
        return respond(session, True, "No application found", data=found)

    message = session.dashboard.status_message(registration.status)
    return respond(
        session,
        True,
        message["message"],
        data={"found": True, "registration": registration, "description": message["description"]},
    )


@router.patch("/registrations/{registration_id}/status")
def update_status(
    registration_id: str,
    request: StatusUpdate,
    session: SyncSession = Depends(get_session),
):
    ok = session.update_registration_status(registration_id, request.status, request.unique_id)
    data = None
    if ok:
        data = next((r for r in session.registrations if r.id == registration_id), None)
    return respond(session, ok, f"Registration {request.status}", data=data)


@router.delete("/registrations/{registration_id}")
def delete_registration(registration_id: str, session: SyncSession = Depends(get_session)):
    ok = session.delete_registration(registration_id)
    return respond(session, ok, "Registration deleted")
