# =======================================================================================
# sedp/api/responses.py - Session outcome -> HTTP response
# =======================================================================================
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..models.schemas import OperationResponse
from ..services.sync_service import SyncSession

STATUS_BY_CODE = {
    "AUTH_REQUIRED": 401,
    "PERMISSION_DENIED": 403,
    "NOT_FOUND": 404,
    "VALIDATION_ERROR": 400,
    "INVALID_TRANSITION": 409,
    "REFERENCE_CODE_CONFLICT": 409,
    "STORE_FAILURE": 500,
}


def respond(session: SyncSession, ok: bool, message: str, data: Optional[Any] = None, status_code: int = 200):
    """Wrap an operation outcome with the notices the session raised."""
    error = None if ok else session.last_error
    body = OperationResponse(
        success=ok,
        message=message if ok else (error.message if error else message),
        notices=session.drain_notices(),
        data=data if ok else (error.details if error else None),
    )
    code = status_code if ok else STATUS_BY_CODE.get(error.code if error else "", 400)
    return JSONResponse(status_code=code, content=jsonable_encoder(body))
