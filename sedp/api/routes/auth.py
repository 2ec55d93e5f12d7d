# =======================================================================================
# sedp/api/routes/auth.py - Role bootstrap and assignment
# =======================================================================================
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.schemas import BootstrapRequest, Identity, OperationResponse, RoleAssignRequest
from ...services.sync_service import SyncService
from ...utils.exceptions import AuthenticationRequired, PermissionDenied, SEDPError, ValidationError
from ..dependencies import get_identity, get_sync_service

router = APIRouter()


def _http_error(e: SEDPError) -> HTTPException:
    if isinstance(e, AuthenticationRequired):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    if isinstance(e, PermissionDenied):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    if isinstance(e, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Role update failed")


@router.get("/auth/me")
def whoami(
    identity: Optional[Identity] = Depends(get_identity),
    service: SyncService = Depends(get_sync_service),
):
    if identity is None:
        return {"user": None, "is_admin": False}
    try:
        return {"user": identity, "is_admin": service.auth.is_admin(identity.user_id)}
    except SEDPError as e:
        raise _http_error(e)


@router.post("/auth/bootstrap", response_model=OperationResponse)
def bootstrap_admin(
    request: BootstrapRequest,
    identity: Optional[Identity] = Depends(get_identity),
    service: SyncService = Depends(get_sync_service),
):
    """One-time claim of the first admin role with the configured setup token."""
    try:
        role = service.auth.claim_first_admin(identity, request.token)
    except SEDPError as e:
        raise _http_error(e)
    return OperationResponse(success=True, message="Main admin setup complete", data=role)


@router.post("/auth/roles", response_model=OperationResponse)
def assign_role(
    request: RoleAssignRequest,
    identity: Optional[Identity] = Depends(get_identity),
    service: SyncService = Depends(get_sync_service),
):
    try:
        role = service.auth.assign_role(identity, request.user_id, request.role)
    except SEDPError as e:
        raise _http_error(e)
    return OperationResponse(success=True, message=f"Role {role.role} assigned", data=role)
