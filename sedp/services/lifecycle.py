# =======================================================================================
# sedp/services/lifecycle.py - Registration Lifecycle
# =======================================================================================
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Mapping, Optional

from ..config import config
from ..models.enums import Status
from ..models.schemas import Registration
from ..utils.exceptions import InvalidTransition, ValidationError

# pending is the only state with outgoing edges; approved/rejected are terminal
TRANSITIONS: Mapping[Status, FrozenSet[Status]] = {
    Status.PENDING: frozenset({Status.APPROVED, Status.REJECTED}),
    Status.APPROVED: frozenset(),
    Status.REJECTED: frozenset(),
}


def reference_code(full_name: str, mobile_number: str, prefix: Optional[str] = None) -> str:
    """
    Human-readable reference for an applicant:
    prefix + mobile number + first letter of the name, uppercased.

    The registration form shows this as a preview and the approval step
    persists it, so both must go through this function.
    """
    name = (full_name or "").strip()
    if not name:
        raise ValidationError("Full name is required to build a reference code")
    mobile = (mobile_number or "").strip()
    if not mobile:
        raise ValidationError("Mobile number is required to build a reference code")
    return f"{prefix if prefix is not None else config.REFERENCE_PREFIX}{mobile}{name[0].upper()}"


def check_transition(current: str, target: str) -> Status:
    try:
        src, dst = Status(current), Status(target)
    except ValueError:
        raise InvalidTransition(f"Unknown status change {current!r} -> {target!r}") from None

    if dst not in TRANSITIONS[src]:
        raise InvalidTransition(
            f"Registration is already {src.value}",
            details={"from": src.value, "to": dst.value},
        )
    return dst


class RegistrationLifecycle:
    """Status transitions and reference-code issuance for registrations."""

    def __init__(self, prefix: Optional[str] = None):
        self.prefix = prefix if prefix is not None else config.REFERENCE_PREFIX

    def preview_code(self, full_name: str, mobile_number: str) -> str:
        return reference_code(full_name, mobile_number, self.prefix)

    def decide(
        self,
        registration: Registration,
        target: str,
        unique_code: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Column values for moving ``registration`` to ``target``.

        Approval always carries the computed code; a caller-supplied code must
        match it. Rejection never carries one.
        """
        dst = check_transition(registration.status, target)

        values: Dict[str, Any] = {
            "status": dst.value,
            "approved_at": now or datetime.now(timezone.utc),
        }

        if dst is Status.APPROVED:
            code = self.preview_code(registration.full_name, registration.mobile_number)
            if unique_code and unique_code.strip().upper() != code:
                raise ValidationError(
                    "Reference code does not match the applicant",
                    details={"expected": code, "given": unique_code},
                )
            values["unique_id"] = code
        elif unique_code:
            raise ValidationError("A rejected registration cannot carry a reference code")

        return values
