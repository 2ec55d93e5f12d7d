# =======================================================================================
# sedp/services/dashboard_service.py
# =======================================================================================

from typing import Dict, Iterable, List, Optional

from ..models.schemas import Registration, RegistrationStats

ALL = "all"

STATUS_MESSAGES: Dict[str, Dict[str, str]] = {
    "pending": {
        "message": "Your application is under processing.",
        "description": "Our team is reviewing your application. You will be notified once the review is complete.",
    },
    "approved": {
        "message": "You have successfully completed your registration.",
        "description": "Congratulations! Your application has been approved. You can now access program benefits.",
    },
    "rejected": {
        "message": "Application rejected. Contact support.",
        "description": "Unfortunately, your application could not be approved. "
                       "Please contact our support team for more information.",
    },
}


class DashboardService:
    """Aggregates and filters over already-loaded registrations."""

    # ---------- summary ----------

    def get_summary(self, registrations: Iterable[Registration]) -> RegistrationStats:
        counts = {"pending": 0, "approved": 0, "rejected": 0}
        total = 0
        for reg in registrations:
            total += 1
            counts[reg.status] = counts.get(reg.status, 0) + 1
        return RegistrationStats(total=total, **counts)

    # ---------- filters ----------

    def filter_registrations(
        self,
        registrations: Iterable[Registration],
        search: Optional[str] = None,
        category: Optional[str] = ALL,
        status: Optional[str] = ALL,
    ) -> List[Registration]:
        """
        Admin list filter: ``search`` matches name or panchayath (case-insensitive)
        or a mobile-number substring; ``category``/``status`` of "all" match anything.
        """
        term = (search or "").strip().lower()
        out: List[Registration] = []

        for reg in registrations:
            if term and not (
                term in reg.full_name.lower()
                or term in reg.mobile_number
                or term in reg.panchayath_details.lower()
            ):
                continue
            if category and category != ALL and reg.category != category:
                continue
            if status and status != ALL and reg.status != status:
                continue
            out.append(reg)

        return out

    # ---------- status page ----------

    def status_message(self, status: Optional[str]) -> Dict[str, str]:
        return STATUS_MESSAGES.get(
            status or "",
            {"message": "Status unknown", "description": "Please contact support for assistance."},
        )
