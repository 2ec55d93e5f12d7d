# =======================================================================================
# sedp/utils/validators.py - Validation Helpers
# =======================================================================================
import re
from typing import Any, Dict, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError

MOBILE_PATTERN = re.compile(r"^[6-9]\d{9}$")

REQUIRED_REGISTRATION_FIELDS = (
    "full_name",
    "mobile_number",
    "whatsapp_number",
    "address",
    "panchayath_details",
    "category",
)

M = TypeVar("M", bound=BaseModel)


def is_valid_mobile(number: Optional[str]) -> bool:
    """10-digit local number starting with 6, 7, 8 or 9."""
    return bool(number) and MOBILE_PATTERN.fullmatch(number) is not None


class RegistrationValidator:
    """Checks a registration submission before anything reaches the store."""

    @staticmethod
    def check_required(fields: Dict[str, Any], required: Iterable[str] = REQUIRED_REGISTRATION_FIELDS) -> None:
        missing = [
            name for name in required
            if not isinstance(fields.get(name), str) or not fields[name].strip()
        ]
        if missing:
            raise ValidationError(
                "Please fill in all required fields",
                details={"missing": missing},
            )

    @staticmethod
    def check_mobile(number: str, field: str = "mobile_number") -> None:
        if not is_valid_mobile(number):
            raise ValidationError(
                "Please enter a valid 10-digit mobile number",
                details={"field": field},
            )

    @classmethod
    def validate(cls, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Return the cleaned submission or raise ValidationError."""
        cls.check_required(fields)
        cleaned = {k: (v.strip() if isinstance(v, str) else v) for k, v in fields.items()}
        cls.check_mobile(cleaned["mobile_number"])
        cls.check_mobile(cleaned["whatsapp_number"], field="whatsapp_number")
        return cleaned


def parse_input(model: Type[M], fields: Dict[str, Any]) -> M:
    """Build an input model, turning pydantic errors into our ValidationError."""
    try:
        return model.model_validate(fields)
    except PydanticValidationError as e:
        problems = [
            {"field": ".".join(str(p) for p in err["loc"]), "error": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError("Invalid input", details={"errors": problems}) from e
