import re
from typing import Any, Dict, Mapping, Optional, Tuple, Union
from pydantic import BaseModel
from .models import STATUSES


EMAIL_REGEX = re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$")


def clean_str(value: Optional[Any]) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s if s else None


def canonical_email(email: Optional[str]) -> Optional[str]:
    s = clean_str(email)
    if not s:
        return None
    return s.lower()


def validate_email(email: Optional[str]) -> bool:
    if not email:
        return False
    return bool(EMAIL_REGEX.match(email))


def split_email(email: Optional[str]) -> Optional[Tuple[str, str]]:
    """Split ``local@domain`` into lowercased parts.

    Returns None unless there is exactly one ``@`` and both sides are non-empty.
    """
    s = clean_str(email)
    if not s:
        return None
    parts = s.lower().split("@")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]


def email_domain(email: Optional[str]) -> Optional[str]:
    parts = split_email(email)
    return parts[1] if parts else None


def normalize_status(status: Optional[str]) -> Optional[str]:
    s = clean_str(status)
    if not s:
        return None
    v = s.lower()
    return v if v in STATUSES else None


def to_record(lead: Union[BaseModel, Mapping[str, Any]]) -> Dict[str, Optional[str]]:
    """Flatten a lead into the four scored fields, blank strings becoming None."""
    data = lead.model_dump() if isinstance(lead, BaseModel) else dict(lead)
    return {
        "name": clean_str(data.get("name")),
        "email": clean_str(data.get("email")),
        "company": clean_str(data.get("company")),
        "status": clean_str(data.get("status")) or "new",
    }
