import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional
from .models import STATUSES, Lead, LeadIn
from .normalizer import canonical_email, clean_str, validate_email


class LeadNotFound(KeyError):
    pass


class LeadValidationError(ValueError):
    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check_length(label: str, value: Optional[str], errors: List[str]) -> None:
    if not value:
        errors.append(f"{label} cannot be empty")
    elif not 2 <= len(value) <= 100:
        errors.append(f"{label} must be between 2 and 100 characters")


class LeadStore:
    """In-memory lead repository keyed by uuid4 hex ids."""

    def __init__(self) -> None:
        self._leads: Dict[str, Lead] = {}
        self._lock = threading.Lock()

    def _validate(self, inp: LeadIn, lead_id: Optional[str] = None) -> Dict[str, Optional[str]]:
        name = clean_str(inp.name)
        company = clean_str(inp.company)
        email = canonical_email(inp.email)
        errors: List[str] = []
        _check_length("Name", name, errors)
        _check_length("Company name", company, errors)
        if not email:
            errors.append("Email cannot be empty")
        elif not validate_email(email):
            errors.append("Please provide a valid email address")
        elif any(l.email == email and l.id != lead_id for l in self._leads.values()):
            errors.append("Email already exists in our system")
        # HTTP input is already narrowed by LeadIn; direct callers may pass unvalidated models
        if inp.status not in STATUSES:
            errors.append("Status must be either new, contacted, or converted")
        if errors:
            raise LeadValidationError(errors)
        return {"name": name, "email": email, "company": company, "status": inp.status}

    def create(self, inp: LeadIn) -> Lead:
        with self._lock:
            fields = self._validate(inp)
            ts = _now()
            lead = Lead(id=uuid.uuid4().hex, created_at=ts, updated_at=ts, **fields)
            self._leads[lead.id] = lead
            return lead

    def get(self, lead_id: str) -> Lead:
        with self._lock:
            lead = self._leads.get(lead_id)
        if lead is None:
            raise LeadNotFound(lead_id)
        return lead

    def list(self, status: Optional[str] = None) -> List[Lead]:
        with self._lock:
            leads = list(self._leads.values())
        if status:
            leads = [l for l in leads if l.status == status]
        return leads

    def update(self, lead_id: str, inp: LeadIn) -> Lead:
        with self._lock:
            current = self._leads.get(lead_id)
            if current is None:
                raise LeadNotFound(lead_id)
            fields = self._validate(inp, lead_id=lead_id)
            lead = current.model_copy(update={**fields, "updated_at": _now()})
            self._leads[lead_id] = lead
            return lead

    def delete(self, lead_id: str) -> None:
        with self._lock:
            if self._leads.pop(lead_id, None) is None:
                raise LeadNotFound(lead_id)

    def clear(self) -> None:
        with self._lock:
            self._leads.clear()
