# app/services/patients.py
#
# Patient registry: registration, lookup, search and updates of patient
# records, plus the human-presentable patient tokens.

import secrets
import string
import time
from datetime import date
from typing import Any, Dict, List, Optional

from ..crud import utc_now
from ..database import ConditionFailed, DocumentStore
from ..errors import BadRequest, NotFound
from ..models import PatientCreate, PatientUpdate

BASE36 = string.digits + string.ascii_uppercase

REQUIRED_FIELDS = ("name", "email", "phone", "address", "dateOfBirth")
# Everything a caller may change after registration. id, token, registeredBy
# and createdAt are managed by the service.
MUTABLE_FIELDS = REQUIRED_FIELDS + ("emergencyContact", "medicalHistory")


def generate_patient_token() -> str:
    """Returns a token like PAT-1718000000000-7QK2M9ZXA."""
    suffix = "".join(secrets.choice(BASE36) for _ in range(9))
    return f"PAT-{int(time.time() * 1000)}-{suffix}"


def parse_date_of_birth(value: str) -> str:
    # Accepts a plain date or a full ISO timestamp; stores the date part.
    try:
        return date.fromisoformat(value.strip()[:10]).isoformat()
    except ValueError:
        raise BadRequest("Date of birth must be a valid date (YYYY-MM-DD)")


def patient_summary(patient: Dict[str, Any]) -> Dict[str, Any]:
    return {"id": patient["id"], "name": patient.get("name"), "token": patient.get("token")}


class PatientService:
    def __init__(self, store: DocumentStore):
        self.patients = store.patients

    def list(self) -> List[Dict[str, Any]]:
        return self.patients.all(order_by="createdAt", descending=True)

    def get(self, patient_id: str) -> Dict[str, Any]:
        patient = self.patients.get(patient_id)
        if not patient:
            raise NotFound("Patient not found")
        return patient

    def search(self, term: str) -> List[Dict[str, Any]]:
        """
        Case-insensitive match on name, email and token; plain substring match
        on phone.
        NOTE: Scans every patient. Fine for one clinic's records.
        """
        needle = term.strip().lower()
        matches = []
        for patient in self.list():
            if (
                needle in (patient.get("name") or "").lower()
                or needle in (patient.get("email") or "").lower()
                or needle in (patient.get("phone") or "")
                or needle in (patient.get("token") or "").lower()
            ):
                matches.append(patient)
        return matches

    def _email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        return any(p["id"] != exclude_id for p in self.patients.where(email=email))

    def register(self, data: PatientCreate, actor_id: str) -> Dict[str, Any]:
        if any(not (getattr(data, field) or "").strip() for field in REQUIRED_FIELDS):
            raise BadRequest("Name, email, phone, address, and date of birth are required")

        email = data.email.strip().lower()
        # Check-then-insert: two concurrent registrations with the same email
        # can both pass this check. DynamoDB has no unique secondary attribute.
        if self._email_taken(email):
            raise BadRequest("Patient with this email already exists")

        timestamp = utc_now()
        patient = {
            "name": data.name.strip(),
            "email": email,
            "phone": data.phone.strip(),
            "address": data.address.strip(),
            "dateOfBirth": parse_date_of_birth(data.dateOfBirth),
            "emergencyContact": (data.emergencyContact or "").strip(),
            "medicalHistory": (data.medicalHistory or "").strip(),
            "token": generate_patient_token(),
            "registeredBy": actor_id,
            "createdAt": timestamp,
            "updatedAt": timestamp,
        }
        return self.patients.add(patient)

    def update(self, patient_id: str, patch: PatientUpdate) -> Dict[str, Any]:
        current = self.get(patient_id)

        changes = {}
        for field in MUTABLE_FIELDS:
            value = getattr(patch, field)
            if field not in patch.model_fields_set or value is None:
                continue
            value = value.strip()
            if field in REQUIRED_FIELDS and not value:
                raise BadRequest(f"{field} cannot be empty")
            changes[field] = value

        if "email" in changes:
            changes["email"] = changes["email"].lower()
            if changes["email"] != current.get("email") and self._email_taken(changes["email"], patient_id):
                raise BadRequest("Patient with this email already exists")
        if "dateOfBirth" in changes:
            changes["dateOfBirth"] = parse_date_of_birth(changes["dateOfBirth"])

        changes["updatedAt"] = utc_now()
        try:
            return self.patients.update(patient_id, changes)
        except ConditionFailed:
            raise NotFound("Patient not found")

    def regenerate_token(self, patient_id: str) -> str:
        self.get(patient_id)
        token = generate_patient_token()
        try:
            self.patients.update(patient_id, {"token": token, "updatedAt": utc_now()})
        except ConditionFailed:
            raise NotFound("Patient not found")
        return token
