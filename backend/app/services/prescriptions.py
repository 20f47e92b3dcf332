# app/services/prescriptions.py
#
# Prescriptions are owned by the doctor who wrote them: only that doctor can
# change or delete one, and doctors only see their own prescriptions unless
# they filter by doctor explicitly.

from typing import Any, Dict, List, Optional, Tuple

from ..crud import utc_now
from ..database import ConditionFailed, DocumentStore
from ..errors import BadRequest, Forbidden, NotFound
from ..models import MedicationInput, PrescriptionCreate, PrescriptionUpdate
from .patients import patient_summary

MEDICATION_FIELDS = ("name", "dosage", "frequency", "duration")


def normalize_medications(medications: Optional[List[MedicationInput]]) -> List[Dict[str, str]]:
    """Trims every medication field; all four must be non-empty."""
    if not medications:
        raise BadRequest("Medications must be a non-empty array")

    normalized = []
    for med in medications:
        values = {field: (getattr(med, field) or "").strip() for field in MEDICATION_FIELDS}
        if not all(values.values()):
            raise BadRequest("Each medication must have name, dosage, frequency, and duration")
        normalized.append(values)
    return normalized


class PrescriptionService:
    def __init__(self, store: DocumentStore):
        self.prescriptions = store.prescriptions
        self.patients = store.patients

    def _load(self, prescription_id: str) -> Dict[str, Any]:
        prescription = self.prescriptions.get(prescription_id)
        if not prescription:
            raise NotFound("Prescription not found")
        return prescription

    def _load_patient(self, patient_id: str) -> Dict[str, Any]:
        patient = self.patients.get(patient_id)
        if not patient:
            raise NotFound("Patient not found")
        return patient

    @staticmethod
    def _check_owner(prescription: Dict[str, Any], doctor: Dict[str, Any], action: str) -> None:
        if prescription.get("doctorId") != doctor["id"]:
            raise Forbidden(f"Access denied. You can only {action} your own prescriptions")

    def list(
        self,
        caller: Dict[str, Any],
        patient_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        filters = {}
        if patient_id:
            filters["patientId"] = patient_id
        if doctor_id:
            filters["doctorId"] = doctor_id
        elif caller.get("role") == "doctor":
            filters["doctorId"] = caller["id"]
        return self.prescriptions.where(order_by="createdAt", descending=True, **filters)

    def get(self, prescription_id: str, caller: Dict[str, Any]) -> Dict[str, Any]:
        prescription = self._load(prescription_id)
        if caller.get("role") == "doctor" and prescription.get("doctorId") != caller["id"]:
            raise Forbidden("Access denied")
        return prescription

    def list_for_patient(
        self, patient_id: str, caller: Dict[str, Any]
    ) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        patient = self._load_patient(patient_id)
        filters = {"patientId": patient_id}
        if caller.get("role") == "doctor":
            filters["doctorId"] = caller["id"]
        prescriptions = self.prescriptions.where(order_by="createdAt", descending=True, **filters)
        return prescriptions, patient_summary(patient)

    def create(self, data: PrescriptionCreate, doctor: Dict[str, Any]) -> Dict[str, Any]:
        if not (data.patientId or "").strip() or not data.medications:
            raise BadRequest("Patient ID and medications are required")

        patient = self._load_patient(data.patientId)
        medications = normalize_medications(data.medications)

        timestamp = utc_now()
        prescription = {
            "patientId": data.patientId,
            "patientName": (data.patientName or "").strip() or patient.get("name"),
            "doctorId": doctor["id"],
            "doctorName": doctor.get("name"),
            "medications": medications,
            "notes": (data.notes or "").strip(),
            "createdAt": timestamp,
            "updatedAt": timestamp,
        }
        return self.prescriptions.add(prescription)

    def update(
        self, prescription_id: str, patch: PrescriptionUpdate, doctor: Dict[str, Any]
    ) -> Dict[str, Any]:
        prescription = self._load(prescription_id)
        self._check_owner(prescription, doctor, "update")

        changes = {}
        if "medications" in patch.model_fields_set:
            changes["medications"] = normalize_medications(patch.medications)
        if "notes" in patch.model_fields_set:
            changes["notes"] = (patch.notes or "").strip()
        changes["updatedAt"] = utc_now()

        try:
            return self.prescriptions.update(
                prescription_id, changes, expected={"doctorId": doctor["id"]}
            )
        except ConditionFailed:
            raise NotFound("Prescription not found")

    def delete(self, prescription_id: str, doctor: Dict[str, Any]) -> None:
        prescription = self._load(prescription_id)
        self._check_owner(prescription, doctor, "delete")
        try:
            self.prescriptions.delete(prescription_id, expected={"doctorId": doctor["id"]})
        except ConditionFailed:
            raise NotFound("Prescription not found")
