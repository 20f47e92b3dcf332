# app/routers/prescriptions.py
#
# This router handles all endpoints related to medical prescriptions, including
# creating, listing, and managing them. Writes are doctor-only, and a doctor
# can only change the prescriptions they issued.

from typing import Dict, Any, Optional
from fastapi import APIRouter, Depends, HTTPException, status

from ..models import (
    MessageResponse,
    PatientPrescriptionsResponse,
    PatientSummary,
    Prescription,
    PrescriptionCreate,
    PrescriptionListResponse,
    PrescriptionResponse,
    PrescriptionUpdate,
)
from ..database import DocumentStore, get_store
from ..security import get_current_user, require_role
from ..services.prescriptions import PrescriptionService

router = APIRouter(
    prefix="/api/prescriptions",
    tags=["Prescriptions"],
    dependencies=[Depends(get_current_user)],
)


def get_prescription_service(store: DocumentStore = Depends(get_store)) -> PrescriptionService:
    return PrescriptionService(store)


@router.get("", response_model=PrescriptionListResponse)
def list_prescriptions(
    patientId: Optional[str] = None,
    doctorId: Optional[str] = None,
    user: Dict[str, Any] = Depends(get_current_user),
    service: PrescriptionService = Depends(get_prescription_service),
):
    """
    Lists prescriptions, newest first. Doctors see only their own unless they
    pass an explicit doctorId filter.
    """
    try:
        prescriptions = service.list(user, patient_id=patientId, doctor_id=doctorId)
        return PrescriptionListResponse(
            data=[Prescription(**p) for p in prescriptions],
            count=len(prescriptions),
        )
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error fetching prescriptions: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch prescriptions")


@router.get("/patient/{patient_id}", response_model=PatientPrescriptionsResponse)
def list_patient_prescriptions(
    patient_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    service: PrescriptionService = Depends(get_prescription_service),
):
    try:
        prescriptions, patient = service.list_for_patient(patient_id, user)
        return PatientPrescriptionsResponse(
            data=[Prescription(**p) for p in prescriptions],
            count=len(prescriptions),
            patient=PatientSummary(**patient),
        )
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error fetching prescriptions for patient {patient_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch patient prescriptions")


@router.get("/{prescription_id}", response_model=PrescriptionResponse)
def get_prescription(
    prescription_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    service: PrescriptionService = Depends(get_prescription_service),
):
    """Retrieves a single prescription by its ID."""
    try:
        return PrescriptionResponse(data=Prescription(**service.get(prescription_id, user)))
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error fetching prescription {prescription_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch prescription")


@router.post("", response_model=PrescriptionResponse, status_code=status.HTTP_201_CREATED)
def create_prescription(
    prescription_data: PrescriptionCreate,
    doctor: Dict[str, Any] = Depends(require_role("doctor")),
    service: PrescriptionService = Depends(get_prescription_service),
):
    """Creates a new prescription. Doctor-only endpoint."""
    try:
        prescription = service.create(prescription_data, doctor)
        return PrescriptionResponse(
            message="Prescription created successfully",
            data=Prescription(**prescription),
        )
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error creating prescription: {e}")
        raise HTTPException(status_code=500, detail="Failed to create prescription")


@router.put("/{prescription_id}", response_model=PrescriptionResponse)
def update_prescription(
    prescription_id: str,
    prescription_data: PrescriptionUpdate,
    doctor: Dict[str, Any] = Depends(require_role("doctor")),
    service: PrescriptionService = Depends(get_prescription_service),
):
    """Updates medications or notes. Only the issuing doctor can do this."""
    try:
        prescription = service.update(prescription_id, prescription_data, doctor)
        return PrescriptionResponse(
            message="Prescription updated successfully",
            data=Prescription(**prescription),
        )
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error updating prescription {prescription_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update prescription")


@router.delete("/{prescription_id}", response_model=MessageResponse)
def delete_prescription(
    prescription_id: str,
    doctor: Dict[str, Any] = Depends(require_role("doctor")),
    service: PrescriptionService = Depends(get_prescription_service),
):
    """Deletes a prescription. Only the issuing doctor can do this."""
    try:
        service.delete(prescription_id, doctor)
        return MessageResponse(message="Prescription deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error deleting prescription {prescription_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete prescription")
