# app/routers/patients.py
#
# This router handles patient registration, lookup, search and updates.
# Every endpoint requires an authenticated user; registration and token
# regeneration are receptionist-only.

from typing import Dict, Any
from fastapi import APIRouter, Depends, HTTPException, status

from ..models import (
    Patient,
    PatientCreate,
    PatientListResponse,
    PatientResponse,
    PatientToken,
    PatientTokenResponse,
    PatientUpdate,
)
from ..database import DocumentStore, get_store
from ..security import get_current_user, require_role
from ..services.patients import PatientService

router = APIRouter(
    prefix="/api/patients",
    tags=["Patients"],
    dependencies=[Depends(get_current_user)],
)


def get_patient_service(store: DocumentStore = Depends(get_store)) -> PatientService:
    return PatientService(store)


@router.get("", response_model=PatientListResponse)
def list_patients(service: PatientService = Depends(get_patient_service)):
    """Lists all patients, newest first."""
    try:
        patients = service.list()
        return PatientListResponse(data=[Patient(**p) for p in patients], count=len(patients))
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error fetching patients: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch patients")


@router.get("/search/{query}", response_model=PatientListResponse)
def search_patients(query: str, service: PatientService = Depends(get_patient_service)):
    """
    Searches patients by name, email, phone or token.
    NOTE: This scans the whole table, which is not efficient for large tables.
    """
    try:
        patients = service.search(query)
        return PatientListResponse(data=[Patient(**p) for p in patients], count=len(patients))
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error searching patients: {e}")
        raise HTTPException(status_code=500, detail="Failed to search patients")


@router.get("/{patient_id}", response_model=PatientResponse)
def get_patient(patient_id: str, service: PatientService = Depends(get_patient_service)):
    try:
        return PatientResponse(data=Patient(**service.get(patient_id)))
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error fetching patient {patient_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch patient")


@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
def register_patient(
    patient_data: PatientCreate,
    user: Dict[str, Any] = Depends(require_role("receptionist")),
    service: PatientService = Depends(get_patient_service),
):
    """Registers a new patient. Receptionist-only endpoint."""
    try:
        patient = service.register(patient_data, user["id"])
        return PatientResponse(message="Patient registered successfully", data=Patient(**patient))
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error registering patient: {e}")
        raise HTTPException(status_code=500, detail="Failed to register patient")


@router.put("/{patient_id}", response_model=PatientResponse)
def update_patient(
    patient_id: str,
    patient_data: PatientUpdate,
    service: PatientService = Depends(get_patient_service),
):
    """Updates a patient's contact and medical details. Open to any signed-in user."""
    try:
        patient = service.update(patient_id, patient_data)
        return PatientResponse(message="Patient updated successfully", data=Patient(**patient))
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error updating patient {patient_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update patient")


@router.post("/{patient_id}/token", response_model=PatientTokenResponse)
def regenerate_patient_token(
    patient_id: str,
    user: Dict[str, Any] = Depends(require_role("receptionist")),
    service: PatientService = Depends(get_patient_service),
):
    """Issues a fresh patient token. Receptionist-only endpoint."""
    try:
        token = service.regenerate_token(patient_id)
        print(f"PATIENTS: New token issued for {patient_id} by {user['id']}")
        return PatientTokenResponse(
            message="New token generated successfully",
            data=PatientToken(token=token),
        )
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error generating token for {patient_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate new token")
