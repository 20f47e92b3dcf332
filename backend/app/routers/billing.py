# app/routers/billing.py
#
# This router handles bills: creation, payment, edits and revenue figures.
# Writes are receptionist-only; paid bills are read-only.

from typing import Dict, Any, Optional
from fastapi import APIRouter, Depends, HTTPException, status

from ..models import (
    Bill,
    BillCreate,
    BillingStats,
    BillingStatsResponse,
    BillListResponse,
    BillResponse,
    BillStatusUpdate,
    BillSummary,
    BillUpdate,
    MessageResponse,
    PatientBillsResponse,
    PatientSummary,
)
from ..database import DocumentStore, get_store
from ..security import get_current_user, require_role
from ..services.billing import BillingService

router = APIRouter(
    prefix="/api/bills",
    tags=["Billing"],
    dependencies=[Depends(get_current_user)],
)


def get_billing_service(store: DocumentStore = Depends(get_store)) -> BillingService:
    return BillingService(store)


@router.get("", response_model=BillListResponse)
def list_bills(
    patientId: Optional[str] = None,
    status: Optional[str] = None,
    service: BillingService = Depends(get_billing_service),
):
    try:
        bills = service.list(patient_id=patientId, status=status)
        return BillListResponse(data=[Bill(**b) for b in bills], count=len(bills))
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error fetching bills: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch bills")


@router.get("/stats/summary", response_model=BillingStatsResponse)
def get_billing_stats(service: BillingService = Depends(get_billing_service)):
    """Revenue and bill counts across all bills."""
    try:
        return BillingStatsResponse(data=BillingStats(**service.stats()))
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error fetching billing stats: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch billing statistics")


@router.get("/patient/{patient_id}", response_model=PatientBillsResponse)
def list_patient_bills(patient_id: str, service: BillingService = Depends(get_billing_service)):
    """Lists a patient's bills with paid/pending totals."""
    try:
        bills, summary, patient = service.list_for_patient(patient_id)
        return PatientBillsResponse(
            data=[Bill(**b) for b in bills],
            count=len(bills),
            summary=BillSummary(**summary),
            patient=PatientSummary(**patient),
        )
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error fetching bills for patient {patient_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch patient bills")


@router.get("/{bill_id}", response_model=BillResponse)
def get_bill(bill_id: str, service: BillingService = Depends(get_billing_service)):
    try:
        return BillResponse(data=Bill(**service.get(bill_id)))
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error fetching bill {bill_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch bill")


@router.post("", response_model=BillResponse, status_code=status.HTTP_201_CREATED)
def create_bill(
    bill_data: BillCreate,
    user: Dict[str, Any] = Depends(require_role("receptionist")),
    service: BillingService = Depends(get_billing_service),
):
    """Creates a pending bill. Receptionist-only endpoint."""
    try:
        bill = service.create(bill_data, user)
        return BillResponse(message="Bill created successfully", data=Bill(**bill))
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error creating bill: {e}")
        raise HTTPException(status_code=500, detail="Failed to create bill")


@router.put("/{bill_id}/status", response_model=BillResponse)
def update_bill_status(
    bill_id: str,
    status_data: BillStatusUpdate,
    user: Dict[str, Any] = Depends(require_role("receptionist")),
    service: BillingService = Depends(get_billing_service),
):
    """Marks a bill as paid (or re-confirms its current status)."""
    try:
        bill = service.update_status(bill_id, status_data.status, user)
        return BillResponse(message=f"Bill marked as {bill['status']} successfully", data=Bill(**bill))
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error updating status of bill {bill_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update bill status")


@router.put("/{bill_id}", response_model=BillResponse)
def update_bill(
    bill_id: str,
    bill_data: BillUpdate,
    user: Dict[str, Any] = Depends(require_role("receptionist")),
    service: BillingService = Depends(get_billing_service),
):
    """Edits a pending bill's items. The total is recomputed from the items."""
    try:
        bill = service.update(bill_id, bill_data, user)
        return BillResponse(message="Bill updated successfully", data=Bill(**bill))
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error updating bill {bill_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update bill")


@router.delete("/{bill_id}", response_model=MessageResponse)
def delete_bill(
    bill_id: str,
    user: Dict[str, Any] = Depends(require_role("receptionist")),
    service: BillingService = Depends(get_billing_service),
):
    """Deletes a pending bill. Paid bills cannot be deleted."""
    try:
        service.delete(bill_id, user)
        return MessageResponse(message="Bill deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        print(f"Error deleting bill {bill_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete bill")
