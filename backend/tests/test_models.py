# backend/tests/test_models.py
#
# This file contains the unit tests for the Pydantic models defined in `app/models.py`.
# Unit tests are designed to test small, isolated pieces of code (like a single model)
# to ensure they behave as expected. They are crucial for verifying data integrity and
# validation logic.

import pytest
# We import the Pydantic models we want to test directly from their module.
from backend.app.models import Bill, BillCreate, LineItem, PatientUpdate, PrescriptionUpdate

# --- Test Data Fixtures ---

# A dictionary representing a complete and valid bill as it comes back from the
# Bills table. Amounts read from DynamoDB can be ints or floats.
VALID_BILL_DATA = {
    "id": "bill-1",
    "patientId": "patient-1",
    "patientName": "Jane Doe",
    "items": [
        {"description": "Consult", "amount": 50},
        {"description": "Lab", "amount": 30.5},
    ],
    "totalAmount": 80.5,
    "status": "pending",
    "createdBy": "receptionist-1",
    "createdByName": "Sarah Johnson",
    "createdAt": "2024-05-01T10:00:00+00:00",
    "updatedAt": "2024-05-01T10:00:00+00:00",
}

# This bill is missing 'items' and 'status', which are required on a stored bill.
INVALID_BILL_DATA_MISSING_FIELD = {
    "id": "bill-2",
    "patientId": "patient-1",
    "totalAmount": 10,
}

# --- Test Cases ---

def test_bill_model_success():
    """
    Tests the "happy path" for the Bill model. Nested line items must be
    parsed into LineItem instances, and optional payment fields default to None.
    """
    bill = Bill(**VALID_BILL_DATA)

    assert bill.totalAmount == 80.5
    assert isinstance(bill.items[0], LineItem)
    assert bill.items[0].amount == 50.0
    assert bill.paidAt is None
    assert bill.updatedBy is None


def test_bill_model_validation_error():
    """
    Tests the "sad path": a stored bill missing required fields must not parse.
    """
    with pytest.raises(Exception): # Pydantic's ValidationError
        Bill(**INVALID_BILL_DATA_MISSING_FIELD)


def test_bill_create_keeps_raw_amounts():
    # Amounts are not coerced here; BillingService decides what counts as a
    # positive amount so every bad item gets the same message.
    bill = BillCreate(patientId="p1", items=[{"description": "Consult", "amount": "fifty"}])
    assert bill.items[0].amount == "fifty"
    assert bill.totalAmount is None


def test_update_models_ignore_unknown_fields():
    """
    The update models are allow-lists: fields the caller may not change
    are dropped during parsing.
    """
    patch = PatientUpdate(**{"phone": "555-0100", "token": "PAT-forged", "registeredBy": "x"})
    assert patch.model_fields_set == {"phone"}
    assert not hasattr(patch, "token")

    rx_patch = PrescriptionUpdate(**{"notes": "n", "doctorId": "doctor-2"})
    assert rx_patch.model_fields_set == {"notes"}
    assert rx_patch.model_dump(exclude_unset=True) == {"notes": "n"}
