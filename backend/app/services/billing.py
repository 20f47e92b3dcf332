# app/services/billing.py
#
# Bills move one way, pending -> paid. Once paid a bill is frozen: it can be
# re-confirmed as paid but never edited, deleted or reverted. The total is
# always derived from the line items on the server.

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from ..crud import utc_now
from ..database import ConditionFailed, DocumentStore
from ..errors import BadRequest, NotFound
from ..models import BillCreate, BillUpdate, LineItemInput
from .patients import patient_summary

PENDING = "pending"
PAID = "paid"
BILL_STATUSES = (PENDING, PAID)

# Allowed difference between a submitted total and the sum of its items.
TOTAL_TOLERANCE = 0.01
# Upper bound for one line item; keeps amounts inside Decimal's 28-digit context.
MAX_ITEM_AMOUNT = 1e12


def round_money(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _is_positive_amount(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    # Comparisons are exact for huge ints and false for NaN.
    if not 0 < value < MAX_ITEM_AMOUNT:
        return False
    # Must still be at least a cent once rounded.
    return round_money(value) > 0


def normalize_items(items: List[LineItemInput]) -> List[Dict[str, Any]]:
    normalized = []
    for item in items:
        description = (item.description or "").strip()
        if not description or not _is_positive_amount(item.amount):
            raise BadRequest("Each item must have a description and positive amount")
        normalized.append({"description": description, "amount": round_money(item.amount)})
    return normalized


def sum_amounts(amounts) -> float:
    return round_money(math.fsum(amounts))


class BillingService:
    def __init__(self, store: DocumentStore):
        self.bills = store.bills
        self.patients = store.patients

    def list(self, patient_id: Optional[str] = None, status: Optional[str] = None) -> List[Dict[str, Any]]:
        filters = {}
        if patient_id:
            filters["patientId"] = patient_id
        # Unknown status values are ignored rather than rejected.
        if status in BILL_STATUSES:
            filters["status"] = status
        return self.bills.where(order_by="createdAt", descending=True, **filters)

    def get(self, bill_id: str) -> Dict[str, Any]:
        bill = self.bills.get(bill_id)
        if not bill:
            raise NotFound("Bill not found")
        return bill

    def _load_patient(self, patient_id: str) -> Dict[str, Any]:
        patient = self.patients.get(patient_id)
        if not patient:
            raise NotFound("Patient not found")
        return patient

    def list_for_patient(
        self, patient_id: str
    ) -> Tuple[List[Dict[str, Any]], Dict[str, float], Dict[str, Any]]:
        patient = self._load_patient(patient_id)
        bills = self.bills.where(order_by="createdAt", descending=True, patientId=patient_id)
        summary = {
            "totalAmount": sum_amounts(b["totalAmount"] for b in bills),
            "paidAmount": sum_amounts(b["totalAmount"] for b in bills if b.get("status") == PAID),
            "pendingAmount": sum_amounts(b["totalAmount"] for b in bills if b.get("status") == PENDING),
        }
        return bills, summary, patient_summary(patient)

    def create(self, data: BillCreate, actor: Dict[str, Any]) -> Dict[str, Any]:
        if not (data.patientId or "").strip() or not data.items:
            raise BadRequest("Patient ID and items are required")

        patient = self._load_patient(data.patientId)
        items = normalize_items(data.items)

        submitted_sum = math.fsum(item.amount for item in data.items)
        if data.totalAmount is not None and abs(data.totalAmount - submitted_sum) > TOTAL_TOLERANCE:
            raise BadRequest("Total amount does not match sum of items")

        timestamp = utc_now()
        bill = {
            "patientId": data.patientId,
            "patientName": (data.patientName or "").strip() or patient.get("name"),
            "items": items,
            # Same formula as update(), over the stored amounts.
            "totalAmount": sum_amounts(item["amount"] for item in items),
            "status": PENDING,
            "createdBy": actor["id"],
            "createdByName": actor.get("name"),
            "createdAt": timestamp,
            "updatedAt": timestamp,
        }
        return self.bills.add(bill)

    def update_status(self, bill_id: str, status: Optional[str], actor: Dict[str, Any]) -> Dict[str, Any]:
        if status not in BILL_STATUSES:
            raise BadRequest('Status must be either "pending" or "paid"')

        bill = self.get(bill_id)
        current = bill.get("status")
        if current == PAID and status == PENDING:
            raise BadRequest("Paid bills cannot be reverted to pending")

        changes = {
            "status": status,
            "updatedAt": utc_now(),
            "updatedBy": actor["id"],
            "updatedByName": actor.get("name"),
        }
        # paidAt is stamped once, on the first transition into paid.
        if status == PAID and current != PAID:
            changes["paidAt"] = changes["updatedAt"]

        try:
            return self.bills.update(bill_id, changes, expected={"status": current})
        except ConditionFailed:
            latest = self.get(bill_id)
            if status == PAID and latest.get("status") == PAID:
                # Another request paid it first; re-confirming is a no-op.
                return latest
            raise BadRequest("Bill status changed while updating, reload and try again")

    def update(self, bill_id: str, patch: BillUpdate, actor: Dict[str, Any]) -> Dict[str, Any]:
        bill = self.get(bill_id)
        if bill.get("status") == PAID:
            raise BadRequest("Cannot update paid bills")

        changes = {}
        if "items" in patch.model_fields_set:
            if not patch.items:
                raise BadRequest("Items must be a non-empty array")
            changes["items"] = normalize_items(patch.items)
        if patch.patientName is not None:
            changes["patientName"] = patch.patientName.strip()

        items = changes.get("items", bill.get("items", []))
        changes["totalAmount"] = sum_amounts(item["amount"] for item in items)
        changes["updatedAt"] = utc_now()
        changes["updatedBy"] = actor["id"]
        changes["updatedByName"] = actor.get("name")

        try:
            return self.bills.update(bill_id, changes, expected={"status": PENDING})
        except ConditionFailed:
            self.get(bill_id)
            raise BadRequest("Cannot update paid bills")

    def delete(self, bill_id: str, actor: Dict[str, Any]) -> None:
        bill = self.get(bill_id)
        if bill.get("status") == PAID:
            raise BadRequest("Cannot delete paid bills")
        try:
            self.bills.delete(bill_id, expected={"status": PENDING})
        except ConditionFailed:
            self.get(bill_id)
            raise BadRequest("Cannot delete paid bills")
        print(f"BILLS: Bill {bill_id} deleted by {actor['id']}")

    def stats(self) -> Dict[str, Any]:
        """
        Revenue figures over every bill.
        NOTE: Scans the whole Bills table on each call.
        """
        bills = self.bills.all()
        paid = [b["totalAmount"] for b in bills if b.get("status") == PAID]
        pending = [b["totalAmount"] for b in bills if b.get("status") != PAID]

        total_revenue = sum_amounts(paid)
        pending_amount = sum_amounts(pending)
        total_bills = len(bills)
        average = round_money((total_revenue + pending_amount) / total_bills) if total_bills else 0
        return {
            "totalRevenue": total_revenue,
            "pendingAmount": pending_amount,
            "totalBills": total_bills,
            "paidBills": len(paid),
            "pendingBills": len(pending),
            "averageBillAmount": average,
        }
