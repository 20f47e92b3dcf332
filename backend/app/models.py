# app/models.py
#
# This module contains all Pydantic models used for data validation,
# serialization, and API request/response schemas.
#
# Request models keep every field optional: the services check presence and
# content themselves so each failure gets its own 400 message. The update
# models are the allow-lists of mutable fields; unknown keys are dropped.

from typing import Any, List, Optional
from pydantic import BaseModel

# --- Users ---

class ProfileCreate(BaseModel):
    name: Optional[str] = None
    role: Optional[str] = None

class UserProfile(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: str
    createdAt: Optional[str] = None

class UserResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    user: UserProfile

class DemoUserResult(BaseModel):
    email: str
    role: str
    status: str  # "created", "already exists" or "error"
    error: Optional[str] = None

class DemoInitResponse(BaseModel):
    success: bool = True
    message: str
    results: List[DemoUserResult]

# --- Patients ---

class PatientCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    dateOfBirth: Optional[str] = None # E.g., "YYYY-MM-DD"
    emergencyContact: Optional[str] = None
    medicalHistory: Optional[str] = None

class PatientUpdate(PatientCreate):
    pass

class Patient(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    address: str
    dateOfBirth: Optional[str] = None
    emergencyContact: str = ""
    medicalHistory: str = ""
    token: str
    registeredBy: Optional[str] = None
    createdAt: str
    updatedAt: str

class PatientSummary(BaseModel):
    id: str
    name: str
    token: str

class PatientResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: Patient

class PatientListResponse(BaseModel):
    success: bool = True
    data: List[Patient]
    count: int

class PatientToken(BaseModel):
    token: str

class PatientTokenResponse(BaseModel):
    success: bool = True
    message: str
    data: PatientToken

# --- Prescriptions ---

class MedicationInput(BaseModel):
    name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None

class PrescriptionCreate(BaseModel):
    patientId: Optional[str] = None
    patientName: Optional[str] = None
    medications: Optional[List[MedicationInput]] = None
    notes: Optional[str] = None

class PrescriptionUpdate(BaseModel):
    medications: Optional[List[MedicationInput]] = None
    notes: Optional[str] = None

class Medication(BaseModel):
    name: str
    dosage: str
    frequency: str
    duration: str

class Prescription(BaseModel):
    id: str
    patientId: str
    patientName: Optional[str] = None
    doctorId: str
    doctorName: Optional[str] = None
    medications: List[Medication]
    notes: str = ""
    createdAt: str
    updatedAt: str

class PrescriptionResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: Prescription

class PrescriptionListResponse(BaseModel):
    success: bool = True
    data: List[Prescription]
    count: int

class PatientPrescriptionsResponse(PrescriptionListResponse):
    patient: PatientSummary

# --- Bills ---

class LineItemInput(BaseModel):
    description: Optional[str] = None
    # Left untyped so a non-numeric amount gets the same message as a negative one
    amount: Any = None

class BillCreate(BaseModel):
    patientId: Optional[str] = None
    patientName: Optional[str] = None
    items: Optional[List[LineItemInput]] = None
    totalAmount: Optional[float] = None

class BillUpdate(BaseModel):
    patientName: Optional[str] = None
    items: Optional[List[LineItemInput]] = None

class BillStatusUpdate(BaseModel):
    status: Optional[str] = None

class LineItem(BaseModel):
    description: str
    amount: float

class Bill(BaseModel):
    id: str
    patientId: str
    patientName: Optional[str] = None
    items: List[LineItem]
    totalAmount: float
    status: str
    createdBy: str
    createdByName: Optional[str] = None
    createdAt: str
    updatedAt: str
    updatedBy: Optional[str] = None
    updatedByName: Optional[str] = None
    paidAt: Optional[str] = None

class BillResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: Bill

class BillListResponse(BaseModel):
    success: bool = True
    data: List[Bill]
    count: int

class BillSummary(BaseModel):
    totalAmount: float
    paidAmount: float
    pendingAmount: float

class PatientBillsResponse(BillListResponse):
    summary: BillSummary
    patient: PatientSummary

class BillingStats(BaseModel):
    totalRevenue: float
    pendingAmount: float
    totalBills: int
    paidBills: int
    pendingBills: int
    averageBillAmount: float

class BillingStatsResponse(BaseModel):
    success: bool = True
    data: BillingStats

class MessageResponse(BaseModel):
    success: bool = True
    message: str
