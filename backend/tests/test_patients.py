# backend/tests/test_patients.py
#
# Tests for the /api/patients endpoints and the patient registry rules.

import re

import pytest

from backend.app.errors import BadRequest
from backend.app.services.patients import generate_patient_token, parse_date_of_birth

JOHN = {
    "name": "John Roe",
    "email": "john@roe.net",
    "phone": "555-0199",
    "address": "9 Elm St",
    "dateOfBirth": "1985-11-02",
}


def test_generate_patient_token_format():
    token = generate_patient_token()
    assert re.fullmatch(r"PAT-\d{13}-[0-9A-Z]{9}", token)
    assert generate_patient_token() != token


def test_parse_date_of_birth():
    assert parse_date_of_birth("1990-04-12") == "1990-04-12"
    assert parse_date_of_birth("1990-04-12T00:00:00.000Z") == "1990-04-12"
    with pytest.raises(BadRequest):
        parse_date_of_birth("12/04/1990")


def test_register_patient(patient):
    """Email is stored lowercased and the service fills in token and defaults."""
    assert patient["email"] == "jane@x.com"
    assert patient["token"].startswith("PAT-")
    assert patient["registeredBy"] == "receptionist-1"
    assert patient["emergencyContact"] == ""
    assert patient["medicalHistory"] == ""
    assert patient["createdAt"] == patient["updatedAt"]


def test_register_requires_all_fields(client, receptionist, store):
    r = client.post("/api/patients", headers=receptionist, json={**JOHN, "address": "   "})

    assert r.status_code == 400
    assert r.json()["message"] == "Name, email, phone, address, and date of birth are required"
    assert store.patients.all() == []


def test_register_rejects_bad_date(client, receptionist):
    r = client.post("/api/patients", headers=receptionist, json={**JOHN, "dateOfBirth": "yesterday"})
    assert r.status_code == 400


def test_register_rejects_duplicate_email(client, receptionist, patient):
    r = client.post("/api/patients", headers=receptionist, json={**JOHN, "email": " Jane@X.com "})

    assert r.status_code == 400
    assert r.json()["message"] == "Patient with this email already exists"


def test_only_receptionists_register(client, doctor):
    r = client.post("/api/patients", headers=doctor, json=JOHN)
    assert r.status_code == 403


def test_list_patients_newest_first(client, doctor, receptionist, patient):
    john = client.post("/api/patients", headers=receptionist, json=JOHN).json()["data"]

    r = client.get("/api/patients", headers=doctor)

    assert r.status_code == 200
    assert r.json()["count"] == 2
    assert [p["id"] for p in r.json()["data"]] == [john["id"], patient["id"]]


def test_get_patient(client, doctor, patient):
    r = client.get(f"/api/patients/{patient['id']}", headers=doctor)
    assert r.status_code == 200
    assert r.json()["data"]["name"] == "Jane Doe"

    r = client.get("/api/patients/ghost", headers=doctor)
    assert r.status_code == 404
    assert r.json()["message"] == "Patient not found"


@pytest.mark.parametrize("query", ["jane", "JANE@x", "555-01"])
def test_search_patients(client, doctor, receptionist, patient, query):
    client.post("/api/patients", headers=receptionist, json={**JOHN, "phone": "777-1234"})

    r = client.get(f"/api/patients/search/{query}", headers=doctor)

    assert [p["id"] for p in r.json()["data"]] == [patient["id"]]


def test_search_by_token(client, doctor, patient):
    r = client.get(f"/api/patients/search/{patient['token'].lower()}", headers=doctor)
    assert r.json()["count"] == 1


def test_update_patient(client, doctor, patient):
    r = client.put(f"/api/patients/{patient['id']}", headers=doctor, json={
        "phone": " 555-0111 ",
        "medicalHistory": "Penicillin allergy",
        "token": "PAT-forged",
        "registeredBy": "someone",
    })

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["phone"] == "555-0111"
    assert data["medicalHistory"] == "Penicillin allergy"
    assert data["token"] == patient["token"]
    assert data["registeredBy"] == "receptionist-1"
    assert data["createdAt"] == patient["createdAt"]


def test_update_rejects_blank_required_field(client, receptionist, patient):
    r = client.put(f"/api/patients/{patient['id']}", headers=receptionist, json={"name": ""})

    assert r.status_code == 400
    assert r.json()["message"] == "name cannot be empty"


def test_update_email_must_stay_unique(client, receptionist, patient):
    john = client.post("/api/patients", headers=receptionist, json=JOHN).json()["data"]

    r = client.put(f"/api/patients/{john['id']}", headers=receptionist, json={"email": "JANE@x.com"})
    assert r.status_code == 400
    assert r.json()["message"] == "Patient with this email already exists"

    # Re-submitting a patient's own email is fine.
    r = client.put(f"/api/patients/{patient['id']}", headers=receptionist, json={"email": "Jane@X.com"})
    assert r.status_code == 200
    assert r.json()["data"]["email"] == "jane@x.com"


def test_update_missing_patient(client, receptionist):
    r = client.put("/api/patients/ghost", headers=receptionist, json={"phone": "1"})
    assert r.status_code == 404


def test_regenerate_token(client, receptionist, patient, store):
    r = client.post(f"/api/patients/{patient['id']}/token", headers=receptionist)

    assert r.status_code == 200
    assert r.json()["message"] == "New token generated successfully"
    token = r.json()["data"]["token"]
    assert token != patient["token"]
    assert store.patients.get(patient["id"])["token"] == token


def test_regenerate_token_is_receptionist_only(client, doctor, patient):
    r = client.post(f"/api/patients/{patient['id']}/token", headers=doctor)
    assert r.status_code == 403
