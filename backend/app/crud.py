# app/crud.py
#
# This module contains the Create/Read operations on user profiles
# (the Users table), plus provisioning of the demo accounts.

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from .database import ConditionFailed, DocumentStore
from .errors import UserExistsError

ROLES = ("doctor", "receptionist")

DEMO_USERS = [
    {
        "email": "doctor@clinic.com",
        "password": "doctor123",
        "name": "Dr. John Smith",
        "role": "doctor",
    },
    {
        "email": "receptionist@clinic.com",
        "password": "receptionist123",
        "name": "Sarah Johnson",
        "role": "receptionist",
    },
]


class ProfileExistsError(Exception):
    pass


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def db_get_user_profile(store: DocumentStore, user_id: str) -> Optional[Dict[str, Any]]:
    """Finds a user profile by its identity-provider subject (Primary Key)."""
    profile = store.users.get(user_id)
    if profile:
        print(f"DB Read: Found user profile for ID: {user_id}")
    return profile


def db_create_user_profile(
    store: DocumentStore, user_id: str, email: Optional[str], name: str, role: str
) -> Dict[str, Any]:
    """
    Creates the profile for a freshly registered identity. The write is
    conditional, so an existing profile (and its role) is never overwritten.
    """
    profile = {
        "name": name,
        "role": role,
        "email": email,
        "createdAt": utc_now(),
    }
    try:
        return store.users.create(user_id, profile)
    except ConditionFailed:
        raise ProfileExistsError(f"Profile for {user_id} already exists")


def db_init_demo_users(store: DocumentStore, user_pool) -> List[Dict[str, Any]]:
    """
    Creates the demo doctor and receptionist in the identity provider and
    stores their profiles. Safe to call repeatedly.
    """
    results = []
    for demo in DEMO_USERS:
        result = {"email": demo["email"], "role": demo["role"]}
        try:
            user_id = user_pool.create_user(demo["email"], demo["password"], demo["name"])
            store.users.set(user_id, {
                "name": demo["name"],
                "role": demo["role"],
                "email": demo["email"],
                "createdAt": utc_now(),
            })
            result["status"] = "created"
        except UserExistsError:
            result["status"] = "already exists"
        except Exception as e:
            print(f"DB Write Error: Demo user {demo['email']} failed: {e}")
            result["status"] = "error"
            result["error"] = str(e)
        results.append(result)
    return results
