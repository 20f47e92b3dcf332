# app/routers/auth.py
#
# This router handles the identity endpoints: token verification, profile
# creation after sign-up, and demo-account provisioning. These endpoints do
# not require an existing profile.

from typing import Dict, Any
from fastapi import APIRouter, Depends, HTTPException

from ..models import DemoInitResponse, ProfileCreate, UserProfile, UserResponse
from ..crud import (
    ROLES,
    ProfileExistsError,
    db_create_user_profile,
    db_get_user_profile,
    db_init_demo_users,
)
from ..database import DocumentStore, get_store
from ..errors import BadRequest, NotFound
from ..security import CognitoUserPool, get_user_pool, verify_identity

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.get("/verify", response_model=UserResponse)
def verify_user(
    claims: Dict[str, Any] = Depends(verify_identity),
    store: DocumentStore = Depends(get_store),
):
    """Verifies the caller's token and returns their stored profile."""
    profile = db_get_user_profile(store, claims["sub"])
    if not profile:
        raise NotFound("User not found")
    return UserResponse(user=UserProfile(**{"id": claims["sub"], "email": claims.get("email"), **profile}))


@router.post("/profile", response_model=UserResponse)
def create_user_profile(
    profile_data: ProfileCreate,
    claims: Dict[str, Any] = Depends(verify_identity),
    store: DocumentStore = Depends(get_store),
):
    """
    Creates the profile for an identity that has just signed up with the
    identity provider. The role chosen here cannot be changed later.
    """
    name = (profile_data.name or "").strip()
    role = profile_data.role
    if not name or not role:
        raise BadRequest("Name and role are required")
    if role not in ROLES:
        raise BadRequest("Invalid role. Must be doctor or receptionist")

    try:
        profile = db_create_user_profile(store, claims["sub"], claims.get("email"), name, role)
        return UserResponse(message="User profile created successfully", user=UserProfile(**profile))
    except ProfileExistsError:
        raise BadRequest("User profile already exists")
    except HTTPException:
        raise
    except Exception as e:
        print(f"Profile creation error: {e}")
        raise HTTPException(status_code=500, detail="Failed to create user profile")


@router.post("/init-demo", response_model=DemoInitResponse)
def init_demo_users(
    store: DocumentStore = Depends(get_store),
    user_pool: CognitoUserPool = Depends(get_user_pool),
):
    """Creates the demo doctor and receptionist accounts if they are missing."""
    try:
        results = db_init_demo_users(store, user_pool)
        return DemoInitResponse(message="Demo users initialization completed", results=results)
    except Exception as e:
        print(f"Error during demo initialization: {e}")
        raise HTTPException(status_code=500, detail="Failed to initialize demo users")
