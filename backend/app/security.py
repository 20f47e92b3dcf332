# app/security.py
#
# This module handles security-related functions: verifying Cognito ID tokens,
# provisioning users in the Cognito user pool, and the authorization
# dependencies (current user resolution and role guards) used by the routers.

import os
from typing import Dict, Any, Optional, List

import boto3
import httpx
from botocore.exceptions import ClientError
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError

from .crud import db_get_user_profile
from .database import DocumentStore, get_store
from .errors import (
    AuthenticationFailed,
    Forbidden,
    InvalidToken,
    InvalidTokenError,
    TokenExpired,
    TokenExpiredError,
    Unauthenticated,
    UserExistsError,
)

# --- Cognito Configuration ---
COGNITO_REGION = os.getenv("COGNITO_REGION", os.getenv("AWS_REGION", "us-east-1"))
COGNITO_USERPOOL_ID = os.getenv("COGNITO_USERPOOL_ID", "")
COGNITO_APP_CLIENT_ID = os.getenv("COGNITO_APP_CLIENT_ID")


class CognitoVerifier:
    """Verifies Cognito ID tokens against the user pool's published JWKs."""

    def __init__(
        self,
        region: str,
        userpool_id: str,
        app_client_id: Optional[str],
        jwks: Optional[List[Dict[str, Any]]] = None,
    ):
        self.issuer = f"https://cognito-idp.{region}.amazonaws.com/{userpool_id}"
        self.jwks_url = f"{self.issuer}/.well-known/jwks.json"
        self.app_client_id = app_client_id
        self._jwks = jwks

    @classmethod
    def from_env(cls) -> "CognitoVerifier":
        return cls(COGNITO_REGION, COGNITO_USERPOOL_ID, COGNITO_APP_CLIENT_ID)

    async def get_jwks(self) -> List[Dict[str, Any]]:
        """Fetches and caches Cognito JSON Web Keys."""
        if self._jwks is None:
            async with httpx.AsyncClient() as client:
                response = await client.get(self.jwks_url)
                response.raise_for_status()
                self._jwks = response.json()["keys"]
                print(f"AUTH: Fetched Cognito JWKs from {self.jwks_url}")
        return self._jwks

    async def verify(self, token: str) -> Dict[str, Any]:
        """Returns the token's claims, or raises an IdentityError subclass."""
        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            raise InvalidTokenError("Malformed token header")

        keys = await self.get_jwks()
        key = next((k for k in keys if k.get("kid") == header.get("kid")), None)
        if key is None:
            raise InvalidTokenError("Token signed with an unknown key")

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                audience=self.app_client_id,
                issuer=self.issuer,
            )
        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except JWTClaimsError as e:
            raise InvalidTokenError(f"Invalid token claims: {e}")
        except JWTError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        if claims.get("token_use") != "id":
            raise InvalidTokenError("Expected a Cognito ID token")
        if not claims.get("sub"):
            raise InvalidTokenError("User identifier missing from token")
        return claims


class CognitoUserPool:
    """Admin operations on the Cognito user pool (used to provision demo users)."""

    def __init__(self, client, userpool_id: str):
        self.client = client
        self.userpool_id = userpool_id

    @classmethod
    def from_env(cls) -> "CognitoUserPool":
        return cls(boto3.client("cognito-idp", region_name=COGNITO_REGION), COGNITO_USERPOOL_ID)

    def create_user(self, email: str, password: str, name: str) -> str:
        """Creates a confirmed user with a permanent password and returns its `sub`."""
        try:
            response = self.client.admin_create_user(
                UserPoolId=self.userpool_id,
                Username=email,
                UserAttributes=[
                    {"Name": "email", "Value": email},
                    {"Name": "email_verified", "Value": "true"},
                    {"Name": "name", "Value": name},
                ],
                MessageAction="SUPPRESS",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "UsernameExistsException":
                raise UserExistsError(f"User {email} already exists")
            raise

        self.client.admin_set_user_password(
            UserPoolId=self.userpool_id,
            Username=email,
            Password=password,
            Permanent=True,
        )
        user = response["User"]
        attributes = {a["Name"]: a["Value"] for a in user.get("Attributes", [])}
        print(f"AUTH: Created Cognito user {email}")
        return attributes.get("sub") or user["Username"]


# --- Dependency providers ---
# The verifier and user pool are built on first use and kept on app.state;
# create_app() can inject replacements.

def get_verifier(request: Request) -> CognitoVerifier:
    verifier = getattr(request.app.state, "verifier", None)
    if verifier is None:
        verifier = CognitoVerifier.from_env()
        request.app.state.verifier = verifier
    return verifier


def get_user_pool(request: Request) -> CognitoUserPool:
    user_pool = getattr(request.app.state, "user_pool", None)
    if user_pool is None:
        user_pool = CognitoUserPool.from_env()
        request.app.state.user_pool = user_pool
    return user_pool


# --- Authentication Dependencies ---
bearer_scheme = HTTPBearer(auto_error=False)

async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("No valid authorization token provided")
    return credentials.credentials


async def verify_identity(
    token: str = Depends(get_bearer_token),
    verifier: CognitoVerifier = Depends(get_verifier),
) -> Dict[str, Any]:
    """Dependency returning the verified Cognito claims of the caller."""
    try:
        return await verifier.verify(token)
    except TokenExpiredError:
        raise TokenExpired("Authentication token has expired")
    except InvalidTokenError as e:
        print(f"AUTH: Token rejected: {e}")
        raise InvalidToken("Invalid authentication token format")
    except Exception as e:
        print(f"AUTH: Token verification failed: {e!r}")
        raise AuthenticationFailed("Failed to authenticate user")


async def get_current_user(
    request: Request,
    claims: Dict[str, Any] = Depends(verify_identity),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Resolves the verified identity into the stored user profile and attaches
    the merged principal to the request. Runs on every request; nothing is
    cached between requests.
    """
    user_id = claims["sub"]
    profile = db_get_user_profile(store, user_id)
    if not profile:
        print(f"AUTH: Token valid, but user ID {user_id} has no profile.")
        raise Unauthenticated("User not found in database")

    user = {"id": user_id, "email": claims.get("email"), **profile}
    request.state.user = user
    return user


def require_role(role: str):
    """Builds a dependency that only lets principals with `role` through."""
    async def role_guard(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if not user:
            raise Unauthenticated("Authentication required")
        if user.get("role") != role:
            raise Forbidden(f"Access denied. Required role: {role}")
        return user

    return role_guard
