# app/errors.py
#
# This module defines the API error taxonomy. Each error is an HTTPException
# carrying a short title so the exception handlers in `main.py` can render the
# `{success: false, error, message}` envelope.

from fastapi import HTTPException, status


class ApiError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    title = "Internal Server Error"

    def __init__(self, message: str, headers=None):
        super().__init__(status_code=self.status_code, detail=message, headers=headers)


class BadRequest(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    title = "Bad Request"


class Unauthenticated(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    title = "Unauthorized"

    def __init__(self, message: str):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class TokenExpired(Unauthenticated):
    title = "Token Expired"


class InvalidToken(Unauthenticated):
    title = "Invalid Token"


class AuthenticationFailed(Unauthenticated):
    title = "Authentication Failed"


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    title = "Forbidden"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    title = "Not Found"


# --- Identity provider errors ---
# Raised by the Cognito wrappers in security.py and translated into the
# HTTP errors above by the auth dependencies.

class IdentityError(Exception):
    """The identity provider could not verify a credential."""


class TokenExpiredError(IdentityError):
    pass


class InvalidTokenError(IdentityError):
    pass


class UserExistsError(IdentityError):
    pass
