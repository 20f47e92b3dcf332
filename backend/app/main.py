# app/main.py
#
# This is the main entry point for the FastAPI application.
# `create_app` builds the app, wires in the document store and identity
# provider (or test replacements), includes the routers, and installs the
# exception handlers that render the `{success: false, ...}` error envelope.
#
# The `handler` function is the entry point for AWS Lambda.

import os
import traceback
from datetime import datetime, timezone
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import ApiError
from .routers import auth, billing, patients, prescriptions

# --- Configuration ---
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
APP_ENV = os.getenv("APP_ENV", "production")


def _error_response(status_code: int, error: str, message: str, headers=None, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "message": message, **extra},
        headers=headers,
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc, ApiError):
        return _error_response(exc.status_code, exc.title, exc.detail, exc.headers)
    if exc.status_code == 404 and exc.detail == "Not Found":
        # No route matched
        return _error_response(404, "Route not found", f"Cannot {request.method} {request.url.path}")
    return _error_response(
        exc.status_code,
        HTTPStatus(exc.status_code).phrase,
        str(exc.detail),
        getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return _error_response(400, "Validation Error", "Invalid request data", details=details)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    print(f"Unhandled error on {request.method} {request.url.path}: {exc!r}")
    traceback.print_exc()
    extra = {"detail": repr(exc)} if APP_ENV == "development" else {}
    return _error_response(500, "Internal Server Error", "Internal Server Error", **extra)


def create_app(store=None, verifier=None, user_pool=None) -> FastAPI:
    """
    Builds the API. Dependencies left as None are created from the
    environment on first use.
    """
    app = FastAPI(
        title="Clinic Management System API",
        description="Patient registration, prescriptions and billing for a small clinic, "
                    "using AWS Cognito for authentication and DynamoDB for storage."
    )
    app.state.store = store
    app.state.verifier = verifier
    app.state.user_pool = user_pool

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include the routers
    app.include_router(auth.router)
    app.include_router(patients.router)
    app.include_router(prescriptions.router)
    app.include_router(billing.router)

    @app.get("/health", tags=["Health Check"])
    def health_check():
        """A simple endpoint to confirm the API is running."""
        return {
            "status": "OK",
            "message": "Clinic Management System API is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()

# This handler is the entry point for AWS Lambda
handler = Mangum(app, lifespan="off")


# --- Uvicorn Development Server Runner ---
if __name__ == "__main__":
    print("Starting FastAPI development server...")
    # Make sure env variables are set: COGNITO_USERPOOL_ID, COGNITO_APP_CLIENT_ID, AWS_REGION
    # Optional: DYNAMODB_ENDPOINT_URL to point at a local DynamoDB
    import uvicorn
    uvicorn.run("backend.app.main:app", host="127.0.0.1", port=int(os.getenv("PORT", "5000")), reload=True)
