"""
Error taxonomy for registration flows and the FastAPI handlers that render it.
Every failure leaves the service as {"success": false, "message": ...}.
"""

import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.registrations.config import APP_ENV

logger = logging.getLogger(__name__)

FIELD_LABELS = {
    "phone": "phone number",
    "rollNumber": "roll number",
    "generatedReferralCode": "referral code",
}


class RegistrationError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def body(self) -> dict:
        return {"success": False, "message": self.message}


class InvalidRequest(RegistrationError):
    status_code = 400


class ValidationFailed(RegistrationError):
    status_code = 400

    def __init__(self, errors: List[str], message: Optional[str] = None):
        super().__init__(message or "Validation failed: " + "; ".join(errors))
        self.errors = errors

    @classmethod
    def missing(cls, fields: List[str]) -> "ValidationFailed":
        return cls(
            [f"{field} is required" for field in fields],
            message=f"Missing required fields: {', '.join(fields)}",
        )

    def body(self) -> dict:
        return {"success": False, "message": self.message, "errors": self.errors}


class Conflict(RegistrationError):
    status_code = 409

    def __init__(self, fields: Dict[str, Optional[str]], message: Optional[str] = None):
        if message is None:
            message = "; ".join(
                f"Duplicate {FIELD_LABELS.get(name, name)} found: {value}"
                if value else f"Duplicate {FIELD_LABELS.get(name, name)} found"
                for name, value in fields.items()
            ) or "Duplicate entry found"
        super().__init__(message)
        self.fields = fields

    @classmethod
    def from_duplicate_key(cls, exc: DuplicateKeyError) -> "Conflict":
        """Build a Conflict from the store's own unique-index violation"""
        details = exc.details or {}
        key_value = details.get("keyValue") or {}
        if not key_value and details.get("keyPattern"):
            key_value = {name: None for name in details["keyPattern"]}
        return cls({name: value for name, value in key_value.items()})

    def body(self) -> dict:
        return {
            "success": False,
            "duplicate": True,
            "message": self.message,
            "fields": list(self.fields),
        }


class NotFound(RegistrationError):
    status_code = 404


class InvalidId(RegistrationError):
    status_code = 400


class Unavailable(RegistrationError):
    status_code = 500


# ==================== HANDLERS ====================

def install_error_handlers(app: FastAPI):
    """Register JSON renderers for the taxonomy and for raw store failures"""

    @app.exception_handler(RegistrationError)
    async def registration_error_handler(request: Request, exc: RegistrationError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.body())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        content = {"success": False, "message": exc.detail}
        if exc.status_code == 404:
            content = {"success": False, "message": "Route not found", "path": request.url.path}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
        conflict = Conflict.from_duplicate_key(exc)
        logger.warning("Store rejected duplicate on %s: %s", request.url.path, list(conflict.fields))
        return JSONResponse(status_code=conflict.status_code, content=conflict.body())

    @app.exception_handler(PyMongoError)
    async def store_error_handler(request: Request, exc: PyMongoError):
        logger.exception("Store failure on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Database unavailable, please try again later"},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        content = {"success": False, "message": "Internal server error"}
        if APP_ENV == "development":
            content["error"] = str(exc)
        return JSONResponse(status_code=500, content=content)
