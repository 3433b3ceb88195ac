"""
Onboarding error taxonomy.

Every failure raised out of onboarding is one of:
- transient/uniqueness (OnboardingConflictError, OnboardingTransientError): retried
- schema/permission/config (OnboardingSchemaError, OnboardingPermissionError,
  OnboardingConfigError): fatal, carries enough detail to fix the database
- unknown (OnboardingError): fatal, logged with full context
"""

from typing import Any, Dict, Optional

import httpx
from fastapi import status
from postgrest.exceptions import APIError

# Postgres / PostgREST error codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
INSUFFICIENT_PRIVILEGE = "42501"
UNDEFINED_COLUMN = "42703"
UNDEFINED_TABLE = "42P01"
UNDEFINED_FUNCTION = "42883"
PGRST_COLUMN_NOT_FOUND = "PGRST204"
PGRST_TABLE_NOT_FOUND = "PGRST205"

SCHEMA_ERROR_CODES = {
    UNDEFINED_COLUMN,
    UNDEFINED_TABLE,
    UNDEFINED_FUNCTION,
    PGRST_COLUMN_NOT_FOUND,
    PGRST_TABLE_NOT_FOUND,
}

TRANSIENT_TRANSPORT_ERRORS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


class OnboardingError(Exception):
    category = "unknown"
    retryable = False
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        identity_id: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.identity_id = identity_id
        self.code = code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "message": self.message,
            "identity_id": self.identity_id,
            "code": self.code,
            "details": self.details,
        }


class OnboardingConflictError(OnboardingError):
    """Unique constraint collision (username, referral code, auth_user_id)."""
    category = "uniqueness"
    retryable = True
    status_code = status.HTTP_409_CONFLICT


class OnboardingTransientError(OnboardingError):
    category = "transient"
    retryable = True
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class OnboardingSchemaError(OnboardingError):
    """Missing table/column: needs a migration."""
    category = "schema"


class OnboardingPermissionError(OnboardingError):
    """RLS or grant denial: needs a policy fix or the service-role key."""
    category = "permission"


class OnboardingConfigError(OnboardingError):
    """Configured default tier is not in the catalog."""
    category = "schema"


def is_unique_violation(exc: BaseException) -> bool:
    return isinstance(exc, APIError) and exc.code == UNIQUE_VIOLATION


def classify_db_error(exc: BaseException, identity_id: Optional[str] = None) -> OnboardingError:
    """Map a raw client exception onto the onboarding taxonomy."""
    if isinstance(exc, OnboardingError):
        return exc
    if isinstance(exc, TRANSIENT_TRANSPORT_ERRORS):
        return OnboardingTransientError(f"Transport error: {exc}", identity_id=identity_id)
    if isinstance(exc, APIError):
        code = exc.code
        message = exc.message or str(exc)
        details = exc.details if isinstance(exc.details, str) else None
        if code == UNIQUE_VIOLATION:
            return OnboardingConflictError(message, identity_id=identity_id, code=code, details=details)
        if code in SCHEMA_ERROR_CODES:
            return OnboardingSchemaError(message, identity_id=identity_id, code=code, details=details)
        if code == INSUFFICIENT_PRIVILEGE or "row-level security" in message.lower():
            return OnboardingPermissionError(message, identity_id=identity_id, code=code, details=details)
        return OnboardingError(message, identity_id=identity_id, code=code, details=details)
    return OnboardingError(str(exc) or exc.__class__.__name__, identity_id=identity_id)
