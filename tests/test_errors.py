import httpx

from fake_supabase import api_error
from rewards.core.errors import (
    OnboardingConflictError,
    OnboardingError,
    OnboardingPermissionError,
    OnboardingSchemaError,
    OnboardingTransientError,
    classify_db_error,
    is_unique_violation,
)


def test_unique_violation_is_retryable_conflict():
    err = classify_db_error(api_error("23505", "duplicate key value"), "id-1")
    assert isinstance(err, OnboardingConflictError)
    assert err.retryable
    assert err.category == "uniqueness"
    assert err.status_code == 409
    assert err.identity_id == "id-1"


def test_schema_codes_are_fatal():
    for code in ("42703", "42P01", "42883", "PGRST204", "PGRST205"):
        err = classify_db_error(api_error(code, "column users.position_title does not exist"))
        assert isinstance(err, OnboardingSchemaError), code
        assert not err.retryable
        assert err.code == code


def test_permission_by_code_or_rls_message():
    assert isinstance(classify_db_error(api_error("42501", "permission denied")), OnboardingPermissionError)
    rls = api_error("XX000", 'new row violates row-level security policy for table "users"')
    assert isinstance(classify_db_error(rls), OnboardingPermissionError)


def test_transport_errors_are_transient():
    err = classify_db_error(httpx.ConnectError("connection refused"))
    assert isinstance(err, OnboardingTransientError)
    assert err.retryable
    assert err.status_code == 503


def test_anything_else_is_unknown():
    err = classify_db_error(ValueError("boom"), "id-2")
    assert type(err) is OnboardingError
    assert err.category == "unknown"
    assert not err.retryable
    assert err.to_dict()["message"] == "boom"


def test_is_unique_violation():
    assert is_unique_violation(api_error("23505"))
    assert not is_unique_violation(api_error("42703"))
    assert not is_unique_violation(ValueError("23505"))
