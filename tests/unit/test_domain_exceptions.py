"""Tests for domain exceptions (error_code, message, details, client body)."""

from crm_access.domain.exceptions import (
    AccountDisabledException,
    AuthenticationException,
    AuthorizationException,
    CrmAccessException,
    InvalidCredentialsException,
    InvalidTokenException,
    StoreTableMissingException,
    StoreUnavailableException,
    TokenRevokedException,
    UserAlreadyExistsException,
    ValidationException,
)


def test_base_exception_default_error_code() -> None:
    """Base exception uses class name as error_code when not provided."""
    exc = CrmAccessException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "CrmAccessException"
    assert exc.details == {}
    assert exc.status_code is None


def test_to_dict_never_includes_details() -> None:
    exc = CrmAccessException("Oops", error_code="CUSTOM", details={"secret": "x"})
    assert exc.to_dict() == {"error": "CUSTOM", "message": "Oops"}


def test_validation_exception_field() -> None:
    exc = ValidationException("Invalid format", field="email")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "email"}


def test_authentication_exception_defaults() -> None:
    exc = AuthenticationException()
    assert exc.message == "Authentication failed"
    assert exc.error_code == "AUTHENTICATION_ERROR"


def test_invalid_token_carries_reason_and_optional_status() -> None:
    exc = InvalidTokenException("expired")
    assert exc.error_code == "INVALID_TOKEN"
    assert exc.details == {"reason": "expired"}
    assert exc.status_code is None
    assert InvalidTokenException("expired", status_code=401).status_code == 401


def test_credential_failures_share_generic_messages() -> None:
    assert InvalidCredentialsException().message == "Invalid credentials"
    assert TokenRevokedException("jti-1").message == "Invalid or expired refresh token"
    assert TokenRevokedException("jti-1").details == {"jti": "jti-1"}


def test_account_disabled_default_message() -> None:
    exc = AccountDisabledException("u1")
    assert exc.message == "User not found"
    assert exc.error_code == "ACCOUNT_DISABLED"
    assert AccountDisabledException("u1", message="Account is disabled").message == (
        "Account is disabled"
    )


def test_authorization_exception_details() -> None:
    exc = AuthorizationException(resource="lead", action="delete")
    assert exc.error_code == "PERMISSION_DENIED"
    assert exc.message == "Permission denied"
    assert exc.details == {"resource": "lead", "action": "delete"}


def test_user_already_exists_does_not_reveal_email() -> None:
    exc = UserAlreadyExistsException()
    assert exc.message == "Registration failed"
    assert exc.details == {}


def test_table_missing_is_store_unavailable() -> None:
    exc = StoreTableMissingException("refresh_tokens")
    assert isinstance(exc, StoreUnavailableException)
    assert exc.collection == "refresh_tokens"
    assert exc.error_code == "STORE_UNAVAILABLE"
