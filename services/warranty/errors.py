"""
Warranty Registry Errors.

Every failure the pool, ledger and coordinator raise derives from
`WarrantyError`, which carries the machine-readable code and HTTP status
used when rendering an `ErrorResponse`.
"""

from __future__ import annotations

from typing import Any


class WarrantyError(Exception):
    """Base class for warranty registry failures."""

    error_code = "warranty_error"
    status_code = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(WarrantyError):
    """A required field is missing or malformed."""

    error_code = "validation_error"
    status_code = 422


class DuplicateCode(WarrantyError):
    """A warranty number with this code already exists."""

    error_code = "duplicate_code"
    status_code = 409

    def __init__(self, code: str) -> None:
        super().__init__(f"Warranty number {code} already exists", code=code)
        self.code = code


class NotFound(WarrantyError):
    """The requested warranty number or registration does not exist."""

    error_code = "not_found"
    status_code = 404


class AlreadyUsed(WarrantyError):
    """The warranty number is already linked to another registration."""

    error_code = "already_used"
    status_code = 409

    def __init__(self, code: str) -> None:
        super().__init__(f"Warranty number {code} is already used", code=code)
        self.code = code


class InvalidOrMismatchedCode(WarrantyError):
    """
    Register precondition failure.

    Deliberately covers unknown, consumed and wrong-product codes alike so
    the public endpoint never reveals pool contents.
    """

    error_code = "invalid_warranty_number"
    status_code = 400

    def __init__(self) -> None:
        super().__init__("Invalid warranty number or product mismatch")


class PartialRegistrationFailure(WarrantyError):
    """A registration was stored but its warranty number could not be linked."""

    error_code = "partial_registration_failure"
    status_code = 503

    def __init__(self, registration_id: str, code: str, reason: str) -> None:
        super().__init__(
            "Registration stored but warranty number link is pending reconciliation",
            registration_id=registration_id,
        )
        self.registration_id = registration_id
        self.code = code
        # Operator-facing only, never rendered in responses
        self.reason = reason


class StoreUnavailable(WarrantyError):
    """Transient persistence failure (connection loss, timeout)."""

    error_code = "store_unavailable"
    status_code = 503
