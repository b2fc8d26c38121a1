# app/core/exceptions.py
"""
Exception hierarchy for the marketplace negotiation core.

Every expected failure raised by the services inherits from
MarketServiceError and carries the HTTP status it is surfaced with, so the
API layer can turn it into the standard error envelope without per-route
translation.
"""

from typing import Literal, Optional


class MarketServiceError(Exception):
    """Base exception for all expected service errors."""

    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: str = "MARKET_ERROR",
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        self.message = message
        self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ===========================================
# Generic kinds
# ===========================================


class ValidationError(MarketServiceError):
    """Malformed input; the message names the offending field."""

    status_code = 400

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR", **kwargs):
        super().__init__(message, error_code=error_code, **kwargs)


class NotFoundError(MarketServiceError):
    status_code = 404

    def __init__(self, message: str = "Resource not found", error_code: str = "NOT_FOUND", **kwargs):
        super().__init__(message, error_code=error_code, **kwargs)


class StateConflictError(MarketServiceError):
    """The entity is not in a state that allows the operation."""

    status_code = 409

    def __init__(self, message: str, error_code: str = "STATE_CONFLICT", **kwargs):
        super().__init__(message, error_code=error_code, **kwargs)


class PermissionDeniedError(MarketServiceError):
    status_code = 403

    def __init__(self, message: str = "Not authorized", error_code: str = "PERMISSION_DENIED", **kwargs):
        super().__init__(message, error_code=error_code, **kwargs)


# ===========================================
# Offer Exceptions
# ===========================================


class OfferNotFoundError(NotFoundError):
    def __init__(self, message: str = "One or more offer sessions not found"):
        super().__init__(message, error_code="OFFER_NOT_FOUND")


class OfferNotActiveError(StateConflictError):
    def __init__(self, message: str = "All offer sessions must be active"):
        super().__init__(message, error_code="OFFER_NOT_ACTIVE")


class OfferPermissionError(PermissionDeniedError):
    def __init__(self, message: str = "You do not have permission to act on this offer"):
        super().__init__(message, error_code="OFFER_PERMISSION_DENIED")


MergeValidationType = Literal[
    "DIFFERENT_CUSTOMER",
    "DIFFERENT_CONTRACTOR",
    "DIFFERENT_ASSIGNED",
    "DIFFERENT_PAYMENT_TYPE",
    "HAS_SERVICES",
    "AMOUNT_TOO_LARGE",
]


class OfferValidationError(ValidationError):
    """A merge precondition was violated."""

    def __init__(self, message: str, validation_type: MergeValidationType):
        self.validation_type = validation_type
        super().__init__(
            message,
            error_code=validation_type,
            details={"validationType": validation_type},
        )
