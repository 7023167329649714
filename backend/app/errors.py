"""Typed domain errors with stable codes.

Services raise these instead of ``HTTPException`` so the booking and ledger
rules stay independent of the web layer. ``app.main`` registers a handler
that renders any ``DomainError`` as ``{"detail", "code", ...context}``.
"""

from typing import Any


class DomainError(Exception):
    """Base class for every error surfaced to API callers with a stable code."""

    code: str = "DOMAIN_ERROR"
    status_code: int = 400
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None, **context: Any) -> None:
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.context}


# ---------------------------------------------------------------------------
# Validation errors: caller fixes the input, never retried automatically
# ---------------------------------------------------------------------------


class InvalidPropertyType(DomainError):
    code = "INVALID_PROPERTY_TYPE"
    default_message = "Bookings can only be made for short-term properties"


class InvalidDateRange(DomainError):
    code = "INVALID_DATES"
    default_message = "Check-out date must be after check-in date"


class PastDate(DomainError):
    code = "PAST_DATE"
    default_message = "Cannot book a check-in date in the past"


class GuestLimitExceeded(DomainError):
    code = "GUESTS_LIMIT_EXCEEDED"
    default_message = "Number of guests exceeds the property maximum"


class MinStayViolation(DomainError):
    code = "MIN_STAY_VIOLATION"
    default_message = "Stay is shorter than the property minimum"


class MaxStayViolation(DomainError):
    code = "MAX_STAY_VIOLATION"
    default_message = "Stay is longer than the property maximum"


class MissingPricing(DomainError):
    code = "PRICING_NOT_CONFIGURED"
    default_message = "Short-term property has no nightly base price"


class InvalidAmount(DomainError):
    code = "INVALID_AMOUNT"
    default_message = "Amount must be greater than zero"


class AmountExceedsTotal(DomainError):
    code = "AMOUNT_EXCEEDS_TOTAL"
    default_message = "Payment exceeds the remaining amount of the booking"


class BookingNotEditable(DomainError):
    code = "BOOKING_NOT_EDITABLE"
    default_message = "Completed or cancelled bookings cannot be edited"


# ---------------------------------------------------------------------------
# State and conflict errors
# ---------------------------------------------------------------------------


class InvalidStateTransition(DomainError):
    code = "INVALID_STATE_TRANSITION"
    default_message = "Booking status does not allow this action"


class DatesUnavailable(DomainError):
    code = "DATES_UNAVAILABLE"
    status_code = 409
    default_message = "Dates conflict with an existing booking"


# ---------------------------------------------------------------------------
# Lookup and access errors
# ---------------------------------------------------------------------------


class NotFound(DomainError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class PropertyNotFound(NotFound):
    code = "PROPERTY_NOT_FOUND"
    default_message = "Property not found"


class BookingNotFound(NotFound):
    code = "BOOKING_NOT_FOUND"
    default_message = "Booking not found"


class PaymentNotFound(NotFound):
    code = "PAYMENT_NOT_FOUND"
    default_message = "Payment not found"


class OwnerNotFound(NotFound):
    code = "OWNER_NOT_FOUND"
    default_message = "Owner not found"


class PermissionDenied(DomainError):
    code = "PERMISSION_DENIED"
    status_code = 403
    default_message = "You do not have permission to perform this action"


class RateLimitExceeded(DomainError):
    code = "RATE_LIMIT_EXCEEDED"
    status_code = 429
    default_message = "Too many login attempts, try again later"
