"""Application errors and API response helpers."""

from typing import Any, Dict

from fastapi import HTTPException, status


class AppError(Exception):
    """Base application error."""

    def __init__(self, message: str, code: str, http_status: int = 400):
        """Initialize error."""
        self.message = message
        self.code = code
        self.http_status = http_status
        super().__init__(message)


class ValidationError(AppError):
    """Input rejected before any I/O."""

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, "validation_error", status.HTTP_400_BAD_REQUEST)


class InvalidFrequencyError(ValidationError):
    """Frequency is neither monthly nor yearly."""

    def __init__(self, value: Any):
        super().__init__(f"Unsupported payment frequency: {value!r}")
        self.code = "invalid_frequency"
        self.value = value


class NotFoundError(AppError):
    """Requested entity does not exist."""

    def __init__(self, message: str = "Not found", code: str = "not_found"):
        super().__init__(message, code, status.HTTP_404_NOT_FOUND)


class ChargeNotFoundError(NotFoundError):
    def __init__(self, charge_id: int):
        super().__init__(f"Charge {charge_id} not found", "charge_not_found")


class TenancyNotFoundError(NotFoundError):
    def __init__(self, user_id: int):
        super().__init__(f"No active tenancy for user {user_id}", "tenancy_not_found")


class PaymentNotFoundError(NotFoundError):
    def __init__(self, identifier: Any):
        super().__init__(f"Payment {identifier} not found", "payment_not_found")


class AlreadyPaidError(AppError):
    """The requested period is already covered by a successful payment.

    Callers should refresh the charge status instead of retrying.
    """

    def __init__(self, period_label: str):
        super().__init__(f"{period_label} is already paid", "already_paid", status.HTTP_409_CONFLICT)
        self.period_label = period_label


class DuplicatePaymentError(AppError):
    """Storage rejected a second payment row with the same reference."""

    def __init__(self, reference: str):
        super().__init__(
            f"A payment with reference {reference} already exists",
            "duplicate_payment",
            status.HTTP_409_CONFLICT,
        )
        self.reference = reference


class LedgerReadError(AppError):
    """Payment history could not be read; the charge status is indeterminate."""

    def __init__(self, message: str = "Payment history is temporarily unavailable"):
        super().__init__(message, "ledger_unavailable", status.HTTP_503_SERVICE_UNAVAILABLE)


class FinalizationError(AppError):
    """The payment could not be marked successful."""

    def __init__(self, message: str = "Failed to update payment status"):
        super().__init__(message, "finalization_failed", status.HTTP_500_INTERNAL_SERVER_ERROR)


class PartialFinalizationError(FinalizationError):
    """Payment is marked successful but the frequency preference was not saved.

    The tenant has paid; operators must lock the preference manually.
    """

    def __init__(self, payment_id: int, reference: str):
        super().__init__("Payment succeeded, preference not saved")
        self.code = "preference_not_saved"
        self.payment_id = payment_id
        self.reference = reference


class GatewayError(AppError):
    """Payment gateway could not be reached or returned garbage."""

    def __init__(self, message: str = "Payment gateway unavailable"):
        super().__init__(message, "gateway_error", status.HTTP_502_BAD_GATEWAY)


def error_response(error: AppError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }


def raise_app_error(error: AppError) -> None:
    """Raise an HTTPException from an AppError."""
    raise HTTPException(
        status_code=error.http_status,
        detail=error_response(error),
    ) from error
