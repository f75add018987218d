"""Services package - reconciliation, payment creation and finalization."""

from roomledger.services.charge_status_service import ChargePaymentStatus, ChargeStatusService
from roomledger.services.frequency_service import calculate_payment_amount
from roomledger.services.ledger_service import PaymentLedgerService, is_month_covered
from roomledger.services.payment_record_service import PaymentRecordResult, PaymentRecordService
from roomledger.services.preference_service import FinalizationResult, PreferenceService
from roomledger.services.verification_service import VerificationResult, VerificationService

__all__ = [
    "ChargePaymentStatus",
    "ChargeStatusService",
    "FinalizationResult",
    "PaymentLedgerService",
    "PaymentRecordResult",
    "PaymentRecordService",
    "PreferenceService",
    "VerificationResult",
    "VerificationService",
    "calculate_payment_amount",
    "is_month_covered",
]
