from enum import Enum


class ObligationStatus(str, Enum):
    pending = "pending"
    partial = "partial"
    paid = "paid"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    ONLINE = "online"
    CHEQUE = "cheque"
    POS = "pos"


class PaymentOption(str, Enum):
    FULL = "full"
    FIRST_INSTALLMENT = "first_installment"
    SECOND_INSTALLMENT = "second_installment"


class GatewayTransactionStatus(str, Enum):
    initialized = "initialized"
    success = "success"


class ReconciliationIssueStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class WebhookEvent(str, Enum):
    CHARGE_SUCCESS = "charge.success"
    CHARGE_FAILED = "charge.failed"
    TRANSFER_SUCCESS = "transfer.success"
    TRANSFER_FAILED = "transfer.failed"
