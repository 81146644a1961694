from bursar.core.models.student import Guardian, Student, StudentGuardian
from bursar.core.models.fee_type import FeeType
from bursar.core.models.school_settings import SchoolSettings
from bursar.core.models.payment_gateway_settings import PaymentGatewaySettings
from bursar.core.models.fee_obligation import FeeObligation
from bursar.core.models.fee_payment import FeePayment
from bursar.core.models.gateway_transaction import GatewayTransaction
from bursar.core.models.reconciliation_issue import ReconciliationIssue
from bursar.core.models.fee_audit_log import FeeAuditLog

__all__ = [
    "Student",
    "Guardian",
    "StudentGuardian",
    "FeeType",
    "SchoolSettings",
    "PaymentGatewaySettings",
    "FeeObligation",
    "FeePayment",
    "GatewayTransaction",
    "ReconciliationIssue",
    "FeeAuditLog",
]
