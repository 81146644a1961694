"""
Receipt numbers and transaction references.
Format: RCP + YYMMDD + 6 random alphanumeric, e.g. RCP241018K7Q2ZD.
"""

import secrets
import string
import uuid
from datetime import datetime, timezone

_ALPHABET = string.ascii_uppercase + string.digits


def generate_receipt_number(now: datetime = None) -> str:
    """Human-readable receipt number. Uniqueness is enforced by the fee_payments constraint; callers retry on collision."""
    now = now or datetime.now(timezone.utc)
    random_part = "".join(secrets.choice(_ALPHABET) for _ in range(6))
    return f"RCP{now.strftime('%y%m%d')}{random_part}"


def generate_transaction_reference(prefix: str = "BRS") -> str:
    """Fresh reference for every checkout attempt or manual entry. Never reused on retry."""
    return f"{prefix}-{uuid.uuid4().hex[:20].upper()}"
