from datetime import datetime, timezone
from decimal import Decimal

import pytest

from bursar.core.receipts import generate_receipt_number, generate_transaction_reference
from bursar.core.split import compute_split, from_minor_units, to_minor_units


def test_default_split_of_ten_thousand() -> None:
    split = compute_split(Decimal("10000"))
    assert split.platform_fee == Decimal("500.00")
    assert split.school_amount == Decimal("9500.00")


@pytest.mark.parametrize("gross", ["0", "0.01", "0.10", "33.33", "1234.57", "5000", "99999.99"])
def test_split_adds_back_to_gross(gross: str) -> None:
    split = compute_split(Decimal(gross))
    assert split.platform_fee + split.school_amount == Decimal(gross)
    assert split.platform_fee >= 0
    assert split.school_amount >= 0


def test_platform_fee_rounds_half_up() -> None:
    # 5% of 0.10 is 0.005
    assert compute_split("0.10").platform_fee == Decimal("0.01")
    assert compute_split("0.30").platform_fee == Decimal("0.02")


def test_custom_percentage() -> None:
    split = compute_split(Decimal("20000"), Decimal("2.5"))
    assert split.platform_fee == Decimal("500.00")
    assert split.school_amount == Decimal("19500.00")


def test_rejects_invalid_input() -> None:
    with pytest.raises(ValueError):
        compute_split(Decimal("-1"))
    with pytest.raises(ValueError):
        compute_split(Decimal("100"), Decimal("101"))
    with pytest.raises(ValueError):
        compute_split(Decimal("100"), Decimal("-0.5"))


def test_minor_units() -> None:
    assert to_minor_units(Decimal("5000")) == 500000
    assert to_minor_units(Decimal("1234.56")) == 123456
    assert from_minor_units(1000000) == Decimal("10000.00")
    assert from_minor_units(150) == Decimal("1.50")


def test_receipt_number_format() -> None:
    receipt = generate_receipt_number(datetime(2024, 10, 18, tzinfo=timezone.utc))
    assert receipt.startswith("RCP241018")
    assert len(receipt) == 15
    assert receipt[9:].isalnum() and receipt[9:].upper() == receipt[9:]


def test_transaction_references_are_fresh() -> None:
    refs = {generate_transaction_reference() for _ in range(50)}
    assert len(refs) == 50
    assert all(ref.startswith("BRS-") for ref in refs)
    assert generate_transaction_reference("MAN").startswith("MAN-")
