"""Shared fixtures for the fuel invoice test suite."""

from datetime import datetime
from decimal import Decimal

import pytest

from fuel_invoice.schemas import LineItem, TransactionGroup, TransactionRecord


def make_txn(**overrides) -> TransactionRecord:
    data = {
        "id": 1,
        "product_id": 1,
        "product_name": "Petrol",
        "is_fuel": True,
        "payment_method_id": 10,
        "payment_method_name": "Cash",
        "bill_mode": "cash",
        "quantity": Decimal("50"),
        "rate": Decimal("90"),
        "amount": Decimal("4500"),
        "transaction_time": datetime(2025, 1, 15, 9, 30),
    }
    data.update(overrides)
    return TransactionRecord(**data)


@pytest.fixture
def txn_factory():
    return make_txn


@pytest.fixture
def diesel_line() -> LineItem:
    """100 litres at ₹90 with 18% GST, no discount or cess."""
    return LineItem(
        product_id=7,
        quantity=Decimal("100"),
        unit_rate=Decimal("90"),
        gst_rate_percent=Decimal("18"),
    )


@pytest.fixture
def lube_line() -> LineItem:
    return LineItem(
        product_id=8,
        quantity=Decimal("10"),
        unit_rate=Decimal("50"),
        discount_amount=Decimal("50"),
        gst_rate_percent=Decimal("12"),
        cess_rate_percent=Decimal("1"),
    )


@pytest.fixture
def fuel_group() -> TransactionGroup:
    return TransactionGroup(
        product_id=1,
        product_name="Diesel",
        payment_method_id=10,
        is_fuel=True,
        total_qty=Decimal("500"),
        total_amount=Decimal("45000.00"),
        transaction_ids=[1, 2, 3],
    )


@pytest.fixture
def shop_group() -> TransactionGroup:
    return TransactionGroup(
        product_id=2,
        product_name="Engine Oil",
        payment_method_id=11,
        is_fuel=False,
        total_qty=Decimal("200"),
        total_amount=Decimal("70000.00"),
    )
