"""Tests for POS export preview and sales record construction."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from fuel_invoice.errors import UnsplittableGroup
from fuel_invoice.export import (
    build_sales_records,
    export_groups,
    next_bill_number,
    preview_export,
    resolve_party_name,
)
from fuel_invoice.grouper import group_transactions
from fuel_invoice.schemas import ProductTaxProfile, TransactionGroup

THRESHOLD = Decimal("30000")


@pytest.mark.parametrize(
    "last, expected",
    [(None, "0001"), ("", "0001"), ("0009", "0010"), ("INV-0123", "0124"), ("9999", "10000"), ("ABC", "0001")],
)
def test_next_bill_number(last, expected):
    assert next_bill_number(last) == expected


class TestPartyName:
    def _group(self, **fields) -> TransactionGroup:
        return TransactionGroup(product_id=1, payment_method_id=1, **fields)

    def test_credit_customer_name(self):
        group = self._group(credit_customer_id=5, credit_customer_name="Acme Logistics", party_name_uppercase=True)
        assert resolve_party_name(group) == "ACME LOGISTICS"

    def test_credit_customer_without_name(self):
        assert resolve_party_name(self._group(credit_customer_id=5)) == "CREDIT CUSTOMER"

    def test_fixed_strategy(self):
        group = self._group(party_name_strategy="fixed", default_party_name="Card Sales")
        assert resolve_party_name(group) == "Card Sales"

    def test_fixed_strategy_without_default(self):
        group = self._group(party_name_strategy="fixed", party_name_uppercase=True)
        assert resolve_party_name(group) == "CASH"

    def test_fallback(self):
        assert resolve_party_name(self._group()) == "Cash"


def test_preview_counts(txn_factory):
    txns = [
        txn_factory(id=1, quantity=Decimal("300"), amount=Decimal("27000")),
        txn_factory(id=2, quantity=Decimal("200"), amount=Decimal("18000")),
        txn_factory(id=3, product_id=2, is_fuel=False, quantity=Decimal("4"), amount=Decimal("1200")),
        txn_factory(id=4, product_id=3, quantity=Decimal("0"), amount=Decimal("35000")),
    ]
    preview = preview_export(txns, THRESHOLD)
    assert preview.total_transactions == 4
    assert preview.total_groups == 3
    assert preview.groups_needing_split == 2

    fuel, shop, broken = preview.groups
    assert fuel.needs_split and fuel.invoice_count == 2
    assert not shop.needs_split and shop.invoice_count == 1
    assert broken.unsplittable_reason == "zero average rate"
    assert broken.lines == []


def test_fuel_records_are_untaxed(txn_factory):
    txns = [
        txn_factory(id=1, quantity=Decimal("300"), amount=Decimal("27000")),
        txn_factory(id=2, quantity=Decimal("200"), amount=Decimal("18000")),
    ]
    profiles = {1: ProductTaxProfile(product_id=1, gst_rate_percent=Decimal("18"))}
    records = build_sales_records(group_transactions(txns), THRESHOLD, profiles, last_bill_no="0041")

    assert [r.bill_no for r in records] == ["0042", "0043"]
    assert [r.amount for r in records] == [Decimal("29970.00"), Decimal("15030.00")]
    assert all(r.product_type == "Fuel" for r in records)
    assert all(r.cgst == 0 and r.gst_rate == 0 for r in records)
    assert records[0].invoice_value == records[0].amount
    assert records[0].sale_date == date(2025, 1, 15)
    assert records[0].pos_txn_ids == []
    assert [r.split_index for r in records] == [1, 2]


def test_non_fuel_record_taxes(txn_factory):
    txns = [
        txn_factory(id=7, product_id=2, product_name="Coolant", is_fuel=False, amount=Decimal("1000")),
    ]
    profiles = {2: ProductTaxProfile(product_id=2, gst_rate_percent=18, cess_rate_percent=1, tcs_rate_percent=1)}
    (record,) = build_sales_records(group_transactions(txns), THRESHOLD, profiles)

    assert record.bill_no == "0001"
    assert record.item_name == "Coolant"
    assert record.taxable_value == Decimal("1000")
    assert record.cgst == Decimal("90.00")
    assert record.sgst == Decimal("90.00")
    assert record.igst == 0
    assert record.cess_amount == Decimal("10.00")
    assert record.tcs_amount == Decimal("10.00")
    assert record.invoice_value == Decimal("1200.00")
    assert record.pos_txn_ids == [7]
    assert record.party_name == "Cash"


def test_default_date_without_transaction_time(txn_factory):
    groups = group_transactions([txn_factory(transaction_time=None)])
    (record,) = build_sales_records(groups, THRESHOLD, default_date=date(2025, 2, 1))
    assert record.sale_date == date(2025, 2, 1)


def test_unsplittable_group_raises(txn_factory):
    groups = group_transactions([txn_factory(quantity=0, amount=Decimal("31000"))])
    with pytest.raises(UnsplittableGroup):
        build_sales_records(groups, THRESHOLD)


def test_export_continues_bill_sequence(txn_factory):
    txns = [
        txn_factory(id=1, quantity=Decimal("500"), amount=Decimal("45000")),
        txn_factory(id=2, product_id=2, is_fuel=False, amount=Decimal("500")),
    ]
    delivered = []
    records = export_groups(group_transactions(txns), THRESHOLD, delivered.append, last_bill_no="0099")
    assert [r.bill_no for r in records] == ["0100", "0101", "0102"]
    assert delivered == records


def test_export_sink_failure_propagates(txn_factory):
    txns = [txn_factory(id=1, quantity=Decimal("500"), amount=Decimal("45000"))]
    delivered = []

    def flaky_sink(record):
        if record.split_index == 2:
            raise RuntimeError("sales table locked")
        delivered.append(record)

    with pytest.raises(RuntimeError):
        export_groups(group_transactions(txns), THRESHOLD, flaky_sink)
    assert [r.split_index for r in delivered] == [1]


def test_first_transaction_time_sets_sale_date(txn_factory):
    txns = [txn_factory(transaction_time=datetime(2025, 3, 9, 23, 59))]
    (record,) = build_sales_records(group_transactions(txns), THRESHOLD)
    assert record.sale_date == date(2025, 3, 9)
