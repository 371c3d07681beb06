"""Tests for the purchase-order editing session."""

from decimal import Decimal

import pytest

from fuel_invoice.editor import PurchaseOrderEditor
from fuel_invoice.schemas import OVERRIDABLE_FIELDS, LineItem


@pytest.fixture
def editor() -> PurchaseOrderEditor:
    return PurchaseOrderEditor(home_state="karnataka", counterparty_state="Karnataka")


def test_line_changes_update_totals(editor, diesel_line, lube_line):
    first = editor.add_line(diesel_line)
    editor.add_line(lube_line)
    assert editor.totals.cgst == Decimal("837.00")

    editor.remove_line(first)
    assert editor.totals.cgst == Decimal("27.00")
    assert editor.line_ids == [2]


def test_override_survives_line_edits(editor, diesel_line):
    line_id = editor.add_line(diesel_line)
    editor.edit_total("cgst", Decimal("800"))
    editor.update_line(line_id, diesel_line.model_copy(update={"quantity": Decimal("200")}))

    assert editor.totals.cgst == Decimal("800.00")
    assert editor.totals.sgst == Decimal("1620.00")
    assert editor.totals.overrides.cgst is True


def test_release_override(editor, diesel_line):
    editor.add_line(diesel_line)
    editor.edit_total("discount", Decimal("100"))
    totals = editor.release_override("discount")
    assert totals.discount == 0
    assert totals.overrides.discount is False


def test_vendor_state_change_recomputes(editor, diesel_line):
    editor.add_line(diesel_line)
    editor.set_counterparty_state("Maharashtra")
    assert editor.totals.igst == Decimal("1620.00")
    assert editor.totals.cgst == 0
    assert editor.totals.sgst == 0


def test_line_cess_amount_sets_rate(editor, diesel_line):
    line_id = editor.add_line(diesel_line)
    fields = editor.edit_line_cess(line_id, amount=Decimal("90"))
    assert fields.rate_percent == Decimal("1.00")
    assert editor.item(line_id).cess_rate_percent == Decimal("1.00")
    assert editor.totals.cess == Decimal("90.00")


def test_line_cess_on_zero_taxable_is_noop(editor):
    line_id = editor.add_line(
        LineItem(quantity=1, unit_rate=100, discount_amount=100, cess_rate_percent=Decimal("3"))
    )
    fields = editor.edit_line_cess(line_id, amount=Decimal("25"))
    assert fields.rate_percent == Decimal("3")
    assert fields.amount == 0
    assert editor.totals.cess == 0


def test_line_cess_needs_exactly_one_side(editor, diesel_line):
    line_id = editor.add_line(diesel_line)
    with pytest.raises(ValueError):
        editor.edit_line_cess(line_id)


def test_document_cess_rate(editor, diesel_line):
    editor.add_line(diesel_line)
    totals = editor.edit_document_cess(rate=Decimal("2"))
    assert totals.cess == Decimal("180.00")
    assert totals.cess_rate == Decimal("2")
    assert totals.overrides.cess is True


def test_document_cess_without_lines_is_noop(editor):
    totals = editor.edit_document_cess(amount=Decimal("50"))
    assert totals.cess == 0
    assert totals.overrides.cess is False


def test_reset_clears_everything(editor, diesel_line):
    editor.add_line(diesel_line)
    editor.edit_total("igst", Decimal("5"))
    editor.reset()
    assert editor.line_ids == []
    assert editor.totals.igst == 0
    assert editor.totals.overrides.igst is False


def test_reset_releases_every_override(editor, diesel_line):
    editor.add_line(diesel_line)
    editor.edit_total("cgst", Decimal("1"))
    editor.edit_total("discount", Decimal("2"))
    editor.reset()
    editor.add_line(diesel_line)
    assert not any(editor.totals.overrides.is_set(field) for field in OVERRIDABLE_FIELDS)
    assert editor.totals.cgst == Decimal("810.00")
    assert editor.totals.discount == 0
