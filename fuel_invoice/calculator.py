"""Line-level GST and cess computation.

The calculator is pure: it takes a :class:`LineItem` and a
:class:`Jurisdiction` and returns rounded amounts. Intra-state lines split the
GST evenly into CGST and SGST, inter-state lines carry the whole amount as
IGST. Every component is rounded to the paisa on its own, so CGST + SGST may
differ from the rounded GST by one paisa.
"""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from .errors import InvalidInput
from .schemas import CessFields, ComputedLine, Jurisdiction, LineItem, TaxBreakdown
from .utils import HUNDRED, ZERO, money, round_to


def resolve_jurisdiction(counterparty_state: Optional[str], home_state: str) -> Jurisdiction:
    """Intra-state only when both states are known and match, ignoring case."""
    if not counterparty_state or not home_state:
        return Jurisdiction.INTER_STATE
    if counterparty_state.strip().lower() == home_state.strip().lower():
        return Jurisdiction.INTRA_STATE
    return Jurisdiction.INTER_STATE


def _rate_problems(name: str, value: Decimal) -> List[str]:
    if value < 0 or value > HUNDRED:
        return [f"range: {name}"]
    return []


def validate_line(item: LineItem) -> None:
    problems: List[str] = []
    if item.quantity < 0:
        problems.append("business: quantity_negative")
    if item.unit_rate < 0:
        problems.append("business: unit_rate_negative")
    if item.discount_amount < 0:
        problems.append("business: discount_negative")
    problems += _rate_problems("gst_rate_percent", item.gst_rate_percent)
    problems += _rate_problems("cess_rate_percent", item.cess_rate_percent)
    if problems:
        raise InvalidInput(problems)


def compute_tax(
    taxable: Decimal,
    gst_rate_percent: Decimal,
    cess_rate_percent: Decimal,
    jurisdiction: Jurisdiction,
) -> TaxBreakdown:
    """Split GST and compute cess on an already-derived taxable amount."""
    gst_amount = taxable * gst_rate_percent / HUNDRED
    if jurisdiction is Jurisdiction.INTRA_STATE:
        half = gst_amount / 2
        cgst, sgst, igst = money(half), money(half), ZERO
    else:
        cgst, sgst, igst = ZERO, ZERO, money(gst_amount)
    cess = money(taxable * cess_rate_percent / HUNDRED)
    return TaxBreakdown(cgst_amount=cgst, sgst_amount=sgst, igst_amount=igst, cess_amount=cess)


def compute_line(item: LineItem, jurisdiction: Jurisdiction) -> TaxBreakdown:
    validate_line(item)
    return compute_tax(item.taxable_amount, item.gst_rate_percent, item.cess_rate_percent, jurisdiction)


def compute_line_totals(item: LineItem, jurisdiction: Jurisdiction) -> ComputedLine:
    breakdown = compute_line(item, jurisdiction)
    return ComputedLine(
        line_total=money(item.line_total),
        taxable_amount=money(item.taxable_amount),
        discount_amount=money(item.discount_amount),
        breakdown=breakdown,
    )


def apply_cess_rate(taxable: Decimal, rate_percent: Decimal, current: CessFields) -> CessFields:
    """Set the cess rate and derive the amount from it.

    Leaves ``current`` untouched while there is nothing taxable.
    """
    problems = _rate_problems("cess_rate_percent", rate_percent)
    if problems:
        raise InvalidInput(problems)
    if taxable <= 0:
        return current
    return CessFields(rate_percent=rate_percent, amount=money(taxable * rate_percent / HUNDRED))


def apply_cess_amount(taxable: Decimal, amount: Decimal, current: CessFields) -> CessFields:
    """Set the cess amount and derive the rate from it.

    Leaves ``current`` untouched while there is nothing taxable.
    """
    if amount < 0:
        raise InvalidInput(["business: cess_amount_negative"])
    if taxable <= 0:
        return current
    rate = round_to(amount / taxable * HUNDRED, 2)
    problems = _rate_problems("cess_rate_percent", rate)
    if problems:
        raise InvalidInput(problems)
    return CessFields(rate_percent=rate, amount=amount)
