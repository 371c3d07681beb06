"""Aggregate line-level tax into purchase-order totals, honouring manual overrides."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Optional, Sequence

from .calculator import compute_line_totals
from .errors import InvalidInput
from .schemas import OVERRIDABLE_FIELDS, ComputedLine, DocumentTotals, Jurisdiction, LineItem, OverrideFlags
from .utils import ZERO, money

logger = logging.getLogger(__name__)


def _line_sums(lines: Sequence[ComputedLine]) -> Dict[str, Decimal]:
    sums = {
        "subtotal": ZERO,
        "taxable_amount": ZERO,
        "discount": ZERO,
        "cgst": ZERO,
        "sgst": ZERO,
        "igst": ZERO,
        "cess": ZERO,
    }
    for line in lines:
        sums["subtotal"] += line.line_total
        sums["taxable_amount"] += line.taxable_amount
        sums["discount"] += line.discount_amount
        sums["cgst"] += line.breakdown.cgst_amount
        sums["sgst"] += line.breakdown.sgst_amount
        sums["igst"] += line.breakdown.igst_amount
        sums["cess"] += line.breakdown.cess_amount
    return {name: money(value) for name, value in sums.items()}


def grand_total(totals: DocumentTotals) -> Decimal:
    base = max(ZERO, totals.taxable_amount - totals.discount)
    return money(base + totals.cgst + totals.sgst + totals.igst + totals.cess)


def aggregate(
    lines: Sequence[ComputedLine],
    overrides: OverrideFlags,
    current_totals: Optional[DocumentTotals] = None,
) -> DocumentTotals:
    """Sum already-computed lines; overridden fields keep their current value."""
    current = current_totals or DocumentTotals()
    sums = _line_sums(lines)
    values = {
        "subtotal": sums["subtotal"],
        "taxable_amount": sums["taxable_amount"],
        "cess_rate": current.cess_rate,
    }
    for field in OVERRIDABLE_FIELDS:
        values[field] = getattr(current, field) if overrides.is_set(field) else sums[field]

    totals = DocumentTotals(overrides=overrides, **values)
    totals.grand_total = grand_total(totals)
    logger.debug("reconciled %d lines -> grand total %s", len(lines), totals.grand_total)
    return totals


def reconcile(
    lines: Sequence[LineItem],
    overrides: OverrideFlags,
    current_totals: Optional[DocumentTotals] = None,
    jurisdiction: Jurisdiction = Jurisdiction.INTER_STATE,
) -> DocumentTotals:
    computed = [compute_line_totals(item, jurisdiction) for item in lines]
    return aggregate(computed, overrides, current_totals)


def edit_field(totals: DocumentTotals, field: str, value: Decimal) -> DocumentTotals:
    """Record a direct user edit of a document-level field and mark it overridden."""
    if value < 0:
        raise InvalidInput([f"business: {field}_negative"])
    overrides = totals.overrides.set(field)
    edited = totals.model_copy(update={field: money(value), "overrides": overrides})
    edited.grand_total = grand_total(edited)
    return edited


def release_field(
    lines: Sequence[ComputedLine],
    totals: DocumentTotals,
    field: str,
) -> DocumentTotals:
    """Return a field to automatic aggregation."""
    return aggregate(lines, totals.overrides.unset(field), totals)
