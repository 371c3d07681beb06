"""Cut a transaction group into invoice lines that stay under a monetary threshold.

Fuel groups keep the average rate and split by whole-unit quantity; the last
line absorbs whatever rounding drift the per-line ``qty * rate`` amounts leave
behind. Other goods split the amount evenly and apportion quantity by amount.
Either way the line amounts add up to the group total to the paisa.
"""
from __future__ import annotations

import logging
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal
from typing import List

from .errors import InvalidInput, UnsplittableGroup
from .schemas import SplitLine, TransactionGroup
from .utils import ZERO, money, round_to

logger = logging.getLogger(__name__)

QTY_PLACES = 3


def split_group(group: TransactionGroup, threshold: Decimal) -> List[SplitLine]:
    if threshold <= 0:
        raise InvalidInput(["range: threshold_amount"])
    if not group.needs_split(threshold):
        return [
            SplitLine(
                sequence_index=1,
                quantity=group.total_qty,
                rate=group.avg_rate,
                amount=group.total_amount,
            )
        ]
    if group.is_fuel:
        lines = _split_by_quantity(group, threshold)
    else:
        lines = _split_by_amount(group, threshold)
    logger.debug("split group %s into %d lines", group.key, len(lines))
    return lines


def _split_by_quantity(group: TransactionGroup, threshold: Decimal) -> List[SplitLine]:
    rate = group.avg_rate
    max_qty = (threshold / rate).to_integral_value(rounding=ROUND_FLOOR) if rate > 0 else ZERO
    if max_qty <= 0:
        reason = "zero average rate" if rate <= 0 else "unit rate exceeds threshold"
        logger.warning("cannot split fuel group %s: %s", group.key, reason)
        raise UnsplittableGroup(group, reason)

    lines: List[SplitLine] = []
    remaining = group.total_qty
    while remaining > 0:
        qty = min(remaining, max_qty)
        lines.append(
            SplitLine(sequence_index=len(lines) + 1, quantity=qty, rate=rate, amount=money(qty * rate))
        )
        remaining -= qty

    drift = group.total_amount - sum((line.amount for line in lines), ZERO)
    last = lines[-1]
    last.amount = money(last.amount + drift)
    last.adjustment_note = f"Adjusted ₹{drift:+.2f}"
    if drift:
        logger.debug("applied rounding drift %s to line %d", drift, last.sequence_index)
    return lines


def _split_by_amount(group: TransactionGroup, threshold: Decimal) -> List[SplitLine]:
    total = group.total_amount
    count = int((total / threshold).to_integral_value(rounding=ROUND_CEILING))
    share = money(total / count)

    lines: List[SplitLine] = []
    allocated = ZERO
    for index in range(1, count + 1):
        amount = total - allocated if index == count else share
        allocated += amount
        qty = round_to(group.total_qty * amount / total, QTY_PLACES) if total > 0 else ZERO
        lines.append(SplitLine(sequence_index=index, quantity=qty, rate=group.avg_rate, amount=amount))
    return lines
