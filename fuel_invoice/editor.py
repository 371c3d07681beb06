"""A purchase-order editing session over the pure calculator and reconciler."""
from __future__ import annotations

import itertools
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from .authoritative import AuthoritativeConfirmer, Ticket
from .calculator import apply_cess_amount, apply_cess_rate, compute_line_totals, resolve_jurisdiction
from .reconciler import aggregate, edit_field
from .schemas import CessFields, ComputedLine, DocumentTotals, EntityId, Jurisdiction, LineItem, OracleRequest, TaxBreakdown

logger = logging.getLogger(__name__)


class PurchaseOrderEditor:
    """Holds the lines, per-field overrides and totals of one purchase order.

    Line edits recompute locally and re-aggregate at once. When a confirmer is
    attached, :meth:`refresh_line` asks the authoritative service and applies
    its answer only if no newer edit of that line has happened meanwhile.
    """

    def __init__(
        self,
        home_state: str,
        counterparty_state: Optional[str] = None,
        vendor_id: Optional[EntityId] = None,
        confirmer: Optional[AuthoritativeConfirmer] = None,
    ) -> None:
        self.home_state = home_state
        self.counterparty_state = counterparty_state
        self.vendor_id = vendor_id
        self.confirmer = confirmer
        self._ids = itertools.count(1)
        self._items: Dict[int, LineItem] = {}
        self._computed: Dict[int, ComputedLine] = {}
        self._tickets: Dict[int, Ticket] = {}
        self.totals = DocumentTotals()

    @property
    def jurisdiction(self) -> Jurisdiction:
        return resolve_jurisdiction(self.counterparty_state, self.home_state)

    @property
    def line_ids(self) -> List[int]:
        return list(self._items)

    def item(self, line_id: int) -> LineItem:
        return self._items[line_id]

    def line(self, line_id: int) -> ComputedLine:
        return self._computed[line_id]

    # Lines
    def add_line(self, item: LineItem) -> int:
        line_id = next(self._ids)
        self._set_line(line_id, item)
        return line_id

    def update_line(self, line_id: int, item: LineItem) -> ComputedLine:
        if line_id not in self._items:
            raise KeyError(line_id)
        self._set_line(line_id, item)
        return self._computed[line_id]

    def remove_line(self, line_id: int) -> None:
        del self._items[line_id]
        del self._computed[line_id]
        self._forget(line_id)
        self._refresh_totals()

    def set_counterparty_state(self, state: Optional[str], vendor_id: Optional[EntityId] = None) -> None:
        self.counterparty_state = state
        self.vendor_id = vendor_id
        for line_id, item in list(self._items.items()):
            self._set_line(line_id, item, refresh=False)
        self._refresh_totals()

    def edit_line_cess(self, line_id: int, rate: Optional[Decimal] = None, amount: Optional[Decimal] = None) -> CessFields:
        item = self._items[line_id]
        computed = self._computed[line_id]
        current = CessFields(rate_percent=item.cess_rate_percent, amount=computed.breakdown.cess_amount)
        fields = _edit_cess(item.taxable_amount, current, rate, amount)
        if fields is current:
            return current
        self._items[line_id] = item.model_copy(update={"cess_rate_percent": fields.rate_percent})
        breakdown = computed.breakdown.model_copy(update={"cess_amount": fields.amount})
        self._computed[line_id] = computed.model_copy(update={"breakdown": breakdown})
        self._refresh_totals()
        return fields

    # Authoritative results
    async def refresh_line(self, line_id: int) -> bool:
        """Ask the authoritative service about a line; True if its answer was applied."""
        if self.confirmer is None:
            return False
        item = self._items[line_id]
        ticket = self._tickets[line_id]
        if item.product_id is None:
            return False
        request = OracleRequest(
            product_id=item.product_id,
            quantity=item.quantity,
            purchase_rate=item.unit_rate,
            discount=item.discount_amount,
            vendor_id=self.vendor_id,
        )
        result = await self.confirmer.confirm(ticket, request)
        if result is None or line_id not in self._items:
            return False
        self.apply_authoritative(line_id, result)
        return True

    def apply_authoritative(self, line_id: int, breakdown: TaxBreakdown) -> None:
        self._computed[line_id] = self._computed[line_id].model_copy(update={"breakdown": breakdown})
        logger.debug("applied authoritative tax to line %d", line_id)
        self._refresh_totals()

    # Document-level fields
    def edit_total(self, field: str, value: Decimal) -> DocumentTotals:
        self.totals = edit_field(self.totals, field, value)
        return self.totals

    def release_override(self, field: str) -> DocumentTotals:
        self.totals = aggregate(self._lines(), self.totals.overrides.unset(field), self.totals)
        return self.totals

    def edit_document_cess(self, rate: Optional[Decimal] = None, amount: Optional[Decimal] = None) -> DocumentTotals:
        current = CessFields(rate_percent=self.totals.cess_rate, amount=self.totals.cess)
        fields = _edit_cess(self.totals.taxable_amount, current, rate, amount)
        if fields is current:
            return self.totals
        edited = edit_field(self.totals, "cess", fields.amount)
        self.totals = edited.model_copy(update={"cess_rate": fields.rate_percent})
        return self.totals

    def reset(self) -> None:
        for line_id in list(self._items):
            self._forget(line_id)
        self._items.clear()
        self._computed.clear()
        self._tickets.clear()
        self.totals = DocumentTotals(overrides=self.totals.overrides.cleared())

    def _lines(self) -> List[ComputedLine]:
        return list(self._computed.values())

    def _set_line(self, line_id: int, item: LineItem, refresh: bool = True) -> None:
        self._computed[line_id] = compute_line_totals(item, self.jurisdiction)
        self._items[line_id] = item
        if self.confirmer is not None:
            self._tickets[line_id] = self.confirmer.issue(line_id)
        if refresh:
            self._refresh_totals()

    def _forget(self, line_id: int) -> None:
        self._tickets.pop(line_id, None)
        if self.confirmer is not None:
            self.confirmer.sequencer.forget(line_id)

    def _refresh_totals(self) -> None:
        self.totals = aggregate(self._lines(), self.totals.overrides, self.totals)


def _edit_cess(taxable: Decimal, current: CessFields, rate: Optional[Decimal], amount: Optional[Decimal]) -> CessFields:
    if (rate is None) == (amount is None):
        raise ValueError("edit either the cess rate or the cess amount")
    if rate is not None:
        return apply_cess_rate(taxable, rate, current)
    return apply_cess_amount(taxable, amount, current)
