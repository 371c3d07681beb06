"""Turn grouped POS transactions into sales records for the books."""
from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .calculator import compute_tax
from .errors import UnsplittableGroup
from .grouper import group_transactions
from .schemas import (
    EntityId,
    ExportPreview,
    GroupPreview,
    Jurisdiction,
    ProductTaxProfile,
    SalesRecord,
    SplitLine,
    TransactionGroup,
    TransactionRecord,
)
from .splitter import split_group
from .utils import HUNDRED, ZERO, money

logger = logging.getLogger(__name__)

SalesSink = Callable[[SalesRecord], object]

DEFAULT_PARTY_NAME = "Cash"
CREDIT_PARTY_NAME = "CREDIT CUSTOMER"
BILL_NO_WIDTH = 4


def preview_export(transactions: Sequence[TransactionRecord], threshold: Decimal) -> ExportPreview:
    groups = group_transactions(transactions)
    previews: List[GroupPreview] = []
    for group in groups:
        needs_split = group.needs_split(threshold)
        try:
            lines = split_group(group, threshold)
        except UnsplittableGroup as exc:
            previews.append(
                GroupPreview(group=group, needs_split=needs_split, invoice_count=0, unsplittable_reason=exc.reason)
            )
            continue
        previews.append(GroupPreview(group=group, needs_split=needs_split, invoice_count=len(lines), lines=lines))

    return ExportPreview(
        threshold=threshold,
        total_transactions=len(transactions),
        total_groups=len(previews),
        groups_needing_split=sum(1 for p in previews if p.needs_split),
        groups=previews,
    )


def next_bill_number(last_bill_no: Optional[str]) -> str:
    """Continue the global bill sequence from the digits of the last bill number."""
    if not last_bill_no:
        return "1".zfill(BILL_NO_WIDTH)
    digits = re.sub(r"\D", "", str(last_bill_no))
    last = int(digits) if digits else 0
    return str(last + 1).zfill(BILL_NO_WIDTH)


def resolve_party_name(group: TransactionGroup) -> str:
    if group.credit_customer_id is not None:
        name = group.credit_customer_name or CREDIT_PARTY_NAME
    elif group.party_name_strategy == "fixed":
        name = group.default_party_name or DEFAULT_PARTY_NAME
    else:
        return DEFAULT_PARTY_NAME
    return name.upper() if group.party_name_uppercase else name


def _sale_date(group: TransactionGroup, default: date) -> date:
    if group.first_transaction_time is not None:
        return group.first_transaction_time.date()
    return default


def build_sales_record(
    group: TransactionGroup,
    line: SplitLine,
    bill_no: str,
    sale_date: date,
    profile: Optional[ProductTaxProfile] = None,
    transaction_ids: Iterable[EntityId] = (),
) -> SalesRecord:
    amount = line.amount
    taxed = profile is not None and not group.is_fuel
    gst_rate = profile.gst_rate_percent if taxed else ZERO
    cess_rate = profile.cess_rate_percent if taxed else ZERO
    tcs_rate = profile.tcs_rate_percent if taxed else ZERO

    # counter sales are always within the station's own state
    tax = compute_tax(amount, gst_rate, cess_rate, Jurisdiction.INTRA_STATE)
    tcs_amount = money(amount * tcs_rate / HUNDRED)

    return SalesRecord(
        sale_date=sale_date,
        bill_no=bill_no,
        bill_mode=group.bill_mode,
        party_name=resolve_party_name(group),
        item_name=group.product_name,
        qty=line.quantity,
        rate=line.rate,
        amount=amount,
        gst_rate=gst_rate,
        taxable_value=amount,
        cgst=tax.cgst_amount,
        sgst=tax.sgst_amount,
        igst=tax.igst_amount,
        cess_rate=cess_rate,
        cess_amount=tax.cess_amount,
        tcs_rate=tcs_rate,
        tcs_amount=tcs_amount,
        invoice_value=money(amount + tax.total_tax + tcs_amount),
        product_id=group.product_id,
        payment_method_id=group.payment_method_id,
        product_type="Fuel" if group.is_fuel else "NonFuel",
        pos_txn_ids=list(transaction_ids),
        credit_customer_id=group.credit_customer_id,
        split_index=line.sequence_index,
        adjustment_note=line.adjustment_note,
    )


def build_sales_records(
    groups: Sequence[TransactionGroup],
    threshold: Decimal,
    profiles: Optional[Mapping[EntityId, ProductTaxProfile]] = None,
    last_bill_no: Optional[str] = None,
    default_date: Optional[date] = None,
) -> List[SalesRecord]:
    """Split every group and build one sales record per line.

    Raises :class:`UnsplittableGroup` for the first group that cannot be split;
    nothing is built for the groups after it.
    """
    profiles = profiles or {}
    default_date = default_date or date.today()
    records: List[SalesRecord] = []
    bill_no = last_bill_no
    for group in groups:
        lines = split_group(group, threshold)
        # only an unsplit invoice can be traced back to its POS transactions
        txn_ids = group.transaction_ids if len(lines) == 1 else []
        for line in lines:
            bill_no = next_bill_number(bill_no)
            records.append(
                build_sales_record(
                    group,
                    line,
                    bill_no,
                    _sale_date(group, default_date),
                    profiles.get(group.product_id),
                    txn_ids,
                )
            )
    return records


def export_groups(
    groups: Sequence[TransactionGroup],
    threshold: Decimal,
    sink: SalesSink,
    profiles: Optional[Mapping[EntityId, ProductTaxProfile]] = None,
    last_bill_no: Optional[str] = None,
    default_date: Optional[date] = None,
) -> List[SalesRecord]:
    """Hand each sales record to ``sink`` in order and return the delivered ones.

    A failing sink call propagates; records delivered before it stay delivered.
    """
    profiles = profiles or {}
    delivered: List[SalesRecord] = []
    bill_no = last_bill_no
    for group in groups:
        records = build_sales_records([group], threshold, profiles, bill_no, default_date)
        for record in records:
            sink(record)
            delivered.append(record)
            bill_no = record.bill_no
    logger.info("exported %d sales records from %d groups", len(delivered), len(groups))
    return delivered


def profiles_by_product(profiles: Iterable[ProductTaxProfile]) -> Dict[EntityId, ProductTaxProfile]:
    return {profile.product_id: profile for profile in profiles}
