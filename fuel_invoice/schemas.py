"""Data models used across the calculator, reconciler, splitter, CLI, and API."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

EntityId = Union[int, str]
PartyNameStrategy = Literal["fixed", "credit_customer"]

OVERRIDABLE_FIELDS = ("cgst", "sgst", "igst", "cess", "discount")


class Jurisdiction(str, Enum):
    INTRA_STATE = "intra_state"
    INTER_STATE = "inter_state"


class LineItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    product_id: Optional[EntityId] = None
    quantity: Decimal = Decimal("0")
    unit_rate: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    gst_rate_percent: Decimal = Decimal("0")
    cess_rate_percent: Decimal = Decimal("0")

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_rate

    @property
    def taxable_amount(self) -> Decimal:
        """Line total minus discount, never below zero."""
        return max(Decimal("0"), self.line_total - self.discount_amount)


class TaxBreakdown(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cgst_amount: Decimal = Decimal("0")
    sgst_amount: Decimal = Decimal("0")
    igst_amount: Decimal = Decimal("0")
    cess_amount: Decimal = Decimal("0")

    @property
    def total_tax(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount + self.igst_amount + self.cess_amount


class ComputedLine(BaseModel):
    """A line item with its derived amounts and tax breakdown."""

    model_config = ConfigDict(extra="ignore")

    line_total: Decimal
    taxable_amount: Decimal
    discount_amount: Decimal
    breakdown: TaxBreakdown


class CessFields(BaseModel):
    """The cess rate/amount pair that can be edited from either side."""

    model_config = ConfigDict(extra="ignore")

    rate_percent: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")


class OverrideFlags(BaseModel):
    """Which document-level fields hold a manual value."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    cgst: bool = False
    sgst: bool = False
    igst: bool = False
    cess: bool = False
    discount: bool = False

    def is_set(self, field: str) -> bool:
        _check_overridable(field)
        return getattr(self, field)

    def set(self, field: str) -> "OverrideFlags":
        _check_overridable(field)
        return self.model_copy(update={field: True})

    def unset(self, field: str) -> "OverrideFlags":
        _check_overridable(field)
        return self.model_copy(update={field: False})

    def cleared(self) -> "OverrideFlags":
        return OverrideFlags()


def _check_overridable(field: str) -> None:
    if field not in OVERRIDABLE_FIELDS:
        raise KeyError(f"not an overridable field: {field}")


class DocumentTotals(BaseModel):
    model_config = ConfigDict(extra="ignore")

    subtotal: Decimal = Decimal("0")
    taxable_amount: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    cgst: Decimal = Decimal("0")
    sgst: Decimal = Decimal("0")
    igst: Decimal = Decimal("0")
    cess: Decimal = Decimal("0")
    cess_rate: Decimal = Decimal("0")
    grand_total: Decimal = Decimal("0")
    overrides: OverrideFlags = Field(default_factory=OverrideFlags)


class TransactionRecord(BaseModel):
    """A point-of-sale transaction as captured at sale time."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: Optional[EntityId] = None
    product_id: EntityId
    product_name: Optional[str] = None
    is_fuel: bool = False
    payment_method_id: EntityId
    payment_method_name: Optional[str] = None
    bill_mode: Optional[str] = None
    party_name_strategy: Optional[PartyNameStrategy] = None
    default_party_name: Optional[str] = None
    party_name_uppercase: bool = False
    credit_customer_id: Optional[EntityId] = None
    credit_customer_name: Optional[str] = None
    quantity: Decimal = Decimal("0")
    rate: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")
    transaction_time: Optional[datetime] = None


GroupKey = Tuple[EntityId, EntityId, Optional[EntityId]]


class TransactionGroup(BaseModel):
    model_config = ConfigDict(extra="ignore")

    product_id: EntityId
    payment_method_id: EntityId
    credit_customer_id: Optional[EntityId] = None
    product_name: Optional[str] = None
    is_fuel: bool = False
    payment_method_name: Optional[str] = None
    bill_mode: Optional[str] = None
    party_name_strategy: Optional[PartyNameStrategy] = None
    default_party_name: Optional[str] = None
    party_name_uppercase: bool = False
    credit_customer_name: Optional[str] = None
    first_transaction_time: Optional[datetime] = None
    total_qty: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    transaction_ids: List[EntityId] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def avg_rate(self) -> Decimal:
        if self.total_qty == 0:
            return Decimal("0")
        return self.total_amount / self.total_qty

    @property
    def key(self) -> GroupKey:
        return (self.product_id, self.payment_method_id, self.credit_customer_id)

    def needs_split(self, threshold: Decimal) -> bool:
        return self.total_amount > threshold


class SplitLine(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sequence_index: int
    quantity: Decimal
    rate: Decimal
    amount: Decimal
    adjustment_note: Optional[str] = None


class GroupPreview(BaseModel):
    model_config = ConfigDict(extra="ignore")

    group: TransactionGroup
    needs_split: bool
    invoice_count: int
    lines: List[SplitLine] = Field(default_factory=list)
    unsplittable_reason: Optional[str] = None


class ExportPreview(BaseModel):
    model_config = ConfigDict(extra="ignore")

    threshold: Decimal
    total_transactions: int
    total_groups: int
    groups_needing_split: int
    groups: List[GroupPreview]


class ProductTaxProfile(BaseModel):
    """Rates configured on a product master record, applied to POS sales."""

    model_config = ConfigDict(extra="ignore")

    product_id: EntityId
    gst_rate_percent: Decimal = Decimal("0")
    cess_rate_percent: Decimal = Decimal("0")
    tcs_rate_percent: Decimal = Decimal("0")


class SalesRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sale_date: date
    bill_no: str
    bill_mode: Optional[str] = None
    party_name: str
    registration_type: str = "unregistered/consumer"
    gstin: Optional[str] = None
    item_name: Optional[str] = None
    qty: Decimal
    rate: Decimal
    amount: Decimal
    gst_rate: Decimal = Decimal("0")
    taxable_value: Decimal
    cgst: Decimal = Decimal("0")
    sgst: Decimal = Decimal("0")
    igst: Decimal = Decimal("0")
    cess_rate: Decimal = Decimal("0")
    cess_amount: Decimal = Decimal("0")
    tcs_rate: Decimal = Decimal("0")
    tcs_amount: Decimal = Decimal("0")
    invoice_value: Decimal
    source: str = "POS"
    status: str = "Posted"
    product_id: EntityId
    payment_method_id: EntityId
    product_type: Literal["Fuel", "NonFuel"]
    pos_txn_ids: List[EntityId] = Field(default_factory=list)
    credit_customer_id: Optional[EntityId] = None
    split_index: int = 1
    adjustment_note: Optional[str] = None


class OracleRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    product_id: EntityId
    quantity: Decimal
    purchase_rate: Decimal
    discount: Decimal = Decimal("0")
    vendor_id: Optional[EntityId] = None


class LineTaxRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    item: LineItem
    counterparty_state: Optional[str] = None


class LineTaxResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    jurisdiction: Jurisdiction
    line: ComputedLine


class ReconcileRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lines: List[LineItem] = Field(default_factory=list)
    overrides: OverrideFlags = Field(default_factory=OverrideFlags)
    current_totals: Optional[DocumentTotals] = None
    counterparty_state: Optional[str] = None


class PreviewRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transactions: List[TransactionRecord]
    threshold: Optional[Decimal] = None


class ExportRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transactions: List[TransactionRecord]
    threshold: Optional[Decimal] = None
    products: List[ProductTaxProfile] = Field(default_factory=list)
    last_bill_no: Optional[str] = None
    sale_date: Optional[date] = None


class ExportResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    count: int
    records: List[SalesRecord]
