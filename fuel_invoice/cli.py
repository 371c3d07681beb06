"""Command-line entrypoints for line tax, POS preview and POS export."""
from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich import print
from rich.table import Table

from .authoritative import build_confirmer
from .config import settings
from .editor import PurchaseOrderEditor
from .errors import InvalidInput, UnsplittableGroup
from .export import build_sales_records, preview_export, profiles_by_product
from .grouper import group_transactions
from .logging_conf import setup_logging
from .schemas import ExportPreview, ExportResponse, LineItem, ProductTaxProfile
from .sources import JsonFileTransactionSource
from .utils import parse_date, to_decimal

app = typer.Typer(add_completion=False, help="Fuel invoice CLI")


@app.callback()
def _configure(log_level: str = typer.Option(settings.log_level, help="Logging level")) -> None:
    setup_logging(log_level)


def _load_transactions(input: Path, day: Optional[str]):
    selected = None
    if day:
        selected = parse_date(day)
        if selected is None:
            raise typer.BadParameter(f"unparseable date: {day}", param_hint="--date")
    return JsonFileTransactionSource(input).list_transactions(selected, selected)


def _load_profiles(products: Optional[Path]) -> list[ProductTaxProfile]:
    if products is None:
        return []
    data = json.loads(products.read_text(encoding="utf-8"))
    return [ProductTaxProfile.model_validate(item) for item in data]


def _print_preview(preview: ExportPreview) -> None:
    print(f"[bold]Transactions:[/bold] {preview.total_transactions}  [bold]Groups:[/bold] {preview.total_groups}")
    if preview.groups_needing_split:
        print(f"[yellow]{preview.groups_needing_split} groups need splitting[/yellow] (threshold ₹{preview.threshold})")
    for entry in preview.groups:
        group = entry.group
        label = f"{group.product_name or group.product_id} / {group.payment_method_name or group.payment_method_id}"
        print(f"- {label}: qty {group.total_qty:.2f} @ ₹{group.avg_rate:.2f} = ₹{group.total_amount:.2f}")
        if entry.unsplittable_reason:
            print(f"  [red]cannot split: {entry.unsplittable_reason}[/red]")
        elif entry.needs_split:
            for line in entry.lines:
                note = f" ({line.adjustment_note})" if line.adjustment_note else ""
                print(f"  {line.sequence_index}. {line.quantity} x ₹{line.rate:.2f} = ₹{line.amount:.2f}{note}")


def _fail(message: str) -> NoReturn:
    print(f"[red]{message}[/red]")
    raise typer.Exit(code=1)


@app.command()
def line(
    quantity: float = typer.Option(..., help="Quantity"),
    rate: float = typer.Option(..., help="Unit rate"),
    discount: float = typer.Option(0.0, help="Discount amount"),
    gst: float = typer.Option(0.0, help="GST rate percent"),
    cess: float = typer.Option(0.0, help="Cess rate percent"),
    state: Optional[str] = typer.Option(None, help="Counterparty state"),
    home_state: str = typer.Option(settings.home_state, help="Home state"),
    product_id: Optional[int] = typer.Option(None, help="Product id, required for --confirm"),
    vendor_id: Optional[int] = typer.Option(None, help="Vendor id sent to the tax service"),
    confirm: bool = typer.Option(False, help="Confirm against the authoritative tax service"),
) -> None:
    """Compute GST and cess for a single line."""
    item = LineItem(
        product_id=product_id,
        quantity=to_decimal(quantity),
        unit_rate=to_decimal(rate),
        discount_amount=to_decimal(discount),
        gst_rate_percent=to_decimal(gst),
        cess_rate_percent=to_decimal(cess),
    )
    editor = PurchaseOrderEditor(
        home_state, state, vendor_id=vendor_id, confirmer=build_confirmer(settings) if confirm else None
    )
    try:
        line_id = editor.add_line(item)
    except InvalidInput as exc:
        _fail(str(exc))
    if confirm and not asyncio.run(editor.refresh_line(line_id)):
        print("[yellow]Authoritative tax unavailable, showing local result[/yellow]")
    computed = editor.line(line_id)

    print(f"[bold]Jurisdiction:[/bold] {editor.jurisdiction.value}")
    table = Table(title="Line tax")
    table.add_column("Field")
    table.add_column("Amount", justify="right")
    table.add_row("Line total", str(computed.line_total))
    table.add_row("Taxable", str(computed.taxable_amount))
    table.add_row("CGST", str(computed.breakdown.cgst_amount))
    table.add_row("SGST", str(computed.breakdown.sgst_amount))
    table.add_row("IGST", str(computed.breakdown.igst_amount))
    table.add_row("Cess", str(computed.breakdown.cess_amount))
    print(table)


@app.command()
def preview(
    input: Path = typer.Option(..., exists=True, dir_okay=False, help="JSON file with POS transactions"),
    date: Optional[str] = typer.Option(None, help="Only transactions on this date"),
    threshold: float = typer.Option(float(settings.threshold_amount), help="Invoice threshold amount"),
) -> None:
    """Group POS transactions and show how they would be split."""
    transactions = _load_transactions(input, date)
    try:
        result = preview_export(transactions, to_decimal(threshold))
    except InvalidInput as exc:
        _fail(str(exc))
    _print_preview(result)


@app.command()
def export(
    input: Path = typer.Option(..., exists=True, dir_okay=False, help="JSON file with POS transactions"),
    output: Path = typer.Option(..., help="Path to write sales records JSON"),
    products: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="JSON file with product tax rates"),
    date: Optional[str] = typer.Option(None, help="Only transactions on this date"),
    threshold: float = typer.Option(float(settings.threshold_amount), help="Invoice threshold amount"),
    last_bill_no: Optional[str] = typer.Option(None, help="Last bill number already issued"),
) -> None:
    """Build sales records for every group, splitting above the threshold."""
    transactions = _load_transactions(input, date)
    try:
        records = build_sales_records(
            group_transactions(transactions),
            to_decimal(threshold),
            profiles_by_product(_load_profiles(products)),
            last_bill_no=last_bill_no,
            default_date=parse_date(date) if date else None,
        )
    except (InvalidInput, UnsplittableGroup) as exc:
        _fail(str(exc))

    response = ExportResponse(count=len(records), records=records)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(response.model_dump_json(indent=2), encoding="utf-8")
    print(f"Exported {response.count} sales records -> {output}")


def main():
    app()


if __name__ == "__main__":
    main()
