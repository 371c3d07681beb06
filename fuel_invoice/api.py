"""FastAPI application exposing tax, reconciliation and POS export endpoints."""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .calculator import compute_line_totals, resolve_jurisdiction
from .config import settings
from .errors import InvalidInput, UnsplittableGroup
from .export import build_sales_records, preview_export, profiles_by_product
from .grouper import group_transactions
from .reconciler import reconcile
from .schemas import (
    DocumentTotals,
    ExportPreview,
    ExportRequest,
    ExportResponse,
    LineTaxRequest,
    LineTaxResponse,
    PreviewRequest,
    ReconcileRequest,
)

app = FastAPI(title="Fuel Invoice Service", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput) -> JSONResponse:
    return JSONResponse(status_code=422, content={"errors": exc.problems})


@app.exception_handler(UnsplittableGroup)
async def unsplittable_handler(request: Request, exc: UnsplittableGroup) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"error": "unsplittable_group", "reason": exc.reason, "group": exc.group.model_dump(mode="json")},
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/tax/line", response_model=LineTaxResponse)
def tax_line(payload: LineTaxRequest):
    jurisdiction = resolve_jurisdiction(payload.counterparty_state, settings.home_state)
    return LineTaxResponse(jurisdiction=jurisdiction, line=compute_line_totals(payload.item, jurisdiction))


@app.post("/purchase-orders/reconcile", response_model=DocumentTotals)
def reconcile_purchase_order(payload: ReconcileRequest):
    jurisdiction = resolve_jurisdiction(payload.counterparty_state, settings.home_state)
    return reconcile(payload.lines, payload.overrides, payload.current_totals, jurisdiction)


@app.post("/pos/preview", response_model=ExportPreview)
def pos_preview(payload: PreviewRequest):
    threshold = payload.threshold if payload.threshold is not None else settings.threshold_amount
    return preview_export(payload.transactions, threshold)


@app.post("/pos/export", response_model=ExportResponse)
def pos_export(payload: ExportRequest):
    threshold = payload.threshold if payload.threshold is not None else settings.threshold_amount
    records = build_sales_records(
        group_transactions(payload.transactions),
        threshold,
        profiles_by_product(payload.products),
        last_bill_no=payload.last_bill_no,
        default_date=payload.sale_date,
    )
    return ExportResponse(count=len(records), records=records)
