"""
Pydantic API Schemas for Request/Response validation.
Responses are camelCase on the wire; acronyms keep their capitals (totalPOs, linkedGRNsCount).
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..domain.entities import (
    GRNAcceptanceStatus,
    GRNInvoiceStatus,
    InvoiceGRNStatus,
    InvoicePOStatus,
    POGRNStatus,
    POInvoiceStatus,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ─── Request ──────────────────────────────────────────────────────────────────

class DateRangeQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date_from: str | None = Field(default=None, alias="from")
    date_to: str | None = Field(default=None, alias="to")


class WorkspaceFilterQuery(BaseModel):
    """Decoded workspace query string. Facets accept a JSON array or a single string."""
    date_range: DateRangeQuery | None = None
    date_type: str | None = None
    site: list[str] = []
    city: list[str] = []
    buyer: list[str] = []
    seller: list[str] = []
    search: str = ""
    article: str = ""
    invoice_status: list[str] = []
    grn_status: list[str] = []
    po_status: list[str] = []
    acceptance_status: list[str] = []

    @field_validator(
        "site", "city", "buyer", "seller",
        "invoice_status", "grn_status", "po_status", "acceptance_status",
        mode="before",
    )
    @classmethod
    def _listify(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


# ─── Shared response pieces ───────────────────────────────────────────────────

class PaginationSchema(CamelModel):
    total: int
    page: int
    pages: int
    limit: int


class FilterOptionsSchema(CamelModel):
    sites: list[str] = []
    cities: list[str] = []
    buyers: list[str] = []
    sellers: list[str] = []
    statuses: dict[str, list[str]] = {}


class ErrorResponse(BaseModel):
    success: bool = False
    message: str


class DetailResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]


# ─── PO workspace ─────────────────────────────────────────────────────────────

class POWorkspaceRowSchema(CamelModel):
    id: str
    po_number: str
    po_date: str
    buyer: str
    seller: str
    site: str
    city: str
    po_qty: float
    po_value: float
    invoiced_qty: float
    invoiced_value: float
    grn_accepted_qty: float
    grn_rejected_qty: float
    qty_invoiced_percent: str
    value_invoiced_percent: str
    qty_received_percent: str
    invoice_status: POInvoiceStatus
    grn_status: list[POGRNStatus]
    linked_invoices_count: int
    linked_grns_count: int = Field(alias="linkedGRNsCount")


class POSummarySchema(CamelModel):
    total_pos: int = Field(alias="totalPOs")
    open: int
    partially_invoiced: int
    fully_invoiced: int
    over_invoiced: int
    no_grn_yet: int = Field(alias="noGRNYet")
    partially_received: int
    fully_received: int
    over_received: int
    has_rejections: int


class POTotalsSchema(CamelModel):
    rows: int
    po_qty: float
    po_value: float
    invoiced_qty: float
    invoiced_value: float
    grn_accepted_qty: float
    grn_rejected_qty: float
    avg_qty_invoiced: float


class POWorkspaceData(CamelModel):
    pos: list[POWorkspaceRowSchema]
    summary: POSummarySchema
    totals: POTotalsSchema
    pagination: PaginationSchema
    filter_options: FilterOptionsSchema


class POWorkspaceResponse(BaseModel):
    success: bool = True
    data: POWorkspaceData


# ─── Invoice workspace ────────────────────────────────────────────────────────

class InvoiceWorkspaceRowSchema(CamelModel):
    id: str
    invoice_number: str
    invoice_date: str
    po_number: str
    buyer: str
    seller: str
    site: str
    city: str
    invoice_qty: float
    gross_amount: float
    gst_amount: float
    total_amount: float
    po_qty: float
    grn_accepted_qty: float
    grn_rejected_qty: float
    qty_received_percent: str
    po_status: InvoicePOStatus
    grn_status: list[InvoiceGRNStatus]
    linked_po_id: str | None = Field(default=None, alias="linkedPOId")
    linked_grns_count: int = Field(alias="linkedGRNsCount")


class InvoiceSummarySchema(CamelModel):
    total_invoices: int
    no_po: int = Field(alias="noPO")
    po_linked: int
    missing_grn: int = Field(alias="missingGRN")
    grn_under: int
    grn_matched: int
    grn_over: int
    has_rejections: int


class InvoiceTotalsSchema(CamelModel):
    rows: int
    invoice_qty: float
    gross_amount: float
    gst_amount: float
    total_amount: float
    grn_accepted_qty: float
    grn_rejected_qty: float


class InvoiceWorkspaceData(CamelModel):
    invoices: list[InvoiceWorkspaceRowSchema]
    summary: InvoiceSummarySchema
    totals: InvoiceTotalsSchema
    pagination: PaginationSchema
    filter_options: FilterOptionsSchema


class InvoiceWorkspaceResponse(BaseModel):
    success: bool = True
    data: InvoiceWorkspaceData


# ─── GRN workspace ────────────────────────────────────────────────────────────

class GRNWorkspaceRowSchema(CamelModel):
    id: str
    grn_number: str
    grn_date: str
    po_number: str
    vendor_invoice_no: str
    buyer: str
    seller: str
    site: str
    city: str
    received_qty: float
    accepted_qty: float
    rejected_qty: float
    invoice_qty: float
    accepted_percent: str
    invoice_status: GRNInvoiceStatus
    acceptance_status: GRNAcceptanceStatus
    has_po: bool = Field(alias="hasPO")
    linked_invoices_count: int


class GRNSummarySchema(CamelModel):
    total_grns: int = Field(alias="totalGRNs")
    missing_invoice: int
    under_vs_invoice: int
    matched_vs_invoice: int
    over_vs_invoice: int
    fully_accepted: int
    partially_accepted: int


class GRNTotalsSchema(CamelModel):
    rows: int
    received_qty: float
    accepted_qty: float
    rejected_qty: float
    invoice_qty: float


class GRNWorkspaceData(CamelModel):
    grns: list[GRNWorkspaceRowSchema]
    summary: GRNSummarySchema
    totals: GRNTotalsSchema
    pagination: PaginationSchema
    filter_options: FilterOptionsSchema


class GRNWorkspaceResponse(BaseModel):
    success: bool = True
    data: GRNWorkspaceData
