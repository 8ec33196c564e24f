"""
Reconciliation Workspace Domain Entities
Core domain objects with no framework dependencies.

Documents themselves stay as raw dicts (bags of extracted fields); the
dataclasses here are the *computed* projections built on top of them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DocumentType(str, Enum):
    PURCHASE_ORDER = "purchase_order"
    INVOICE = "invoice"
    GOODS_RECEIPT_NOTE = "goods_receipt_note"


@dataclass(frozen=True)
class DocumentSchema:
    """Where a document type keeps its extracted fields and identifiers."""
    doc_type: DocumentType
    label: str
    data_key: str
    key_field: str
    date_field: str
    requires_approval: bool

    def path(self, field_name: str) -> str:
        return f"{self.data_key}.{field_name}"

    def data(self, document: dict[str, Any]) -> dict[str, Any]:
        data = document.get(self.data_key)
        return data if isinstance(data, dict) else {}

    def business_key(self, document: dict[str, Any]) -> str:
        value = self.data(document).get(self.key_field)
        return "" if value is None else str(value)


DOCUMENT_SCHEMAS: dict[DocumentType, DocumentSchema] = {
    DocumentType.PURCHASE_ORDER: DocumentSchema(
        doc_type=DocumentType.PURCHASE_ORDER,
        label="Purchase Order",
        data_key="purchase_order_data",
        key_field="poNumber",
        date_field="poDate",
        requires_approval=False,
    ),
    DocumentType.INVOICE: DocumentSchema(
        doc_type=DocumentType.INVOICE,
        label="Invoice",
        data_key="invoice_data",
        key_field="invoiceNumber",
        date_field="invoiceDate",
        requires_approval=True,
    ),
    DocumentType.GOODS_RECEIPT_NOTE: DocumentSchema(
        doc_type=DocumentType.GOODS_RECEIPT_NOTE,
        label="GRN",
        data_key="grn_data",
        key_field="grnNumber",
        date_field="grnDate",
        requires_approval=True,
    ),
}


def schema_for(doc_type: DocumentType) -> DocumentSchema:
    return DOCUMENT_SCHEMAS[doc_type]


# ─── Status taxonomy ──────────────────────────────────────────────────────────

class POInvoiceStatus(str, Enum):
    OPEN = "Open"
    PARTIALLY_INVOICED = "Partially Invoiced"
    FULLY_INVOICED = "Fully Invoiced"
    OVER_INVOICED = "Over Invoiced"


class POGRNStatus(str, Enum):
    NO_GRN_YET = "No GRN Yet"
    PARTIALLY_RECEIVED = "Partially Received"
    FULLY_RECEIVED = "Fully Received"
    OVER_RECEIVED = "Over Received"
    HAS_REJECTIONS = "Has Rejections"


class InvoicePOStatus(str, Enum):
    NO_PO = "No PO"
    PO_LINKED = "PO Linked"


class InvoiceGRNStatus(str, Enum):
    MISSING_GRN = "Missing GRN"
    GRN_UNDER = "GRN Under"
    GRN_MATCHED = "GRN Matched"
    GRN_OVER = "GRN Over"
    HAS_REJECTIONS = "Has Rejections"


class GRNInvoiceStatus(str, Enum):
    MISSING_INVOICE = "Missing Invoice"
    UNDER_VS_INVOICE = "Under vs Invoice"
    MATCHED_VS_INVOICE = "Matched vs Invoice"
    OVER_VS_INVOICE = "Over vs Invoice"


class GRNAcceptanceStatus(str, Enum):
    FULLY_ACCEPTED = "Fully Accepted"
    PARTIALLY_ACCEPTED = "Partially Accepted"


# Ordered tag sets: primary status first, "Has Rejections" appended last.
POGRNStatusTags = tuple[POGRNStatus, ...]
InvoiceGRNStatusTags = tuple[InvoiceGRNStatus, ...]


# ─── Request-side value objects ───────────────────────────────────────────────

@dataclass(frozen=True)
class DateRange:
    date_from: str | None = None
    date_to: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.date_from and not self.date_to


@dataclass
class WorkspaceFilters:
    """Caller-supplied filters. Native ones go to the store, derived ones are applied after enrichment."""
    date_range: DateRange | None = None
    date_type: str | None = None
    site: list[str] = field(default_factory=list)
    city: list[str] = field(default_factory=list)
    buyer: list[str] = field(default_factory=list)
    seller: list[str] = field(default_factory=list)
    search: str = ""
    article: str = ""
    invoice_status: list[str] = field(default_factory=list)
    grn_status: list[str] = field(default_factory=list)
    po_status: list[str] = field(default_factory=list)
    acceptance_status: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PaginationParams:
    page: int = 1
    limit: int = 100

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class PaginationInfo:
    total: int
    page: int
    pages: int
    limit: int


# ─── Enriched rows (ReconciliationView) ───────────────────────────────────────

@dataclass
class POWorkspaceRow:
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
    grn_status: POGRNStatusTags
    linked_invoices_count: int
    linked_grns_count: int


@dataclass
class InvoiceWorkspaceRow:
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
    grn_status: InvoiceGRNStatusTags
    linked_po_id: str | None
    linked_grns_count: int


@dataclass
class GRNWorkspaceRow:
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
    has_po: bool
    linked_invoices_count: int


# ─── Workspace aggregates ─────────────────────────────────────────────────────

@dataclass
class POSummary:
    total_pos: int = 0
    open: int = 0
    partially_invoiced: int = 0
    fully_invoiced: int = 0
    over_invoiced: int = 0
    no_grn_yet: int = 0
    partially_received: int = 0
    fully_received: int = 0
    over_received: int = 0
    has_rejections: int = 0


@dataclass
class InvoiceSummary:
    total_invoices: int = 0
    no_po: int = 0
    po_linked: int = 0
    missing_grn: int = 0
    grn_under: int = 0
    grn_matched: int = 0
    grn_over: int = 0
    has_rejections: int = 0


@dataclass
class GRNSummary:
    total_grns: int = 0
    missing_invoice: int = 0
    under_vs_invoice: int = 0
    matched_vs_invoice: int = 0
    over_vs_invoice: int = 0
    fully_accepted: int = 0
    partially_accepted: int = 0


@dataclass
class POTotals:
    rows: int = 0
    po_qty: float = 0.0
    po_value: float = 0.0
    invoiced_qty: float = 0.0
    invoiced_value: float = 0.0
    grn_accepted_qty: float = 0.0
    grn_rejected_qty: float = 0.0
    avg_qty_invoiced: float = 0.0


@dataclass
class InvoiceTotals:
    rows: int = 0
    invoice_qty: float = 0.0
    gross_amount: float = 0.0
    gst_amount: float = 0.0
    total_amount: float = 0.0
    grn_accepted_qty: float = 0.0
    grn_rejected_qty: float = 0.0


@dataclass
class GRNTotals:
    rows: int = 0
    received_qty: float = 0.0
    accepted_qty: float = 0.0
    rejected_qty: float = 0.0
    invoice_qty: float = 0.0


@dataclass
class FilterOptions:
    """Facet values present in the fetched page, for populating filter pickers."""
    sites: list[str] = field(default_factory=list)
    cities: list[str] = field(default_factory=list)
    buyers: list[str] = field(default_factory=list)
    sellers: list[str] = field(default_factory=list)
    statuses: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class WorkspaceResult:
    documents: list[Any]
    summary: Any
    totals: Any
    pagination: PaginationInfo
    filter_options: FilterOptions = field(default_factory=FilterOptions)
