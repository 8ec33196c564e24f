"""
Workspace Assemblers — one per base document type (PO, Invoice, GRN).

Pipeline (identical shape for all three):
  1. Build a store query from org scope + native field filters (date range, facets, article)
  2. Fetch the page and the total count
  3. Enrich every document concurrently: match counterparts, aggregate, classify
  4. Apply derived-field filters (search, status facets); these are computed, not stored
  5. Summary  = status counts over the enriched page BEFORE derived filtering
  6. Totals   = column sums over the rows AFTER derived filtering
  7. Wrap with pagination metadata

Summary and totals describe different populations and must stay separate.
"""
from __future__ import annotations

import asyncio
import math
from abc import ABC, abstractmethod
from datetime import date
from enum import Enum
from typing import Any, Generic, Iterable, TypeVar

import structlog

from ...domain.entities import (
    DateRange,
    DocumentSchema,
    DocumentType,
    FilterOptions,
    GRNAcceptanceStatus,
    GRNInvoiceStatus,
    GRNSummary,
    GRNTotals,
    GRNWorkspaceRow,
    InvoiceGRNStatus,
    InvoicePOStatus,
    InvoiceSummary,
    InvoiceTotals,
    InvoiceWorkspaceRow,
    PaginationInfo,
    PaginationParams,
    POGRNStatus,
    POInvoiceStatus,
    POSummary,
    POTotals,
    POWorkspaceRow,
    WorkspaceFilters,
    WorkspaceResult,
    schema_for,
)
from ...domain.exceptions import InvalidFilterError, InvalidOrganizationError, WorkspaceError
from ...domain.interfaces import DocumentFilter, IDocumentStore
from . import calculations as calc
from . import status_classifier as classify
from .matcher import (
    GRNS_FOR_INVOICE,
    GRNS_FOR_PO,
    INVOICES_FOR_GRN,
    INVOICES_FOR_PO,
    PO_FOR_GRN,
    PO_FOR_INVOICE,
    BusinessKeyMatcher,
    eligibility_filter,
)

logger = structlog.get_logger(__name__)

RowT = TypeVar("RowT")

# Newest first; ObjectIds sort by creation time
PAGE_SORT = [("_id", -1)]

# Native facet filters: WorkspaceFilters attribute -> extracted-data field
_FACET_FIELDS = (
    ("site", "site"),
    ("city", "city"),
    ("buyer", "buyerName"),
    ("seller", "sellerName"),
)


# Largest skip the store driver can encode (BSON int64)
MAX_SKIP = 2**63 - 1


def normalize_pagination(
    page: int | None,
    limit: int | None,
    default_page: int = 1,
    default_limit: int = 100,
    max_limit: int = 1000,
) -> PaginationParams:
    """Non-positive or missing values fall back to defaults; limit is clamped to max_limit
    and page to the last one whose skip still fits the store's integer range."""
    page = page if page and page > 0 else default_page
    limit = limit if limit and limit > 0 else default_limit
    limit = min(limit, max_limit)
    return PaginationParams(page=min(page, MAX_SKIP // limit + 1), limit=limit)


def _iso_day(value: str) -> str:
    day = value.strip()[:10]
    try:
        date.fromisoformat(day)
    except ValueError:
        raise InvalidFilterError(f"Invalid date in dateRange: {value!r}")
    return day


def date_range_condition(date_range: DateRange) -> dict[str, str]:
    """Inclusive range on ISO date strings; `to` covers the whole day."""
    condition: dict[str, str] = {}
    if date_range.date_from:
        condition["$gte"] = _iso_day(date_range.date_from)
    if date_range.date_to:
        condition["$lte"] = f"{_iso_day(date_range.date_to)}T23:59:59.999Z"
    return condition


def _text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


def _matches_search(search: str, *values: str) -> bool:
    needle = search.strip().lower()
    if not needle:
        return True
    return any(needle in value.lower() for value in values if value)


def _matches_status(requested: list[str], value: Enum | tuple[Enum, ...]) -> bool:
    if not requested:
        return True
    tags = value if isinstance(value, tuple) else (value,)
    return any(tag.value in requested for tag in tags)


def _distinct(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(v for v in values if v))


class WorkspaceAssembler(ABC, Generic[RowT]):
    """Template for fetch → enrich → filter → aggregate over one document type."""

    doc_type: DocumentType

    def __init__(
        self,
        store: IDocumentStore,
        matcher: BusinessKeyMatcher,
        approved_status: str = "approved",
        concurrency: int = 16,
    ) -> None:
        self.store = store
        self.matcher = matcher
        self.approved_status = approved_status
        self.concurrency = max(1, concurrency)

    @property
    def schema(self) -> DocumentSchema:
        return schema_for(self.doc_type)

    # ── Hooks ────────────────────────────────────────────────────────────────

    @abstractmethod
    async def enrich(self, document: dict[str, Any], organization_id: str) -> RowT:
        ...

    @abstractmethod
    def matches(self, row: RowT, filters: WorkspaceFilters) -> bool:
        ...

    @abstractmethod
    def summarize(self, rows: list[RowT]) -> Any:
        ...

    @abstractmethod
    def total(self, rows: list[RowT]) -> Any:
        ...

    @abstractmethod
    def status_options(self) -> dict[str, list[str]]:
        ...

    # ── Pipeline ─────────────────────────────────────────────────────────────

    def base_query(self, organization_id: str, filters: WorkspaceFilters) -> DocumentFilter:
        schema = self.schema
        query = eligibility_filter(self.doc_type, organization_id, self.approved_status)
        # Extraction failures are recorded as data.error; they carry nothing to reconcile
        query[schema.path("error")] = None

        if filters.date_type and filters.date_type != schema.date_field:
            raise InvalidFilterError(
                f"dateType must be '{schema.date_field}' for the {schema.label} workspace"
            )
        if filters.date_range and not filters.date_range.is_empty:
            query[schema.path(schema.date_field)] = date_range_condition(filters.date_range)

        for attr, field_name in _FACET_FIELDS:
            values = getattr(filters, attr)
            if values:
                query[schema.path(field_name)] = {"$in": list(values)}
        if filters.article:
            # Matches when any line item carries the article code
            query[schema.path("items.article")] = filters.article
        return query

    async def _enrich_all(self, documents: list[dict[str, Any]], organization_id: str) -> list[RowT]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(doc: dict[str, Any]) -> RowT:
            async with semaphore:
                return await self.enrich(doc, organization_id)

        # gather() returns results in submission order regardless of completion order
        return list(await asyncio.gather(*(_bounded(doc) for doc in documents)))

    def filter_options(self, rows: list[Any]) -> FilterOptions:
        return FilterOptions(
            sites=_distinct(r.site for r in rows),
            cities=_distinct(r.city for r in rows),
            buyers=_distinct(r.buyer for r in rows),
            sellers=_distinct(r.seller for r in rows),
            statuses=self.status_options(),
        )

    async def build(
        self,
        organization_id: str,
        filters: WorkspaceFilters,
        pagination: PaginationParams,
    ) -> WorkspaceResult:
        if not organization_id:
            raise InvalidOrganizationError()
        if pagination.limit <= 0 or pagination.page <= 0:
            pagination = normalize_pagination(pagination.page, pagination.limit)

        try:
            query = self.base_query(organization_id, filters)
            documents, total = await asyncio.gather(
                self.store.find(
                    self.doc_type, query,
                    skip=pagination.skip, limit=pagination.limit, sort=PAGE_SORT,
                ),
                self.store.count(self.doc_type, query),
            )
            rows = await self._enrich_all(documents, organization_id)
        except WorkspaceError:
            raise
        except Exception as e:
            logger.error(
                "workspace_build_failed",
                doc_type=self.doc_type.value,
                org=organization_id,
                error=str(e),
            )
            raise

        filtered = [row for row in rows if self.matches(row, filters)]
        if len(filtered) < len(rows):
            logger.debug(
                "workspace_rows_filtered_out",
                doc_type=self.doc_type.value,
                skipped=len(rows) - len(filtered),
            )

        result = WorkspaceResult(
            documents=filtered,
            summary=self.summarize(rows),
            totals=self.total(filtered),
            pagination=PaginationInfo(
                total=total,
                page=pagination.page,
                pages=math.ceil(total / pagination.limit),
                limit=pagination.limit,
            ),
            filter_options=self.filter_options(rows),
        )
        logger.info(
            "workspace_built",
            doc_type=self.doc_type.value,
            org=organization_id,
            fetched=len(rows),
            returned=len(filtered),
            total=total,
            page=pagination.page,
        )
        return result


# ─── Purchase Orders ──────────────────────────────────────────────────────────

class POWorkspaceAssembler(WorkspaceAssembler[POWorkspaceRow]):
    doc_type = DocumentType.PURCHASE_ORDER

    async def enrich(self, document: dict[str, Any], organization_id: str) -> POWorkspaceRow:
        data = self.schema.data(document)
        po_number = self.schema.business_key(document)

        invoices, grns = await asyncio.gather(
            self.matcher.find_linked(INVOICES_FOR_PO, po_number, organization_id),
            self.matcher.find_linked(GRNS_FOR_PO, po_number, organization_id),
        )

        po_qty = calc.to_number(data.get("totalQty"))
        po_value = calc.to_number(data.get("totalOrderValue"))
        invoiced_qty = calc.invoiced_qty(invoices)
        invoiced_value = calc.invoiced_value(invoices)
        accepted = calc.grn_accepted_qty(grns)
        rejected = calc.grn_rejected_qty(grns)

        return POWorkspaceRow(
            id=str(document.get("_id", "")),
            po_number=po_number,
            po_date=_text(data, "poDate"),
            buyer=_text(data, "buyerName"),
            seller=_text(data, "sellerName"),
            site=_text(data, "site"),
            city=_text(data, "city"),
            po_qty=po_qty,
            po_value=po_value,
            invoiced_qty=invoiced_qty,
            invoiced_value=invoiced_value,
            grn_accepted_qty=accepted,
            grn_rejected_qty=rejected,
            qty_invoiced_percent=calc.format_percent(invoiced_qty, po_qty),
            value_invoiced_percent=calc.format_percent(invoiced_value, po_value),
            qty_received_percent=calc.format_percent(accepted, po_qty),
            invoice_status=classify.po_invoice_status(po_qty, invoiced_qty),
            grn_status=classify.po_grn_status(po_qty, accepted, calc.grns_have_rejections(grns)),
            linked_invoices_count=len(invoices),
            linked_grns_count=len(grns),
        )

    def matches(self, row: POWorkspaceRow, filters: WorkspaceFilters) -> bool:
        return (
            _matches_search(filters.search, row.po_number, row.buyer, row.seller, row.site)
            and _matches_status(filters.invoice_status, row.invoice_status)
            and _matches_status(filters.grn_status, row.grn_status)
        )

    def summarize(self, rows: list[POWorkspaceRow]) -> POSummary:
        summary = POSummary(total_pos=len(rows))
        for row in rows:
            if row.invoice_status is POInvoiceStatus.OPEN:
                summary.open += 1
            elif row.invoice_status is POInvoiceStatus.PARTIALLY_INVOICED:
                summary.partially_invoiced += 1
            elif row.invoice_status is POInvoiceStatus.FULLY_INVOICED:
                summary.fully_invoiced += 1
            else:
                summary.over_invoiced += 1

            tags = set(row.grn_status)
            if POGRNStatus.NO_GRN_YET in tags:
                summary.no_grn_yet += 1
            elif POGRNStatus.PARTIALLY_RECEIVED in tags:
                summary.partially_received += 1
            elif POGRNStatus.FULLY_RECEIVED in tags:
                summary.fully_received += 1
            elif POGRNStatus.OVER_RECEIVED in tags:
                summary.over_received += 1
            if POGRNStatus.HAS_REJECTIONS in tags:
                summary.has_rejections += 1
        return summary

    def total(self, rows: list[POWorkspaceRow]) -> POTotals:
        totals = POTotals(rows=len(rows))
        for row in rows:
            totals.po_qty += row.po_qty
            totals.po_value += row.po_value
            totals.invoiced_qty += row.invoiced_qty
            totals.invoiced_value += row.invoiced_value
            totals.grn_accepted_qty += row.grn_accepted_qty
            totals.grn_rejected_qty += row.grn_rejected_qty
        totals.avg_qty_invoiced = calc.mean_percent([r.qty_invoiced_percent for r in rows])
        return totals

    def status_options(self) -> dict[str, list[str]]:
        return {
            "invoiceStatus": [s.value for s in POInvoiceStatus],
            "grnStatus": [s.value for s in POGRNStatus],
        }


# ─── Invoices ─────────────────────────────────────────────────────────────────

class InvoiceWorkspaceAssembler(WorkspaceAssembler[InvoiceWorkspaceRow]):
    doc_type = DocumentType.INVOICE

    async def enrich(self, document: dict[str, Any], organization_id: str) -> InvoiceWorkspaceRow:
        data = self.schema.data(document)
        invoice_number = self.schema.business_key(document)
        po_number = _text(data, "buyerOrderNo")

        po, grns = await asyncio.gather(
            self.matcher.find_one_linked(PO_FOR_INVOICE, po_number, organization_id),
            self.matcher.find_linked(GRNS_FOR_INVOICE, invoice_number, organization_id),
        )

        invoice_qty = calc.to_number(data.get("invoiceQty"))
        accepted = calc.grn_accepted_qty(grns)
        po_qty = calc.to_number(calc.get_path(po, "purchase_order_data.totalQty")) if po else 0.0

        return InvoiceWorkspaceRow(
            id=str(document.get("_id", "")),
            invoice_number=invoice_number,
            invoice_date=_text(data, "invoiceDate"),
            po_number=po_number,
            buyer=_text(data, "buyerName"),
            seller=_text(data, "sellerName"),
            site=_text(data, "site"),
            city=_text(data, "city"),
            invoice_qty=invoice_qty,
            gross_amount=calc.to_number(data.get("grossAmount")),
            gst_amount=calc.to_number(data.get("gstAmount")),
            total_amount=calc.to_number(data.get("totalAmount")),
            po_qty=po_qty,
            grn_accepted_qty=accepted,
            grn_rejected_qty=calc.grn_rejected_qty(grns),
            qty_received_percent=calc.format_percent(accepted, invoice_qty),
            po_status=classify.invoice_po_status(po is not None),
            grn_status=classify.invoice_grn_status(
                invoice_qty, accepted, bool(grns), calc.grns_have_rejections(grns)
            ),
            linked_po_id=str(po["_id"]) if po and "_id" in po else None,
            linked_grns_count=len(grns),
        )

    def matches(self, row: InvoiceWorkspaceRow, filters: WorkspaceFilters) -> bool:
        return (
            _matches_search(filters.search, row.invoice_number, row.buyer, row.seller, row.po_number)
            and _matches_status(filters.po_status, row.po_status)
            and _matches_status(filters.grn_status, row.grn_status)
        )

    def summarize(self, rows: list[InvoiceWorkspaceRow]) -> InvoiceSummary:
        summary = InvoiceSummary(total_invoices=len(rows))
        for row in rows:
            if row.po_status is InvoicePOStatus.PO_LINKED:
                summary.po_linked += 1
            else:
                summary.no_po += 1

            tags = set(row.grn_status)
            if InvoiceGRNStatus.MISSING_GRN in tags:
                summary.missing_grn += 1
            elif InvoiceGRNStatus.GRN_UNDER in tags:
                summary.grn_under += 1
            elif InvoiceGRNStatus.GRN_MATCHED in tags:
                summary.grn_matched += 1
            elif InvoiceGRNStatus.GRN_OVER in tags:
                summary.grn_over += 1
            if InvoiceGRNStatus.HAS_REJECTIONS in tags:
                summary.has_rejections += 1
        return summary

    def total(self, rows: list[InvoiceWorkspaceRow]) -> InvoiceTotals:
        totals = InvoiceTotals(rows=len(rows))
        for row in rows:
            totals.invoice_qty += row.invoice_qty
            totals.gross_amount += row.gross_amount
            totals.gst_amount += row.gst_amount
            totals.total_amount += row.total_amount
            totals.grn_accepted_qty += row.grn_accepted_qty
            totals.grn_rejected_qty += row.grn_rejected_qty
        return totals

    def status_options(self) -> dict[str, list[str]]:
        return {
            "poStatus": [s.value for s in InvoicePOStatus],
            "grnStatus": [s.value for s in InvoiceGRNStatus],
        }


# ─── Goods Receipt Notes ──────────────────────────────────────────────────────

class GRNWorkspaceAssembler(WorkspaceAssembler[GRNWorkspaceRow]):
    doc_type = DocumentType.GOODS_RECEIPT_NOTE

    async def enrich(self, document: dict[str, Any], organization_id: str) -> GRNWorkspaceRow:
        data = self.schema.data(document)
        items = calc.line_items(document, self.schema.data_key)
        vendor_invoice_no = _text(data, "vendorInvoiceNo")
        po_number = _text(data, "poNumber")

        invoices, po = await asyncio.gather(
            self.matcher.find_linked(INVOICES_FOR_GRN, vendor_invoice_no, organization_id),
            self.matcher.find_one_linked(PO_FOR_GRN, po_number, organization_id),
        )

        received = calc.sum_line_items(items, "receivedQty")
        accepted = calc.sum_line_items(items, "acceptedQty")
        rejected = calc.rejected_qty(items)
        invoice_qty = calc.invoiced_qty(invoices)

        return GRNWorkspaceRow(
            id=str(document.get("_id", "")),
            grn_number=self.schema.business_key(document),
            grn_date=_text(data, "grnDate"),
            po_number=po_number,
            vendor_invoice_no=vendor_invoice_no,
            buyer=_text(data, "buyerName"),
            seller=_text(data, "sellerName"),
            site=_text(data, "site"),
            city=_text(data, "city"),
            received_qty=received,
            accepted_qty=accepted,
            rejected_qty=rejected,
            invoice_qty=invoice_qty,
            accepted_percent=calc.format_percent(accepted, received),
            invoice_status=classify.grn_invoice_status(accepted, invoice_qty, bool(invoices)),
            acceptance_status=classify.grn_acceptance_status(rejected),
            has_po=po is not None,
            linked_invoices_count=len(invoices),
        )

    def matches(self, row: GRNWorkspaceRow, filters: WorkspaceFilters) -> bool:
        return (
            _matches_search(
                filters.search,
                row.grn_number, row.buyer, row.seller, row.po_number, row.vendor_invoice_no,
            )
            and _matches_status(filters.invoice_status, row.invoice_status)
            and _matches_status(filters.acceptance_status, row.acceptance_status)
        )

    def summarize(self, rows: list[GRNWorkspaceRow]) -> GRNSummary:
        summary = GRNSummary(total_grns=len(rows))
        for row in rows:
            if row.invoice_status is GRNInvoiceStatus.MISSING_INVOICE:
                summary.missing_invoice += 1
            elif row.invoice_status is GRNInvoiceStatus.UNDER_VS_INVOICE:
                summary.under_vs_invoice += 1
            elif row.invoice_status is GRNInvoiceStatus.MATCHED_VS_INVOICE:
                summary.matched_vs_invoice += 1
            else:
                summary.over_vs_invoice += 1

            if row.acceptance_status is GRNAcceptanceStatus.FULLY_ACCEPTED:
                summary.fully_accepted += 1
            else:
                summary.partially_accepted += 1
        return summary

    def total(self, rows: list[GRNWorkspaceRow]) -> GRNTotals:
        totals = GRNTotals(rows=len(rows))
        for row in rows:
            totals.received_qty += row.received_qty
            totals.accepted_qty += row.accepted_qty
            totals.rejected_qty += row.rejected_qty
            totals.invoice_qty += row.invoice_qty
        return totals

    def status_options(self) -> dict[str, list[str]]:
        return {
            "invoiceStatus": [s.value for s in GRNInvoiceStatus],
            "acceptanceStatus": [s.value for s in GRNAcceptanceStatus],
        }
