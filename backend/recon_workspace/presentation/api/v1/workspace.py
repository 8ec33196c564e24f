"""
Workspace API Routes
PO / Invoice / GRN reconciliation workspaces and single-document details.
All routes require JWT authentication and are scoped to the caller's organisation.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Annotated, Any

import structlog
from bson import ObjectId
from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError

from ....domain.entities import DateRange, WorkspaceFilters, WorkspaceResult
from ....domain.exceptions import InvalidFilterError, InvalidIdentifierError
from ...dependencies import WorkspaceServiceDep
from ...middleware.auth_middleware import OrganizationId
from ...schemas import (
    DetailResponse,
    FilterOptionsSchema,
    GRNSummarySchema,
    GRNTotalsSchema,
    GRNWorkspaceData,
    GRNWorkspaceResponse,
    GRNWorkspaceRowSchema,
    InvoiceSummarySchema,
    InvoiceTotalsSchema,
    InvoiceWorkspaceData,
    InvoiceWorkspaceResponse,
    InvoiceWorkspaceRowSchema,
    PaginationSchema,
    POSummarySchema,
    POTotalsSchema,
    POWorkspaceData,
    POWorkspaceResponse,
    POWorkspaceRowSchema,
    WorkspaceFilterQuery,
)

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/workspace", tags=["Workspace"])

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _parse_int(raw: str | None) -> int | None:
    """parseInt-style: leading integer prefix, anything else is None."""
    if raw is None:
        return None
    match = _LEADING_INT.match(raw)
    return int(match.group(1)) if match else None


def _json_param(name: str, raw: str | None) -> Any:
    if raw is None or raw == "":
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        raise InvalidFilterError(f"Malformed JSON in '{name}' filter")


@dataclass
class WorkspaceQuery:
    filters: WorkspaceFilters
    page: int | None
    limit: int | None


def parse_workspace_query(
    date_range: Annotated[str | None, Query(alias="dateRange")] = None,
    date_type: Annotated[str | None, Query(alias="dateType")] = None,
    site: Annotated[str | None, Query()] = None,
    city: Annotated[str | None, Query()] = None,
    buyer: Annotated[str | None, Query()] = None,
    seller: Annotated[str | None, Query()] = None,
    search: Annotated[str | None, Query()] = None,
    article: Annotated[str | None, Query()] = None,
    invoice_status: Annotated[str | None, Query(alias="invoiceStatus")] = None,
    grn_status: Annotated[str | None, Query(alias="grnStatus")] = None,
    po_status: Annotated[str | None, Query(alias="poStatus")] = None,
    acceptance_status: Annotated[str | None, Query(alias="acceptanceStatus")] = None,
    page: Annotated[str | None, Query()] = None,
    limit: Annotated[str | None, Query()] = None,
) -> WorkspaceQuery:
    """Decode the JSON-encoded filter parameters; malformed input is a 400, never partially applied."""
    raw = {
        "date_range": _json_param("dateRange", date_range),
        "date_type": date_type or None,
        "site": _json_param("site", site),
        "city": _json_param("city", city),
        "buyer": _json_param("buyer", buyer),
        "seller": _json_param("seller", seller),
        "search": search or "",
        "article": (article or "").strip(),
        "invoice_status": _json_param("invoiceStatus", invoice_status),
        "grn_status": _json_param("grnStatus", grn_status),
        "po_status": _json_param("poStatus", po_status),
        "acceptance_status": _json_param("acceptanceStatus", acceptance_status),
    }
    try:
        parsed = WorkspaceFilterQuery.model_validate(raw)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        logger.info("workspace_filter_rejected", fields=fields)
        raise InvalidFilterError(f"Invalid filter value: {', '.join(fields)}")

    filters = WorkspaceFilters(
        date_range=(
            DateRange(parsed.date_range.date_from, parsed.date_range.date_to)
            if parsed.date_range else None
        ),
        date_type=parsed.date_type,
        site=parsed.site,
        city=parsed.city,
        buyer=parsed.buyer,
        seller=parsed.seller,
        search=parsed.search,
        article=parsed.article,
        invoice_status=parsed.invoice_status,
        grn_status=parsed.grn_status,
        po_status=parsed.po_status,
        acceptance_status=parsed.acceptance_status,
    )
    return WorkspaceQuery(filters=filters, page=_parse_int(page), limit=_parse_int(limit))


WorkspaceQueryDep = Annotated[WorkspaceQuery, Depends(parse_workspace_query)]


def _validate_id(document_id: str) -> str:
    if not ObjectId.is_valid(document_id):
        raise InvalidIdentifierError("Invalid document id")
    return document_id


def _common(result: WorkspaceResult) -> dict[str, Any]:
    return {
        "pagination": PaginationSchema.model_validate(result.pagination),
        "filter_options": FilterOptionsSchema.model_validate(result.filter_options),
    }


# ─── Purchase Orders ──────────────────────────────────────────────────────────

@router.get("/po", response_model=POWorkspaceResponse)
async def get_po_workspace(
    org_id: OrganizationId,
    query: WorkspaceQueryDep,
    service: WorkspaceServiceDep,
) -> POWorkspaceResponse:
    """PO workspace: invoiced / received roll-ups per PO with summary and totals."""
    result = await service.get_po_workspace(org_id, query.filters, query.page, query.limit)
    return POWorkspaceResponse(
        data=POWorkspaceData(
            pos=[POWorkspaceRowSchema.model_validate(row) for row in result.documents],
            summary=POSummarySchema.model_validate(result.summary),
            totals=POTotalsSchema.model_validate(result.totals),
            **_common(result),
        )
    )


@router.get("/po/{po_id}", response_model=DetailResponse)
async def get_po_details(
    po_id: str,
    org_id: OrganizationId,
    service: WorkspaceServiceDep,
) -> DetailResponse:
    data = await service.get_po_details(_validate_id(po_id), org_id)
    return DetailResponse(data=data)


# ─── Invoices ─────────────────────────────────────────────────────────────────

@router.get("/invoice", response_model=InvoiceWorkspaceResponse)
async def get_invoice_workspace(
    org_id: OrganizationId,
    query: WorkspaceQueryDep,
    service: WorkspaceServiceDep,
) -> InvoiceWorkspaceResponse:
    """Invoice workspace: PO linkage and GRN coverage per approved invoice."""
    result = await service.get_invoice_workspace(org_id, query.filters, query.page, query.limit)
    return InvoiceWorkspaceResponse(
        data=InvoiceWorkspaceData(
            invoices=[InvoiceWorkspaceRowSchema.model_validate(row) for row in result.documents],
            summary=InvoiceSummarySchema.model_validate(result.summary),
            totals=InvoiceTotalsSchema.model_validate(result.totals),
            **_common(result),
        )
    )


@router.get("/invoice/{invoice_id}", response_model=DetailResponse)
async def get_invoice_details(
    invoice_id: str,
    org_id: OrganizationId,
    service: WorkspaceServiceDep,
) -> DetailResponse:
    data = await service.get_invoice_details(_validate_id(invoice_id), org_id)
    return DetailResponse(data=data)


# ─── Goods Receipt Notes ──────────────────────────────────────────────────────

@router.get("/grn", response_model=GRNWorkspaceResponse)
async def get_grn_workspace(
    org_id: OrganizationId,
    query: WorkspaceQueryDep,
    service: WorkspaceServiceDep,
) -> GRNWorkspaceResponse:
    """GRN workspace: acceptance and invoice coverage per approved GRN."""
    result = await service.get_grn_workspace(org_id, query.filters, query.page, query.limit)
    return GRNWorkspaceResponse(
        data=GRNWorkspaceData(
            grns=[GRNWorkspaceRowSchema.model_validate(row) for row in result.documents],
            summary=GRNSummarySchema.model_validate(result.summary),
            totals=GRNTotalsSchema.model_validate(result.totals),
            **_common(result),
        )
    )


@router.get("/grn/{grn_id}", response_model=DetailResponse)
async def get_grn_details(
    grn_id: str,
    org_id: OrganizationId,
    service: WorkspaceServiceDep,
) -> DetailResponse:
    data = await service.get_grn_details(_validate_id(grn_id), org_id)
    return DetailResponse(data=data)
