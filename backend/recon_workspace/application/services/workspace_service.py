"""
Workspace Service
Facade over the matcher and the six assemblers, configured from Settings.
"""
from __future__ import annotations

from typing import Any

from ...domain.entities import PaginationParams, WorkspaceFilters, WorkspaceResult
from ...domain.interfaces import IDocumentStore
from ..config import Settings
from .detail_assembler import GRNDetailAssembler, InvoiceDetailAssembler, PODetailAssembler
from .matcher import BusinessKeyMatcher
from .workspace_assembler import (
    GRNWorkspaceAssembler,
    InvoiceWorkspaceAssembler,
    POWorkspaceAssembler,
    normalize_pagination,
)


class WorkspaceService:
    def __init__(self, store: IDocumentStore, settings: Settings) -> None:
        self.settings = settings
        self.matcher = BusinessKeyMatcher(store, approved_status=settings.approved_status)

        options = {
            "approved_status": settings.approved_status,
            "concurrency": settings.enrichment_concurrency,
        }
        self.po_workspace = POWorkspaceAssembler(store, self.matcher, **options)
        self.invoice_workspace = InvoiceWorkspaceAssembler(store, self.matcher, **options)
        self.grn_workspace = GRNWorkspaceAssembler(store, self.matcher, **options)

        self.po_detail = PODetailAssembler(store, self.matcher)
        self.invoice_detail = InvoiceDetailAssembler(store, self.matcher)
        self.grn_detail = GRNDetailAssembler(store, self.matcher)

    def pagination(self, page: int | None, limit: int | None) -> PaginationParams:
        return normalize_pagination(
            page,
            limit,
            default_page=self.settings.workspace_default_page,
            default_limit=self.settings.workspace_default_limit,
            max_limit=self.settings.workspace_max_limit,
        )

    async def get_po_workspace(
        self, organization_id: str, filters: WorkspaceFilters, page: int | None = None, limit: int | None = None
    ) -> WorkspaceResult:
        return await self.po_workspace.build(organization_id, filters, self.pagination(page, limit))

    async def get_invoice_workspace(
        self, organization_id: str, filters: WorkspaceFilters, page: int | None = None, limit: int | None = None
    ) -> WorkspaceResult:
        return await self.invoice_workspace.build(organization_id, filters, self.pagination(page, limit))

    async def get_grn_workspace(
        self, organization_id: str, filters: WorkspaceFilters, page: int | None = None, limit: int | None = None
    ) -> WorkspaceResult:
        return await self.grn_workspace.build(organization_id, filters, self.pagination(page, limit))

    async def get_po_details(self, po_id: str, organization_id: str) -> dict[str, Any]:
        return await self.po_detail.build(po_id, organization_id)

    async def get_invoice_details(self, invoice_id: str, organization_id: str) -> dict[str, Any]:
        return await self.invoice_detail.build(invoice_id, organization_id)

    async def get_grn_details(self, grn_id: str, organization_id: str) -> dict[str, Any]:
        return await self.grn_detail.build(grn_id, organization_id)
