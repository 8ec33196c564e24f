"""
Business-Key Matcher

POs, Invoices and GRNs carry no stored references to each other. They are
joined at read time by comparing business identifiers embedded in the
extracted data:

    Invoice.buyerOrderNo   == PO.poNumber
    GRN.poNumber           == PO.poNumber
    GRN.vendorInvoiceNo    == Invoice.invoiceNumber

Each direction is a `Link`. Lookups are exact string equality, always scoped
to one organization and to documents eligible for reconciliation (active, and
approved where the target type has an approval workflow). An empty key never
matches anything.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from ...domain.entities import DocumentSchema, DocumentType, schema_for
from ...domain.interfaces import DocumentFilter, IDocumentStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Link:
    """A join direction: which target type, and which of its fields holds the key."""
    name: str
    target: DocumentType
    target_field: str

    @property
    def schema(self) -> DocumentSchema:
        return schema_for(self.target)

    @property
    def field_path(self) -> str:
        return self.schema.path(self.target_field)


INVOICES_FOR_PO = Link("invoices_for_po", DocumentType.INVOICE, "buyerOrderNo")
GRNS_FOR_PO = Link("grns_for_po", DocumentType.GOODS_RECEIPT_NOTE, "poNumber")
PO_FOR_INVOICE = Link("po_for_invoice", DocumentType.PURCHASE_ORDER, "poNumber")
GRNS_FOR_INVOICE = Link("grns_for_invoice", DocumentType.GOODS_RECEIPT_NOTE, "vendorInvoiceNo")
INVOICES_FOR_GRN = Link("invoices_for_grn", DocumentType.INVOICE, "invoiceNumber")
PO_FOR_GRN = Link("po_for_grn", DocumentType.PURCHASE_ORDER, "poNumber")


def eligibility_filter(
    doc_type: DocumentType,
    organization_id: str,
    approved_status: str,
) -> DocumentFilter:
    """Organization + active (+ approved) predicate shared by base queries and lookups."""
    query: DocumentFilter = {"organization": organization_id, "active": True}
    if schema_for(doc_type).requires_approval:
        query["status"] = approved_status
    return query


class BusinessKeyMatcher:
    """Finds counterpart documents by business key. Read-only."""

    def __init__(self, store: IDocumentStore, approved_status: str = "approved") -> None:
        self.store = store
        self.approved_status = approved_status

    def _query(self, link: Link, business_key: str, organization_id: str) -> DocumentFilter:
        query = eligibility_filter(link.target, organization_id, self.approved_status)
        query[link.field_path] = business_key
        return query

    async def find_linked(
        self, link: Link, business_key: Any, organization_id: str
    ) -> list[dict[str, Any]]:
        if business_key is None or business_key == "":
            return []
        key = str(business_key)
        docs = await self.store.find(link.target, self._query(link, key, organization_id))
        logger.debug("linked_documents_found", link=link.name, key=key, count=len(docs))
        return docs

    async def find_one_linked(
        self, link: Link, business_key: Any, organization_id: str
    ) -> dict[str, Any] | None:
        if business_key is None or business_key == "":
            return None
        return await self.store.find_one(
            link.target, self._query(link, str(business_key), organization_id)
        )
