"""
Shared fixtures: an in-memory document store and builders for the three
extracted document shapes (purchase_order_data / invoice_data / grn_data).
"""
from __future__ import annotations

import itertools
from typing import Any

import pytest

from recon_workspace.application.config import Settings
from recon_workspace.application.services.matcher import BusinessKeyMatcher
from recon_workspace.application.services.workspace_service import WorkspaceService
from recon_workspace.domain.entities import DocumentType
from recon_workspace.infrastructure.database.memory_store import InMemoryDocumentStore

ORG_ID = "65a000000000000000000001"
OTHER_ORG_ID = "65a000000000000000000002"


class DocumentFactory:
    """Inserts documents with increasing ObjectId-shaped ids (later insert = newer)."""

    def __init__(self, store: InMemoryDocumentStore) -> None:
        self.store = store
        self._ids = itertools.count(1)

    def next_id(self) -> str:
        return f"{next(self._ids):024x}"

    def _insert(self, doc_type: DocumentType, data_key: str, data: dict[str, Any], **meta: Any) -> dict[str, Any]:
        doc = {
            "_id": self.next_id(),
            "organization": ORG_ID,
            "active": True,
            data_key: data,
        }
        doc.update(meta)
        return self.store.insert(doc_type, doc)

    def po(self, po_number: str, total_qty: Any = 100, total_value: Any = 1000, **fields: Any) -> dict[str, Any]:
        meta = {k: fields.pop(k) for k in ("organization", "active", "status") if k in fields}
        data = {
            "poNumber": po_number,
            "poDate": "2024-03-01",
            "totalQty": total_qty,
            "totalOrderValue": total_value,
            "buyerName": "Acme Retail",
            "sellerName": "Globex Supplies",
            "site": "WH-01",
            "city": "Pune",
            **fields,
        }
        return self._insert(DocumentType.PURCHASE_ORDER, "purchase_order_data", data, **meta)

    def invoice(
        self,
        invoice_number: str,
        buyer_order_no: Any = "",
        invoice_qty: Any = 0,
        total_amount: Any = 0,
        **fields: Any,
    ) -> dict[str, Any]:
        meta = {"status": "approved"}
        meta.update({k: fields.pop(k) for k in ("organization", "active", "status") if k in fields})
        data = {
            "invoiceNumber": invoice_number,
            "buyerOrderNo": buyer_order_no,
            "invoiceDate": "2024-03-10",
            "invoiceQty": invoice_qty,
            "grossAmount": 0,
            "gstAmount": 0,
            "totalAmount": total_amount,
            "buyerName": "Acme Retail",
            "sellerName": "Globex Supplies",
            "site": "WH-01",
            "city": "Pune",
            **fields,
        }
        return self._insert(DocumentType.INVOICE, "invoice_data", data, **meta)

    def grn(
        self,
        grn_number: str,
        po_number: Any = "",
        vendor_invoice_no: Any = "",
        lines: list[tuple[Any, Any]] | None = None,
        **fields: Any,
    ) -> dict[str, Any]:
        meta = {"status": "approved"}
        meta.update({k: fields.pop(k) for k in ("organization", "active", "status") if k in fields})
        data = {
            "grnNumber": grn_number,
            "poNumber": po_number,
            "vendorInvoiceNo": vendor_invoice_no,
            "grnDate": "2024-03-12",
            "buyerName": "Acme Retail",
            "sellerName": "Globex Supplies",
            "site": "WH-01",
            "city": "Pune",
            "items": [
                {"description": f"Line {i}", "receivedQty": received, "acceptedQty": accepted}
                for i, (received, accepted) in enumerate(lines or [], start=1)
            ],
            **fields,
        }
        return self._insert(DocumentType.GOODS_RECEIPT_NOTE, "grn_data", data, **meta)


@pytest.fixture
def settings() -> Settings:
    return Settings(document_store_backend="memory", enrichment_concurrency=4)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def factory(store: InMemoryDocumentStore) -> DocumentFactory:
    return DocumentFactory(store)


@pytest.fixture
def matcher(store: InMemoryDocumentStore) -> BusinessKeyMatcher:
    return BusinessKeyMatcher(store)


@pytest.fixture
def service(store: InMemoryDocumentStore, settings: Settings) -> WorkspaceService:
    return WorkspaceService(store, settings)


@pytest.fixture
def org_id() -> str:
    return ORG_ID


@pytest.fixture
def other_org_id() -> str:
    return OTHER_ORG_ID
