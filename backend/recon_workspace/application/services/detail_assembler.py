"""
Detail Assemblers — single-document reconciliation breakdown.

Same matching and classification as the workspaces, but for one document:
no pagination, no workspace summary, and the full counterpart lists are
returned alongside the document's raw extracted fields.
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import structlog

from ...domain.entities import DocumentSchema, DocumentType, schema_for
from ...domain.exceptions import DocumentNotFoundError, InvalidIdentifierError, InvalidOrganizationError
from ...domain.interfaces import IDocumentStore
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
)

logger = structlog.get_logger(__name__)


def _doc_id(document: dict[str, Any]) -> str:
    return str(document.get("_id", ""))


def _invoice_line(invoice: dict[str, Any]) -> dict[str, Any]:
    data = schema_for(DocumentType.INVOICE).data(invoice)
    return {
        "id": _doc_id(invoice),
        "invoiceNumber": data.get("invoiceNumber") or "",
        "invoiceDate": data.get("invoiceDate") or "",
        "invoiceQty": calc.to_number(data.get("invoiceQty")),
        "grossAmount": calc.to_number(data.get("grossAmount")),
        "gstAmount": calc.to_number(data.get("gstAmount")),
        "totalAmount": calc.to_number(data.get("totalAmount")),
    }


def _grn_line(grn: dict[str, Any]) -> dict[str, Any]:
    data = schema_for(DocumentType.GOODS_RECEIPT_NOTE).data(grn)
    items = calc.line_items(grn, "grn_data")
    rejected = calc.rejected_qty(items)
    return {
        "id": _doc_id(grn),
        "grnNumber": data.get("grnNumber") or "",
        "grnDate": data.get("grnDate") or "",
        "vendorInvoiceNo": data.get("vendorInvoiceNo") or "",
        "receivedQty": calc.sum_line_items(items, "receivedQty"),
        "acceptedQty": calc.sum_line_items(items, "acceptedQty"),
        "rejectedQty": rejected,
        "acceptanceStatus": classify.grn_acceptance_status(rejected).value,
    }


def _po_line(po: dict[str, Any] | None) -> dict[str, Any] | None:
    if po is None:
        return None
    data = schema_for(DocumentType.PURCHASE_ORDER).data(po)
    return {
        "id": _doc_id(po),
        "poNumber": data.get("poNumber") or "",
        "poDate": data.get("poDate") or "",
        "totalQty": calc.to_number(data.get("totalQty")),
        "totalOrderValue": calc.to_number(data.get("totalOrderValue")),
    }


class DetailAssembler(ABC):
    doc_type: DocumentType

    def __init__(self, store: IDocumentStore, matcher: BusinessKeyMatcher) -> None:
        self.store = store
        self.matcher = matcher

    @property
    def schema(self) -> DocumentSchema:
        return schema_for(self.doc_type)

    async def fetch(self, document_id: str, organization_id: str) -> dict[str, Any]:
        if not organization_id:
            raise InvalidOrganizationError()
        if not document_id:
            raise InvalidIdentifierError()
        document = await self.store.find_one(
            self.doc_type,
            {"_id": document_id, "organization": organization_id, "active": True},
        )
        if document is None:
            logger.info("document_not_found", doc_type=self.doc_type.value, doc_id=document_id)
            raise DocumentNotFoundError(self.schema.label, document_id)
        return document

    def raw_fields(self, document: dict[str, Any]) -> dict[str, Any]:
        return {"id": _doc_id(document), **self.schema.data(document)}

    @abstractmethod
    async def build(self, document_id: str, organization_id: str) -> dict[str, Any]:
        ...


class PODetailAssembler(DetailAssembler):
    doc_type = DocumentType.PURCHASE_ORDER

    async def build(self, document_id: str, organization_id: str) -> dict[str, Any]:
        po = await self.fetch(document_id, organization_id)
        data = self.schema.data(po)
        po_number = self.schema.business_key(po)

        invoices, grns = await asyncio.gather(
            self.matcher.find_linked(INVOICES_FOR_PO, po_number, organization_id),
            self.matcher.find_linked(GRNS_FOR_PO, po_number, organization_id),
        )

        po_qty = calc.to_number(data.get("totalQty"))
        po_value = calc.to_number(data.get("totalOrderValue"))
        invoiced_qty = calc.invoiced_qty(invoices)
        invoiced_value = calc.invoiced_value(invoices)
        accepted = calc.grn_accepted_qty(grns)

        return {
            "po": self.raw_fields(po),
            "summary": {
                "poQty": po_qty,
                "poValue": po_value,
                "invoicedQty": invoiced_qty,
                "invoicedValue": invoiced_value,
                "grnAcceptedQty": accepted,
                "grnRejectedQty": calc.grn_rejected_qty(grns),
                "qtyInvoicedPercent": calc.format_percent(invoiced_qty, po_qty),
                "valueInvoicedPercent": calc.format_percent(invoiced_value, po_value),
                "qtyReceivedPercent": calc.format_percent(accepted, po_qty),
                "invoiceStatus": classify.po_invoice_status(po_qty, invoiced_qty).value,
                "grnStatus": [
                    s.value for s in classify.po_grn_status(
                        po_qty, accepted, calc.grns_have_rejections(grns)
                    )
                ],
            },
            "linkedInvoices": [_invoice_line(inv) for inv in invoices],
            "linkedGRNs": [_grn_line(grn) for grn in grns],
        }


class InvoiceDetailAssembler(DetailAssembler):
    doc_type = DocumentType.INVOICE

    async def build(self, document_id: str, organization_id: str) -> dict[str, Any]:
        invoice = await self.fetch(document_id, organization_id)
        data = self.schema.data(invoice)
        invoice_number = self.schema.business_key(invoice)

        po, grns = await asyncio.gather(
            self.matcher.find_one_linked(PO_FOR_INVOICE, data.get("buyerOrderNo"), organization_id),
            self.matcher.find_linked(GRNS_FOR_INVOICE, invoice_number, organization_id),
        )

        invoice_qty = calc.to_number(data.get("invoiceQty"))
        accepted = calc.grn_accepted_qty(grns)
        linked_po = _po_line(po)

        return {
            "invoice": self.raw_fields(invoice),
            "summary": {
                "invoiceQty": invoice_qty,
                "poQty": linked_po["totalQty"] if linked_po else 0.0,
                "grnAcceptedQty": accepted,
                "grnRejectedQty": calc.grn_rejected_qty(grns),
                "qtyReceivedPercent": calc.format_percent(accepted, invoice_qty),
                "poStatus": classify.invoice_po_status(po is not None).value,
                "grnStatus": [
                    s.value for s in classify.invoice_grn_status(
                        invoice_qty, accepted, bool(grns), calc.grns_have_rejections(grns)
                    )
                ],
            },
            "linkedPO": linked_po,
            "linkedGRNs": [_grn_line(grn) for grn in grns],
        }


class GRNDetailAssembler(DetailAssembler):
    doc_type = DocumentType.GOODS_RECEIPT_NOTE

    async def build(self, document_id: str, organization_id: str) -> dict[str, Any]:
        grn = await self.fetch(document_id, organization_id)
        data = self.schema.data(grn)
        items = calc.line_items(grn, self.schema.data_key)

        invoices, po = await asyncio.gather(
            self.matcher.find_linked(INVOICES_FOR_GRN, data.get("vendorInvoiceNo"), organization_id),
            self.matcher.find_one_linked(PO_FOR_GRN, data.get("poNumber"), organization_id),
        )

        received = calc.sum_line_items(items, "receivedQty")
        accepted = calc.sum_line_items(items, "acceptedQty")
        rejected = calc.rejected_qty(items)
        invoice_qty = calc.invoiced_qty(invoices)

        return {
            "grn": self.raw_fields(grn),
            "summary": {
                "receivedQty": received,
                "acceptedQty": accepted,
                "rejectedQty": rejected,
                "invoiceQty": invoice_qty,
                "acceptedPercent": calc.format_percent(accepted, received),
                "invoiceStatus": classify.grn_invoice_status(accepted, invoice_qty, bool(invoices)).value,
                "acceptanceStatus": classify.grn_acceptance_status(rejected).value,
            },
            "lines": [
                {
                    "lineNo": index,
                    "description": item.get("description") or item.get("article") or "",
                    "receivedQty": calc.to_number(item.get("receivedQty")),
                    "acceptedQty": calc.to_number(item.get("acceptedQty")),
                    "rejectedQty": calc.line_rejected_qty(item),
                }
                for index, item in enumerate(items, start=1)
            ],
            "linkedInvoices": [_invoice_line(inv) for inv in invoices],
            "linkedPO": _po_line(po),
        }
