"""
Unit Tests for single-document reconciliation details.
"""
import pytest

from recon_workspace.domain.exceptions import (
    DocumentNotFoundError,
    InvalidIdentifierError,
    InvalidOrganizationError,
)


class TestPODetails:

    @pytest.mark.asyncio
    async def test_breakdown_and_counterparts(self, factory, service, org_id):
        po = factory.po("PO-1", total_qty=100, total_value=5000)
        factory.invoice("INV-1", buyer_order_no="PO-1", invoice_qty=60, total_amount=3000)
        factory.grn("GRN-1", po_number="PO-1", lines=[(60, 55)])

        details = await service.get_po_details(po["_id"], org_id)

        assert details["po"]["id"] == po["_id"]
        assert details["po"]["poNumber"] == "PO-1"
        assert details["summary"]["qtyInvoicedPercent"] == "60.0%"
        assert details["summary"]["valueInvoicedPercent"] == "60.0%"
        assert details["summary"]["invoiceStatus"] == "Partially Invoiced"
        assert details["summary"]["grnStatus"] == ["Partially Received", "Has Rejections"]
        assert [i["invoiceNumber"] for i in details["linkedInvoices"]] == ["INV-1"]
        assert details["linkedGRNs"][0]["rejectedQty"] == 5.0
        assert details["linkedGRNs"][0]["acceptanceStatus"] == "Partially Accepted"

    @pytest.mark.asyncio
    async def test_not_found(self, factory, service, org_id):
        with pytest.raises(DocumentNotFoundError, match="Purchase Order not found"):
            await service.get_po_details(factory.next_id(), org_id)

    @pytest.mark.asyncio
    async def test_other_organization_is_not_found(self, factory, service, other_org_id):
        po = factory.po("PO-1")
        with pytest.raises(DocumentNotFoundError):
            await service.get_po_details(po["_id"], other_org_id)

    @pytest.mark.asyncio
    async def test_inactive_is_not_found(self, factory, service, org_id):
        po = factory.po("PO-1", active=False)
        with pytest.raises(DocumentNotFoundError):
            await service.get_po_details(po["_id"], org_id)

    @pytest.mark.asyncio
    async def test_empty_inputs(self, service, org_id):
        with pytest.raises(InvalidOrganizationError):
            await service.get_po_details("65a0000000000000000000aa", "")
        with pytest.raises(InvalidIdentifierError):
            await service.get_po_details("", org_id)


class TestInvoiceDetails:

    @pytest.mark.asyncio
    async def test_linked_po_and_grns(self, factory, service, org_id):
        po = factory.po("PO-1", total_qty=100)
        invoice = factory.invoice("INV-1", buyer_order_no="PO-1", invoice_qty=10)
        factory.grn("GRN-1", vendor_invoice_no="INV-1", lines=[(10, 10)])

        details = await service.get_invoice_details(invoice["_id"], org_id)

        assert details["invoice"]["invoiceNumber"] == "INV-1"
        assert details["linkedPO"]["id"] == po["_id"]
        assert details["summary"]["poQty"] == 100.0
        assert details["summary"]["poStatus"] == "PO Linked"
        assert details["summary"]["grnStatus"] == ["GRN Matched"]
        assert len(details["linkedGRNs"]) == 1

    @pytest.mark.asyncio
    async def test_without_counterparts(self, factory, service, org_id):
        invoice = factory.invoice("INV-1", invoice_qty=10)

        details = await service.get_invoice_details(invoice["_id"], org_id)
        assert details["linkedPO"] is None
        assert details["linkedGRNs"] == []
        assert details["summary"]["poStatus"] == "No PO"
        assert details["summary"]["grnStatus"] == ["Missing GRN"]

    @pytest.mark.asyncio
    async def test_not_found_label(self, factory, service, org_id):
        with pytest.raises(DocumentNotFoundError, match="Invoice not found"):
            await service.get_invoice_details(factory.next_id(), org_id)


class TestGRNDetails:

    @pytest.mark.asyncio
    async def test_line_breakdown(self, factory, service, org_id):
        grn = factory.grn("GRN-1", lines=[(10, 8), (5, "5")])

        details = await service.get_grn_details(grn["_id"], org_id)

        assert details["summary"]["receivedQty"] == 15.0
        assert details["summary"]["rejectedQty"] == 2.0
        assert details["summary"]["invoiceStatus"] == "Missing Invoice"
        assert details["lines"] == [
            {"lineNo": 1, "description": "Line 1", "receivedQty": 10.0, "acceptedQty": 8.0, "rejectedQty": 2.0},
            {"lineNo": 2, "description": "Line 2", "receivedQty": 5.0, "acceptedQty": 5.0, "rejectedQty": 0.0},
        ]
        assert details["linkedInvoices"] == []
        assert details["linkedPO"] is None

    @pytest.mark.asyncio
    async def test_not_found_label(self, factory, service, org_id):
        with pytest.raises(DocumentNotFoundError, match="GRN not found"):
            await service.get_grn_details(factory.next_id(), org_id)
