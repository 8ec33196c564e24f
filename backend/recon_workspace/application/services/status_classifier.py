"""
Status classification.

Pure functions from aggregated quantities to the closed status enums.
Comparisons are exact: equal is its own branch, never folded into under/over.
"""
from __future__ import annotations

from ...domain.entities import (
    GRNAcceptanceStatus,
    GRNInvoiceStatus,
    InvoiceGRNStatus,
    InvoiceGRNStatusTags,
    InvoicePOStatus,
    POGRNStatus,
    POGRNStatusTags,
    POInvoiceStatus,
)


def po_invoice_status(po_qty: float, invoiced_qty: float) -> POInvoiceStatus:
    if invoiced_qty == 0:
        return POInvoiceStatus.OPEN
    if invoiced_qty < po_qty:
        return POInvoiceStatus.PARTIALLY_INVOICED
    if invoiced_qty == po_qty:
        return POInvoiceStatus.FULLY_INVOICED
    return POInvoiceStatus.OVER_INVOICED


def po_grn_status(po_qty: float, grn_accepted_qty: float, has_rejections: bool) -> POGRNStatusTags:
    if grn_accepted_qty == 0:
        primary = POGRNStatus.NO_GRN_YET
    elif grn_accepted_qty < po_qty:
        primary = POGRNStatus.PARTIALLY_RECEIVED
    elif grn_accepted_qty == po_qty:
        primary = POGRNStatus.FULLY_RECEIVED
    else:
        primary = POGRNStatus.OVER_RECEIVED

    if has_rejections:
        return (primary, POGRNStatus.HAS_REJECTIONS)
    return (primary,)


def invoice_po_status(has_po: bool) -> InvoicePOStatus:
    return InvoicePOStatus.PO_LINKED if has_po else InvoicePOStatus.NO_PO


def invoice_grn_status(
    invoice_qty: float,
    grn_accepted_qty: float,
    has_grn: bool,
    has_rejections: bool,
) -> InvoiceGRNStatusTags:
    if not has_grn:
        primary = InvoiceGRNStatus.MISSING_GRN
    elif grn_accepted_qty < invoice_qty:
        primary = InvoiceGRNStatus.GRN_UNDER
    elif grn_accepted_qty == invoice_qty:
        primary = InvoiceGRNStatus.GRN_MATCHED
    else:
        primary = InvoiceGRNStatus.GRN_OVER

    if has_rejections:
        return (primary, InvoiceGRNStatus.HAS_REJECTIONS)
    return (primary,)


def grn_invoice_status(grn_accepted_qty: float, invoice_qty: float, has_invoice: bool) -> GRNInvoiceStatus:
    if not has_invoice:
        return GRNInvoiceStatus.MISSING_INVOICE
    if grn_accepted_qty < invoice_qty:
        return GRNInvoiceStatus.UNDER_VS_INVOICE
    if grn_accepted_qty == invoice_qty:
        return GRNInvoiceStatus.MATCHED_VS_INVOICE
    return GRNInvoiceStatus.OVER_VS_INVOICE


def grn_acceptance_status(rejected_qty: float) -> GRNAcceptanceStatus:
    if rejected_qty == 0:
        return GRNAcceptanceStatus.FULLY_ACCEPTED
    return GRNAcceptanceStatus.PARTIALLY_ACCEPTED
