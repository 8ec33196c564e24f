"""
Quantity / value aggregation over extracted procurement documents.

Extracted business fields arrive as strings, numbers or nothing at all.
`to_number` is the single boundary where they become floats:

  - a leading numeric prefix is honoured ("12 pcs" -> 12.0, "1,000" -> 1.0)
  - anything unparsable, absent or non-finite is 0.0, never NaN or Infinity
    and never an exception
"""
from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

_NUMERIC_PREFIX = re.compile(
    r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)
_ONE_DECIMAL = Decimal("0.1")


def to_number(value: Any) -> float:
    """Lenient float coercion. Unparsable or missing input is 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return 0.0
    elif isinstance(value, (list, tuple, dict, set)):
        return 0.0
    else:
        match = _NUMERIC_PREFIX.match(str(value).lstrip())
        if not match:
            return 0.0
        number = float(match.group(0).replace("Infinity", "inf"))
    return number if math.isfinite(number) else 0.0


def get_path(document: dict[str, Any], field_path: str) -> Any:
    """Resolve a dotted path ("invoice_data.invoiceQty"); missing segments yield None."""
    current: Any = document
    for part in field_path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def line_items(document: dict[str, Any], data_key: str) -> list[dict[str, Any]]:
    items = get_path(document, f"{data_key}.items")
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def sum_field(documents: Iterable[dict[str, Any]], field_path: str) -> float:
    total = 0.0
    for doc in documents:
        total += to_number(get_path(doc, field_path))
    return total


def sum_line_items(items: Iterable[dict[str, Any]], field_name: str) -> float:
    total = 0.0
    for item in items:
        total += to_number(item.get(field_name))
    return total


def line_rejected_qty(item: dict[str, Any]) -> float:
    return to_number(item.get("receivedQty")) - to_number(item.get("acceptedQty"))


def rejected_qty(items: Iterable[dict[str, Any]]) -> float:
    """Sum of (received - accepted) per line. Negative results are data, not errors."""
    total = 0.0
    for item in items:
        total += line_rejected_qty(item)
    return total


def has_rejections(items: Iterable[dict[str, Any]]) -> bool:
    return any(line_rejected_qty(item) > 0 for item in items)


# ─── Roll-ups over linked documents ───────────────────────────────────────────

def invoiced_qty(invoices: list[dict[str, Any]]) -> float:
    return sum_field(invoices, "invoice_data.invoiceQty")


def invoiced_value(invoices: list[dict[str, Any]]) -> float:
    return sum_field(invoices, "invoice_data.totalAmount")


def grn_received_qty(grns: list[dict[str, Any]]) -> float:
    total = 0.0
    for grn in grns:
        total += sum_line_items(line_items(grn, "grn_data"), "receivedQty")
    return total


def grn_accepted_qty(grns: list[dict[str, Any]]) -> float:
    total = 0.0
    for grn in grns:
        total += sum_line_items(line_items(grn, "grn_data"), "acceptedQty")
    return total


def grn_rejected_qty(grns: list[dict[str, Any]]) -> float:
    total = 0.0
    for grn in grns:
        total += rejected_qty(line_items(grn, "grn_data"))
    return total


def grns_have_rejections(grns: list[dict[str, Any]]) -> bool:
    return any(has_rejections(line_items(grn, "grn_data")) for grn in grns)


# ─── Percentages ──────────────────────────────────────────────────────────────

def _to_fixed_1(value: float) -> str:
    # Rounds the exact binary value, ties away from zero (Number.prototype.toFixed)
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        value = 0.0
    return format(Decimal(value).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP), "f")


def format_percent(numerator: float, denominator: float) -> str:
    if denominator > 0:
        return f"{_to_fixed_1((numerator / denominator) * 100)}%"
    return "0.0%"


def parse_percent(text: str) -> float:
    return to_number(text)


def mean_percent(percentages: list[str]) -> float:
    """Mean of already-rounded percentage strings (not of the raw ratios)."""
    if not percentages:
        return 0.0
    total = 0.0
    for text in percentages:
        total += parse_percent(text)
    return total / len(percentages)
