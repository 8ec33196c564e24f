"""
In-memory Document Store
Same query contract as the MongoDB adapter over plain Python lists.
Used for local development (DOCUMENT_STORE_BACKEND=memory) and the test suite.
"""
from __future__ import annotations

import copy
import secrets
from typing import Any

from ...domain.entities import DocumentType
from ...domain.interfaces import DocumentFilter, IDocumentStore, SortSpec

_RANGE_OPS = {
    "$gte": lambda a, b: a >= b,
    "$gt": lambda a, b: a > b,
    "$lte": lambda a, b: a <= b,
    "$lt": lambda a, b: a < b,
}


def _get_path(document: dict[str, Any], field_path: str) -> Any:
    current: Any = document
    for part in field_path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _path_values(current: Any, parts: list[str]) -> list[Any]:
    """Every value a dotted path reaches, descending into arrays the way Mongo does."""
    if not parts:
        return [current, *current] if isinstance(current, list) else [current]
    if isinstance(current, list):
        return [value for element in current for value in _path_values(element, parts)]
    if not isinstance(current, dict):
        return [None]
    return _path_values(current.get(parts[0]), parts[1:])


def _comparable(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return False
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return True
    return type(a) is type(b)


def _matches_condition(values: list[Any], condition: Any) -> bool:
    """A condition holds when any reached value satisfies it; `$ne` requires that none is equal."""
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for op, operand in condition.items():
            if op == "$in":
                if not any(value in operand for value in values):
                    return False
            elif op == "$ne":
                if any(value == operand for value in values):
                    return False
            elif op in _RANGE_OPS:
                compare = _RANGE_OPS[op]
                if not any(_comparable(value, operand) and compare(value, operand) for value in values):
                    return False
            else:
                raise ValueError(f"Unsupported filter operator: {op}")
        return True
    return any(value == condition for value in values)


def matches_filter(document: dict[str, Any], filters: DocumentFilter) -> bool:
    return all(
        _matches_condition(_path_values(document, path.split(".")), condition)
        for path, condition in filters.items()
    )


class InMemoryDocumentStore(IDocumentStore):
    """Process-local document store. Returns copies; stored documents are never mutated by readers."""

    def __init__(self) -> None:
        self._documents: dict[DocumentType, list[dict[str, Any]]] = {t: [] for t in DocumentType}

    def insert(self, doc_type: DocumentType, document: dict[str, Any]) -> dict[str, Any]:
        doc = copy.deepcopy(document)
        doc.setdefault("_id", secrets.token_hex(12))
        self._documents[doc_type].append(doc)
        return doc

    def insert_many(self, doc_type: DocumentType, documents: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [self.insert(doc_type, doc) for doc in documents]

    async def find(
        self,
        doc_type: DocumentType,
        filters: DocumentFilter,
        *,
        skip: int = 0,
        limit: int = 0,
        sort: SortSpec | None = None,
    ) -> list[dict[str, Any]]:
        results = [d for d in self._documents[doc_type] if matches_filter(d, filters)]
        # Stable multi-key sort: apply keys from least to most significant
        for field_path, direction in reversed(sort or []):
            results.sort(
                key=lambda d: str(_get_path(d, field_path) or ""),
                reverse=direction < 0,
            )
        if skip:
            results = results[skip:]
        if limit:
            results = results[:limit]
        return copy.deepcopy(results)

    async def find_one(self, doc_type: DocumentType, filters: DocumentFilter) -> dict[str, Any] | None:
        for doc in self._documents[doc_type]:
            if matches_filter(doc, filters):
                return copy.deepcopy(doc)
        return None

    async def count(self, doc_type: DocumentType, filters: DocumentFilter) -> int:
        return sum(1 for d in self._documents[doc_type] if matches_filter(d, filters))
