"""
Reconciliation Workspace Domain Interfaces
Abstract ports for the infrastructure layer (Dependency Inversion Principle).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .entities import DocumentType

# Field path -> literal (equality, None matches missing) | {"$in": [...]} | {"$gte"/"$lte": v}
DocumentFilter = dict[str, Any]
SortSpec = list[tuple[str, int]]


class IDocumentStore(ABC):
    """Read-only access to the extracted procurement documents."""

    @abstractmethod
    async def find(
        self,
        doc_type: DocumentType,
        filters: DocumentFilter,
        *,
        skip: int = 0,
        limit: int = 0,
        sort: SortSpec | None = None,
    ) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def find_one(self, doc_type: DocumentType, filters: DocumentFilter) -> dict[str, Any] | None:
        ...

    @abstractmethod
    async def count(self, doc_type: DocumentType, filters: DocumentFilter) -> int:
        ...

    async def ping(self) -> None:
        """Raise if the backing store is unreachable."""
        return None

    async def ensure_indexes(self) -> None:
        return None

    def close(self) -> None:
        return None
