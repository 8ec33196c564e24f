"""
Dependency Injection Container
Provides the shared document store and the workspace service to routes.
Selects MongoDB or the in-memory store from DOCUMENT_STORE_BACKEND.
"""
from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import Depends

from ..application.config import get_settings
from ..application.services.workspace_service import WorkspaceService
from ..domain.entities import DocumentType
from ..domain.interfaces import IDocumentStore
from ..infrastructure.database.memory_store import InMemoryDocumentStore
from ..infrastructure.database.mongodb_adapter import MongoDocumentStore

logger = structlog.get_logger(__name__)

# Singleton
_store: IDocumentStore | None = None


def get_document_store() -> IDocumentStore:
    global _store
    if _store is None:
        settings = get_settings()
        if settings.document_store_backend == "memory":
            _store = InMemoryDocumentStore()
            logger.warning("document_store_in_memory", hint="not for production use")
        else:
            _store = MongoDocumentStore(
                settings.mongo_url,
                settings.mongo_db,
                collections={
                    DocumentType.PURCHASE_ORDER: settings.po_collection,
                    DocumentType.INVOICE: settings.invoice_collection,
                    DocumentType.GOODS_RECEIPT_NOTE: settings.grn_collection,
                },
            )
            logger.info("document_store_mongo", db=settings.mongo_db)
    return _store


def get_workspace_service(
    store: Annotated[IDocumentStore, Depends(get_document_store)],
) -> WorkspaceService:
    return WorkspaceService(store, get_settings())


# FastAPI dependency type aliases
WorkspaceServiceDep = Annotated[WorkspaceService, Depends(get_workspace_service)]
