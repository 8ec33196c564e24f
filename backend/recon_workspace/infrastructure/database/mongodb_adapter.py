"""
MongoDB Document Store Adapter (Motor async driver)

Read-only view over the collections the extraction pipeline writes:
  - purchaseorders  → purchase_order_data
  - invoices        → invoice_data
  - grns            → grn_data

`_id` and `organization` are ObjectIds in the store but plain strings
everywhere above this adapter: filter values are converted on the way in,
returned documents are stringified on the way out.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient

from ...domain.entities import DOCUMENT_SCHEMAS, DocumentType
from ...domain.interfaces import DocumentFilter, IDocumentStore, SortSpec

logger = structlog.get_logger(__name__)

DEFAULT_COLLECTIONS: dict[DocumentType, str] = {
    DocumentType.PURCHASE_ORDER: "purchaseorders",
    DocumentType.INVOICE: "invoices",
    DocumentType.GOODS_RECEIPT_NOTE: "grns",
}

_OBJECT_ID_FIELDS = {"_id", "organization"}

_DATE_FIELDS = {schema.path(schema.date_field) for schema in DOCUMENT_SCHEMAS.values()}
_RANGE_OPS = {"$gte", "$gt", "$lte", "$lt"}

# Fields counterpart lookups filter on, per collection
_LOOKUP_INDEXES: dict[DocumentType, tuple[str, ...]] = {
    DocumentType.PURCHASE_ORDER: ("purchase_order_data.poNumber",),
    DocumentType.INVOICE: ("invoice_data.buyerOrderNo", "invoice_data.invoiceNumber"),
    DocumentType.GOODS_RECEIPT_NOTE: ("grn_data.poNumber", "grn_data.vendorInvoiceNo"),
}


def _as_object_id(value: Any) -> Any:
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def _as_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _date_alternatives(field_path: str, condition: dict[str, Any]) -> dict[str, Any]:
    """The same range against ISO-string dates or BSON Dates, whichever the pipeline stored."""
    try:
        as_dates = {op: _as_datetime(bound) for op, bound in condition.items()}
    except (TypeError, ValueError):
        return {field_path: condition}
    return {"$or": [{field_path: condition}, {field_path: as_dates}]}


def to_mongo_filter(filters: DocumentFilter) -> dict[str, Any]:
    """Convert string ids to ObjectId for the id-typed fields, including inside $in.

    Date ranges arrive with ISO-string bounds; they are widened to also match
    documents whose date field is stored as a BSON Date.
    """
    query: dict[str, Any] = {}
    for field_path, condition in filters.items():
        if field_path in _OBJECT_ID_FIELDS:
            if isinstance(condition, dict):
                condition = {
                    op: [_as_object_id(v) for v in operand] if isinstance(operand, list) else _as_object_id(operand)
                    for op, operand in condition.items()
                }
            else:
                condition = _as_object_id(condition)
        elif field_path in _DATE_FIELDS and isinstance(condition, dict) and condition.keys() <= _RANGE_OPS:
            query.setdefault("$and", []).append(_date_alternatives(field_path, condition))
            continue
        query[field_path] = condition
    return query


def serialize_document(value: Any) -> Any:
    """ObjectId → str, datetime → ISO string, recursively."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: serialize_document(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_document(v) for v in value]
    return value


class MongoDocumentStore(IDocumentStore):
    """MongoDB adapter for the procurement document collections using Motor."""

    def __init__(
        self,
        mongo_url: str,
        db_name: str = "procurement",
        collections: dict[DocumentType, str] | None = None,
    ) -> None:
        self.client = AsyncIOMotorClient(mongo_url)
        self.db = self.client[db_name]
        names = {**DEFAULT_COLLECTIONS, **(collections or {})}
        self.collections = {doc_type: self.db[name] for doc_type, name in names.items()}

    async def ping(self) -> None:
        await self.client.admin.command("ping")

    async def ensure_indexes(self) -> None:
        for doc_type, fields in _LOOKUP_INDEXES.items():
            collection = self.collections[doc_type]
            for field_path in fields:
                await collection.create_index([("organization", 1), (field_path, 1)])
            await collection.create_index([("organization", 1), ("active", 1), ("_id", -1)])
        logger.info("mongodb_indexes_ensured")

    async def find(
        self,
        doc_type: DocumentType,
        filters: DocumentFilter,
        *,
        skip: int = 0,
        limit: int = 0,
        sort: SortSpec | None = None,
    ) -> list[dict[str, Any]]:
        cursor = self.collections[doc_type].find(to_mongo_filter(filters))
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [serialize_document(doc) async for doc in cursor]

    async def find_one(self, doc_type: DocumentType, filters: DocumentFilter) -> dict[str, Any] | None:
        doc = await self.collections[doc_type].find_one(to_mongo_filter(filters))
        return serialize_document(doc) if doc is not None else None

    async def count(self, doc_type: DocumentType, filters: DocumentFilter) -> int:
        return await self.collections[doc_type].count_documents(to_mongo_filter(filters))

    def close(self) -> None:
        self.client.close()
        logger.info("mongodb_client_closed")
