"""Persistence gateway: collection-oriented document storage.

Services talk to storage only through the ``PersistenceGateway`` protocol.
Two backends implement it: ``InMemoryGateway`` (process-local, used in
development and tests) and ``BlobGateway`` in ``blob_storage`` (Azure Blob
Storage). ``get_gateway()`` picks one from ``STORAGE_BACKEND``.

Filters use a small subset of the MongoDB query language::

    {"status": "published"}                       # equality
    {"tags": "python"}                            # array contains
    {"id": {"$in": ["a", "b"]}}                   # membership
    {"status": {"$ne": "draft"}}                  # inequality
    {"title": {"$regex": "hooks", "$options": "i"}}
    {"$or": [{...}, {...}]}

Updates support ``$set`` and ``$inc``.
"""

import copy
import logging
import re
import uuid
from collections import defaultdict
from typing import Any, Protocol

from blogify.config import get_settings

logger = logging.getLogger(__name__)

POSTS = "posts"
USERS = "users"

# Fields that must be unique within a collection (``id`` always is).
DEFAULT_UNIQUE_FIELDS: dict[str, tuple[str, ...]] = {USERS: ("email",)}

Document = dict[str, Any]
Filter = dict[str, Any]
SortSpec = list[tuple[str, int]]


class DuplicateKeyError(Exception):
    """A write would break a unique field."""

    def __init__(self, collection: str, field: str, value: Any) -> None:
        self.collection = collection
        self.field = field
        self.value = value
        super().__init__(f"Duplicate {field} in {collection}: {value!r}")


class PersistenceGateway(Protocol):
    async def create(self, collection: str, doc: Document) -> Document: ...

    async def find_one(self, collection: str, filter: Filter) -> Document | None: ...

    async def find(
        self,
        collection: str,
        filter: Filter | None = None,
        *,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[Document]: ...

    async def update_one(
        self, collection: str, filter: Filter, update: dict[str, Any]
    ) -> Document | None: ...

    async def delete_one(self, collection: str, filter: Filter) -> int: ...

    async def delete_many(self, collection: str, filter: Filter) -> int: ...

    async def count_documents(self, collection: str, filter: Filter | None = None) -> int: ...

    def check_connectivity(self) -> bool: ...


# ── Query evaluation ─────────────────────────────────────────────


def _equals(actual: Any, expected: Any) -> bool:
    if isinstance(actual, list) and not isinstance(expected, list):
        return expected in actual
    return actual == expected


def _regex_match(actual: Any, pattern: str, flags: int) -> bool:
    values = actual if isinstance(actual, list) else [actual]
    return any(isinstance(v, str) and re.search(pattern, v, flags) for v in values)


def _match_condition(actual: Any, condition: Any) -> bool:
    if not (isinstance(condition, dict) and any(k.startswith("$") for k in condition)):
        return _equals(actual, condition)

    for op, arg in condition.items():
        if op == "$in":
            ok = any(_equals(actual, candidate) for candidate in arg)
        elif op == "$ne":
            ok = not _equals(actual, arg)
        elif op == "$regex":
            options = condition.get("$options", "")
            flags = re.IGNORECASE if "i" in options else 0
            ok = _regex_match(actual, arg, flags)
        elif op == "$options":
            continue
        else:
            raise ValueError(f"Unsupported filter operator: {op}")
        if not ok:
            return False
    return True


def matches(doc: Document, filter: Filter | None) -> bool:
    """Return True if *doc* satisfies *filter*."""
    for key, condition in (filter or {}).items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
        elif key == "$and":
            if not all(matches(doc, sub) for sub in condition):
                return False
        elif not _match_condition(doc.get(key), condition):
            return False
    return True


def apply_update(doc: Document, update: dict[str, Any]) -> Document:
    """Apply ``$set`` / ``$inc`` operators to *doc* in place."""
    for op, fields in update.items():
        if op == "$set":
            doc.update(fields)
        elif op == "$inc":
            for field, amount in fields.items():
                doc[field] = (doc.get(field) or 0) + amount
        else:
            raise ValueError(f"Unsupported update operator: {op}")
    return doc


def _sort_key(value: Any) -> tuple[bool, Any]:
    # Missing values count as smallest, as MongoDB orders nulls
    if isinstance(value, str):
        value = value.casefold()
    return (value is not None, value)


def sort_documents(docs: list[Document], sort: SortSpec | None) -> list[Document]:
    """Stable multi-key sort; ``sort`` is ``[(field, 1 | -1), ...]``."""
    result = list(docs)
    for field, direction in reversed(sort or []):
        result.sort(key=lambda d: _sort_key(d.get(field)), reverse=direction < 0)
    return result


def page_documents(docs: list[Document], skip: int, limit: int) -> list[Document]:
    if skip > 0:
        docs = docs[skip:]
    if limit > 0:
        docs = docs[:limit]
    return docs


# ── In-memory backend ────────────────────────────────────────────


class InMemoryGateway:
    """Process-local gateway. Documents are copied in and out."""

    def __init__(self, unique_fields: dict[str, tuple[str, ...]] | None = None) -> None:
        self._unique_fields = (
            DEFAULT_UNIQUE_FIELDS if unique_fields is None else unique_fields
        )
        # collection -> id -> document, insertion ordered
        self._collections: dict[str, dict[str, Document]] = defaultdict(dict)

    def _check_unique(self, collection: str, doc: Document) -> None:
        docs = self._collections[collection]
        if doc["id"] in docs:
            raise DuplicateKeyError(collection, "id", doc["id"])
        for field in self._unique_fields.get(collection, ()):
            value = doc.get(field)
            if value is not None and any(d.get(field) == value for d in docs.values()):
                raise DuplicateKeyError(collection, field, value)

    def _first(self, collection: str, filter: Filter) -> Document | None:
        for doc in self._collections[collection].values():
            if matches(doc, filter):
                return doc
        return None

    async def create(self, collection: str, doc: Document) -> Document:
        doc = copy.deepcopy(doc)
        doc.setdefault("id", uuid.uuid4().hex)
        self._check_unique(collection, doc)
        self._collections[collection][doc["id"]] = doc
        return copy.deepcopy(doc)

    async def find_one(self, collection: str, filter: Filter) -> Document | None:
        doc = self._first(collection, filter)
        return copy.deepcopy(doc) if doc is not None else None

    async def find(
        self,
        collection: str,
        filter: Filter | None = None,
        *,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[Document]:
        docs = [d for d in self._collections[collection].values() if matches(d, filter)]
        docs = page_documents(sort_documents(docs, sort), skip, limit)
        return copy.deepcopy(docs)

    async def update_one(
        self, collection: str, filter: Filter, update: dict[str, Any]
    ) -> Document | None:
        doc = self._first(collection, filter)
        if doc is None:
            return None
        apply_update(doc, copy.deepcopy(update))
        return copy.deepcopy(doc)

    async def delete_one(self, collection: str, filter: Filter) -> int:
        doc = self._first(collection, filter)
        if doc is None:
            return 0
        del self._collections[collection][doc["id"]]
        return 1

    async def delete_many(self, collection: str, filter: Filter) -> int:
        docs = self._collections[collection]
        doomed = [doc_id for doc_id, doc in docs.items() if matches(doc, filter)]
        for doc_id in doomed:
            del docs[doc_id]
        return len(doomed)

    async def count_documents(self, collection: str, filter: Filter | None = None) -> int:
        return sum(1 for d in self._collections[collection].values() if matches(d, filter))

    def check_connectivity(self) -> bool:
        return True


# Lazy singleton — lives for the process lifetime
_gateway: PersistenceGateway | None = None


def get_gateway() -> PersistenceGateway:
    """Return the configured gateway, creating it on first call."""
    global _gateway
    if _gateway is None:
        backend = get_settings().storage_backend
        if backend == "memory":
            _gateway = InMemoryGateway()
        elif backend == "blob":
            from blogify.services.blob_storage import BlobGateway

            _gateway = BlobGateway()
        else:
            raise ValueError(f"Unknown storage backend: {backend!r}")
        logger.info("Using %s persistence backend", backend)
    return _gateway
