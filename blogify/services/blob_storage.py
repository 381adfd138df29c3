"""Azure Blob Storage backend for the persistence gateway.

Each document lives in its own JSON blob at ``<collection>/<id>.json``.
Queries list the collection prefix and evaluate filters in-process, which
is fine for a blog-sized dataset.
"""

import json
import logging
import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
from azure.identity import ManagedIdentityCredential
from azure.storage.blob import ContainerClient, ContentSettings

from blogify.config import get_settings
from blogify.services.gateway import (
    DEFAULT_UNIQUE_FIELDS,
    Document,
    DuplicateKeyError,
    Filter,
    SortSpec,
    apply_update,
    matches,
    page_documents,
    sort_documents,
)

logger = logging.getLogger(__name__)

_SAFE_PATH_SEGMENT_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]*$")

JSON_CONTENT = ContentSettings(content_type="application/json")


def validate_blob_path_segment(segment: str) -> str:
    """Validate a blob path segment (collection name or document id).

    Rejects inputs containing path traversal sequences (..), slashes,
    backslashes, or other unsafe characters. Returns the segment unchanged
    if valid; raises ValueError otherwise.
    """
    if not segment or not _SAFE_PATH_SEGMENT_RE.match(segment):
        raise ValueError(f"Invalid blob path segment: {segment!r}")
    return segment


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _blob_name(collection: str, doc_id: str) -> str:
    return f"{validate_blob_path_segment(collection)}/{validate_blob_path_segment(doc_id)}.json"


# Lazy singleton — lives for the process lifetime
_container_client: ContainerClient | None = None


def _get_credential() -> ManagedIdentityCredential:
    """Return Managed Identity credential."""
    settings = get_settings()
    return ManagedIdentityCredential(client_id=settings.managed_identity_client_id)


def create_container_client(container_name: str) -> ContainerClient:
    """Create a ContainerClient for the given container."""
    settings = get_settings()
    account_url = f"https://{settings.azure_storage_account}.blob.core.windows.net"
    return ContainerClient(
        account_url=account_url,
        container_name=container_name,
        credential=_get_credential(),
    )


def _get_container_client() -> ContainerClient:
    """Return the shared blob container client (lazy singleton)."""
    global _container_client
    if _container_client is None:
        _container_client = create_container_client(
            get_settings().azure_storage_container
        )
    return _container_client


class BlobGateway:
    """Persistence gateway over an Azure Blob Storage container."""

    def __init__(self, unique_fields: dict[str, tuple[str, ...]] | None = None) -> None:
        self._unique_fields = (
            DEFAULT_UNIQUE_FIELDS if unique_fields is None else unique_fields
        )

    def _read(self, name: str) -> Document | None:
        client = _get_container_client()
        try:
            data = client.get_blob_client(name).download_blob().readall()
            return json.loads(data)
        except ResourceNotFoundError:
            return None

    def _write(self, collection: str, doc: Document) -> None:
        client = _get_container_client()
        blob = client.get_blob_client(_blob_name(collection, doc["id"]))
        try:
            blob.upload_blob(
                json.dumps(doc, indent=2, default=_json_default),
                overwrite=True,
                content_settings=JSON_CONTENT,
            )
        except HttpResponseError as e:
            logger.warning("Azure API error writing %s/%s: %s", collection, doc["id"], e.message)
            raise

    def _load_collection(self, collection: str) -> list[Document]:
        client = _get_container_client()
        prefix = f"{validate_blob_path_segment(collection)}/"
        docs: list[Document] = []
        try:
            for props in client.list_blobs(name_starts_with=prefix):
                doc = self._read(props.name)
                if doc is not None:
                    docs.append(doc)
        except HttpResponseError as e:
            logger.warning("Azure API error listing %s: %s", collection, e.message)
            raise
        return docs

    def _check_unique(self, collection: str, doc: Document) -> None:
        if self._read(_blob_name(collection, doc["id"])) is not None:
            raise DuplicateKeyError(collection, "id", doc["id"])
        fields = self._unique_fields.get(collection, ())
        if not fields:
            return
        existing = self._load_collection(collection)
        for field in fields:
            value = doc.get(field)
            if value is not None and any(d.get(field) == value for d in existing):
                raise DuplicateKeyError(collection, field, value)

    async def create(self, collection: str, doc: Document) -> Document:
        doc = dict(doc)
        doc.setdefault("id", uuid.uuid4().hex)
        self._check_unique(collection, doc)
        self._write(collection, doc)
        # Round-trip through JSON so callers see what a later read returns
        return json.loads(json.dumps(doc, default=_json_default))

    async def find_one(self, collection: str, filter: Filter) -> Document | None:
        # Fast path: lookup by id only is a single blob read
        if set(filter) == {"id"} and isinstance(filter["id"], str):
            try:
                return self._read(_blob_name(collection, filter["id"]))
            except ValueError:
                return None
        for doc in self._load_collection(collection):
            if matches(doc, filter):
                return doc
        return None

    async def find(
        self,
        collection: str,
        filter: Filter | None = None,
        *,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[Document]:
        docs = [d for d in self._load_collection(collection) if matches(d, filter)]
        return page_documents(sort_documents(docs, sort), skip, limit)

    async def update_one(
        self, collection: str, filter: Filter, update: dict[str, Any]
    ) -> Document | None:
        doc = await self.find_one(collection, filter)
        if doc is None:
            return None
        apply_update(doc, update)
        self._write(collection, doc)
        return json.loads(json.dumps(doc, default=_json_default))

    async def delete_one(self, collection: str, filter: Filter) -> int:
        doc = await self.find_one(collection, filter)
        if doc is None:
            return 0
        self._delete(collection, doc["id"])
        return 1

    async def delete_many(self, collection: str, filter: Filter) -> int:
        doomed = [d for d in self._load_collection(collection) if matches(d, filter)]
        for doc in doomed:
            self._delete(collection, doc["id"])
        return len(doomed)

    def _delete(self, collection: str, doc_id: str) -> None:
        client = _get_container_client()
        try:
            client.get_blob_client(_blob_name(collection, doc_id)).delete_blob()
        except ResourceNotFoundError:
            # Already gone
            pass

    async def count_documents(self, collection: str, filter: Filter | None = None) -> int:
        return sum(1 for d in self._load_collection(collection) if matches(d, filter))

    def check_connectivity(self) -> bool:
        """Lightweight storage connectivity check — lists 1 blob."""
        try:
            client = _get_container_client()
            next(client.list_blobs(results_per_page=1).__iter__())
            return True
        except StopIteration:
            # Container exists but is empty — still connected
            return True
        except Exception:
            logger.warning("Blob storage connectivity check failed", exc_info=True)
            return False
