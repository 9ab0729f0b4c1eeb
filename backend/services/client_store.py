"""
Record store for client records.

Owns validation, timestamps, pagination and identity lookups on top of a
ClientCollection. Storage failures are logged and re-raised untouched;
nothing is retried here.

Usage:
    store = ClientStore(ClientCollection(database))
    client = await store.create({...})
    page = await store.list(page=2, limit=5, sort_by="createdAt", sort_order="asc")
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from client_model import FIELD_COLUMNS
from errors import NotFoundError, StorageError, ValidationError
from logging_config import get_logger
from schemas import (
    ClientCreate,
    ClientOut,
    ClientPage,
    ClientUpdate,
    ListOptions,
    validate_or_raise,
)
from services.client_collection import ClientCollection

logger = get_logger("client_store")


def _is_valid_id(client_id: Any) -> bool:
    if not isinstance(client_id, str):
        return False
    try:
        uuid.UUID(client_id)
    except ValueError:
        return False
    return True


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ClientStore:
    def __init__(self, collection: ClientCollection):
        self._collection = collection

    async def create(self, candidate: Any) -> ClientOut:
        """Validate the full record, stamp it and persist it. Nothing is written on failure."""
        client = validate_or_raise(ClientCreate, candidate)
        now = _now()
        document = client.model_dump(by_alias=True)
        document.update(id=str(uuid.uuid4()), createdAt=now, updatedAt=now)
        try:
            stored = await self._collection.insert(document)
        except StorageError:
            logger.error("store.create_failed", extra={"group": document.get("whatsappGroupName")})
            raise
        logger.info("store.created", extra={"client_id": stored["id"]})
        return ClientOut.model_validate(stored)

    async def get_by_id(self, client_id: str) -> Optional[ClientOut]:
        """Malformed identifiers can never match, so they come back as None."""
        if not _is_valid_id(client_id):
            logger.debug("store.malformed_id", extra={"client_id": str(client_id)[:64]})
            return None
        try:
            doc = await self._collection.find_by_id(client_id)
        except StorageError:
            logger.error("store.get_failed", extra={"client_id": client_id})
            raise
        return ClientOut.model_validate(doc) if doc else None

    async def get_active_by_group(self, group_name: str) -> Optional[ClientOut]:
        """
        First client registered for the group. Several clients may share a
        group name; which one wins is then unspecified.
        """
        try:
            doc = await self._collection.find_one(whatsappGroupName=group_name)
        except StorageError:
            logger.error("store.group_lookup_failed", extra={"group": group_name})
            raise
        if doc is None:
            logger.info("store.no_client_for_group", extra={"group": group_name})
            return None
        logger.info("store.client_for_group", extra={"group": group_name, "client_id": doc["id"]})
        return ClientOut.model_validate(doc)

    async def update(self, client_id: str, changes: Any) -> ClientOut:
        """Merge the fields present in `changes`; absent fields are left alone."""
        partial = validate_or_raise(ClientUpdate, changes)
        fields = partial.model_dump(by_alias=True, exclude_unset=True)
        fields["updatedAt"] = _now()

        if not _is_valid_id(client_id):
            raise NotFoundError(f"Client not found with ID: {client_id}")
        try:
            doc = await self._collection.find_one_and_update(client_id, fields)
        except StorageError:
            logger.error("store.update_failed", extra={"client_id": client_id})
            raise
        if doc is None:
            raise NotFoundError(f"Client not found with ID: {client_id}")

        logger.info("store.updated", extra={"client_id": client_id, "fields": sorted(fields)})
        return ClientOut.model_validate(doc)

    async def delete(self, client_id: str) -> bool:
        if not _is_valid_id(client_id):
            return False
        try:
            deleted = await self._collection.delete_by_id(client_id)
        except StorageError:
            logger.error("store.delete_failed", extra={"client_id": client_id})
            raise
        if deleted:
            logger.info("store.deleted", extra={"client_id": client_id})
        return deleted

    async def list(
        self,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> ClientPage:
        opts = validate_or_raise(
            ListOptions,
            {"page": page, "limit": limit, "sortBy": sort_by, "sortOrder": sort_order},
        )
        if opts.sort_by not in FIELD_COLUMNS:
            raise ValidationError([f"sortBy: cannot sort by '{opts.sort_by}'"])

        skip = (opts.page - 1) * opts.limit
        try:
            docs = await self._collection.find(
                sort_by=opts.sort_by,
                descending=opts.sort_order == "desc",
                skip=skip,
                limit=opts.limit,
            )
            total = await self._collection.count()
        except StorageError:
            logger.error("store.list_failed", extra={"page": opts.page, "limit": opts.limit})
            raise

        return ClientPage(
            clients=[ClientOut.model_validate(d) for d in docs],
            total=total,
            page=opts.page,
            limit=opts.limit,
        )
