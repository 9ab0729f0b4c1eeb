"""
Document-style access to the clients table.

Callers exchange plain dicts keyed by wire (camelCase) names; this module is
the only place that knows about columns, including the stored password.
Every SQLAlchemy failure surfaces as StorageError.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from client_model import Client, FIELD_COLUMNS
from database import Database
from errors import StorageError
from logging_config import get_logger

logger = get_logger("client_collection")

# Wire name -> ORM attribute, for reads and writes.
_ATTRS = {
    "id": "id",
    "whatsappGroupName": "whatsapp_group_name",
    "bid": "bid",
    "uid": "uid",
    "mtcGroupID": "mtc_group_id",
    "reporterName": "reporter_name",
    "reporterPhone": "reporter_phone",
    "compId": "comp_id",
    "userName": "user_name",
    "password": "password",
    "appGuid": "app_guid",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; they were written as UTC.
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _to_document(row: Client) -> dict[str, Any]:
    doc = {wire: getattr(row, attr) for wire, attr in _ATTRS.items()}
    doc["createdAt"] = _as_utc(doc["createdAt"])
    doc["updatedAt"] = _as_utc(doc["updatedAt"])
    return doc


def _apply(row: Client, changes: dict[str, Any]):
    for wire, value in changes.items():
        attr = _ATTRS.get(wire)
        if attr and wire != "id":
            setattr(row, attr, value)


class ClientCollection:
    def __init__(self, database: Database):
        self._db = database

    @asynccontextmanager
    async def _session(self, op: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._db.session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("collection.storage_error", extra={"op": op, "error": str(e)})
            raise StorageError(f"{op} failed: {e.__class__.__name__}") from e

    async def find_by_id(self, client_id: str) -> Optional[dict[str, Any]]:
        async with self._session("find_by_id") as session:
            row = await session.get(Client, client_id)
            return _to_document(row) if row else None

    async def find_one(self, **filters: Any) -> Optional[dict[str, Any]]:
        """First row matching every `wireName=value` filter; no ordering guarantee."""
        q = select(Client)
        for wire, value in filters.items():
            q = q.where(FIELD_COLUMNS[wire] == value)
        async with self._session("find_one") as session:
            result = await session.execute(q.limit(1))
            row = result.scalars().first()
            return _to_document(row) if row else None

    async def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        row = Client(id=document["id"]) if document.get("id") else Client()
        _apply(row, document)
        async with self._session("insert") as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _to_document(row)

    async def find_one_and_update(
        self,
        client_id: str,
        changes: dict[str, Any],
    ) -> Optional[dict[str, Any]]:
        """Apply `changes` to the row and return it afterwards, or None if absent."""
        async with self._session("find_one_and_update") as session:
            row = await session.get(Client, client_id)
            if row is None:
                return None
            _apply(row, changes)
            await session.commit()
            await session.refresh(row)
            return _to_document(row)

    async def delete_by_id(self, client_id: str) -> bool:
        async with self._session("delete_by_id") as session:
            row = await session.get(Client, client_id)
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True

    async def count(self) -> int:
        async with self._session("count") as session:
            result = await session.execute(select(func.count(Client.id)))
            return result.scalar() or 0

    async def find(
        self,
        sort_by: str,
        descending: bool,
        skip: int,
        limit: int,
    ) -> list[dict[str, Any]]:
        column = FIELD_COLUMNS[sort_by]
        order = column.desc() if descending else column.asc()
        tie = Client.id.desc() if descending else Client.id.asc()
        q = select(Client).order_by(order, tie).offset(skip).limit(limit)
        async with self._session("find") as session:
            result = await session.execute(q)
            return [_to_document(r) for r in result.scalars().all()]
