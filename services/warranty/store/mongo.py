"""
MongoDB Warranty Store
======================

Motor-backed store. The unique index on `warranty_numbers.code` provides
duplicate detection, and consuming a code is a single conditional
`update_one` filtered on `used: False`.

Version: 0.1.0
"""

import re
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError, ExecutionTimeout

from services.warranty.errors import DuplicateCode, StoreUnavailable
from services.warranty.models import (
    SUBSTRING_FIELDS,
    AdminAccount,
    PoolFilter,
    ProductCount,
    RegistrationFilter,
    RegistrationRecord,
    RegistrationStatus,
    WarrantyNumberRecord,
)
from services.warranty.store.base import WarrantyStore
from shared.config import StorageBackend
from shared.database import ADMINS, REGISTRATIONS, WARRANTY_NUMBERS, MongoDBClient
from shared.logging import get_logger

logger = get_logger(__name__)

_NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


@asynccontextmanager
async def _translate_errors(operation: str) -> AsyncIterator[None]:
    """Surface driver connectivity failures as StoreUnavailable."""
    try:
        yield
    except (ConnectionFailure, ExecutionTimeout) as e:
        logger.warning("mongodb_operation_failed", operation=operation, error=str(e))
        raise StoreUnavailable(f"MongoDB unavailable during {operation}", operation=operation) from e


def _icontains(term: str) -> dict[str, str]:
    return {"$regex": re.escape(term), "$options": "i"}


def pool_query(f: PoolFilter) -> dict[str, Any]:
    """Translate a PoolFilter into a MongoDB query."""
    query: dict[str, Any] = {}
    if f.product_id is not None:
        query["product_id"] = f.product_id
    if f.used is not None:
        query["used"] = f.used
    return query


def registration_query(f: RegistrationFilter) -> dict[str, Any]:
    """Translate a RegistrationFilter into a MongoDB query."""
    query: dict[str, Any] = {}
    if f.product_id is not None:
        query["product_id"] = f.product_id
    if f.status is not None:
        query["status"] = f.status.value

    for field_name, term in f.substring_terms().items():
        query[field_name] = _icontains(term)

    if f.search:
        query["$or"] = [{name: _icontains(f.search)} for name in SUBSTRING_FIELDS]

    if f.created_since is not None:
        query["created_at"] = {"$gte": f.created_since}
    if f.claimed_since is not None:
        query["claim_date"] = {"$gte": f.claimed_since}

    ends: dict[str, datetime] = {}
    if f.warranty_ends_after is not None:
        ends["$gt"] = f.warranty_ends_after
    if f.warranty_ends_on_or_before is not None:
        ends["$lte"] = f.warranty_ends_on_or_before
    if ends:
        query["warranty_end_date"] = ends

    return query


def _number_from_doc(doc: dict[str, Any]) -> WarrantyNumberRecord:
    return WarrantyNumberRecord.model_validate({k: v for k, v in doc.items() if k != "_id"})


def _registration_from_doc(doc: dict[str, Any]) -> RegistrationRecord:
    data = {k: v for k, v in doc.items() if k != "_id"}
    data["id"] = doc["_id"]
    return RegistrationRecord.model_validate(data)


def _registration_to_doc(record: RegistrationRecord) -> dict[str, Any]:
    doc = record.model_dump(mode="python", exclude={"id"})
    doc["_id"] = record.id
    return _enum_values(doc)


def _admin_from_doc(doc: dict[str, Any]) -> AdminAccount:
    data = {k: v for k, v in doc.items() if k != "_id"}
    data["id"] = doc["_id"]
    return AdminAccount.model_validate(data)


def _enum_values(doc: dict[str, Any]) -> dict[str, Any]:
    """BSON cannot encode Enum members; store their values."""
    return {k: getattr(v, "value", v) for k, v in doc.items()}


class MongoWarrantyStore(WarrantyStore):
    """MongoDB warranty store."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:  # type: ignore[type-arg]
        self._db = db
        self._numbers = db[WARRANTY_NUMBERS]
        self._registrations = db[REGISTRATIONS]
        self._admins = db[ADMINS]

    @property
    def backend(self) -> StorageBackend:
        return StorageBackend.MONGODB

    async def health_check(self) -> dict[str, Any]:
        health = await MongoDBClient.health_check()
        health["backend"] = self.backend.value
        return health

    # -------------------------------------------------------------------------
    # Warranty numbers
    # -------------------------------------------------------------------------

    async def insert_warranty_number(self, record: WarrantyNumberRecord) -> None:
        async with _translate_errors("insert_warranty_number"):
            try:
                await self._numbers.insert_one(record.model_dump(mode="python"))
            except DuplicateKeyError as e:
                raise DuplicateCode(record.code) from e

    async def get_warranty_number(self, code: str) -> WarrantyNumberRecord | None:
        async with _translate_errors("get_warranty_number"):
            doc = await self._numbers.find_one({"code": code})
        return _number_from_doc(doc) if doc else None

    async def find_available_warranty_number(
        self,
        code: str,
        product_id: str,
    ) -> WarrantyNumberRecord | None:
        async with _translate_errors("find_available_warranty_number"):
            doc = await self._numbers.find_one(
                {"code": code, "product_id": product_id, "used": False}
            )
        return _number_from_doc(doc) if doc else None

    async def claim_warranty_number(
        self,
        code: str,
        registration_id: str,
        used_at: datetime,
    ) -> bool:
        async with _translate_errors("claim_warranty_number"):
            result = await self._numbers.update_one(
                {"code": code, "used": False},
                {
                    "$set": {
                        "used": True,
                        "used_at": used_at,
                        "registration_id": registration_id,
                    }
                },
            )
        return result.modified_count == 1

    async def release_warranty_number(self, code: str) -> bool:
        async with _translate_errors("release_warranty_number"):
            result = await self._numbers.update_one(
                {"code": code},
                {"$set": {"used": False, "used_at": None, "registration_id": None}},
            )
        return result.matched_count == 1

    async def list_warranty_numbers(
        self,
        filter: PoolFilter,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[WarrantyNumberRecord]:
        cursor = self._numbers.find(pool_query(filter)).sort(_NEWEST_FIRST).skip(skip)
        if limit is not None:
            cursor = cursor.limit(limit)
        async with _translate_errors("list_warranty_numbers"):
            return [_number_from_doc(doc) async for doc in cursor]

    async def count_warranty_numbers(self, filter: PoolFilter) -> int:
        async with _translate_errors("count_warranty_numbers"):
            return await self._numbers.count_documents(pool_query(filter))

    # -------------------------------------------------------------------------
    # Registrations
    # -------------------------------------------------------------------------

    async def insert_registration(self, record: RegistrationRecord) -> None:
        async with _translate_errors("insert_registration"):
            await self._registrations.insert_one(_registration_to_doc(record))

    async def get_registration(self, registration_id: str) -> RegistrationRecord | None:
        async with _translate_errors("get_registration"):
            doc = await self._registrations.find_one({"_id": registration_id})
        return _registration_from_doc(doc) if doc else None

    async def find_registrations_by_code(self, code: str) -> list[RegistrationRecord]:
        cursor = self._registrations.find({"code": code}).sort(_NEWEST_FIRST)
        async with _translate_errors("find_registrations_by_code"):
            return [_registration_from_doc(doc) async for doc in cursor]

    async def update_registration(
        self,
        registration_id: str,
        set_fields: dict[str, Any],
        unset_fields: list[str] | None = None,
    ) -> RegistrationRecord | None:
        update: dict[str, Any] = {}
        if set_fields:
            update["$set"] = _enum_values(set_fields)
        if unset_fields:
            update["$unset"] = {name: "" for name in unset_fields}
        if not update:
            return await self.get_registration(registration_id)

        async with _translate_errors("update_registration"):
            doc = await self._registrations.find_one_and_update(
                {"_id": registration_id},
                update,
                return_document=ReturnDocument.AFTER,
            )
        return _registration_from_doc(doc) if doc else None

    async def delete_registration(self, registration_id: str) -> RegistrationRecord | None:
        async with _translate_errors("delete_registration"):
            doc = await self._registrations.find_one_and_delete({"_id": registration_id})
        return _registration_from_doc(doc) if doc else None

    async def list_registrations(
        self,
        filter: RegistrationFilter,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[RegistrationRecord]:
        cursor = (
            self._registrations.find(registration_query(filter))
            .sort(_NEWEST_FIRST)
            .skip(skip)
        )
        if limit is not None:
            cursor = cursor.limit(limit)
        async with _translate_errors("list_registrations"):
            return [_registration_from_doc(doc) async for doc in cursor]

    async def count_registrations(self, filter: RegistrationFilter) -> int:
        async with _translate_errors("count_registrations"):
            return await self._registrations.count_documents(registration_query(filter))

    async def count_registrations_by_product(self) -> list[ProductCount]:
        pipeline = [
            {"$sort": {"created_at": 1}},
            {
                "$group": {
                    "_id": "$product_id",
                    "count": {"$sum": 1},
                    "product": {"$first": "$product"},
                }
            },
            {"$sort": {"count": -1, "_id": 1}},
        ]
        return await self._aggregate(
            "count_registrations_by_product",
            pipeline,
            lambda doc: ProductCount(product_id=doc["_id"], product=doc.get("product"), count=doc["count"]),
        )

    async def count_claims_by_type(self) -> dict[str, int]:
        pipeline = [
            {"$match": {"status": RegistrationStatus.CLAIMED.value, "claim_type": {"$ne": None}}},
            {"$group": {"_id": "$claim_type", "count": {"$sum": 1}}},
        ]
        rows = await self._aggregate(
            "count_claims_by_type",
            pipeline,
            lambda doc: (doc["_id"], doc["count"]),
        )
        return dict(rows)

    async def expire_registrations(self, now: datetime) -> int:
        async with _translate_errors("expire_registrations"):
            result = await self._registrations.update_many(
                {
                    "status": RegistrationStatus.ACTIVE.value,
                    "warranty_end_date": {"$lte": now},
                },
                {"$set": {"status": RegistrationStatus.EXPIRED.value, "updated_at": now}},
            )
        return result.modified_count

    async def _aggregate(
        self,
        operation: str,
        pipeline: list[dict[str, Any]],
        convert: Callable[[dict[str, Any]], Any],
    ) -> list[Any]:
        async with _translate_errors(operation):
            cursor = self._registrations.aggregate(pipeline)
            return [convert(doc) async for doc in cursor]

    # -------------------------------------------------------------------------
    # Admin accounts
    # -------------------------------------------------------------------------

    async def get_admin_by_username(self, username: str) -> AdminAccount | None:
        async with _translate_errors("get_admin_by_username"):
            doc = await self._admins.find_one({"username": username})
        return _admin_from_doc(doc) if doc else None

    async def create_admin_if_absent(self, account: AdminAccount) -> bool:
        doc = _enum_values(account.model_dump(mode="python", exclude={"id"}))
        doc["_id"] = account.id
        async with _translate_errors("create_admin_if_absent"):
            result = await self._admins.update_one(
                {"username": account.username},
                {"$setOnInsert": doc},
                upsert=True,
            )
        return result.upserted_id is not None
