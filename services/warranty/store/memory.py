"""
In-Memory Warranty Store
========================

Dictionary-backed store for development and testing.

Every operation yields to the event loop once before touching state, the
way a network round-trip would, so concurrent callers interleave
realistically. The state change after that yield runs without further
awaits, which makes `claim_warranty_number` a true compare-and-set.

Data is lost on restart.

Version: 0.1.0
"""

import asyncio
import itertools
from collections import Counter
from datetime import datetime
from typing import Any

from services.warranty.errors import DuplicateCode
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
from shared.logging import get_logger

logger = get_logger(__name__)


def _contains(haystack: str | None, needle: str) -> bool:
    return haystack is not None and needle.casefold() in haystack.casefold()


def _matches_pool(record: WarrantyNumberRecord, f: PoolFilter) -> bool:
    if f.product_id is not None and record.product_id != f.product_id:
        return False
    if f.used is not None and record.used != f.used:
        return False
    return True


def _matches_registration(record: RegistrationRecord, f: RegistrationFilter) -> bool:
    if f.product_id is not None and record.product_id != f.product_id:
        return False
    if f.status is not None and record.status != f.status:
        return False

    for field_name, term in f.substring_terms().items():
        if not _contains(getattr(record, field_name), term):
            return False

    if f.search and not any(
        _contains(getattr(record, name), f.search) for name in SUBSTRING_FIELDS
    ):
        return False

    if f.created_since is not None and record.created_at < f.created_since:
        return False
    if f.claimed_since is not None and (
        record.claim_date is None or record.claim_date < f.claimed_since
    ):
        return False
    if f.warranty_ends_after is not None and record.warranty_end_date <= f.warranty_ends_after:
        return False
    if (
        f.warranty_ends_on_or_before is not None
        and record.warranty_end_date > f.warranty_ends_on_or_before
    ):
        return False
    return True


class InMemoryWarrantyStore(WarrantyStore):
    """In-memory warranty store."""

    def __init__(self) -> None:
        self._numbers: dict[str, WarrantyNumberRecord] = {}
        self._registrations: dict[str, RegistrationRecord] = {}
        self._admins: dict[str, AdminAccount] = {}

        # Insertion order breaks created_at ties
        self._sequence = itertools.count()
        self._number_seq: dict[str, int] = {}
        self._registration_seq: dict[str, int] = {}

        logger.debug("memory_store_initialized")

    @property
    def backend(self) -> StorageBackend:
        return StorageBackend.MEMORY

    async def health_check(self) -> dict[str, Any]:
        return {
            "status": "healthy",
            "backend": self.backend.value,
            "warranty_numbers": len(self._numbers),
            "registrations": len(self._registrations),
        }

    # -------------------------------------------------------------------------
    # Warranty numbers
    # -------------------------------------------------------------------------

    async def insert_warranty_number(self, record: WarrantyNumberRecord) -> None:
        await asyncio.sleep(0)
        if record.code in self._numbers:
            raise DuplicateCode(record.code)
        self._numbers[record.code] = record.model_copy(deep=True)
        self._number_seq[record.code] = next(self._sequence)

    async def get_warranty_number(self, code: str) -> WarrantyNumberRecord | None:
        await asyncio.sleep(0)
        record = self._numbers.get(code)
        return record.model_copy(deep=True) if record else None

    async def find_available_warranty_number(
        self,
        code: str,
        product_id: str,
    ) -> WarrantyNumberRecord | None:
        await asyncio.sleep(0)
        record = self._numbers.get(code)
        if record is None or record.used or record.product_id != product_id:
            return None
        return record.model_copy(deep=True)

    async def claim_warranty_number(
        self,
        code: str,
        registration_id: str,
        used_at: datetime,
    ) -> bool:
        await asyncio.sleep(0)
        record = self._numbers.get(code)
        if record is None or record.used:
            return False
        self._numbers[code] = record.model_copy(
            update={"used": True, "used_at": used_at, "registration_id": registration_id}
        )
        return True

    async def release_warranty_number(self, code: str) -> bool:
        await asyncio.sleep(0)
        record = self._numbers.get(code)
        if record is None:
            return False
        self._numbers[code] = record.model_copy(
            update={"used": False, "used_at": None, "registration_id": None}
        )
        return True

    async def list_warranty_numbers(
        self,
        filter: PoolFilter,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[WarrantyNumberRecord]:
        await asyncio.sleep(0)
        matches = [r for r in self._numbers.values() if _matches_pool(r, filter)]
        matches.sort(key=lambda r: (r.created_at, self._number_seq[r.code]), reverse=True)
        end = None if limit is None else skip + limit
        return [r.model_copy(deep=True) for r in matches[skip:end]]

    async def count_warranty_numbers(self, filter: PoolFilter) -> int:
        await asyncio.sleep(0)
        return sum(1 for r in self._numbers.values() if _matches_pool(r, filter))

    # -------------------------------------------------------------------------
    # Registrations
    # -------------------------------------------------------------------------

    async def insert_registration(self, record: RegistrationRecord) -> None:
        await asyncio.sleep(0)
        if record.id in self._registrations:
            raise ValueError(f"Registration {record.id} already exists")
        self._registrations[record.id] = record.model_copy(deep=True)
        self._registration_seq[record.id] = next(self._sequence)

    async def get_registration(self, registration_id: str) -> RegistrationRecord | None:
        await asyncio.sleep(0)
        record = self._registrations.get(registration_id)
        return record.model_copy(deep=True) if record else None

    async def find_registrations_by_code(self, code: str) -> list[RegistrationRecord]:
        await asyncio.sleep(0)
        matches = [r for r in self._registrations.values() if r.code == code]
        matches.sort(key=self._registration_order, reverse=True)
        return [r.model_copy(deep=True) for r in matches]

    async def update_registration(
        self,
        registration_id: str,
        set_fields: dict[str, Any],
        unset_fields: list[str] | None = None,
    ) -> RegistrationRecord | None:
        await asyncio.sleep(0)
        record = self._registrations.get(registration_id)
        if record is None:
            return None
        changes = dict(set_fields)
        for name in unset_fields or []:
            changes[name] = None
        updated = RegistrationRecord.model_validate({**record.model_dump(), **changes})
        self._registrations[registration_id] = updated
        return updated.model_copy(deep=True)

    async def delete_registration(self, registration_id: str) -> RegistrationRecord | None:
        await asyncio.sleep(0)
        self._registration_seq.pop(registration_id, None)
        return self._registrations.pop(registration_id, None)

    async def list_registrations(
        self,
        filter: RegistrationFilter,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[RegistrationRecord]:
        await asyncio.sleep(0)
        matches = [r for r in self._registrations.values() if _matches_registration(r, filter)]
        matches.sort(key=self._registration_order, reverse=True)
        end = None if limit is None else skip + limit
        return [r.model_copy(deep=True) for r in matches[skip:end]]

    async def count_registrations(self, filter: RegistrationFilter) -> int:
        await asyncio.sleep(0)
        return sum(1 for r in self._registrations.values() if _matches_registration(r, filter))

    async def count_registrations_by_product(self) -> list[ProductCount]:
        await asyncio.sleep(0)
        counts: Counter[str] = Counter()
        names: dict[str, str] = {}
        for record in sorted(self._registrations.values(), key=self._registration_order):
            counts[record.product_id] += 1
            names.setdefault(record.product_id, record.product)
        return [
            ProductCount(product_id=product_id, product=names[product_id], count=count)
            for product_id, count in counts.most_common()
        ]

    async def count_claims_by_type(self) -> dict[str, int]:
        await asyncio.sleep(0)
        counts: Counter[str] = Counter(
            r.claim_type.value
            for r in self._registrations.values()
            if r.status == RegistrationStatus.CLAIMED and r.claim_type is not None
        )
        return dict(counts)

    async def expire_registrations(self, now: datetime) -> int:
        await asyncio.sleep(0)
        changed = 0
        for registration_id, record in list(self._registrations.items()):
            if record.status == RegistrationStatus.ACTIVE and record.warranty_end_date <= now:
                self._registrations[registration_id] = record.model_copy(
                    update={"status": RegistrationStatus.EXPIRED, "updated_at": now}
                )
                changed += 1
        return changed

    def _registration_order(self, record: RegistrationRecord) -> tuple[datetime, int]:
        return record.created_at, self._registration_seq.get(record.id, -1)

    # -------------------------------------------------------------------------
    # Admin accounts
    # -------------------------------------------------------------------------

    async def get_admin_by_username(self, username: str) -> AdminAccount | None:
        await asyncio.sleep(0)
        account = self._admins.get(username)
        return account.model_copy(deep=True) if account else None

    async def create_admin_if_absent(self, account: AdminAccount) -> bool:
        await asyncio.sleep(0)
        if account.username in self._admins:
            return False
        self._admins[account.username] = account.model_copy(deep=True)
        return True
