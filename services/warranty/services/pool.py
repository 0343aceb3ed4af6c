"""
Warranty Number Pool
====================

Pre-issued warranty numbers and their used/available state.

A number is created by an admin insert or bulk import, consumed by
`mark_used` when a registration is linked to it, and returned to the pool
by `mark_free`. Numbers are never deleted.

Version: 0.1.0
"""

from collections.abc import Iterable, Mapping
from typing import Any

import pydantic

from services.warranty.errors import (
    AlreadyUsed,
    DuplicateCode,
    NotFound,
    StoreUnavailable,
    ValidationError,
)
from services.warranty.models import (
    BulkInsertError,
    BulkInsertResult,
    Page,
    PoolFilter,
    WarrantyNumberCreate,
    WarrantyNumberRecord,
    utcnow,
)
from services.warranty.store import WarrantyStore
from shared.logging import get_logger


logger = get_logger(__name__)

REQUIRED_FIELDS = ("code", "product_id", "product_name")


def _is_complete(item: Mapping[str, Any]) -> bool:
    return all(isinstance(item.get(f), str) and item[f].strip() for f in REQUIRED_FIELDS)


class WarrantyNumberPool:
    """Manages the pool of issued warranty numbers."""

    def __init__(self, store: WarrantyStore) -> None:
        self.store = store

    async def insert(self, code: str, product_id: str, product_name: str) -> WarrantyNumberRecord:
        """
        Issue a single warranty number.

        Raises:
            ValidationError: If a field is blank.
            DuplicateCode: If the code already exists.
        """
        try:
            fields = WarrantyNumberCreate(code=code, product_id=product_id, product_name=product_name)
        except pydantic.ValidationError as e:
            raise ValidationError("All fields are required", errors=e.errors(include_url=False)) from e

        record = WarrantyNumberRecord(**fields.model_dump())
        await self.store.insert_warranty_number(record)

        logger.info(
            "warranty_number_inserted",
            code=record.code,
            product_id=record.product_id,
        )
        return record

    async def bulk_insert(self, records: Iterable[Mapping[str, Any]]) -> BulkInsertResult:
        """
        Issue many warranty numbers independently.

        Rows missing a required field are skipped without being reported.
        Every other failure is collected per row; one bad row never aborts
        the batch.
        """
        result = BulkInsertResult()

        for item in records:
            if not _is_complete(item):
                result.skipped_count += 1
                continue

            code = item["code"].strip()
            try:
                await self.insert(code, item["product_id"], item["product_name"])
            except DuplicateCode as e:
                result.errors.append(
                    BulkInsertError(code=code, error=e.error_code, message=e.message)
                )
            except (ValidationError, StoreUnavailable) as e:
                result.errors.append(
                    BulkInsertError(
                        code=code,
                        error=e.error_code,
                        message=f"Error with {code}: {e.message}",
                    )
                )
            else:
                result.success_count += 1

        logger.info(
            "warranty_numbers_bulk_inserted",
            success_count=result.success_count,
            error_count=len(result.errors),
            skipped_count=result.skipped_count,
        )
        return result

    async def get(self, code: str) -> WarrantyNumberRecord:
        """
        Fetch a warranty number.

        Raises:
            NotFound: If the code does not exist.
        """
        record = await self.store.get_warranty_number(code)
        if record is None:
            raise NotFound(f"Warranty number {code} not found", code=code)
        return record

    async def find_available(self, code: str, product_id: str) -> WarrantyNumberRecord | None:
        """Return the code if it is unused and issued for `product_id`."""
        return await self.store.find_available_warranty_number(code, product_id)

    async def mark_used(self, code: str, registration_id: str) -> WarrantyNumberRecord:
        """
        Consume a warranty number for a registration.

        The transition is a compare-and-set from unused, so of two
        concurrent callers only one can win. Repeating the call for the
        registration that already holds the code succeeds, which makes a
        retry after an ambiguous timeout safe.

        Raises:
            NotFound: If the code does not exist.
            AlreadyUsed: If another registration holds the code.
        """
        claimed = await self.store.claim_warranty_number(code, registration_id, utcnow())

        record = await self.store.get_warranty_number(code)
        if record is None:
            raise NotFound(f"Warranty number {code} not found", code=code)

        if not claimed and record.registration_id != registration_id:
            logger.info(
                "warranty_number_claim_rejected",
                code=code,
                registration_id=registration_id,
                holder=record.registration_id,
            )
            raise AlreadyUsed(code)

        logger.info("warranty_number_used", code=code, registration_id=registration_id)
        return record

    async def mark_free(self, code: str) -> WarrantyNumberRecord:
        """
        Return a warranty number to the pool. Idempotent.

        Raises:
            NotFound: If the code does not exist.
        """
        if not await self.store.release_warranty_number(code):
            raise NotFound(f"Warranty number {code} not found", code=code)

        logger.info("warranty_number_freed", code=code)
        return await self.get(code)

    async def find(
        self,
        filter: PoolFilter | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Page[WarrantyNumberRecord]:
        """List warranty numbers newest first, one page at a time."""
        filter = filter or PoolFilter()
        skip = (page - 1) * page_size

        items = await self.store.list_warranty_numbers(filter, skip=skip, limit=page_size)
        total = await self.store.count_warranty_numbers(filter)

        return Page[WarrantyNumberRecord](
            items=items,
            total=total,
            page=page,
            page_size=page_size,
        )
