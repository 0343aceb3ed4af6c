"""
Registration Ledger
===================

Customer registration records and the admin operations over them:
creation, patching (status, claims, date recompute), deletion, search,
dashboard statistics and expiry.

Coverage runs from the purchase date for a whole number of calendar years.
A purchase on 29 February ends on 28 February of the target year.

Version: 0.1.0
"""

from collections.abc import AsyncIterator, Mapping
from datetime import datetime, timedelta
from typing import Any

import pydantic
from dateutil.relativedelta import relativedelta

from services.warranty.errors import NotFound, ValidationError
from services.warranty.models import (
    CLAIM_FIELDS,
    CLEARABLE_FIELDS,
    LedgerStats,
    Page,
    PoolFilter,
    RegistrationCreate,
    RegistrationFilter,
    RegistrationRecord,
    RegistrationStatus,
    RegistrationUpdate,
    utcnow,
)
from services.warranty.store import WarrantyStore
from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)

RECENT_WINDOW = timedelta(days=7)
EXPORT_BATCH_SIZE = 500


def compute_warranty_end(purchase_date: datetime, years: int | None = None) -> datetime:
    """
    Add the warranty term to a purchase date.

    Month and day are preserved; 29 February clamps to 28 February.
    """
    term = settings.warranty.term_years if years is None else years
    return purchase_date + relativedelta(years=term)


def _validation_error(e: pydantic.ValidationError) -> ValidationError:
    missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
    return ValidationError(
        f"Invalid or missing fields: {', '.join(missing)}",
        errors=e.errors(include_url=False, include_context=False),
    )


class RegistrationLedger:
    """Manages customer registration records."""

    def __init__(self, store: WarrantyStore) -> None:
        self.store = store

    async def create(self, fields: RegistrationCreate | Mapping[str, Any]) -> RegistrationRecord:
        """
        Store a new active registration.

        Raises:
            ValidationError: If a required field is missing or malformed.
        """
        if not isinstance(fields, RegistrationCreate):
            try:
                fields = RegistrationCreate.model_validate(dict(fields))
            except pydantic.ValidationError as e:
                raise _validation_error(e) from e

        now = utcnow()
        record = RegistrationRecord(
            **fields.model_dump(exclude={"warranty_start_date"}),
            warranty_start_date=fields.warranty_start_date or now,
            warranty_end_date=compute_warranty_end(fields.purchase_date),
            status=RegistrationStatus.ACTIVE,
            created_at=now,
        )
        await self.store.insert_registration(record)

        logger.info(
            "registration_created",
            registration_id=record.id,
            code=record.code,
            product_id=record.product_id,
        )
        return record

    async def get(self, registration_id: str) -> RegistrationRecord:
        """
        Fetch a registration.

        Raises:
            NotFound: If the id does not exist.
        """
        record = await self.store.get_registration(registration_id)
        if record is None:
            raise NotFound(f"Registration {registration_id} not found", registration_id=registration_id)
        return record

    async def update(
        self,
        registration_id: str,
        patch: RegistrationUpdate | Mapping[str, Any],
        acting_admin: str | None = None,
    ) -> RegistrationRecord:
        """
        Apply an admin patch.

        `code` is immutable and silently dropped. A new purchase date
        recomputes the end date. Moving to claimed stamps the claim date
        (unless supplied) and the acting admin; moving away from claimed
        clears every claim field. Only `phone` and `claim_notes` may be
        cleared with an explicit null.

        Raises:
            NotFound: If the id does not exist.
            ValidationError: On schema violations, nulls for required
                fields, or claim fields on a registration that is not
                claimed.
        """
        if not isinstance(patch, RegistrationUpdate):
            try:
                patch = RegistrationUpdate.model_validate(dict(patch))
            except pydantic.ValidationError as e:
                raise _validation_error(e) from e

        current = await self.get(registration_id)
        changes = patch.model_dump(exclude_unset=True)
        unset: list[str] = []
        now = utcnow()

        if changes.get("purchase_date") is not None:
            changes["warranty_end_date"] = compute_warranty_end(changes["purchase_date"])

        if "status" in changes and changes["status"] is None:
            raise ValidationError("status cannot be null")

        status = changes.get("status") or current.status
        supplied_claim_fields = [f for f in CLAIM_FIELDS if changes.get(f) is not None]

        if status == RegistrationStatus.CLAIMED:
            if current.status != RegistrationStatus.CLAIMED:
                changes.setdefault("claim_date", None)
                if changes["claim_date"] is None:
                    changes["claim_date"] = now
                changes["claim_processed_by"] = acting_admin
        elif supplied_claim_fields:
            raise ValidationError(
                "Claim fields require status 'claimed'",
                fields=supplied_claim_fields,
            )
        elif current.status == RegistrationStatus.CLAIMED:
            unset.extend(f for f in CLAIM_FIELDS if getattr(current, f) is not None)

        # Claim fields are cleared anyway once the registration leaves claimed
        not_nullable = [
            name
            for name, value in changes.items()
            if value is None
            and name not in CLEARABLE_FIELDS
            and not (name in CLAIM_FIELDS and status != RegistrationStatus.CLAIMED)
        ]
        if not_nullable:
            raise ValidationError("Fields cannot be null", fields=sorted(not_nullable))

        # Explicit nulls become removals
        for name in [k for k, v in changes.items() if v is None]:
            del changes[name]
            if getattr(current, name) is not None and name not in unset:
                unset.append(name)

        changes["updated_at"] = now

        updated = await self.store.update_registration(registration_id, changes, unset)
        if updated is None:
            raise NotFound(f"Registration {registration_id} not found", registration_id=registration_id)

        logger.info(
            "registration_updated",
            registration_id=registration_id,
            fields=sorted(k for k in changes if k != "updated_at"),
            cleared=unset,
            admin=acting_admin,
        )
        return updated

    async def delete(self, registration_id: str) -> str:
        """
        Remove a registration.

        Returns:
            The warranty number it consumed, so the pool can be freed.

        Raises:
            NotFound: If the id does not exist.
        """
        record = await self.store.delete_registration(registration_id)
        if record is None:
            raise NotFound(f"Registration {registration_id} not found", registration_id=registration_id)

        logger.info("registration_deleted", registration_id=registration_id, code=record.code)
        return record.code

    async def search(
        self,
        filter: RegistrationFilter | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Page[RegistrationRecord]:
        """Search registrations newest first, one page at a time."""
        filter = filter or RegistrationFilter()
        skip = (page - 1) * page_size

        items = await self.store.list_registrations(filter, skip=skip, limit=page_size)
        total = await self.store.count_registrations(filter)

        logger.debug("registrations_searched", total=total, page=page)
        return Page[RegistrationRecord](
            items=items,
            total=total,
            page=page,
            page_size=page_size,
        )

    async def find_by_code(self, code: str) -> list[RegistrationRecord]:
        """Registrations referencing a warranty number."""
        return await self.store.find_registrations_by_code(code)

    async def stats(self) -> LedgerStats:
        """Aggregate counts for the admin dashboard."""
        now = utcnow()
        since = now - RECENT_WINDOW

        total_numbers = await self.store.count_warranty_numbers(PoolFilter())
        used_numbers = await self.store.count_warranty_numbers(PoolFilter(used=True))

        return LedgerStats(
            total_warranty_numbers=total_numbers,
            used_warranty_numbers=used_numbers,
            available_warranty_numbers=total_numbers - used_numbers,
            total_registrations=await self.store.count_registrations(RegistrationFilter()),
            active_warranties=await self.store.count_registrations(
                RegistrationFilter(status=RegistrationStatus.ACTIVE, warranty_ends_after=now)
            ),
            claimed_warranties=await self.store.count_registrations(
                RegistrationFilter(status=RegistrationStatus.CLAIMED)
            ),
            recent_registrations=await self.store.count_registrations(
                RegistrationFilter(created_since=since)
            ),
            recent_claims=await self.store.count_registrations(
                RegistrationFilter(status=RegistrationStatus.CLAIMED, claimed_since=since)
            ),
            product_stats=await self.store.count_registrations_by_product(),
            claim_type_stats=await self.store.count_claims_by_type(),
        )

    async def expire_lapsed(self) -> int:
        """Mark active registrations past their end date as expired."""
        count = await self.store.expire_registrations(utcnow())
        logger.info("registrations_expired", count=count)
        return count

    async def iter_all(
        self,
        filter: RegistrationFilter | None = None,
    ) -> AsyncIterator[RegistrationRecord]:
        """Yield every matching registration, newest first, in batches."""
        filter = filter or RegistrationFilter()
        skip = 0
        while True:
            batch = await self.store.list_registrations(filter, skip=skip, limit=EXPORT_BATCH_SIZE)
            for record in batch:
                yield record
            if len(batch) < EXPORT_BATCH_SIZE:
                return
            skip += EXPORT_BATCH_SIZE
