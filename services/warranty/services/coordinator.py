"""
Registration Coordinator
========================

Orchestrates the pool and the ledger so that a registration and the
warranty number it consumes change together.

Register is create-then-link. Linking retries transient store failures
with exponential backoff; a link that never lands surfaces as
PartialRegistrationFailure and leaves the registration for `reconcile`.
Losing a race for the code rolls the new registration back.

Version: 0.1.0
"""

import asyncio
from collections.abc import Mapping
from typing import Any

import pydantic
from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from services.warranty.errors import (
    AlreadyUsed,
    InvalidOrMismatchedCode,
    NotFound,
    PartialRegistrationFailure,
    StoreUnavailable,
    ValidationError,
)
from services.warranty.models import (
    RegistrationCreate,
    RegistrationRecord,
    WarrantyNumberRecord,
)
from services.warranty.services.ledger import RegistrationLedger
from services.warranty.services.pool import WarrantyNumberPool
from services.warranty.sync import MarketingSyncDispatcher, SyncStatus
from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)

TRANSIENT_ERRORS = (StoreUnavailable, TimeoutError)


class RegistrationReceipt(BaseModel):
    """Result of a successful registration."""

    registration: RegistrationRecord
    marketing_sync: SyncStatus


class UnlinkResult(BaseModel):
    """Code returned to the pool and the registration removed."""

    code: str
    registration_id: str


class RegistrationCoordinator:
    """Keeps the pool and the ledger consistent."""

    def __init__(
        self,
        pool: WarrantyNumberPool,
        ledger: RegistrationLedger,
        dispatcher: MarketingSyncDispatcher | None = None,
        link_max_attempts: int | None = None,
        backoff_min_seconds: float | None = None,
        backoff_max_seconds: float | None = None,
        store_timeout_seconds: float | None = None,
    ) -> None:
        cfg = settings.warranty
        self.pool = pool
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.link_max_attempts = link_max_attempts or cfg.link_max_attempts
        self.backoff_min_seconds = (
            cfg.link_backoff_min_seconds if backoff_min_seconds is None else backoff_min_seconds
        )
        self.backoff_max_seconds = (
            cfg.link_backoff_max_seconds if backoff_max_seconds is None else backoff_max_seconds
        )
        self.store_timeout_seconds = store_timeout_seconds or cfg.store_timeout_seconds

    async def register(self, data: RegistrationCreate | Mapping[str, Any]) -> RegistrationReceipt:
        """
        Register a product against a warranty number.

        Raises:
            ValidationError: If the submission is incomplete.
            InvalidOrMismatchedCode: If the code is unknown, consumed, issued
                for another product, or lost to a concurrent registration.
            PartialRegistrationFailure: If the registration was stored but
                the code could not be linked within the retry budget.
        """
        if not isinstance(data, RegistrationCreate):
            try:
                data = RegistrationCreate.model_validate(dict(data))
            except pydantic.ValidationError as e:
                raise ValidationError(
                    "Invalid registration",
                    errors=e.errors(include_url=False, include_context=False),
                ) from e

        available = await self.pool.find_available(data.code, data.product_id)
        if available is None:
            logger.info(
                "registration_rejected",
                code=data.code,
                product_id=data.product_id,
            )
            raise InvalidOrMismatchedCode()

        registration = await self.ledger.create(data)

        try:
            await self._link(data.code, registration.id)
        except (AlreadyUsed, NotFound) as e:
            await self._roll_back(registration, reason=e.error_code)
            raise InvalidOrMismatchedCode() from e
        except TRANSIENT_ERRORS as e:
            logger.error(
                "registration_link_failed",
                registration_id=registration.id,
                code=data.code,
                attempts=self.link_max_attempts,
                error=str(e) or e.__class__.__name__,
                action="reconcile_required",
            )
            raise PartialRegistrationFailure(
                registration.id, data.code, reason=str(e) or e.__class__.__name__
            ) from e

        status = self.dispatcher.enqueue(registration) if self.dispatcher else SyncStatus.DISABLED

        logger.info(
            "warranty_registered",
            registration_id=registration.id,
            code=data.code,
            product_id=data.product_id,
            marketing_sync=status.value,
        )
        return RegistrationReceipt(registration=registration, marketing_sync=status)

    async def _link(self, code: str, registration_id: str) -> WarrantyNumberRecord:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            stop=stop_after_attempt(self.link_max_attempts),
            wait=wait_exponential(
                multiplier=self.backoff_min_seconds,
                min=self.backoff_min_seconds,
                max=self.backoff_max_seconds,
            ),
            before_sleep=lambda retry_state: logger.warning(
                "registration_link_retry",
                code=code,
                registration_id=registration_id,
                attempt=retry_state.attempt_number,
            ),
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                linked = await asyncio.wait_for(
                    self.pool.mark_used(code, registration_id),
                    timeout=self.store_timeout_seconds,
                )
        return linked

    async def _roll_back(self, registration: RegistrationRecord, reason: str) -> None:
        try:
            await self.ledger.delete(registration.id)
        except NotFound:
            logger.info("registration_rollback_noop", registration_id=registration.id)
            return
        except StoreUnavailable as e:
            logger.error(
                "registration_rollback_failed",
                registration_id=registration.id,
                code=registration.code,
                error=e.message,
                action="reconcile_required",
            )
            raise PartialRegistrationFailure(registration.id, registration.code, reason=e.message) from e

        logger.info(
            "registration_rolled_back",
            registration_id=registration.id,
            code=registration.code,
            reason=reason,
        )

    async def _free(self, code: str, registration_id: str) -> None:
        try:
            await self.pool.mark_free(code)
        except NotFound:
            logger.warning(
                "warranty_number_missing_on_free",
                code=code,
                registration_id=registration_id,
            )

    async def delete_registration(self, registration_id: str) -> RegistrationRecord:
        """
        Delete a registration and return its code to the pool.

        Raises:
            NotFound: If the registration does not exist.
        """
        registration = await self.ledger.get(registration_id)
        await self._free(registration.code, registration_id)
        await self.ledger.delete(registration_id)

        logger.info(
            "registration_removed",
            registration_id=registration_id,
            code=registration.code,
        )
        return registration

    async def unlink_registration(self, registration_id: str) -> UnlinkResult:
        """
        Free the registration's code and delete the registration.

        Raises:
            NotFound: If the registration does not exist.
        """
        registration = await self.delete_registration(registration_id)
        return UnlinkResult(code=registration.code, registration_id=registration_id)

    async def reconcile(self, code: str) -> WarrantyNumberRecord:
        """
        Repair a pool entry after a partial failure.

        If registrations reference the code, the pool entry is linked to the
        newest of them (left alone when already linked to one). Otherwise the
        code is freed.

        Raises:
            NotFound: If the code does not exist.
        """
        record = await self.pool.get(code)
        referencing = await self.ledger.find_by_code(code)
        referencing_ids = {r.id for r in referencing}

        if not referencing:
            if record.used:
                logger.info("reconcile_freed", code=code, stale_holder=record.registration_id)
                return await self.pool.mark_free(code)
            return record

        if len(referencing) > 1:
            logger.warning(
                "reconcile_multiple_registrations",
                code=code,
                registration_ids=sorted(referencing_ids),
            )

        if record.used and record.registration_id in referencing_ids:
            return record

        target = referencing[0]
        if record.used:
            await self.pool.mark_free(code)
        linked = await self.pool.mark_used(code, target.id)

        logger.info("reconcile_linked", code=code, registration_id=target.id)
        return linked
