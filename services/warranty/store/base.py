"""
Warranty Store Interface
========================

Abstract persistence contract shared by the MongoDB and in-memory backends.

A backend must provide:
- a uniqueness guarantee on warranty number codes
- a compare-and-set transition for consuming a code
- filtered, paginated queries with case-insensitive substring matching

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from services.warranty.models import (
    AdminAccount,
    PoolFilter,
    ProductCount,
    RegistrationFilter,
    RegistrationRecord,
    WarrantyNumberRecord,
)
from shared.config import StorageBackend, settings
from shared.logging import get_logger

logger = get_logger(__name__)


class WarrantyStore(ABC):
    """Persistence for warranty numbers, registrations and admins."""

    @property
    @abstractmethod
    def backend(self) -> StorageBackend:
        """Backend identifier."""
        ...

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        """Report backend health."""
        ...

    # -------------------------------------------------------------------------
    # Warranty numbers
    # -------------------------------------------------------------------------

    @abstractmethod
    async def insert_warranty_number(self, record: WarrantyNumberRecord) -> None:
        """
        Insert a new warranty number.

        Raises:
            DuplicateCode: If the code already exists.
        """
        ...

    @abstractmethod
    async def get_warranty_number(self, code: str) -> WarrantyNumberRecord | None:
        """Fetch a warranty number by code."""
        ...

    @abstractmethod
    async def find_available_warranty_number(
        self,
        code: str,
        product_id: str,
    ) -> WarrantyNumberRecord | None:
        """Fetch a code only if it is unused and issued for `product_id`."""
        ...

    @abstractmethod
    async def claim_warranty_number(
        self,
        code: str,
        registration_id: str,
        used_at: datetime,
    ) -> bool:
        """
        Mark a code used, but only if it is currently unused.

        Returns:
            True if this call performed the transition.
        """
        ...

    @abstractmethod
    async def release_warranty_number(self, code: str) -> bool:
        """
        Unconditionally mark a code unused and clear its link.

        Returns:
            True if the code exists.
        """
        ...

    @abstractmethod
    async def list_warranty_numbers(
        self,
        filter: PoolFilter,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[WarrantyNumberRecord]:
        """List warranty numbers, newest first."""
        ...

    @abstractmethod
    async def count_warranty_numbers(self, filter: PoolFilter) -> int:
        """Count warranty numbers matching a filter."""
        ...

    # -------------------------------------------------------------------------
    # Registrations
    # -------------------------------------------------------------------------

    @abstractmethod
    async def insert_registration(self, record: RegistrationRecord) -> None:
        """Insert a new registration."""
        ...

    @abstractmethod
    async def get_registration(self, registration_id: str) -> RegistrationRecord | None:
        """Fetch a registration by id."""
        ...

    @abstractmethod
    async def find_registrations_by_code(self, code: str) -> list[RegistrationRecord]:
        """All registrations referencing a code, newest first."""
        ...

    @abstractmethod
    async def update_registration(
        self,
        registration_id: str,
        set_fields: dict[str, Any],
        unset_fields: list[str] | None = None,
    ) -> RegistrationRecord | None:
        """
        Apply field changes to a registration.

        Returns:
            The updated record, or None if it does not exist.
        """
        ...

    @abstractmethod
    async def delete_registration(self, registration_id: str) -> RegistrationRecord | None:
        """
        Delete a registration.

        Returns:
            The deleted record, or None if it did not exist.
        """
        ...

    @abstractmethod
    async def list_registrations(
        self,
        filter: RegistrationFilter,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[RegistrationRecord]:
        """List registrations, newest first."""
        ...

    @abstractmethod
    async def count_registrations(self, filter: RegistrationFilter) -> int:
        """Count registrations matching a filter."""
        ...

    @abstractmethod
    async def count_registrations_by_product(self) -> list[ProductCount]:
        """Registrations grouped by product, largest group first."""
        ...

    @abstractmethod
    async def count_claims_by_type(self) -> dict[str, int]:
        """Claimed registrations grouped by claim type."""
        ...

    @abstractmethod
    async def expire_registrations(self, now: datetime) -> int:
        """
        Mark active registrations whose coverage ended at or before `now`
        as expired.

        Returns:
            Number of registrations changed.
        """
        ...

    # -------------------------------------------------------------------------
    # Admin accounts
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_admin_by_username(self, username: str) -> AdminAccount | None:
        """Fetch an admin by username."""
        ...

    @abstractmethod
    async def create_admin_if_absent(self, account: AdminAccount) -> bool:
        """
        Create an admin unless the username is taken.

        Returns:
            True if the account was created.
        """
        ...


# Global store instance
_store: WarrantyStore | None = None


def get_store() -> WarrantyStore:
    """
    Get the configured store instance.

    Returns:
        WarrantyStore selected by `WARRANTY_STORAGE_BACKEND`
    """
    global _store

    if _store is None:
        backend = settings.warranty.storage_backend

        if backend == StorageBackend.MEMORY:
            from services.warranty.store.memory import InMemoryWarrantyStore

            _store = InMemoryWarrantyStore()
        elif backend == StorageBackend.MONGODB:
            from services.warranty.store.mongo import MongoWarrantyStore
            from shared.database import MongoDBClient

            _store = MongoWarrantyStore(MongoDBClient.get_database())
        else:
            raise ValueError(f"Unknown storage backend: {backend}")

        logger.info("warranty_store_initialized", backend=backend.value)

    return _store


def set_store(store: WarrantyStore | None) -> None:
    """
    Replace the global store (None resets to configuration on next access).

    Args:
        store: WarrantyStore instance
    """
    global _store
    _store = store
