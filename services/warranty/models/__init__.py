"""Warranty registry models."""

from services.warranty.models.queries import (
    SUBSTRING_FIELDS,
    BulkInsertError,
    BulkInsertResult,
    LedgerStats,
    Page,
    PoolFilter,
    ProductCount,
    RegistrationFilter,
)
from services.warranty.models.records import (
    CLAIM_FIELDS,
    CLEARABLE_FIELDS,
    AdminAccount,
    AdminRole,
    ClaimType,
    RegistrationCreate,
    RegistrationRecord,
    RegistrationStatus,
    RegistrationUpdate,
    WarrantyNumberCreate,
    WarrantyNumberRecord,
    as_utc,
    utcnow,
)

__all__ = [
    "SUBSTRING_FIELDS",
    "CLAIM_FIELDS",
    "CLEARABLE_FIELDS",
    "AdminAccount",
    "AdminRole",
    "BulkInsertError",
    "BulkInsertResult",
    "ClaimType",
    "LedgerStats",
    "Page",
    "PoolFilter",
    "ProductCount",
    "RegistrationCreate",
    "RegistrationFilter",
    "RegistrationRecord",
    "RegistrationStatus",
    "RegistrationUpdate",
    "WarrantyNumberCreate",
    "WarrantyNumberRecord",
    "as_utc",
    "utcnow",
]
