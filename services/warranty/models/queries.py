"""
Query and Result Models
=======================

Filters understood by every store backend, plus the aggregate results
returned by the pool and ledger.

Version: 0.1.0
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from services.warranty.models.records import RegistrationStatus

T = TypeVar("T")


# Registration fields matched case-insensitively by substring
SUBSTRING_FIELDS: tuple[str, ...] = (
    "email",
    "first_name",
    "last_name",
    "full_name",
    "code",
    "order_id",
    "product",
)


class PoolFilter(BaseModel):
    """Filter over warranty numbers."""

    product_id: str | None = None
    used: bool | None = None


class RegistrationFilter(BaseModel):
    """
    Filter over registrations.

    `product_id` and `status` match exactly; the substring fields match
    case-insensitively; `search` matches any substring field.
    """

    product_id: str | None = None
    status: RegistrationStatus | None = None

    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    full_name: str | None = None
    code: str | None = None
    order_id: str | None = None
    product: str | None = None

    search: str | None = None

    created_since: datetime | None = None
    claimed_since: datetime | None = None
    warranty_ends_after: datetime | None = None
    warranty_ends_on_or_before: datetime | None = None

    def substring_terms(self) -> dict[str, str]:
        """Non-empty substring filters keyed by field."""
        return {
            name: value
            for name in SUBSTRING_FIELDS
            if (value := getattr(self, name))
        }


class Page(BaseModel, Generic[T]):
    """One page of results with the total match count."""

    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def pages(self) -> int:
        return (self.total + self.page_size - 1) // self.page_size if self.total > 0 else 1


class BulkInsertError(BaseModel):
    """A single rejected row from a bulk insert."""

    code: str
    error: str
    message: str


class BulkInsertResult(BaseModel):
    """Outcome of a bulk insert."""

    success_count: int = 0
    skipped_count: int = 0
    errors: list[BulkInsertError] = Field(default_factory=list)


class ProductCount(BaseModel):
    """Registrations per product."""

    product_id: str
    product: str | None = None
    count: int


class LedgerStats(BaseModel):
    """Dashboard aggregates over the pool and ledger."""

    total_warranty_numbers: int
    used_warranty_numbers: int
    available_warranty_numbers: int
    total_registrations: int
    active_warranties: int
    claimed_warranties: int
    recent_registrations: int
    recent_claims: int
    product_stats: list[ProductCount] = Field(default_factory=list)
    claim_type_stats: dict[str, int] = Field(default_factory=dict)
