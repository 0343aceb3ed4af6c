"""
Warranty Record Models
======================

Persistent records for the warranty number pool, the registration ledger
and admin accounts.

Version: 0.1.0
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field, field_validator


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class RegistrationStatus(str, Enum):
    """Lifecycle status of a registration."""

    ACTIVE = "active"
    EXPIRED = "expired"
    CLAIMED = "claimed"


class ClaimType(str, Enum):
    """Kinds of warranty service events."""

    REPLACEMENT = "replacement"
    REPAIR = "repair"
    REFUND = "refund"
    TECHNICAL = "technical"


class AdminRole(str, Enum):
    """Admin account roles."""

    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


CLAIM_FIELDS = ("claim_date", "claim_type", "claim_notes", "claim_processed_by")

# Optional fields an admin patch may clear with an explicit null
CLEARABLE_FIELDS = ("phone", "claim_notes")


class WarrantyNumberRecord(BaseModel):
    """A pre-issued warranty number in the pool."""

    code: str = Field(..., min_length=1, description="Globally unique warranty number")
    product_id: str = Field(..., min_length=1)
    product_name: str = Field(..., min_length=1)
    used: bool = False
    used_at: datetime | None = None
    registration_id: str | None = Field(
        default=None,
        description="Registration currently consuming this number",
    )
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("used_at", "created_at")
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else None


class RegistrationRecord(BaseModel):
    """A customer's product registration against a warranty number."""

    id: str = Field(default_factory=lambda: uuid4().hex)

    # Customer
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str | None = None

    # Product
    product: str
    product_id: str

    # Provenance
    source: str
    order_id: str

    # Warranty number consumed by this registration
    code: str

    purchase_date: datetime
    warranty_start_date: datetime = Field(default_factory=utcnow)
    warranty_end_date: datetime
    status: RegistrationStatus = RegistrationStatus.ACTIVE

    # Populated only while status is claimed
    claim_date: datetime | None = None
    claim_type: ClaimType | None = None
    claim_notes: str | None = None
    claim_processed_by: str | None = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = None

    @field_validator(
        "purchase_date",
        "warranty_start_date",
        "warranty_end_date",
        "claim_date",
        "created_at",
        "updated_at",
    )
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else None


class AdminAccount(BaseModel):
    """Administrator able to manage the pool and ledger."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    username: str = Field(..., min_length=1)
    password_hash: str
    role: AdminRole = AdminRole.ADMIN
    created_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# Inputs
# =============================================================================


class WarrantyNumberCreate(BaseModel):
    """Fields required to issue a warranty number."""

    code: str = Field(..., min_length=1, description="Warranty number")
    product_id: str = Field(..., min_length=1)
    product_name: str = Field(..., min_length=1)

    @field_validator("code", "product_id", "product_name", mode="before")
    @classmethod
    def strip_whitespace(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class RegistrationCreate(BaseModel):
    """Customer-submitted registration fields."""

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str | None = None
    product: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    order_id: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1, description="Warranty number being registered")
    purchase_date: datetime
    warranty_start_date: datetime | None = None

    @field_validator(
        "first_name",
        "last_name",
        "full_name",
        "product",
        "product_id",
        "source",
        "order_id",
        "code",
        mode="before",
    )
    @classmethod
    def strip_whitespace(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("purchase_date", "warranty_start_date")
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else None


class RegistrationUpdate(BaseModel):
    """
    Admin patch for a registration.

    Unknown keys (including `code`, which is immutable) are ignored.
    """

    model_config = {"extra": "ignore"}

    first_name: str | None = Field(default=None, min_length=1)
    last_name: str | None = Field(default=None, min_length=1)
    full_name: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    phone: str | None = None
    product: str | None = Field(default=None, min_length=1)
    source: str | None = Field(default=None, min_length=1)
    order_id: str | None = Field(default=None, min_length=1)
    purchase_date: datetime | None = None
    status: RegistrationStatus | None = None
    claim_date: datetime | None = None
    claim_type: ClaimType | None = None
    claim_notes: str | None = None

    @field_validator("purchase_date", "claim_date")
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else None
