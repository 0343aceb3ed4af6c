"""
Registration Routes
===================

Admin endpoints for searching, patching, deleting and expiring
registrations.

Version: 0.1.0
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from services.warranty.dependencies import CoordinatorDep, LedgerDep, PaginationDep
from services.warranty.models import (
    RegistrationFilter,
    RegistrationRecord,
    RegistrationStatus,
    RegistrationUpdate,
)
from services.warranty.services import UnlinkResult
from shared.auth import User, require_admin
from shared.models.common import PaginatedResponse

router = APIRouter()


class ExpireResponse(BaseModel):
    expired_count: int


@router.get("", response_model=PaginatedResponse[RegistrationRecord])
async def list_registrations(
    ledger: LedgerDep,
    pagination: PaginationDep,
    product_id: str | None = Query(default=None),
    status: RegistrationStatus | None = Query(default=None),
    email: str | None = Query(default=None),
    first_name: str | None = Query(default=None),
    last_name: str | None = Query(default=None),
    full_name: str | None = Query(default=None),
    code: str | None = Query(default=None, description="Warranty number substring"),
    order_id: str | None = Query(default=None),
    product: str | None = Query(default=None),
    search: str | None = Query(default=None, description="Match any text field"),
) -> PaginatedResponse[RegistrationRecord]:
    """
    Search registrations, newest first.

    Text filters match case-insensitive substrings; `product_id` and
    `status` match exactly.
    """
    filter = RegistrationFilter(
        product_id=product_id,
        status=status,
        email=email,
        first_name=first_name,
        last_name=last_name,
        full_name=full_name,
        code=code,
        order_id=order_id,
        product=product,
        search=search,
    )
    page = await ledger.search(filter, page=pagination.page, page_size=pagination.page_size)
    return PaginatedResponse(
        items=page.items,
        total=page.total,
        page=page.page,
        page_size=page.page_size,
        pages=page.pages,
    )


@router.post("/expire", response_model=ExpireResponse)
async def expire_registrations(ledger: LedgerDep) -> ExpireResponse:
    """Mark active registrations past their end date as expired."""
    return ExpireResponse(expired_count=await ledger.expire_lapsed())


@router.get("/{registration_id}", response_model=RegistrationRecord)
async def get_registration(registration_id: str, ledger: LedgerDep) -> RegistrationRecord:
    return await ledger.get(registration_id)


@router.patch("/{registration_id}", response_model=RegistrationRecord)
async def update_registration(
    registration_id: str,
    patch: RegistrationUpdate,
    ledger: LedgerDep,
    admin: Annotated[User, Depends(require_admin)],
) -> RegistrationRecord:
    """
    Patch a registration.

    The warranty number cannot be changed. Setting status to claimed stamps
    the claim date and the acting admin.
    """
    return await ledger.update(registration_id, patch, acting_admin=admin.identity)


@router.delete("/{registration_id}", response_model=RegistrationRecord)
async def delete_registration(
    registration_id: str,
    coordinator: CoordinatorDep,
) -> RegistrationRecord:
    """Delete a registration and return its warranty number to the pool."""
    return await coordinator.delete_registration(registration_id)


@router.post("/{registration_id}/unlink", response_model=UnlinkResult)
async def unlink_registration(
    registration_id: str,
    coordinator: CoordinatorDep,
) -> UnlinkResult:
    """Free the registration's warranty number and remove the registration."""
    return await coordinator.unlink_registration(registration_id)
