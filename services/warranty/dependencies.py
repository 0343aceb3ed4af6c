"""
Warranty Registry Dependencies
==============================

FastAPI providers wiring the configured store and dispatcher into the
pool, ledger, coordinator and admin directory.

Version: 0.1.0
"""

from typing import Annotated

from fastapi import Depends, Query

from services.warranty.services import (
    AdminDirectory,
    RegistrationCoordinator,
    RegistrationLedger,
    WarrantyNumberPool,
)
from services.warranty.store import WarrantyStore, get_store
from services.warranty.sync import MarketingSyncDispatcher, get_dispatcher
from shared.config import settings
from shared.models.common import Pagination


def get_warranty_store() -> WarrantyStore:
    return get_store()


def get_sync_dispatcher() -> MarketingSyncDispatcher:
    return get_dispatcher()


StoreDep = Annotated[WarrantyStore, Depends(get_warranty_store)]
DispatcherDep = Annotated[MarketingSyncDispatcher, Depends(get_sync_dispatcher)]


def get_pool(store: StoreDep) -> WarrantyNumberPool:
    return WarrantyNumberPool(store)


def get_ledger(store: StoreDep) -> RegistrationLedger:
    return RegistrationLedger(store)


def get_admin_directory(store: StoreDep) -> AdminDirectory:
    return AdminDirectory(store)


def get_coordinator(
    pool: Annotated[WarrantyNumberPool, Depends(get_pool)],
    ledger: Annotated[RegistrationLedger, Depends(get_ledger)],
    dispatcher: DispatcherDep,
) -> RegistrationCoordinator:
    return RegistrationCoordinator(pool, ledger, dispatcher)


PoolDep = Annotated[WarrantyNumberPool, Depends(get_pool)]
LedgerDep = Annotated[RegistrationLedger, Depends(get_ledger)]
CoordinatorDep = Annotated[RegistrationCoordinator, Depends(get_coordinator)]
AdminDirectoryDep = Annotated[AdminDirectory, Depends(get_admin_directory)]


def get_pagination(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(
        default=settings.warranty.default_page_size,
        ge=1,
        le=settings.warranty.max_page_size,
    ),
) -> Pagination:
    return Pagination(page=page, page_size=page_size)


PaginationDep = Annotated[Pagination, Depends(get_pagination)]
