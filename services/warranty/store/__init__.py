"""
Warranty Store
==============

Persistence backends for warranty numbers, registrations and admins.

Supports:
- MongoDB (production)
- In-memory (development/testing)

Usage:
    from services.warranty.store import get_store

    store = get_store()
    record = await store.get_warranty_number("TH11-0001")
"""

from services.warranty.store.base import WarrantyStore, get_store, set_store
from services.warranty.store.memory import InMemoryWarrantyStore

__all__ = [
    "WarrantyStore",
    "InMemoryWarrantyStore",
    "get_store",
    "set_store",
]
