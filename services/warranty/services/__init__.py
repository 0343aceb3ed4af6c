"""
Warranty Registry Services
==========================

Pool, ledger, coordinator and admin directory.
"""

from services.warranty.services.admins import AdminDirectory
from services.warranty.services.coordinator import (
    RegistrationCoordinator,
    RegistrationReceipt,
    UnlinkResult,
)
from services.warranty.services.ledger import RegistrationLedger, compute_warranty_end
from services.warranty.services.pool import WarrantyNumberPool

__all__ = [
    "AdminDirectory",
    "RegistrationCoordinator",
    "RegistrationReceipt",
    "UnlinkResult",
    "RegistrationLedger",
    "compute_warranty_end",
    "WarrantyNumberPool",
]
