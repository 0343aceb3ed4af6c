"""
Marketing Sync
==============

Best-effort delivery of new registrations to marketing platforms.

Clients:
- Omnisend (contacts + events)
- Shopify (customers)
"""

from services.warranty.sync.base import (
    CustomerInfo,
    HTTPSyncClient,
    MarketingSyncClient,
    SyncResult,
    WarrantyInfo,
    sync_payload,
)
from services.warranty.sync.dispatcher import (
    MarketingSyncDispatcher,
    SyncStatus,
    get_dispatcher,
    set_dispatcher,
)
from services.warranty.sync.omnisend import OmnisendClient
from services.warranty.sync.shopify import ShopifyClient

__all__ = [
    "CustomerInfo",
    "WarrantyInfo",
    "SyncResult",
    "MarketingSyncClient",
    "HTTPSyncClient",
    "sync_payload",
    "MarketingSyncDispatcher",
    "SyncStatus",
    "get_dispatcher",
    "set_dispatcher",
    "OmnisendClient",
    "ShopifyClient",
]
