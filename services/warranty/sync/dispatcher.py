"""
Marketing Sync Dispatcher
=========================

In-process queue between the registration path and the marketing clients.
`enqueue` never blocks and never raises; a single worker task started in
the application lifespan delivers each job to every enabled client.

Version: 0.1.0
"""

import asyncio
import contextlib
from enum import Enum
from typing import Any

from services.warranty.models import RegistrationRecord
from services.warranty.sync.base import (
    CustomerInfo,
    MarketingSyncClient,
    SyncResult,
    WarrantyInfo,
    sync_payload,
)
from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)


class SyncStatus(str, Enum):
    """What happened to a sync request at enqueue time."""

    QUEUED = "queued"
    DISABLED = "disabled"
    DROPPED = "dropped"


class MarketingSyncDispatcher:
    """Queues registrations for delivery to marketing platforms."""

    def __init__(
        self,
        clients: list[MarketingSyncClient] | None = None,
        queue_size: int | None = None,
    ) -> None:
        self.clients = clients or []
        size = settings.warranty.sync_queue_size if queue_size is None else queue_size
        self._queue: asyncio.Queue[tuple[CustomerInfo, WarrantyInfo]] = asyncio.Queue(maxsize=size)
        self._worker: asyncio.Task[None] | None = None

    @property
    def active_clients(self) -> list[MarketingSyncClient]:
        """Clients with credentials configured."""
        return [c for c in self.clients if c.enabled]

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def enqueue(self, record: RegistrationRecord) -> SyncStatus:
        """Queue a registration for delivery."""
        if not self.active_clients:
            return SyncStatus.DISABLED

        customer, warranty = sync_payload(record)
        try:
            self._queue.put_nowait((customer, warranty))
        except asyncio.QueueFull:
            logger.warning(
                "marketing_sync_dropped",
                registration_id=record.id,
                queue_size=self._queue.maxsize,
            )
            return SyncStatus.DROPPED

        logger.debug("marketing_sync_queued", registration_id=record.id)
        return SyncStatus.QUEUED

    async def deliver(self, customer: CustomerInfo, warranty: WarrantyInfo) -> list[SyncResult]:
        """Send one registration to every enabled client."""
        results: list[SyncResult] = []
        for client in self.active_clients:
            try:
                result = await client.sync_registration(customer, warranty)
            except Exception as e:
                logger.exception(
                    "marketing_sync_client_crashed",
                    client=client.name,
                    registration_id=warranty.registration_id,
                )
                result = SyncResult(client=client.name, success=False, error=str(e))
            results.append(result)

        logger.info(
            "marketing_sync_delivered",
            registration_id=warranty.registration_id,
            results={r.client: r.success for r in results},
        )
        return results

    async def _run(self) -> None:
        while True:
            customer, warranty = await self._queue.get()
            try:
                await self.deliver(customer, warranty)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        """Start the delivery worker on the running loop."""
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="marketing-sync-worker")
        logger.info(
            "marketing_sync_started",
            clients=[c.name for c in self.active_clients],
        )

    async def drain(self) -> None:
        """Wait until every queued job has been delivered."""
        await self._queue.join()

    async def stop(self, timeout: float = 10.0) -> None:
        """Drain the queue (bounded by `timeout`), stop the worker, close clients."""
        if self.running:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except TimeoutError:
                logger.warning("marketing_sync_stop_timeout", pending=self.pending)

        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None

        for client in self.clients:
            await client.close()

        logger.info("marketing_sync_stopped")

    async def test_connections(self) -> dict[str, dict[str, Any]]:
        """Probe every configured client."""
        results: dict[str, dict[str, Any]] = {}
        for client in self.clients:
            if not client.enabled:
                results[client.name] = {"success": False, "error": "Not configured"}
                continue
            results[client.name] = await client.test_connection()
        return results


# =============================================================================
# Global Dispatcher
# =============================================================================

_dispatcher: MarketingSyncDispatcher | None = None


def get_dispatcher() -> MarketingSyncDispatcher:
    """
    Get the configured dispatcher.

    Returns:
        Dispatcher with the Omnisend and Shopify clients
    """
    global _dispatcher

    if _dispatcher is None:
        from services.warranty.sync.omnisend import OmnisendClient
        from services.warranty.sync.shopify import ShopifyClient

        _dispatcher = MarketingSyncDispatcher([OmnisendClient(), ShopifyClient()])
        logger.info(
            "marketing_sync_initialized",
            enabled=[c.name for c in _dispatcher.active_clients],
        )

    return _dispatcher


def set_dispatcher(dispatcher: MarketingSyncDispatcher | None) -> None:
    """Replace the global dispatcher (None resets it)."""
    global _dispatcher
    _dispatcher = dispatcher
