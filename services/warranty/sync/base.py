"""
Marketing Sync Base
===================

Abstract client contract for pushing new registrations to marketing
platforms, plus the shared HTTP plumbing (lazy httpx client, tenacity
retry of transient failures).

Version: 0.1.0
"""

import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

import httpx
from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from services.warranty.models import RegistrationRecord
from shared.logging import get_logger


logger = get_logger(__name__)


class CustomerInfo(BaseModel):
    """Customer identity forwarded to marketing platforms."""

    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    address: str | None = None


class WarrantyInfo(BaseModel):
    """Warranty details forwarded to marketing platforms."""

    registration_id: str
    code: str
    product: str
    product_id: str
    source: str
    order_id: str | None = None
    purchase_date: datetime
    warranty_end_date: datetime


class SyncResult(BaseModel):
    """Outcome of one client's delivery attempt."""

    client: str
    success: bool
    action: str | None = None
    external_id: str | None = None
    message: str | None = None
    error: str | None = None


def sync_payload(record: RegistrationRecord) -> tuple[CustomerInfo, WarrantyInfo]:
    """Split a registration into the customer and warranty halves."""
    customer = CustomerInfo(
        email=record.email,
        first_name=record.first_name,
        last_name=record.last_name,
        phone=record.phone,
    )
    warranty = WarrantyInfo(
        registration_id=record.id,
        code=record.code,
        product=record.product,
        product_id=record.product_id,
        source=record.source,
        order_id=record.order_id,
        purchase_date=record.purchase_date,
        warranty_end_date=record.warranty_end_date,
    )
    return customer, warranty


def source_slug(source: str) -> str:
    """Lowercase the source and replace anything outside [a-z0-9] with '-'."""
    return re.sub(r"[^a-z0-9]", "-", source.lower())


def is_transient(exc: BaseException) -> bool:
    """Connection errors, timeouts, 429 and 5xx are worth retrying."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


def describe_error(exc: httpx.HTTPError) -> str:
    """Short human-readable summary of an httpx failure."""
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}: {exc.response.text[:200]}"
    return str(exc) or exc.__class__.__name__


class MarketingSyncClient(ABC):
    """
    Abstract marketing platform client.

    Implementations must not raise from `sync_registration`; delivery
    failures are reported through `SyncResult.success`.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Platform name used in logs and results."""
        ...

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Whether credentials are configured."""
        ...

    @abstractmethod
    async def sync_registration(
        self,
        customer: CustomerInfo,
        warranty: WarrantyInfo,
    ) -> SyncResult:
        """Push one registration to the platform."""
        ...

    @abstractmethod
    async def test_connection(self) -> dict[str, Any]:
        """Probe the platform with the configured credentials."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        return None


class HTTPSyncClient(MarketingSyncClient):
    """Marketing client speaking JSON over HTTP."""

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str],
        timeout_seconds: float = 15.0,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            base_url: API root every request path is relative to
            headers: Authentication and content headers
            timeout_seconds: Per-request timeout
            max_retries: Attempts per request, including the first
            backoff_seconds: Base of the exponential wait between attempts
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.headers = headers
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(1, max_retries)
        self.backoff_seconds = backoff_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=httpx.Timeout(self.timeout_seconds, connect=min(10.0, self.timeout_seconds)),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request, retrying transient failures.

        Raises:
            httpx.HTTPError: On a non-transient failure, or once retries
                are exhausted.
        """
        client = await self._get_client()

        retrying = AsyncRetrying(
            retry=retry_if_exception(is_transient),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=30),
            before_sleep=lambda retry_state: logger.warning(
                "marketing_sync_retry",
                client=self.name,
                path=path,
                attempt=retry_state.attempt_number,
                error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
            ),
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()

        logger.debug(
            "marketing_sync_request",
            client=self.name,
            method=method,
            path=path,
            status=response.status_code,
        )
        return response
