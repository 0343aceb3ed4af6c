"""
Omnisend Client
===============

Adds registering customers to Omnisend (API v5) with product segment tags,
then fires a `warranty-registered` event for automations. The event is
best effort: its failure is logged and the sync still counts as delivered.

Version: 0.1.0
"""

from typing import Any

import httpx

from services.warranty.models import utcnow
from services.warranty.sync.base import (
    CustomerInfo,
    HTTPSyncClient,
    SyncResult,
    WarrantyInfo,
    describe_error,
    source_slug,
)
from shared.config import settings
from shared.config.settings import OmnisendSettings
from shared.logging import get_logger


logger = get_logger(__name__)

EVENT_NAME = "warranty-registered"


class OmnisendClient(HTTPSyncClient):
    """Omnisend contacts and events client."""

    def __init__(
        self,
        config: OmnisendSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        backoff_seconds: float = 0.5,
    ) -> None:
        self.config = config or settings.omnisend
        super().__init__(
            base_url=self.config.base_url,
            headers={
                "X-API-KEY": self.config.api_key.get_secret_value(),
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout_seconds=self.config.timeout_seconds,
            max_retries=self.config.max_retries,
            backoff_seconds=backoff_seconds,
            transport=transport,
        )

    @property
    def name(self) -> str:
        return "omnisend"

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def segment_tag(self, product: str) -> str:
        """Map a product name to its Omnisend segment tag."""
        tag = self.config.segment_tags.get(product)
        if tag is None:
            logger.warning("omnisend_segment_tag_missing", product=product)
            return self.config.fallback_segment_tag
        return tag

    def contact_payload(self, customer: CustomerInfo, warranty: WarrantyInfo) -> dict[str, Any]:
        """Build the v5 contact body."""
        now = utcnow().isoformat()
        identifiers: list[dict[str, Any]] = [
            {
                "type": "email",
                "id": customer.email,
                "channels": {"email": {"status": "subscribed", "statusDate": now}},
            }
        ]
        if customer.phone:
            identifiers.append(
                {
                    "type": "phone",
                    "id": customer.phone,
                    "channels": {"sms": {"status": "nonSubscribed"}},
                }
            )

        return {
            "identifiers": identifiers,
            "firstName": customer.first_name,
            "lastName": customer.last_name,
            "tags": [
                self.segment_tag(warranty.product),
                "warranty-customer",
                "warranty-active",
                f"source-{source_slug(warranty.source)}",
            ],
            "customProperties": {
                "warrantyNumber": warranty.code,
                "product": warranty.product,
                "purchaseDate": warranty.purchase_date.isoformat(),
                "warrantyEndDate": warranty.warranty_end_date.isoformat(),
                "source": warranty.source,
                "registrationDate": now,
            },
        }

    def event_payload(self, customer: CustomerInfo, warranty: WarrantyInfo) -> dict[str, Any]:
        """Build the registration event body."""
        return {
            "email": customer.email,
            "eventName": EVENT_NAME,
            "eventVersion": "1.0.0",
            "origin": "API",
            "properties": {
                "product": warranty.product,
                "productSegment": self.segment_tag(warranty.product),
                "warrantyNumber": warranty.code,
                "purchaseDate": warranty.purchase_date.isoformat(),
                "warrantyEndDate": warranty.warranty_end_date.isoformat(),
                "source": warranty.source,
                "customerName": f"{customer.first_name} {customer.last_name}",
            },
        }

    async def sync_registration(
        self,
        customer: CustomerInfo,
        warranty: WarrantyInfo,
    ) -> SyncResult:
        try:
            response = await self._request(
                "POST", "/contacts", json=self.contact_payload(customer, warranty)
            )
        except httpx.HTTPError as e:
            logger.error(
                "omnisend_contact_failed",
                registration_id=warranty.registration_id,
                error=describe_error(e),
            )
            return SyncResult(client=self.name, success=False, error=describe_error(e))

        contact_id = _contact_id(response)
        logger.info(
            "omnisend_contact_added",
            registration_id=warranty.registration_id,
            contact_id=contact_id,
            segment=self.segment_tag(warranty.product),
        )

        try:
            await self._request("POST", "/events", json=self.event_payload(customer, warranty))
        except httpx.HTTPError as e:
            logger.warning(
                "omnisend_event_failed",
                registration_id=warranty.registration_id,
                error=describe_error(e),
            )
            return SyncResult(
                client=self.name,
                success=True,
                action="contact_added",
                external_id=contact_id,
                message="Contact added; registration event failed",
            )

        return SyncResult(
            client=self.name,
            success=True,
            action="contact_added",
            external_id=contact_id,
            message="Contact added with warranty tags",
        )

    async def test_connection(self) -> dict[str, Any]:
        try:
            await self._request("GET", "/contacts", params={"limit": 1})
        except httpx.HTTPError as e:
            return {
                "success": False,
                "error": describe_error(e),
                "api_version": "v5",
            }
        return {
            "success": True,
            "api_version": "v5",
            "segment_tags": dict(self.config.segment_tags),
        }


def _contact_id(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        value = body.get("contactID") or body.get("contactId") or body.get("id")
        return str(value) if value is not None else None
    return None
