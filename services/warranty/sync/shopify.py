"""
Shopify Client
==============

Creates or updates the Shopify customer behind a registration, tagging it
for segmentation and prepending a warranty note.

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
from shared.config.settings import ShopifySettings
from shared.logging import get_logger


logger = get_logger(__name__)


def merge_tags(existing: str | None, new: list[str]) -> list[str]:
    """Union of existing and new tags, first occurrence order kept."""
    current = [t.strip() for t in (existing or "").split(",") if t.strip()]
    return list(dict.fromkeys([*current, *new]))


class ShopifyClient(HTTPSyncClient):
    """Shopify Admin REST customers client."""

    def __init__(
        self,
        config: ShopifySettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        backoff_seconds: float = 0.5,
    ) -> None:
        self.config = config or settings.shopify
        super().__init__(
            base_url=self.config.base_url,
            headers={
                "X-Shopify-Access-Token": self.config.access_token.get_secret_value(),
                "Content-Type": "application/json",
            },
            timeout_seconds=self.config.timeout_seconds,
            max_retries=self.config.max_retries,
            backoff_seconds=backoff_seconds,
            transport=transport,
        )

    @property
    def name(self) -> str:
        return "shopify"

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def product_code(self, product: str) -> str:
        return self.config.product_codes.get(product, "unknown")

    def warranty_tags(self, warranty: WarrantyInfo) -> list[str]:
        return [
            "warranty-registered",
            f"product-{self.product_code(warranty.product)}",
            "warranty-active",
            f"source-{source_slug(warranty.source)}",
            f"registered-{utcnow().year}",
        ]

    def warranty_note(self, warranty: WarrantyInfo) -> str:
        """Note block placed above any existing customer note."""
        lines = [
            f"WARRANTY REGISTRATION - {utcnow().date().isoformat()}",
            f"Product: {warranty.product}",
            f"Warranty #: {warranty.code}",
            f"Purchase Date: {warranty.purchase_date.date().isoformat()}",
            f"Warranty Valid Until: {warranty.warranty_end_date.date().isoformat()}",
            f"Source: {warranty.source}",
        ]
        if warranty.order_id:
            lines.append(f"Order ID: {warranty.order_id}")
        lines.extend(["", "--- Previous Notes ---", ""])
        return "\n".join(lines)

    async def find_customer(self, email: str) -> dict[str, Any] | None:
        """First customer whose email matches, if any."""
        response = await self._request(
            "GET", "/customers/search.json", params={"query": f"email:{email}"}
        )
        customers = response.json().get("customers") or []
        return customers[0] if customers else None

    async def create_customer(
        self,
        customer: CustomerInfo,
        warranty: WarrantyInfo,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "first_name": customer.first_name,
            "last_name": customer.last_name,
            "email": customer.email,
            "phone": customer.phone,
            "tags": ", ".join(self.warranty_tags(warranty)),
            "note": self.warranty_note(warranty),
        }
        if customer.address:
            body["addresses"] = [
                {"address1": customer.address, "country": self.config.default_country}
            ]

        response = await self._request("POST", "/customers.json", json={"customer": body})
        return response.json()["customer"]

    async def update_customer(
        self,
        existing: dict[str, Any],
        warranty: WarrantyInfo,
    ) -> dict[str, Any]:
        body = {
            "id": existing["id"],
            "tags": ", ".join(merge_tags(existing.get("tags"), self.warranty_tags(warranty))),
            "note": self.warranty_note(warranty) + (existing.get("note") or ""),
        }
        response = await self._request(
            "PUT", f"/customers/{existing['id']}.json", json={"customer": body}
        )
        return response.json()["customer"]

    async def sync_registration(
        self,
        customer: CustomerInfo,
        warranty: WarrantyInfo,
    ) -> SyncResult:
        try:
            existing = await self.find_customer(customer.email)
            if existing:
                result = await self.update_customer(existing, warranty)
                action = "updated"
            else:
                result = await self.create_customer(customer, warranty)
                action = "created"
        except (httpx.HTTPError, KeyError, ValueError) as e:
            error = describe_error(e) if isinstance(e, httpx.HTTPError) else f"Malformed response: {e}"
            logger.error(
                "shopify_sync_failed",
                registration_id=warranty.registration_id,
                error=error,
            )
            return SyncResult(client=self.name, success=False, action="failed", error=error)

        logger.info(
            "shopify_customer_synced",
            registration_id=warranty.registration_id,
            customer_id=result.get("id"),
            action=action,
        )
        return SyncResult(
            client=self.name,
            success=True,
            action=action,
            external_id=str(result.get("id")) if result.get("id") is not None else None,
        )

    async def test_connection(self) -> dict[str, Any]:
        try:
            response = await self._request("GET", "/shop.json")
            shop = response.json()["shop"]
        except httpx.HTTPError as e:
            return {"success": False, "error": describe_error(e)}
        except (KeyError, ValueError) as e:
            return {"success": False, "error": f"Malformed response: {e}"}

        return {
            "success": True,
            "shop": {
                "name": shop.get("name"),
                "domain": shop.get("domain"),
                "email": shop.get("email"),
                "currency": shop.get("currency"),
            },
        }
