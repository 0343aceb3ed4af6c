"""Tests for the Omnisend and Shopify marketing clients."""

import json
from collections.abc import Callable
from datetime import UTC, datetime

import httpx
import pytest

from services.warranty.sync import (
    CustomerInfo,
    OmnisendClient,
    ShopifyClient,
    WarrantyInfo,
)
from services.warranty.sync.base import is_transient, source_slug
from services.warranty.sync.shopify import merge_tags
from shared.config.settings import OmnisendSettings, ShopifySettings


Handler = Callable[[httpx.Request], httpx.Response]


class Recorder:
    """MockTransport handler that records requests and replays scripted responses."""

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def bodies(self, path: str) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith(path)]


@pytest.fixture
def customer() -> CustomerInfo:
    return CustomerInfo(
        email="jane.doe@example.com",
        first_name="Jane",
        last_name="Doe",
        phone="+15555550100",
    )


@pytest.fixture
def warranty() -> WarrantyInfo:
    return WarrantyInfo(
        registration_id="reg-1",
        code="TH11-0001",
        product="LDAS TH11 Headset",
        product_id="th11",
        source="Amazon CA",
        order_id="ORD-1001",
        purchase_date=datetime(2024, 3, 15, tzinfo=UTC),
        warranty_end_date=datetime(2025, 3, 15, tzinfo=UTC),
    )


def omnisend(recorder: Recorder) -> OmnisendClient:
    return OmnisendClient(
        OmnisendSettings(api_key="omni-key", max_retries=3),
        transport=httpx.MockTransport(recorder),
        backoff_seconds=0,
    )


def shopify(recorder: Recorder) -> ShopifyClient:
    return ShopifyClient(
        ShopifySettings(shop_name="ldas-test", access_token="shpat-test", max_retries=3),
        transport=httpx.MockTransport(recorder),
        backoff_seconds=0,
    )


class TestHelpers:
    """Tests for shared sync helpers."""

    def test_source_slug(self) -> None:
        assert source_slug("Amazon CA") == "amazon-ca"
        assert source_slug("Best Buy!") == "best-buy-"

    def test_merge_tags_dedupes_in_order(self) -> None:
        merged = merge_tags("vip, warranty-active", ["warranty-registered", "warranty-active"])

        assert merged == ["vip", "warranty-active", "warranty-registered"]

    def test_merge_tags_without_existing(self) -> None:
        assert merge_tags(None, ["a", "b"]) == ["a", "b"]

    def test_is_transient(self) -> None:
        request = httpx.Request("GET", "https://example.com")

        def status_error(code: int) -> httpx.HTTPStatusError:
            return httpx.HTTPStatusError(
                "error", request=request, response=httpx.Response(code, request=request)
            )

        assert is_transient(httpx.ConnectError("refused", request=request))
        assert is_transient(status_error(503))
        assert is_transient(status_error(429))
        assert not is_transient(status_error(400))
        assert not is_transient(ValueError("nope"))


class TestOmnisendClient:
    """Tests for Omnisend contact and event delivery."""

    def test_disabled_without_api_key(self) -> None:
        assert OmnisendClient(OmnisendSettings(api_key="")).enabled is False

    def test_segment_tag_fallback(self) -> None:
        client = OmnisendClient(OmnisendSettings(api_key="k"))

        assert client.segment_tag("LDAS TH11 Headset") == "TH11 Warranty Signup"
        assert client.segment_tag("Mystery Box") == "General Warranty Signup"

    @pytest.mark.asyncio
    async def test_sync_adds_contact_and_event(
        self, customer: CustomerInfo, warranty: WarrantyInfo
    ) -> None:
        """Test the contact carries segment tags and the event follows."""
        recorder = Recorder(lambda request: httpx.Response(200, json={"contactID": "c-42"}))
        client = omnisend(recorder)

        result = await client.sync_registration(customer, warranty)
        await client.close()

        assert result.success is True
        assert result.external_id == "c-42"
        assert result.message == "Contact added with warranty tags"
        assert recorder.requests[0].headers["X-API-KEY"] == "omni-key"

        contact = recorder.bodies("/contacts")[0]
        assert contact["tags"] == [
            "TH11 Warranty Signup",
            "warranty-customer",
            "warranty-active",
            "source-amazon-ca",
        ]
        assert contact["customProperties"]["warrantyNumber"] == "TH11-0001"
        assert [i["type"] for i in contact["identifiers"]] == ["email", "phone"]

        event = recorder.bodies("/events")[0]
        assert event["eventName"] == "warranty-registered"
        assert event["properties"]["customerName"] == "Jane Doe"

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(
        self, customer: CustomerInfo, warranty: WarrantyInfo
    ) -> None:
        """Test a 503 followed by 200 delivers the contact."""
        responses = iter([httpx.Response(503, text="busy"), httpx.Response(200, json={})])

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/contacts"):
                return next(responses)
            return httpx.Response(200, json={})

        recorder = Recorder(handler)

        result = await omnisend(recorder).sync_registration(customer, warranty)

        assert result.success is True
        assert len(recorder.bodies("/contacts")) == 2

    @pytest.mark.asyncio
    async def test_client_error_not_retried(
        self, customer: CustomerInfo, warranty: WarrantyInfo
    ) -> None:
        recorder = Recorder(lambda request: httpx.Response(400, text="bad email"))

        result = await omnisend(recorder).sync_registration(customer, warranty)

        assert result.success is False
        assert result.error is not None and "HTTP 400" in result.error
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_event_failure_still_succeeds(
        self, customer: CustomerInfo, warranty: WarrantyInfo
    ) -> None:
        """Test a failed event leaves the sync delivered."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/events"):
                return httpx.Response(422, text="unknown event")
            return httpx.Response(200, json={"contactID": "c-1"})

        result = await omnisend(Recorder(handler)).sync_registration(customer, warranty)

        assert result.success is True
        assert result.message == "Contact added; registration event failed"

    @pytest.mark.asyncio
    async def test_test_connection(self) -> None:
        recorder = Recorder(lambda request: httpx.Response(200, json={"contacts": []}))

        status = await omnisend(recorder).test_connection()

        assert status["success"] is True
        assert recorder.requests[0].url.params["limit"] == "1"


class TestShopifyClient:
    """Tests for Shopify customer create and update."""

    def test_base_url(self) -> None:
        config = ShopifySettings(shop_name="ldas-test", access_token="t")

        assert config.base_url == "https://ldas-test.myshopify.com/admin/api/2024-01"

    @pytest.mark.asyncio
    async def test_sync_creates_new_customer(
        self, customer: CustomerInfo, warranty: WarrantyInfo
    ) -> None:
        """Test an unknown email creates a tagged customer."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/customers/search.json"):
                return httpx.Response(200, json={"customers": []})
            return httpx.Response(201, json={"customer": {"id": 9001}})

        recorder = Recorder(handler)

        result = await shopify(recorder).sync_registration(customer, warranty)

        assert result.success is True
        assert result.action == "created"
        assert result.external_id == "9001"
        assert recorder.requests[0].url.params["query"] == "email:jane.doe@example.com"
        assert recorder.requests[0].headers["X-Shopify-Access-Token"] == "shpat-test"

        body = recorder.bodies("/customers.json")[0]["customer"]
        tags = body["tags"].split(", ")
        assert tags[:4] == ["warranty-registered", "product-th11", "warranty-active", "source-amazon-ca"]
        assert tags[4].startswith("registered-")
        assert "Warranty #: TH11-0001" in body["note"]

    @pytest.mark.asyncio
    async def test_sync_updates_existing_customer(
        self, customer: CustomerInfo, warranty: WarrantyInfo
    ) -> None:
        """Test an existing customer keeps old tags and notes."""
        existing = {"id": 77, "tags": "vip, warranty-active", "note": "Called about shipping"}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/customers/search.json"):
                return httpx.Response(200, json={"customers": [existing]})
            return httpx.Response(200, json={"customer": {"id": 77}})

        recorder = Recorder(handler)

        result = await shopify(recorder).sync_registration(customer, warranty)

        assert result.action == "updated"
        assert recorder.requests[1].method == "PUT"
        body = recorder.bodies("/customers/77.json")[0]["customer"]
        tags = body["tags"].split(", ")
        assert tags[:3] == ["vip", "warranty-active", "warranty-registered"]
        assert tags.count("warranty-active") == 1
        assert body["note"].endswith("--- Previous Notes ---\nCalled about shipping")

    @pytest.mark.asyncio
    async def test_sync_failure_reported(
        self, customer: CustomerInfo, warranty: WarrantyInfo
    ) -> None:
        recorder = Recorder(lambda request: httpx.Response(401, text="unauthorized"))

        result = await shopify(recorder).sync_registration(customer, warranty)

        assert result.success is False
        assert result.action == "failed"

    @pytest.mark.asyncio
    async def test_malformed_response_reported(
        self, customer: CustomerInfo, warranty: WarrantyInfo
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/customers/search.json"):
                return httpx.Response(200, json={"customers": []})
            return httpx.Response(201, json={"unexpected": True})

        result = await shopify(Recorder(handler)).sync_registration(customer, warranty)

        assert result.success is False
        assert result.error is not None and result.error.startswith("Malformed response")

    @pytest.mark.asyncio
    async def test_test_connection(self) -> None:
        recorder = Recorder(
            lambda request: httpx.Response(
                200, json={"shop": {"name": "LDAS", "domain": "ldas.example.com", "currency": "CAD"}}
            )
        )

        status = await shopify(recorder).test_connection()

        assert status["success"] is True
        assert status["shop"]["currency"] == "CAD"
