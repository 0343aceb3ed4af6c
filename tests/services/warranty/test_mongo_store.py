"""Tests for the MongoDB store against mocked Motor collections."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from services.warranty.errors import DuplicateCode, StoreUnavailable
from services.warranty.models import (
    AdminAccount,
    PoolFilter,
    RegistrationFilter,
    RegistrationStatus,
    WarrantyNumberRecord,
)
from services.warranty.store.mongo import MongoWarrantyStore, pool_query, registration_query
from shared.database import ADMINS, REGISTRATIONS, WARRANTY_NUMBERS


def make_collection() -> MagicMock:
    collection = MagicMock()
    for method in (
        "insert_one",
        "find_one",
        "update_one",
        "update_many",
        "count_documents",
        "find_one_and_update",
        "find_one_and_delete",
    ):
        setattr(collection, method, AsyncMock())
    return collection


@pytest.fixture
def collections() -> dict[str, MagicMock]:
    return {
        WARRANTY_NUMBERS: make_collection(),
        REGISTRATIONS: make_collection(),
        ADMINS: make_collection(),
    }


@pytest.fixture
def mongo_store(collections: dict[str, MagicMock]) -> MongoWarrantyStore:
    return MongoWarrantyStore(collections)  # type: ignore[arg-type]


class TestQueryBuilders:
    """Tests for filter translation."""

    def test_pool_query(self) -> None:
        assert pool_query(PoolFilter()) == {}
        assert pool_query(PoolFilter(product_id="th11", used=False)) == {
            "product_id": "th11",
            "used": False,
        }

    def test_substring_terms_are_escaped(self) -> None:
        """Test regex metacharacters are matched literally."""
        query = registration_query(RegistrationFilter(email="jane+1@example.com"))

        assert query["email"] == {"$regex": r"jane\+1@example\.com", "$options": "i"}

    def test_search_spans_fields(self) -> None:
        query = registration_query(RegistrationFilter(search="th11", status=RegistrationStatus.ACTIVE))

        assert query["status"] == "active"
        assert {next(iter(clause)) for clause in query["$or"]} == {
            "email",
            "first_name",
            "last_name",
            "full_name",
            "code",
            "order_id",
            "product",
        }

    def test_warranty_end_range(self) -> None:
        start = datetime(2025, 1, 1, tzinfo=UTC)
        end = datetime(2025, 2, 1, tzinfo=UTC)

        query = registration_query(
            RegistrationFilter(warranty_ends_after=start, warranty_ends_on_or_before=end)
        )

        assert query["warranty_end_date"] == {"$gt": start, "$lte": end}


class TestMongoWarrantyStore:
    """Tests for store operations and error translation."""

    @pytest.mark.asyncio
    async def test_duplicate_key_becomes_duplicate_code(
        self,
        mongo_store: MongoWarrantyStore,
        collections: dict[str, MagicMock],
    ) -> None:
        collections[WARRANTY_NUMBERS].insert_one.side_effect = DuplicateKeyError("E11000")

        with pytest.raises(DuplicateCode):
            await mongo_store.insert_warranty_number(
                WarrantyNumberRecord(code="TH11-0001", product_id="th11", product_name="TH11")
            )

    @pytest.mark.asyncio
    async def test_connection_failure_becomes_store_unavailable(
        self,
        mongo_store: MongoWarrantyStore,
        collections: dict[str, MagicMock],
    ) -> None:
        collections[WARRANTY_NUMBERS].find_one.side_effect = ServerSelectionTimeoutError("no primary")

        with pytest.raises(StoreUnavailable):
            await mongo_store.get_warranty_number("TH11-0001")

    @pytest.mark.asyncio
    async def test_claim_is_conditional_on_unused(
        self,
        mongo_store: MongoWarrantyStore,
        collections: dict[str, MagicMock],
    ) -> None:
        """Test the claim filters on used=False and reports the transition."""
        numbers = collections[WARRANTY_NUMBERS]
        numbers.update_one.return_value = MagicMock(modified_count=1)
        used_at = datetime(2025, 1, 1, tzinfo=UTC)

        claimed = await mongo_store.claim_warranty_number("TH11-0001", "reg-1", used_at)

        assert claimed is True
        query, update = numbers.update_one.call_args.args
        assert query == {"code": "TH11-0001", "used": False}
        assert update["$set"]["registration_id"] == "reg-1"

        numbers.update_one.return_value = MagicMock(modified_count=0)
        assert await mongo_store.claim_warranty_number("TH11-0001", "reg-2", used_at) is False

    @pytest.mark.asyncio
    async def test_get_registration_maps_id(
        self,
        mongo_store: MongoWarrantyStore,
        collections: dict[str, MagicMock],
    ) -> None:
        collections[REGISTRATIONS].find_one.return_value = {
            "_id": "reg-1",
            "first_name": "Jane",
            "last_name": "Doe",
            "full_name": "Jane Doe",
            "email": "jane.doe@example.com",
            "product": "LDAS TH11 Headset",
            "product_id": "th11",
            "source": "Amazon CA",
            "order_id": "ORD-1001",
            "code": "TH11-0001",
            "purchase_date": datetime(2024, 3, 15),
            "warranty_end_date": datetime(2025, 3, 15),
            "status": "claimed",
        }

        record = await mongo_store.get_registration("reg-1")

        assert record is not None
        assert record.id == "reg-1"
        assert record.status == RegistrationStatus.CLAIMED
        assert record.purchase_date.tzinfo is not None

    @pytest.mark.asyncio
    async def test_update_registration_sets_and_unsets(
        self,
        mongo_store: MongoWarrantyStore,
        collections: dict[str, MagicMock],
    ) -> None:
        registrations = collections[REGISTRATIONS]
        registrations.find_one_and_update.return_value = None

        result = await mongo_store.update_registration(
            "reg-1",
            {"status": RegistrationStatus.ACTIVE},
            ["claim_date", "claim_type"],
        )

        assert result is None
        _, update = registrations.find_one_and_update.call_args.args
        assert update == {
            "$set": {"status": "active"},
            "$unset": {"claim_date": "", "claim_type": ""},
        }

    @pytest.mark.asyncio
    async def test_create_admin_if_absent_upserts(
        self,
        mongo_store: MongoWarrantyStore,
        collections: dict[str, MagicMock],
    ) -> None:
        admins = collections[ADMINS]
        admins.update_one.return_value = MagicMock(upserted_id="a-1")

        created = await mongo_store.create_admin_if_absent(
            AdminAccount(id="a-1", username="admin", password_hash="x")
        )

        assert created is True
        query, update = admins.update_one.call_args.args
        assert query == {"username": "admin"}
        assert update["$setOnInsert"]["_id"] == "a-1"
        assert update["$setOnInsert"]["role"] == "admin"
        assert admins.update_one.call_args.kwargs["upsert"] is True

    @pytest.mark.asyncio
    async def test_expire_registrations(
        self,
        mongo_store: MongoWarrantyStore,
        collections: dict[str, MagicMock],
    ) -> None:
        registrations = collections[REGISTRATIONS]
        registrations.update_many.return_value = MagicMock(modified_count=3)
        now = datetime(2025, 6, 1, tzinfo=UTC)

        assert await mongo_store.expire_registrations(now) == 3
        query, _ = registrations.update_many.call_args.args
        assert query == {"status": "active", "warranty_end_date": {"$lte": now}}
