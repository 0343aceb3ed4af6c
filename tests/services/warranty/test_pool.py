"""Tests for the warranty number pool."""

import pytest

from services.warranty.errors import AlreadyUsed, DuplicateCode, NotFound, ValidationError
from services.warranty.models import PoolFilter
from services.warranty.services import WarrantyNumberPool


class TestInsert:
    """Tests for issuing warranty numbers."""

    @pytest.mark.asyncio
    async def test_insert_creates_available_code(self, pool: WarrantyNumberPool) -> None:
        """Test a new code starts unused."""
        record = await pool.insert("TH11-0001", "th11", "LDAS TH11 Headset")

        assert record.code == "TH11-0001"
        assert record.used is False
        assert record.registration_id is None
        assert (await pool.get("TH11-0001")).product_name == "LDAS TH11 Headset"

    @pytest.mark.asyncio
    async def test_insert_strips_whitespace(self, pool: WarrantyNumberPool) -> None:
        """Test surrounding whitespace is removed."""
        record = await pool.insert("  TH11-0002 ", " th11", "LDAS TH11 Headset ")

        assert record.code == "TH11-0002"
        assert record.product_id == "th11"

    @pytest.mark.asyncio
    async def test_insert_duplicate(self, pool: WarrantyNumberPool) -> None:
        """Test a repeated code is rejected."""
        await pool.insert("TH11-0001", "th11", "LDAS TH11 Headset")

        with pytest.raises(DuplicateCode) as exc_info:
            await pool.insert("TH11-0001", "g7", "LDAS G7 Headset")

        assert exc_info.value.code == "TH11-0001"

    @pytest.mark.asyncio
    async def test_insert_blank_field(self, pool: WarrantyNumberPool) -> None:
        """Test blank fields are a validation error."""
        with pytest.raises(ValidationError):
            await pool.insert("TH11-0001", "   ", "LDAS TH11 Headset")


class TestBulkInsert:
    """Tests for bulk import."""

    @pytest.mark.asyncio
    async def test_bulk_insert_reports_duplicate(self, pool: WarrantyNumberPool) -> None:
        """Test one duplicate among five leaves four inserted and one error."""
        await pool.insert("EXISTING-1", "th11", "LDAS TH11 Headset")
        rows = [
            {"code": "BULK-1", "product_id": "th11", "product_name": "LDAS TH11 Headset"},
            {"code": "BULK-2", "product_id": "th11", "product_name": "LDAS TH11 Headset"},
            {"code": "EXISTING-1", "product_id": "th11", "product_name": "LDAS TH11 Headset"},
            {"code": "BULK-4", "product_id": "g7", "product_name": "LDAS G7 Headset"},
            {"code": "BULK-5", "product_id": "g7", "product_name": "LDAS G7 Headset"},
        ]

        result = await pool.bulk_insert(rows)

        assert result.success_count == 4
        assert len(result.errors) == 1
        assert result.errors[0].code == "EXISTING-1"
        assert result.errors[0].error == "duplicate_code"
        for code in ("BULK-1", "BULK-2", "BULK-4", "BULK-5"):
            assert (await pool.get(code)).used is False

    @pytest.mark.asyncio
    async def test_bulk_insert_skips_incomplete_rows(self, pool: WarrantyNumberPool) -> None:
        """Test rows missing a field are skipped, not reported."""
        rows = [
            {"code": "OK-1", "product_id": "th11", "product_name": "LDAS TH11 Headset"},
            {"code": "NO-PRODUCT", "product_name": "LDAS TH11 Headset"},
            {"code": "", "product_id": "th11", "product_name": "LDAS TH11 Headset"},
        ]

        result = await pool.bulk_insert(rows)

        assert result.success_count == 1
        assert result.skipped_count == 2
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_bulk_insert_duplicate_within_batch(self, pool: WarrantyNumberPool) -> None:
        """Test a code repeated inside the batch is inserted once."""
        row = {"code": "DUP-1", "product_id": "th11", "product_name": "LDAS TH11 Headset"}

        result = await pool.bulk_insert([row, dict(row)])

        assert result.success_count == 1
        assert [e.code for e in result.errors] == ["DUP-1"]


class TestMarkUsed:
    """Tests for consuming and freeing codes."""

    @pytest.mark.asyncio
    async def test_mark_used_links_registration(self, pool: WarrantyNumberPool) -> None:
        """Test a successful link sets used, used_at and registration_id."""
        await pool.insert("TH11-0001", "th11", "LDAS TH11 Headset")

        record = await pool.mark_used("TH11-0001", "reg-1")

        assert record.used is True
        assert record.used_at is not None
        assert record.registration_id == "reg-1"

    @pytest.mark.asyncio
    async def test_mark_used_is_idempotent_for_same_registration(
        self, pool: WarrantyNumberPool
    ) -> None:
        """Test relinking to the holder succeeds."""
        await pool.insert("TH11-0001", "th11", "LDAS TH11 Headset")
        first = await pool.mark_used("TH11-0001", "reg-1")

        second = await pool.mark_used("TH11-0001", "reg-1")

        assert second.registration_id == "reg-1"
        assert second.used_at == first.used_at

    @pytest.mark.asyncio
    async def test_mark_used_by_other_registration(self, pool: WarrantyNumberPool) -> None:
        """Test a consumed code cannot be taken by another registration."""
        await pool.insert("TH11-0001", "th11", "LDAS TH11 Headset")
        await pool.mark_used("TH11-0001", "reg-1")

        with pytest.raises(AlreadyUsed):
            await pool.mark_used("TH11-0001", "reg-2")

        assert (await pool.get("TH11-0001")).registration_id == "reg-1"

    @pytest.mark.asyncio
    async def test_mark_used_unknown_code(self, pool: WarrantyNumberPool) -> None:
        with pytest.raises(NotFound):
            await pool.mark_used("NOPE", "reg-1")

    @pytest.mark.asyncio
    async def test_mark_free_is_idempotent(self, pool: WarrantyNumberPool) -> None:
        """Test freeing twice leaves the code available."""
        await pool.insert("TH11-0001", "th11", "LDAS TH11 Headset")
        await pool.mark_used("TH11-0001", "reg-1")

        await pool.mark_free("TH11-0001")
        record = await pool.mark_free("TH11-0001")

        assert record.used is False
        assert record.used_at is None
        assert record.registration_id is None

    @pytest.mark.asyncio
    async def test_mark_free_unknown_code(self, pool: WarrantyNumberPool) -> None:
        with pytest.raises(NotFound):
            await pool.mark_free("NOPE")


class TestFind:
    """Tests for listing and lookup."""

    @pytest.mark.asyncio
    async def test_find_available_checks_product_and_state(self, pool: WarrantyNumberPool) -> None:
        """Test only an unused code for the right product is available."""
        await pool.insert("TH11-0001", "th11", "LDAS TH11 Headset")

        assert await pool.find_available("TH11-0001", "th11") is not None
        assert await pool.find_available("TH11-0001", "g7") is None
        assert await pool.find_available("MISSING", "th11") is None

        await pool.mark_used("TH11-0001", "reg-1")
        assert await pool.find_available("TH11-0001", "th11") is None

    @pytest.mark.asyncio
    async def test_find_filters_and_paginates_newest_first(self, pool: WarrantyNumberPool) -> None:
        """Test filters, ordering and totals."""
        for i in range(5):
            await pool.insert(f"TH11-{i}", "th11", "LDAS TH11 Headset")
        await pool.insert("G7-0", "g7", "LDAS G7 Headset")
        await pool.mark_used("TH11-0", "reg-1")

        page = await pool.find(PoolFilter(product_id="th11"), page=1, page_size=2)

        assert page.total == 5
        assert page.pages == 3
        assert [r.code for r in page.items] == ["TH11-4", "TH11-3"]

        used = await pool.find(PoolFilter(used=True))
        assert [r.code for r in used.items] == ["TH11-0"]

        available = await pool.find(PoolFilter(used=False))
        assert available.total == 5
