"""Tests for CSV upload parsing and registration export."""

import csv
import io
from collections.abc import AsyncIterator
from datetime import UTC, datetime

import pytest

from services.warranty.errors import ValidationError
from services.warranty.models import RegistrationRecord
from services.warranty.services.csv_io import parse_warranty_numbers, render_registrations_csv


class TestParseWarrantyNumbers:
    """Tests for upload parsing."""

    def test_parse_standard_header(self) -> None:
        content = b"code,product_id,product_name\nTH11-0001,th11,LDAS TH11 Headset\n"

        rows = parse_warranty_numbers(content)

        assert rows == [
            {"code": "TH11-0001", "product_id": "th11", "product_name": "LDAS TH11 Headset"}
        ]

    def test_parse_legacy_header_with_bom(self) -> None:
        """Test the camelCase header and a UTF-8 BOM."""
        content = "\ufeffwarrantyNumber,productId,productName\n G7-0001 ,g7,LDAS G7 Headset\n".encode()

        rows = parse_warranty_numbers(content)

        assert rows[0]["code"] == "G7-0001"
        assert rows[0]["product_id"] == "g7"

    def test_incomplete_rows_returned_blank(self) -> None:
        rows = parse_warranty_numbers("code,product_id,product_name,notes\nTH11-9,,LDAS,x\n")

        assert rows == [{"code": "TH11-9", "product_id": "", "product_name": "LDAS"}]

    def test_missing_code_column(self) -> None:
        with pytest.raises(ValidationError):
            parse_warranty_numbers("serial,product\nA,B\n")

    def test_rejects_non_utf8(self) -> None:
        with pytest.raises(ValidationError):
            parse_warranty_numbers(b"code\n\xff\xfe\xfa\n")


class TestExport:
    """Tests for the registrations export."""

    @pytest.mark.asyncio
    async def test_render_registrations_csv(self) -> None:
        record = RegistrationRecord(
            first_name="Jane",
            last_name="Doe",
            full_name="Jane Doe",
            email="jane.doe@example.com",
            product="LDAS TH11 Headset",
            product_id="th11",
            source="Amazon CA",
            order_id="ORD-1001",
            code="TH11-0001",
            purchase_date=datetime(2024, 3, 15, tzinfo=UTC),
            warranty_end_date=datetime(2025, 3, 15, tzinfo=UTC),
        )

        async def records() -> AsyncIterator[RegistrationRecord]:
            yield record

        content = await render_registrations_csv(records())
        rows = list(csv.reader(io.StringIO(content)))

        assert rows[0] == [
            "Full Name",
            "Email",
            "Product",
            "Purchase Source",
            "Order ID",
            "Warranty Number",
            "Purchase Date",
            "Warranty End Date",
            "Status",
            "Registration Date",
        ]
        assert rows[1][:6] == [
            "Jane Doe",
            "jane.doe@example.com",
            "LDAS TH11 Headset",
            "Amazon CA",
            "ORD-1001",
            "TH11-0001",
        ]
        assert rows[1][6] == "2024-03-15T00:00:00+00:00"
        assert rows[1][8] == "active"
