"""
CSV Import/Export
=================

Parses warranty number uploads and renders the registrations export.

Uploads use the header `code,product_id,product_name`; the legacy
`warrantyNumber,productId,productName` header is accepted too.

Version: 0.1.0
"""

import csv
import io
from collections.abc import AsyncIterable

from services.warranty.errors import ValidationError
from services.warranty.models import RegistrationRecord


HEADER_ALIASES = {
    "code": "code",
    "warrantynumber": "code",
    "warranty_number": "code",
    "product_id": "product_id",
    "productid": "product_id",
    "product_name": "product_name",
    "productname": "product_name",
}

EXPORT_COLUMNS = [
    ("Full Name", "full_name"),
    ("Email", "email"),
    ("Product", "product"),
    ("Purchase Source", "source"),
    ("Order ID", "order_id"),
    ("Warranty Number", "code"),
    ("Purchase Date", "purchase_date"),
    ("Warranty End Date", "warranty_end_date"),
    ("Status", "status"),
    ("Registration Date", "created_at"),
]


def parse_warranty_numbers(content: bytes | str) -> list[dict[str, str]]:
    """
    Parse an uploaded CSV into warranty number rows.

    Header names are normalized; unknown columns are dropped. Rows are
    returned as-is (possibly incomplete); the pool skips incomplete rows.

    Raises:
        ValidationError: If the file is not UTF-8 or lacks a code column.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ValidationError("CSV file must be UTF-8 encoded") from e

    reader = csv.DictReader(io.StringIO(content))
    columns = {
        name: HEADER_ALIASES[name.strip().lower()]
        for name in reader.fieldnames or []
        if name and name.strip().lower() in HEADER_ALIASES
    }
    if "code" not in columns.values():
        raise ValidationError(
            "CSV header must include code, product_id and product_name",
            header=reader.fieldnames or [],
        )

    rows = []
    for raw in reader:
        rows.append(
            {
                target: (raw.get(source) or "").strip()
                for source, target in columns.items()
            }
        )
    return rows


def _cell(record: RegistrationRecord, field: str) -> str:
    value = getattr(record, field)
    if value is None:
        return ""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(getattr(value, "value", value))


async def render_registrations_csv(records: AsyncIterable[RegistrationRecord]) -> str:
    """Render registrations with the export column set."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([title for title, _ in EXPORT_COLUMNS])

    async for record in records:
        writer.writerow([_cell(record, field) for _, field in EXPORT_COLUMNS])

    content = buffer.getvalue()
    buffer.close()
    return content
