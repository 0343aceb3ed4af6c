"""
Warranty Number Routes
======================

Admin endpoints for issuing, importing, listing and reconciling
warranty numbers.

Version: 0.1.0
"""

from fastapi import APIRouter, File, Query, UploadFile, status
from pydantic import BaseModel, Field

from services.warranty.dependencies import CoordinatorDep, PaginationDep, PoolDep
from services.warranty.models import (
    BulkInsertError,
    PoolFilter,
    WarrantyNumberCreate,
    WarrantyNumberRecord,
)
from services.warranty.services.csv_io import parse_warranty_numbers
from shared.logging import get_logger
from shared.models.common import PaginatedResponse

logger = get_logger(__name__)

router = APIRouter()


class UploadResponse(BaseModel):
    """Bulk import summary."""

    message: str
    success_count: int
    skipped_count: int = 0
    errors: list[BulkInsertError] = Field(default_factory=list)


@router.post(
    "",
    response_model=WarrantyNumberRecord,
    status_code=status.HTTP_201_CREATED,
)
async def create_warranty_number(
    request: WarrantyNumberCreate,
    pool: PoolDep,
) -> WarrantyNumberRecord:
    """Issue a single warranty number."""
    return await pool.insert(request.code, request.product_id, request.product_name)


@router.post("/upload", response_model=UploadResponse)
async def upload_warranty_numbers(
    pool: PoolDep,
    file: UploadFile = File(..., description="CSV with code, product_id, product_name"),
) -> UploadResponse:
    """
    Import warranty numbers from CSV.

    Each row is inserted independently; duplicates and failures are
    reported per code. Rows missing a column are skipped.
    """
    content = await file.read()
    rows = parse_warranty_numbers(content)
    result = await pool.bulk_insert(rows)

    logger.info(
        "warranty_numbers_uploaded",
        filename=file.filename,
        rows=len(rows),
        success_count=result.success_count,
    )

    return UploadResponse(
        message=f"Successfully imported {result.success_count} warranty numbers",
        success_count=result.success_count,
        skipped_count=result.skipped_count,
        errors=result.errors,
    )


@router.get("", response_model=PaginatedResponse[WarrantyNumberRecord])
async def list_warranty_numbers(
    pool: PoolDep,
    pagination: PaginationDep,
    product_id: str | None = Query(default=None, description="Filter by product"),
    used: bool | None = Query(default=None, description="Filter by used state"),
) -> PaginatedResponse[WarrantyNumberRecord]:
    """List warranty numbers, newest first."""
    page = await pool.find(
        PoolFilter(product_id=product_id, used=used),
        page=pagination.page,
        page_size=pagination.page_size,
    )
    return PaginatedResponse(
        items=page.items,
        total=page.total,
        page=page.page,
        page_size=page.page_size,
        pages=page.pages,
    )


@router.get("/{code}", response_model=WarrantyNumberRecord)
async def get_warranty_number(code: str, pool: PoolDep) -> WarrantyNumberRecord:
    """Fetch a warranty number."""
    return await pool.get(code)


@router.post("/{code}/reconcile", response_model=WarrantyNumberRecord)
async def reconcile_warranty_number(
    code: str,
    coordinator: CoordinatorDep,
) -> WarrantyNumberRecord:
    """
    Repair the pool entry for a code after a partial registration failure.

    Links the code to the registration referencing it, or frees it when no
    registration does.
    """
    return await coordinator.reconcile(code)
