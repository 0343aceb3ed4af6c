"""
Admin Dashboard Routes
======================

Statistics, CSV export and integration checks.

Version: 0.1.0
"""

from typing import Any

from fastapi import APIRouter, Response

from services.warranty.dependencies import DispatcherDep, LedgerDep
from services.warranty.models import LedgerStats
from services.warranty.services.csv_io import render_registrations_csv
from shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

EXPORT_FILENAME = "warranty_registrations.csv"


@router.get("/stats", response_model=LedgerStats)
async def get_stats(ledger: LedgerDep) -> LedgerStats:
    """Pool and registration counts for the dashboard."""
    return await ledger.stats()


@router.get(
    "/export/registrations",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}},
)
async def export_registrations(ledger: LedgerDep) -> Response:
    """Download every registration as CSV."""
    content = await render_registrations_csv(ledger.iter_all())

    logger.info("registrations_exported", bytes=len(content))

    return Response(
        content=content.encode("utf-8-sig"),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.get("/integrations/test")
async def test_integrations(dispatcher: DispatcherDep) -> dict[str, dict[str, Any]]:
    """Probe each marketing platform with the configured credentials."""
    return await dispatcher.test_connections()
