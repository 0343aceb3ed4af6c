"""
Public Registration Route
=========================

Customer-facing warranty registration. Unknown, consumed and
wrong-product codes all produce the same 400 response.

Version: 0.1.0
"""

from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel

from services.warranty.dependencies import CoordinatorDep
from services.warranty.models import RegistrationCreate
from services.warranty.sync import SyncStatus
from shared.models.common import ErrorResponse

router = APIRouter()


class RegisterResponse(BaseModel):
    """Confirmation returned to the customer."""

    message: str = "Warranty registered successfully"
    registration_id: str
    warranty_end_date: datetime
    marketing_sync: SyncStatus


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid warranty number or product mismatch"},
        503: {"model": ErrorResponse, "description": "Stored but pending reconciliation"},
    },
)
async def register_warranty(
    request: RegistrationCreate,
    coordinator: CoordinatorDep,
) -> RegisterResponse:
    """Register a purchased product against its warranty number."""
    receipt = await coordinator.register(request)
    return RegisterResponse(
        registration_id=receipt.registration.id,
        warranty_end_date=receipt.registration.warranty_end_date,
        marketing_sync=receipt.marketing_sync,
    )
