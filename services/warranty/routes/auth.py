"""
Auth Routes
===========

Admin login.

Version: 0.1.0
"""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from services.warranty.dependencies import AdminDirectoryDep
from services.warranty.models import AdminRole
from shared.auth import TokenPair

router = APIRouter()


class LoginRequest(BaseModel):
    """Admin credentials."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AdminSummary(BaseModel):
    id: str
    username: str
    role: AdminRole


class LoginResponse(TokenPair):
    """Token pair plus the authenticated admin."""

    admin: AdminSummary


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, admins: AdminDirectoryDep) -> LoginResponse:
    """Exchange admin credentials for a bearer token pair."""
    result = await admins.login(request.username, request.password)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    account, tokens = result
    return LoginResponse(
        **tokens.model_dump(),
        admin=AdminSummary(id=account.id, username=account.username, role=account.role),
    )
