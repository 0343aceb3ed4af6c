"""
Shared Models
=============

Pydantic models shared across services.
"""

from shared.models.common import (
    ErrorResponse,
    HealthResponse,
    PaginatedResponse,
    Pagination,
)

__all__ = [
    "PaginatedResponse",
    "Pagination",
    "ErrorResponse",
    "HealthResponse",
]
