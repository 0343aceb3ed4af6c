"""
Authentication Module
=====================

JWT-based authentication and authorization for admin endpoints.

Features:
- JWT token generation and validation
- Password hashing with bcrypt
- Role-based access control
- FastAPI dependencies for route protection

Usage:
    from shared.auth import (
        create_token_pair,
        require_admin,
        hash_password,
        verify_password,
    )

    # Hash password for storage
    hashed = hash_password("admin_password")

    # Verify password and issue tokens
    if verify_password("admin_password", hashed):
        tokens = create_token_pair({"sub": admin_id, "roles": ["admin"]})

    # Protect routes
    @router.get("/stats")
    async def stats(admin: User = Depends(require_admin)):
        return {"admin": admin.identity}
"""

from shared.auth.jwt import (
    create_access_token,
    create_refresh_token,
    create_token_pair,
    decode_token,
    TokenData,
    TokenPair,
)
from shared.auth.password import hash_password, verify_password
from shared.auth.dependencies import (
    User,
    get_current_user,
    get_current_active_user,
    require_admin,
    require_roles,
    oauth2_scheme,
)

__all__ = [
    # JWT
    "create_access_token",
    "create_refresh_token",
    "create_token_pair",
    "decode_token",
    "TokenData",
    "TokenPair",
    # Password
    "hash_password",
    "verify_password",
    # Dependencies
    "User",
    "get_current_user",
    "get_current_active_user",
    "require_admin",
    "require_roles",
    "oauth2_scheme",
]
