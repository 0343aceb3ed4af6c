"""
Admin Directory
===============

Admin account lookup, credential checks and token issue, plus the
idempotent bootstrap of the default admin.

Version: 0.1.0
"""

from services.warranty.models import AdminAccount, AdminRole
from services.warranty.store import WarrantyStore
from shared.auth import TokenPair, create_token_pair, hash_password, verify_password
from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)


class AdminDirectory:
    """Admin accounts backed by the warranty store."""

    def __init__(self, store: WarrantyStore) -> None:
        self.store = store

    async def authenticate(self, username: str, password: str) -> AdminAccount | None:
        """Return the account if the credentials match."""
        account = await self.store.get_admin_by_username(username)
        if account is None or not verify_password(password, account.password_hash):
            logger.info("admin_login_failed", username=username)
            return None
        return account

    async def login(self, username: str, password: str) -> tuple[AdminAccount, TokenPair] | None:
        """Authenticate and issue an access/refresh token pair."""
        account = await self.authenticate(username, password)
        if account is None:
            return None

        tokens = create_token_pair(
            {
                "sub": account.id,
                "username": account.username,
                "roles": [account.role.value],
            }
        )
        logger.info("admin_logged_in", admin_id=account.id, username=account.username)
        return account, tokens

    async def create(
        self,
        username: str,
        password: str,
        role: AdminRole = AdminRole.ADMIN,
    ) -> bool:
        """Create an admin unless the username is taken."""
        account = AdminAccount(
            username=username,
            password_hash=hash_password(password),
            role=role,
        )
        created = await self.store.create_admin_if_absent(account)
        logger.info("admin_created" if created else "admin_exists", username=username)
        return created

    async def ensure_default_admin(self) -> bool:
        """Create the configured default admin if missing. Safe to rerun."""
        cfg = settings.warranty
        return await self.create(
            cfg.default_admin_username,
            cfg.default_admin_password.get_secret_value(),
            role=AdminRole.SUPER_ADMIN,
        )
