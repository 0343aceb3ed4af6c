"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StorageBackend(str, Enum):
    """Persistence backend for warranty data."""

    MONGODB = "mongodb"
    MEMORY = "memory"


class MongoSettings(BaseSettings):
    """MongoDB configuration."""

    model_config = SettingsConfigDict(env_prefix="MONGODB_")

    host: str = "localhost"
    port: int = 27017
    user: str = ""
    password: SecretStr = SecretStr("")
    db: str = Field(default="warranty_system", alias="MONGODB_DB")
    max_pool_size: int = 50
    min_pool_size: int = 5

    @property
    def uri(self) -> str:
        """Generate MongoDB connection URI."""
        if not self.user:
            return f"mongodb://{self.host}:{self.port}/{self.db}"
        pwd = self.password.get_secret_value()
        return f"mongodb://{self.user}:{pwd}@{self.host}:{self.port}/{self.db}?authSource=admin"


class JWTSettings(BaseSettings):
    """JWT authentication configuration."""

    model_config = SettingsConfigDict(env_prefix="JWT_")

    secret_key: SecretStr = SecretStr("your-jwt-secret-key-min-32-chars-long")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    refresh_token_expire_days: int = 7


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class WarrantySettings(BaseSettings):
    """Warranty registry behaviour."""

    model_config = SettingsConfigDict(env_prefix="WARRANTY_")

    storage_backend: StorageBackend = StorageBackend.MONGODB

    # Coverage length added to the purchase date
    term_years: int = 1

    # Linking a consumed code to its new registration
    link_max_attempts: int = 5
    link_backoff_min_seconds: float = 0.2
    link_backoff_max_seconds: float = 5.0
    store_timeout_seconds: float = 5.0

    # Outbound marketing sync queue
    sync_queue_size: int = 1000

    # Bcrypt cost factor for admin passwords
    password_hash_rounds: int = Field(default=12, ge=4, le=31)

    # Bootstrap account created by scripts/init_databases.py
    default_admin_username: str = "admin"
    default_admin_password: SecretStr = SecretStr("admin123")

    default_page_size: int = 50
    max_page_size: int = 200


class OmnisendSettings(BaseSettings):
    """Omnisend email/CRM automation API configuration."""

    model_config = SettingsConfigDict(env_prefix="OMNISEND_")

    api_key: SecretStr = SecretStr("")
    base_url: str = "https://api.omnisend.com/v5"
    timeout_seconds: float = 15.0
    max_retries: int = 3

    # Product name -> segment tag used by the provider's automations
    segment_tags: dict[str, str] = Field(
        default_factory=lambda: {
            "LDAS TH11 Headset": "TH11 Warranty Signup",
            "LDAS G7 Headset": "G7 Warranty Signup",
            "LDAS G10 Headset": "G10 Warranty Signup",
        }
    )
    fallback_segment_tag: str = "General Warranty Signup"

    @property
    def enabled(self) -> bool:
        """Sync is enabled only when an API key is configured."""
        return bool(self.api_key.get_secret_value())


class ShopifySettings(BaseSettings):
    """Shopify Admin API configuration."""

    model_config = SettingsConfigDict(env_prefix="SHOPIFY_")

    shop_name: str = ""
    access_token: SecretStr = SecretStr("")
    api_version: str = "2024-01"
    default_country: str = "Canada"
    timeout_seconds: float = 15.0
    max_retries: int = 3

    # Product name -> short product code used in customer tags
    product_codes: dict[str, str] = Field(
        default_factory=lambda: {
            "LDAS TH11 Headset": "th11",
            "LDAS G7 Headset": "g7",
            "LDAS G10 Headset": "g10",
        }
    )

    @property
    def base_url(self) -> str:
        """Generate the Admin REST API base URL."""
        return f"https://{self.shop_name}.myshopify.com/admin/api/{self.api_version}"

    @property
    def enabled(self) -> bool:
        """Sync is enabled only when the shop and token are configured."""
        return bool(self.shop_name and self.access_token.get_secret_value())


class ServicePorts(BaseSettings):
    """Service port configuration."""

    warranty_registry: int = Field(default=3000, alias="WARRANTY_REGISTRY_PORT")


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    # Service ports
    ports: ServicePorts = Field(default_factory=ServicePorts)

    # Database connections
    mongodb: MongoSettings = Field(default_factory=MongoSettings)

    # Authentication
    jwt: JWTSettings = Field(default_factory=JWTSettings)

    # Security
    cors: CORSSettings = Field(default_factory=CORSSettings)

    # Domain
    warranty: WarrantySettings = Field(default_factory=WarrantySettings)

    # Marketing integrations
    omnisend: OmnisendSettings = Field(default_factory=OmnisendSettings)
    shopify: ShopifySettings = Field(default_factory=ShopifySettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
