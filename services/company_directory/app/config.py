"""
Company Directory Configuration

Pydantic Settings for the Company Directory service.
Loads from environment variables with sensible defaults.
"""

from typing import Literal, Optional
from pydantic_settings import BaseSettings
from pydantic import Field

from ..core.types import CollectionId
from ..core.constants import CACHE_TTL_SECONDS, DEFAULT_PAGE_SIZE, DEFAULT_STORE_ENDPOINT


class Settings(BaseSettings):
    """Company Directory service configuration."""

    # Service identity
    service_name: str = Field(default="company-directory", description="Service name for logging/metrics")
    environment: Literal["local", "staging", "production"] = Field(default="local")
    service_version: str = Field(default="0.1.0")
    log_level: str = Field(default="INFO")

    # Document store
    appwrite_endpoint: str = Field(default=DEFAULT_STORE_ENDPOINT, description="Appwrite API endpoint")
    appwrite_project_id: str = Field(default="", description="Appwrite project id")
    appwrite_api_key: str = Field(default="", description="Server API key with documents.read scope")
    database_id: str = Field(default="", description="Database holding the directory collections")
    store_page_size: int = Field(default=DEFAULT_PAGE_SIZE, description="Documents per listing page")
    store_timeout_seconds: float = Field(default=30.0, description="HTTP client timeout")

    # Collection ids
    company_table: str = Field(default="company_tb")
    branches_table: str = Field(default="branches")
    working_days_table: str = Field(default="working_days")
    products_table: str = Field(default="products")
    social_media_table: str = Field(default="social_media")
    company_verification_table: str = Field(default="company_verification")

    # Storage
    products_bucket_id: str = Field(default="", description="Products bucket (empty = deployment fallback)")

    # Cache
    cache_ttl_seconds: float = Field(default=CACHE_TTL_SECONDS, description="Freshness window")
    fetch_timeout_seconds: float = Field(default=0.0, description="Per-collection read timeout (0 = none)")
    warm_cache_on_startup: bool = Field(default=True, description="Fetch once during startup")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Admin authentication (required for cache mutation endpoints in production)
    admin_api_key: str = Field(
        default="",
        description="API key for cache invalidate/refresh endpoints. Required in production."
    )

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"
        extra = "ignore"

    @property
    def collection_ids(self) -> dict[CollectionId, str]:
        """Logical collection -> physical collection id."""
        return {
            CollectionId.COMPANIES: self.company_table,
            CollectionId.BRANCHES: self.branches_table,
            CollectionId.WORKING_DAYS: self.working_days_table,
            CollectionId.PRODUCTS: self.products_table,
            CollectionId.SOCIAL_MEDIA: self.social_media_table,
            CollectionId.VERIFICATIONS: self.company_verification_table,
        }

    @property
    def fetch_timeout(self) -> Optional[float]:
        """Per-read timeout, None when disabled."""
        return self.fetch_timeout_seconds if self.fetch_timeout_seconds > 0 else None


# Global settings instance
settings = Settings()
