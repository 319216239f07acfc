"""
Configuration for catalogsync.

Uses Pydantic for validation and environment loading.
"""

import os
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ShopifyConfig(BaseModel):
    """Remote catalog (Shopify Admin REST) connection settings."""

    store_name: str = Field(default="", description="Shop subdomain (xxx.myshopify.com)")
    access_token: str = Field(default="", description="Admin API access token")
    api_version: str = Field(default="2024-01", description="Admin API version")
    page_size: int = Field(default=250, description="Products per page request")
    timeout: float = Field(default=30.0, description="Per-request timeout in seconds")

    # Rate limiting (HTTP 429)
    retry_max: int = Field(default=3, description="Max retries on rate limiting")
    retry_base_delay: float = Field(
        default=1.0, description="Base delay for exponential backoff"
    )

    @property
    def has_credentials(self) -> bool:
        return bool(self.store_name and self.access_token)


class ScheduleConfig(BaseModel):
    """Cron fields for the standing jobs. All evaluated in UTC."""

    sync_hour: str = Field(default="*/6", description="Full sync: every 6 hours")
    sync_minute: str = Field(default="0")
    low_stock_hour: str = Field(default="9", description="Low-stock alert: daily 09:00")
    low_stock_minute: str = Field(default="0")
    cleanup_day_of_week: str = Field(default="sun", description="Retention: weekly")
    cleanup_hour: str = Field(default="2")
    cleanup_minute: str = Field(default="0")


class NotifierConfig(BaseModel):
    """Run-report and low-stock notification delivery."""

    webhook_url: str = Field(default="", description="Endpoint receiving JSON reports")
    recipients: List[str] = Field(default_factory=list)
    timeout: float = Field(default=10.0)
    low_stock_limit: int = Field(default=20, description="Max products per alert")


class SyncConfig(BaseSettings):
    """Master configuration for catalogsync."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    service_name: str = Field(default="catalogsync")
    log_level: str = Field(default="INFO")

    database_url: str = Field(default="", description="PostgreSQL URL")

    low_stock_threshold: int = Field(default=10)
    retention_days: int = Field(default=30)
    allow_concurrent_runs: bool = Field(
        default=True, description="Permit overlapping sync runs in one process"
    )
    shutdown_timeout: float = Field(
        default=30.0, description="Seconds to wait for in-flight runs on shutdown"
    )

    shopify: ShopifyConfig = Field(default_factory=ShopifyConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    notifier: NotifierConfig = Field(default_factory=NotifierConfig)

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Load configuration from environment variables."""
        return cls(
            service_name=os.getenv("SERVICE_NAME", "catalogsync"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            database_url=os.getenv("DATABASE_URL", ""),
            low_stock_threshold=int(os.getenv("LOW_STOCK_THRESHOLD", "10")),
            retention_days=int(os.getenv("RETENTION_DAYS", "30")),
            allow_concurrent_runs=os.getenv("ALLOW_CONCURRENT_RUNS", "true").lower()
            == "true",
            shutdown_timeout=float(os.getenv("SHUTDOWN_TIMEOUT", "30.0")),
            shopify=ShopifyConfig(
                store_name=os.getenv("SHOPIFY_STORE_NAME", ""),
                access_token=os.getenv("SHOPIFY_ACCESS_TOKEN", ""),
                api_version=os.getenv("SHOPIFY_API_VERSION", "2024-01"),
                page_size=int(os.getenv("SHOPIFY_PAGE_SIZE", "250")),
                timeout=float(os.getenv("SHOPIFY_TIMEOUT", "30.0")),
                retry_max=int(os.getenv("SHOPIFY_RETRY_MAX", "3")),
                retry_base_delay=float(os.getenv("SHOPIFY_RETRY_BASE_DELAY", "1.0")),
            ),
            schedule=ScheduleConfig(
                sync_hour=os.getenv("SYNC_CRON_HOUR", "*/6"),
                sync_minute=os.getenv("SYNC_CRON_MINUTE", "0"),
                low_stock_hour=os.getenv("LOW_STOCK_CRON_HOUR", "9"),
                low_stock_minute=os.getenv("LOW_STOCK_CRON_MINUTE", "0"),
                cleanup_day_of_week=os.getenv("CLEANUP_CRON_DAY_OF_WEEK", "sun"),
                cleanup_hour=os.getenv("CLEANUP_CRON_HOUR", "2"),
                cleanup_minute=os.getenv("CLEANUP_CRON_MINUTE", "0"),
            ),
            notifier=NotifierConfig(
                webhook_url=os.getenv("NOTIFY_WEBHOOK_URL", ""),
                recipients=_split_list(os.getenv("NOTIFY_RECIPIENTS", "")),
                timeout=float(os.getenv("NOTIFY_TIMEOUT", "10.0")),
                low_stock_limit=int(os.getenv("NOTIFY_LOW_STOCK_LIMIT", "20")),
            ),
        )


def _split_list(raw: Optional[str]) -> List[str]:
    """Parse a comma separated env value."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def get_config() -> SyncConfig:
    """Read a fresh configuration from the environment."""
    return SyncConfig.from_env()
