"""
Configuration for the cache engine service.
"""

from __future__ import annotations

import os

from shared.framework.config import ServiceConfig, parse_id_list
from shared.utils.errors import ConfigurationError

MARKER_READ_ERROR_POLICIES = ("rebuild", "raise")

# Fixed by the refresh design, not exposed as environment settings
UPDATE_INTERVAL_SECONDS = 60 * 30
BULK_WRITE_SIZE = 50
REGISTRY_QUERY_LIMIT = 1_000_000


class CacheEngineConfig(ServiceConfig):
    """Service configuration loaded from environment variables."""

    def __init__(self) -> None:
        super().__init__(service_name="cache_engine")

        # Human-readable slug used for logging/identifiers where hyphenated format is preferred
        self.service_slug = "cache-engine"

        # Rolling window for incremental rebuilds
        self.lookback_months = int(os.getenv("CACHE_ENGINE_LOOKBACK_MONTHS", "3"))
        if self.lookback_months < 0:
            raise ConfigurationError(
                "Lookback months must be >= 0",
                config_key="CACHE_ENGINE_LOOKBACK_MONTHS",
                config_value=self.lookback_months,
            )

        # Optional allow-lists; None means every app / partner
        self.solo_app_ids = parse_id_list(os.getenv("CACHE_ENGINE_SOLO_APP_IDS"))
        self.solo_partner_ids = parse_id_list(os.getenv("CACHE_ENGINE_SOLO_PARTNER_IDS"))

        # What to do when the initialization marker cannot be read
        self.marker_read_error_policy = os.getenv(
            "CACHE_ENGINE_MARKER_READ_ERROR_POLICY", "rebuild"
        ).lower()
        if self.marker_read_error_policy not in MARKER_READ_ERROR_POLICIES:
            raise ConfigurationError(
                f"Invalid marker read error policy: {self.marker_read_error_policy}",
                config_key="CACHE_ENGINE_MARKER_READ_ERROR_POLICY",
                config_value=self.marker_read_error_policy,
            )

        self.registry_page_size = int(os.getenv("CACHE_ENGINE_REGISTRY_PAGE_SIZE", "1000"))
        if self.registry_page_size < 1:
            raise ConfigurationError(
                "Registry page size must be >= 1",
                config_key="CACHE_ENGINE_REGISTRY_PAGE_SIZE",
                config_value=self.registry_page_size,
            )

        self.update_interval_seconds = UPDATE_INTERVAL_SECONDS
        self.bulk_write_size = BULK_WRITE_SIZE
        self.registry_query_limit = REGISTRY_QUERY_LIMIT

        # Database names
        self.apps_db = "reports_apps"
        self.transactions_db = "reports_transactions"
        self.hour_db = "reports_hour"
        self.day_db = "reports_day"
        self.month_db = "reports_month"
