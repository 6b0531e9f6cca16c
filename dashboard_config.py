#!/usr/bin/env python3

import os
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

# Window bounds offered by the dashboard's smoothing control
MIN_SMOOTHING_WINDOW = 1
MAX_SMOOTHING_WINDOW = 12


class ConfigError(ValueError):
    """Raised when the dashboard configuration is unusable."""


@dataclass
class DashboardConfig:
    """Settings for one business's competitor dashboard."""
    business_id: str = "F5N-gTCaKg2gJHEbJcqmKA"
    business_name: str = "Joe's Pizza"
    api_base_url: str = "http://localhost:4000"
    request_timeout: float = 30.0
    max_competitors: int = 5
    page_size: int = 20
    smoothing_window: int = 3
    color_palette: Tuple[str, ...] = ('#1e90ff', '#ff4500', '#32cd32', '#9370db', '#00ced1', '#ffa500')
    analyzed_attributes: Tuple[str, ...] = (
        "attributes.RestaurantsPriceRange2",
        "attributes.GoodForKids",
        "attributes.WiFi",
    )

    def validate(self) -> "DashboardConfig":
        """Check the settings and return self so calls can be chained."""
        if not self.business_id:
            raise ConfigError("business_id must not be empty")
        if self.max_competitors < 1:
            raise ConfigError(f"max_competitors must be positive, got {self.max_competitors}")
        if self.page_size < 1:
            raise ConfigError(f"page_size must be positive, got {self.page_size}")
        if not MIN_SMOOTHING_WINDOW <= self.smoothing_window <= MAX_SMOOTHING_WINDOW:
            raise ConfigError(
                f"smoothing_window must be between {MIN_SMOOTHING_WINDOW} and "
                f"{MAX_SMOOTHING_WINDOW}, got {self.smoothing_window}"
            )
        if not self.color_palette:
            raise ConfigError("color_palette must contain at least one color")
        return self

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "DashboardConfig":
        """
        Build a config from DASHBOARD_* environment variables.

        Recognised variables: DASHBOARD_BUSINESS_ID, DASHBOARD_BUSINESS_NAME,
        DASHBOARD_API_URL, DASHBOARD_TIMEOUT, DASHBOARD_MAX_COMPETITORS,
        DASHBOARD_PAGE_SIZE, DASHBOARD_SMOOTHING_WINDOW, DASHBOARD_ATTRIBUTES
        (comma separated). Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        config = cls()

        try:
            if "DASHBOARD_BUSINESS_ID" in env:
                config.business_id = env["DASHBOARD_BUSINESS_ID"]
            if "DASHBOARD_BUSINESS_NAME" in env:
                config.business_name = env["DASHBOARD_BUSINESS_NAME"]
            if "DASHBOARD_API_URL" in env:
                config.api_base_url = env["DASHBOARD_API_URL"].rstrip("/")
            if "DASHBOARD_TIMEOUT" in env:
                config.request_timeout = float(env["DASHBOARD_TIMEOUT"])
            if "DASHBOARD_MAX_COMPETITORS" in env:
                config.max_competitors = int(env["DASHBOARD_MAX_COMPETITORS"])
            if "DASHBOARD_PAGE_SIZE" in env:
                config.page_size = int(env["DASHBOARD_PAGE_SIZE"])
            if "DASHBOARD_SMOOTHING_WINDOW" in env:
                config.smoothing_window = int(env["DASHBOARD_SMOOTHING_WINDOW"])
            if "DASHBOARD_ATTRIBUTES" in env:
                config.analyzed_attributes = tuple(
                    attr.strip() for attr in env["DASHBOARD_ATTRIBUTES"].split(",") if attr.strip()
                )
        except ValueError as e:
            raise ConfigError(f"Invalid dashboard environment setting: {e}") from e

        logger.info(f"Dashboard configured for {config.business_name} ({config.business_id})")
        return config.validate()

    def color_for(self, index: int) -> str:
        """Palette color for the dataset at the given position, cycling."""
        return self.color_palette[index % len(self.color_palette)]
