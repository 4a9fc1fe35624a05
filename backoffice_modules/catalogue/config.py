"""
Catalogue Configuration Schema.

Listing page sizes and the "expiring soon" window for the product catalogue.
"""

from dataclasses import dataclass
from typing import Self

from backoffice_config.schema import BackofficeSettings
from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.catalogue.config")


@dataclass(frozen=True)
class CatalogueConfig:
    """Configuration schema for the catalogue module."""

    # Products expiring within [today, today + N days] are "expiring soon"
    expiring_window_days: int = 7

    # Listing page size when the caller gives no limit, and the hard cap
    default_page_size: int = 20
    max_page_size: int = 200

    def __post_init__(self):
        if self.expiring_window_days < 0:
            raise ValueError("expiring_window_days cannot be negative")
        if self.default_page_size <= 0:
            raise ValueError("default_page_size must be positive")
        if self.max_page_size < self.default_page_size:
            raise ValueError(
                f"max_page_size ({self.max_page_size}) cannot be smaller than "
                f"default_page_size ({self.default_page_size})"
            )

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        logger.debug(
            "catalogue_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    @classmethod
    def from_settings(cls, settings: BackofficeSettings) -> Self:
        """Create config from the ``catalogue`` section of the active settings."""
        return cls.from_dict(dict(settings.catalogue))
