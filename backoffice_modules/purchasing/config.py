"""
Purchasing Configuration Schema.

Defines the structure and defaults for the purchase coordinator.  Values are
normally taken from the ``purchasing`` section of the active settings
(``backoffice_config``); tests construct it directly.
"""

import re
from dataclasses import dataclass
from typing import Self

from backoffice_config.schema import BackofficeSettings
from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.purchasing.config")

_PREFIX_PATTERN = re.compile(r"^[A-Z][A-Z0-9]{0,9}$")


@dataclass(frozen=True)
class PurchasingConfig:
    """
    Configuration schema for the purchasing module.

        config = PurchasingConfig(lock_timeout_ms=2000, number_prefix="OC")
    """

    # Upper bound on any single row-lock wait inside a unit of work
    lock_timeout_ms: int = 5000

    # Stock checks at commit
    allow_negative_stock: bool = False
    verify_stock_on_commit: bool = True

    # Allocated purchase numbers: PUR-000001
    number_prefix: str = "PUR"
    number_width: int = 6

    def __post_init__(self):
        if isinstance(self.lock_timeout_ms, bool) or self.lock_timeout_ms <= 0:
            raise ValueError(
                f"lock_timeout_ms must be a positive integer, got {self.lock_timeout_ms!r}"
            )
        if not _PREFIX_PATTERN.match(self.number_prefix):
            raise ValueError(
                f"number_prefix must be 1-10 uppercase letters/digits starting "
                f"with a letter, got '{self.number_prefix}'"
            )
        if not 1 <= self.number_width <= 12:
            raise ValueError("number_width must be between 1 and 12")

        logger.debug(
            "purchasing_config_initialized",
            extra={
                "lock_timeout_ms": self.lock_timeout_ms,
                "allow_negative_stock": self.allow_negative_stock,
                "verify_stock_on_commit": self.verify_stock_on_commit,
                "number_prefix": self.number_prefix,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from a dictionary (e.g. a parsed YAML section)."""
        logger.debug(
            "purchasing_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    @classmethod
    def from_settings(cls, settings: BackofficeSettings) -> Self:
        """Create config from the ``purchasing`` section of the active settings."""
        return cls.from_dict(dict(settings.purchasing))
