"""
BackofficeSettings schema.

Typed, frozen settings produced by the loader.  The database and logging
sections are owned here; the purchasing and catalogue sections are kept as
read-only mappings and turned into module configs
(``PurchasingConfig.from_settings`` / ``CatalogueConfig.from_settings``),
because this package sits below ``backoffice_modules`` and must not import
from it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DatabaseSettings:
    """Engine wiring."""

    url: str = "sqlite:///backoffice.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    # SQLite busy timeout; PostgreSQL uses the purchasing lock timeout
    lock_timeout_ms: int = 5000

    def __post_init__(self):
        if not self.url:
            raise ValueError("database.url is required")
        if self.pool_size <= 0:
            raise ValueError("database.pool_size must be positive")
        if self.max_overflow < 0:
            raise ValueError("database.max_overflow cannot be negative")
        if self.lock_timeout_ms <= 0:
            raise ValueError("database.lock_timeout_ms must be positive")

    @property
    def is_postgres(self) -> bool:
        return self.url.startswith("postgresql")


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"

    def __post_init__(self):
        level = str(self.level).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level must be one of {VALID_LOG_LEVELS}, got '{self.level}'"
            )
        object.__setattr__(self, "level", level)

    @property
    def numeric_level(self) -> int:
        return logging.getLevelName(self.level)


def _frozen(section: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(section or {}))


@dataclass(frozen=True)
class BackofficeSettings:
    """The complete runtime settings.  Returned by ``get_active_settings()``."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    purchasing: Mapping[str, Any] = field(default_factory=dict)
    catalogue: Mapping[str, Any] = field(default_factory=dict)
    # SHA-256 of the merged source document
    checksum: str = ""
    sources: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "purchasing", _frozen(self.purchasing))
        object.__setattr__(self, "catalogue", _frozen(self.catalogue))
