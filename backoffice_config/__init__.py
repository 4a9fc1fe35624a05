"""
backoffice_config -- single public entrypoint for runtime settings.

Responsibility:
    Provides the one way to obtain settings at runtime,
    ``get_active_settings()``, and the engine wiring that consumes them,
    ``init_engine_from_settings()``.

Architecture position:
    Configuration.  Sits above ``backoffice_kernel`` and below
    ``backoffice_modules``.  The kernel never imports from here.

Resolution order (later wins):
    1. packaged ``defaults.yaml``
    2. the override file (``path`` argument, else ``BACKOFFICE_CONFIG``)
    3. environment: ``DATABASE_URL``, ``BACKOFFICE_LOCK_TIMEOUT_MS``,
       ``BACKOFFICE_LOG_LEVEL``

Failure modes:
    - ``FileNotFoundError`` -- override file does not exist.
    - ``ValueError`` / ``KeyError`` -- malformed or invalid settings.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from sqlalchemy.engine import Engine

from backoffice_config.loader import (
    apply_env_overrides,
    load_yaml_file,
    merge_documents,
    parse_settings,
)
from backoffice_config.schema import BackofficeSettings, DatabaseSettings, LoggingSettings
from backoffice_kernel.db.engine import init_engine_from_url
from backoffice_kernel.logging_config import configure_logging, get_logger

_logger = get_logger("config")

DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"
CONFIG_ENV_VAR = "BACKOFFICE_CONFIG"


def get_active_settings(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> BackofficeSettings:
    """
    Load, merge and validate the active settings.

    Args:
        path: Override YAML file.  Defaults to ``$BACKOFFICE_CONFIG``.
        env: Environment mapping.  Defaults to ``os.environ``.

    Raises:
        FileNotFoundError: If the override file does not exist.
        ValueError: If any section fails validation.
    """
    env = os.environ if env is None else env

    document = merge_documents({}, load_yaml_file(DEFAULTS_FILE))
    sources = [str(DEFAULTS_FILE)]

    override_path = path or env.get(CONFIG_ENV_VAR)
    if override_path:
        document = merge_documents(document, load_yaml_file(Path(override_path)))
        sources.append(str(override_path))

    applied = apply_env_overrides(document, env)
    sources.extend(f"env:{name}" for name in applied)

    settings = parse_settings(document, tuple(sources))

    _logger.info(
        "BACKOFFICE_CONFIG_TRACE",
        extra={
            "trace_type": "BACKOFFICE_CONFIG_TRACE",
            "checksum": settings.checksum,
            "sources": list(settings.sources),
            "dialect": "postgresql" if settings.database.is_postgres else "other",
        },
    )
    return settings


def init_engine_from_settings(settings: BackofficeSettings) -> Engine:
    """Initialize the kernel engine from the database section."""
    db = settings.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
        lock_timeout_ms=db.lock_timeout_ms,
    )


def configure_logging_from_settings(settings: BackofficeSettings) -> None:
    """Install the JSON log handler at the configured level."""
    configure_logging(level=settings.logging.numeric_level)


__all__ = [
    "BackofficeSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "configure_logging_from_settings",
    "get_active_settings",
    "init_engine_from_settings",
]
