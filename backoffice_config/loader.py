"""
Settings Loader (``backoffice_config.loader``).

Responsibility
--------------
Reads YAML documents, merges them section by section, applies environment
overrides and parses the result into ``backoffice_config.schema``
dataclasses.  Only ``backoffice_config.get_active_settings()`` should call
this module.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages.  Unknown keys are errors, not silently ignored.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the merged
  document, logged with every load.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Non-mapping document or section  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from backoffice_config.schema import BackofficeSettings, DatabaseSettings, LoggingSettings

SECTIONS = ("database", "logging", "purchasing", "catalogue")

# Environment variable -> (section, key) pairs it overrides
ENV_OVERRIDES: dict[str, tuple[tuple[str, str], ...]] = {
    "DATABASE_URL": (("database", "url"),),
    "BACKOFFICE_LOCK_TIMEOUT_MS": (
        ("database", "lock_timeout_ms"),
        ("purchasing", "lock_timeout_ms"),
    ),
    "BACKOFFICE_LOG_LEVEL": (("logging", "level"),),
}

_INT_OVERRIDES = frozenset({"BACKOFFICE_LOCK_TIMEOUT_MS"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def merge_documents(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Section-wise merge: keys in ``override`` replace keys in ``base``."""
    unknown = set(override) - set(SECTIONS)
    if unknown:
        raise ValueError(f"Unknown settings sections: {sorted(unknown)}")

    merged = {name: dict(base.get(name) or {}) for name in SECTIONS}
    for name, section in override.items():
        if section is None:
            continue
        if not isinstance(section, dict):
            raise ValueError(f"Settings section '{name}' must be a mapping")
        merged[name].update(section)
    return merged


def apply_env_overrides(document: dict[str, Any], env: Mapping[str, str]) -> list[str]:
    """
    Apply recognised environment variables in place.

    Returns:
        Names of the variables that were applied.
    """
    applied = []
    for var, targets in ENV_OVERRIDES.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        if var in _INT_OVERRIDES:
            try:
                value: Any = int(raw)
            except ValueError as exc:
                raise ValueError(f"{var} must be an integer, got {raw!r}") from exc
        else:
            value = raw
        for section, key in targets:
            document[section][key] = value
        applied.append(var)
    return applied


def _parse_section(cls: type, name: str, data: Mapping[str, Any]) -> Any:
    allowed = {f.name for f in fields(cls)}
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in '{name}' settings: {sorted(unknown)}")
    return cls(**data)


def parse_database(data: Mapping[str, Any]) -> DatabaseSettings:
    return _parse_section(DatabaseSettings, "database", data)


def parse_logging(data: Mapping[str, Any]) -> LoggingSettings:
    return _parse_section(LoggingSettings, "logging", data)


def parse_settings(
    document: Mapping[str, Any],
    sources: tuple[str, ...] = (),
) -> BackofficeSettings:
    """Parse a merged document into ``BackofficeSettings``."""
    return BackofficeSettings(
        database=parse_database(document.get("database") or {}),
        logging=parse_logging(document.get("logging") or {}),
        purchasing=dict(document.get("purchasing") or {}),
        catalogue=dict(document.get("catalogue") or {}),
        checksum=compute_checksum(document),
        sources=sources,
    )


def compute_checksum(data: Mapping[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization.  Deterministic."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
