"""
Configuration Loader (``backoffice_config.loader``).

Responsibility
--------------
Load a YAML configuration document and parse it into a
``BackofficeConfig``.  Runtime callers go through
``backoffice_config.get_active_config()``.

Invariants enforced
-------------------
* Only ``claims``, ``stock`` and ``database`` top-level sections are
  accepted; unknown sections are an error, not silently ignored.
* ``compute_checksum`` is deterministic for identical documents.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section or setting  -> ``ValueError`` / ``TypeError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from backoffice_config.schema import BackofficeConfig
from backoffice_modules.claims.config import ClaimsConfig
from backoffice_modules.stock.config import StockConfig

KNOWN_SECTIONS = frozenset({"claims", "stock", "database"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def merge_documents(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Section-wise merge: keys in ``override`` replace those in ``base``."""
    merged: dict[str, Any] = {key: dict(value or {}) for key, value in base.items()}
    for section, values in override.items():
        merged.setdefault(section, {}).update(values or {})
    return merged


def parse_config(data: dict[str, Any]) -> BackofficeConfig:
    """
    Build a ``BackofficeConfig`` from a parsed document.

    Raises:
        ValueError: unknown section, or a module config rejected a value.
    """
    unknown = set(data) - KNOWN_SECTIONS
    if unknown:
        raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

    database = data.get("database") or {}
    return BackofficeConfig(
        claims=ClaimsConfig.from_dict(dict(data.get("claims") or {})),
        stock=StockConfig.from_dict(dict(data.get("stock") or {})),
        database_url=database.get("url"),
        checksum=compute_checksum(data),
    )
