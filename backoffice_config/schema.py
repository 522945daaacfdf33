"""
Configuration Schema (``backoffice_config.schema``).

The runtime configuration artifact: one frozen ``BackofficeConfig`` holding
the per-module config schemas and the database URL.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from backoffice_modules.claims.config import ClaimsConfig
from backoffice_modules.stock.config import StockConfig


@dataclass(frozen=True)
class BackofficeConfig:
    """Resolved configuration for every module."""
    claims: ClaimsConfig = field(default_factory=ClaimsConfig)
    stock: StockConfig = field(default_factory=StockConfig)
    database_url: str | None = None
    checksum: str = ""
