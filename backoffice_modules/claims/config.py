"""
Reimbursement Claims Configuration Schema.

Defines the structure and defaults for claim settings.  Actual values are
loaded from ``backoffice_config`` at runtime.
"""

from dataclasses import dataclass
from typing import Self

from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.claims.config")


@dataclass
class ClaimsConfig:
    """
    Configuration schema for the claims module.

    Override at instantiation with company-specific values:

        config = ClaimsConfig(
            fiscal_year_start_month=7,
            handset_min_interval_months=36,
        )
    """

    # Accumulation windows are whole fiscal years starting on this month.
    fiscal_year_start_month: int = 1

    # Mobile handset
    handset_min_interval_months: int = 24

    # Balance
    count_pending_claims: bool = True

    # Travel
    travel_fallback_city: str = "Others"

    def __post_init__(self):
        if not 1 <= self.fiscal_year_start_month <= 12:
            raise ValueError(
                f"fiscal_year_start_month must be between 1 and 12, "
                f"got {self.fiscal_year_start_month}"
            )
        if self.handset_min_interval_months < 0:
            raise ValueError("handset_min_interval_months cannot be negative")
        if not self.travel_fallback_city or not self.travel_fallback_city.strip():
            raise ValueError("travel_fallback_city cannot be empty")

        logger.info(
            "claims_config_initialized",
            extra={
                "fiscal_year_start_month": self.fiscal_year_start_month,
                "handset_min_interval_months": self.handset_min_interval_months,
                "count_pending_claims": self.count_pending_claims,
                "travel_fallback_city": self.travel_fallback_city,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the stock defaults."""
        logger.info("claims_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., loaded from a YAML file)."""
        logger.info(
            "claims_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
