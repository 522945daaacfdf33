"""
Stock Configuration Schema.

Defines the structure and defaults for purchase, sorting and sale settings.
"""

from dataclasses import dataclass
from typing import Self

from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.stock.config")


@dataclass
class StockConfig:
    """
    Configuration schema for the stock module.

        config = StockConfig(check_wastage_stock=False)
    """

    # Reject wastage that exceeds the item's available quantity.  When False,
    # wastage may drive available quantity below zero.
    check_wastage_stock: bool = True

    # Bank settlements must name the bank account used.
    require_bank_account_for_bank_payments: bool = True

    # Sales with recorded returns can no longer be edited.
    lock_sales_with_returns: bool = True

    def __post_init__(self):
        logger.info(
            "stock_config_initialized",
            extra={
                "check_wastage_stock": self.check_wastage_stock,
                "require_bank_account_for_bank_payments": self.require_bank_account_for_bank_payments,
                "lock_sales_with_returns": self.lock_sales_with_returns,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the stock defaults."""
        logger.info("stock_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., loaded from a YAML file)."""
        logger.info(
            "stock_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        unknown = set(data) - {
            "check_wastage_stock",
            "require_bank_account_for_bank_payments",
            "lock_sales_with_returns",
        }
        if unknown:
            raise ValueError(f"Unknown stock settings: {sorted(unknown)}")
        return cls(**data)
