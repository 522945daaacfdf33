"""
Stock Module (``backoffice_modules.stock``).

Responsibility
--------------
The purchase -> sorting -> sale chain.  A purchased lot must be sorted into
catalog items exactly once before any of it can be sold; every sale,
wastage and adjustment is gated on the item's available quantity.

Invariants enforced
-------------------
* Transaction boundary owned by ``StockService``.
* Sorting conserves quantity and is a one-way transition.
* Available quantity never goes negative.
"""

from backoffice_modules.stock.config import StockConfig
from backoffice_modules.stock.models import (
    AllocationRequest,
    Item,
    MovementKind,
    PaymentType,
    Purchase,
    Sale,
    SaleDetail,
    SaleLine,
    SalesReturn,
    SortingLine,
    SortingResult,
    StockAdjustment,
    StockMovement,
    Wastage,
)

__all__ = [
    "AllocationRequest",
    "Item",
    "MovementKind",
    "PaymentType",
    "Purchase",
    "Sale",
    "SaleDetail",
    "SaleLine",
    "SalesReturn",
    "SortingLine",
    "SortingResult",
    "StockAdjustment",
    "StockMovement",
    "Wastage",
    "StockConfig",
]
