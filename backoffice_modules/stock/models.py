"""
Stock Domain Models (``backoffice_modules.stock.models``).

Responsibility
--------------
Frozen value objects for the purchase -> sorting -> sale chain: catalog
items, purchased lots, sorting allocations, sales, wastage, sales returns
and item-to-item stock adjustments.

Invariants
----------
- Quantities are whole units (``int``); prices and amounts are ``Decimal``.
- ``SaleLine.amount == quantity * unit_price``.
- ``Wastage.net_price == sell_price * quantity``.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.stock.models")


class PaymentType(Enum):
    """How a purchase or sale was settled."""
    CASH = "cash"
    CREDIT = "credit"
    BANK = "bank"
    MFS = "mfs"


class MovementKind(Enum):
    """Every kind of record that changes an item's available quantity."""
    SORTED_IN = "sorted_in"
    SALE = "sale"
    WASTAGE = "wastage"
    SALES_RETURN = "sales_return"
    ADJUSTMENT_IN = "adjustment_in"
    ADJUSTMENT_OUT = "adjustment_out"

    @property
    def sign(self) -> int:
        if self in (MovementKind.SORTED_IN, MovementKind.SALES_RETURN, MovementKind.ADJUSTMENT_IN):
            return 1
        return -1


@dataclass(frozen=True)
class Item:
    """A sellable catalog item."""
    id: UUID
    item_name: str
    sell_price: Decimal


@dataclass(frozen=True)
class Purchase:
    """A purchased lot of one item from one vendor."""
    id: UUID
    item_id: UUID
    vendor_id: UUID
    total_quantity: int
    total_amount: Decimal
    payment_type: PaymentType
    purchase_date: date
    bank_account_id: UUID | None = None
    notes: str | None = None
    is_sorted: bool = False


@dataclass(frozen=True)
class AllocationRequest:
    """One row of a sorting form: a sub-quantity assigned to an item."""
    item_id: UUID | None
    quantity: int
    amount: Decimal | None = None
    notes: str | None = None


@dataclass(frozen=True)
class SortingLine:
    """A persisted sorting allocation row."""
    id: UUID
    purchase_id: UUID
    item_id: UUID
    quantity: int
    vendor_id: UUID
    payment_type: PaymentType
    sorting_date: date
    amount: Decimal | None = None
    bank_account_id: UUID | None = None
    notes: str | None = None


@dataclass(frozen=True)
class SortingResult:
    """Outcome of a successful sort."""
    purchase_id: UUID
    lines: tuple[SortingLine, ...]

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)


@dataclass(frozen=True)
class SaleLine:
    """A requested sale line."""
    item_id: UUID
    quantity: int
    unit_price: Decimal

    @property
    def amount(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class SaleDetail:
    """A persisted sale line."""
    id: UUID
    sale_id: UUID
    item_id: UUID
    quantity: int
    unit_price: Decimal
    amount: Decimal


@dataclass(frozen=True)
class Sale:
    """A sale header with its lines."""
    id: UUID
    customer_id: UUID
    payment_type: PaymentType
    sale_date: date
    total_quantity: int
    total_amount: Decimal
    details: tuple[SaleDetail, ...]
    discount_amount: Decimal = Decimal("0")
    bank_account_id: UUID | None = None
    notes: str | None = None


@dataclass(frozen=True)
class Wastage:
    """Spoiled or damaged stock written off."""
    id: UUID
    item_id: UUID
    quantity: int
    sell_price: Decimal
    net_price: Decimal
    wastage_date: date
    notes: str | None = None


@dataclass(frozen=True)
class SalesReturn:
    """Units of a sale line returned to stock."""
    id: UUID
    sale_detail_id: UUID
    item_id: UUID
    return_quantity: int
    return_date: date


@dataclass(frozen=True)
class StockAdjustment:
    """Units reclassified from one item to another."""
    id: UUID
    prev_item_id: UUID
    new_item_id: UUID
    quantity: int
    adjustment_date: date
    notes: str | None = None


@dataclass(frozen=True)
class StockMovement:
    """A signed-by-kind quantity change for one item."""
    item_id: UUID
    kind: MovementKind
    quantity: int
