"""
Available-Quantity Tracker (``backoffice_engines.stock``).

Responsibility
--------------
Derive an item's available quantity from its stock movements and compare
requested quantities against it::

    available = sorted_in + sales_returns + adjustments_in
              - sales - wastage - adjustments_out

Architecture position
---------------------
**Engines layer** -- pure functional core.  The service loads movements
under row locks and calls in here immediately before each write.

Invariants enforced
-------------------
* Quantities are never cached; availability is a fold over movements.
* Shortfalls are reported for every offending item, in request order.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from uuid import UUID

from backoffice_engines.tracer import traced_engine
from backoffice_modules.stock.models import SaleLine, StockMovement


@dataclass(frozen=True)
class StockShortfall:
    """An item whose requested quantity exceeds what is available."""
    item_id: UUID
    item_name: str
    available: int
    requested: int

    @property
    def message(self) -> str:
        return (
            f"Insufficient stock for {self.item_name}: "
            f"available {self.available}, requested {self.requested}"
        )


def compute_available_quantity(
    movements: Iterable[StockMovement],
    item_id: UUID | None = None,
) -> int:
    """Net quantity across ``movements`` (optionally for one item only)."""
    return sum(
        movement.kind.sign * movement.quantity
        for movement in movements
        if item_id is None or movement.item_id == item_id
    )


def available_by_item(movements: Iterable[StockMovement]) -> dict[UUID, int]:
    totals: dict[UUID, int] = {}
    for movement in movements:
        totals[movement.item_id] = (
            totals.get(movement.item_id, 0) + movement.kind.sign * movement.quantity
        )
    return totals


def aggregate_requests(lines: Iterable[SaleLine]) -> dict[UUID, int]:
    """Sum requested quantities per item, keeping first-seen order."""
    requested: dict[UUID, int] = {}
    for line in lines:
        requested[line.item_id] = requested.get(line.item_id, 0) + line.quantity
    return requested


@traced_engine("stock", "1.0", fingerprint_fields=("requested_by_item", "available"))
def find_shortfalls(
    requested_by_item: Mapping[UUID, int],
    available: Mapping[UUID, int],
    item_names: Mapping[UUID, str] | None = None,
) -> tuple[StockShortfall, ...]:
    """Every item whose requested total exceeds its available quantity.

    Items missing from ``available`` have zero stock.
    """
    names = item_names or {}
    shortfalls = []
    for item_id, requested in requested_by_item.items():
        on_hand = available.get(item_id, 0)
        if requested > on_hand:
            shortfalls.append(
                StockShortfall(
                    item_id=item_id,
                    item_name=names.get(item_id, str(item_id)),
                    available=on_hand,
                    requested=requested,
                )
            )
    return tuple(shortfalls)
