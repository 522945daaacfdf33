"""
Stock Allocation Ledger (``backoffice_engines.sorting``).

Responsibility
--------------
Validate and plan the split of a purchased lot into catalog items.

State machine::

    Unsorted --sort(valid allocations)--> Sorted   (terminal)

Architecture position
---------------------
**Engines layer** -- pure functional core.  The service performs the
conditional ``is_sorted`` flip and persists the planned lines.

Invariants enforced
-------------------
* Every allocation row names an item and carries a positive quantity.
* ``sum(allocation.quantity) == purchase.total_quantity``.
* Sorting lines inherit vendor, payment type and bank account from the
  purchase.

Failure modes
-------------
* ``PurchaseAlreadySortedError`` -- first sort of a sorted purchase.
* ``InvalidAllocationError`` -- empty list, missing item, bad quantity.
* ``QuantityMismatchError`` -- totals differ.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from backoffice_engines.tracer import traced_engine
from backoffice_kernel.exceptions import (
    InvalidAllocationError,
    PurchaseAlreadySortedError,
    QuantityMismatchError,
)
from backoffice_modules.stock.models import AllocationRequest, Purchase, SortingLine


def default_sorting_note(purchase: Purchase) -> str:
    return f"Sorted from purchase #{purchase.id}"


@traced_engine("sorting", "1.0", fingerprint_fields=("purchase", "allocations"))
def validate_allocations(
    purchase: Purchase,
    allocations: Sequence[AllocationRequest],
    *,
    replacing: bool = False,
) -> int:
    """Check a proposed allocation against the purchase.

    Preconditions:
        ``replacing`` is True only when an already-sorted purchase's lines
        are being replaced wholesale.

    Postconditions:
        Returns the allocated total, equal to ``purchase.total_quantity``.

    Raises:
        PurchaseAlreadySortedError, InvalidAllocationError,
        QuantityMismatchError.
    """
    if purchase.is_sorted and not replacing:
        raise PurchaseAlreadySortedError(purchase.id)

    if not allocations:
        raise InvalidAllocationError("at least one allocation row is required")

    total = 0
    for row_number, allocation in enumerate(allocations, start=1):
        if allocation.item_id is None:
            raise InvalidAllocationError("please select an item for all rows", row_number)
        if allocation.quantity <= 0:
            raise InvalidAllocationError("quantity must be greater than zero", row_number)
        if allocation.amount is not None and allocation.amount < 0:
            raise InvalidAllocationError("amount cannot be negative", row_number)
        total += allocation.quantity

    if total != purchase.total_quantity:
        raise QuantityMismatchError(purchase.id, total, purchase.total_quantity)

    return total


def plan_sorting(
    purchase: Purchase,
    allocations: Sequence[AllocationRequest],
    sorting_date: date,
    *,
    replacing: bool = False,
    id_factory: Callable[[], UUID] = uuid4,
) -> tuple[SortingLine, ...]:
    """Validate ``allocations`` and build the sorting lines to persist."""
    validate_allocations(purchase, allocations, replacing=replacing)
    default_note = default_sorting_note(purchase)
    return tuple(
        SortingLine(
            id=id_factory(),
            purchase_id=purchase.id,
            item_id=allocation.item_id,
            quantity=allocation.quantity,
            vendor_id=purchase.vendor_id,
            payment_type=purchase.payment_type,
            sorting_date=sorting_date,
            amount=allocation.amount,
            bank_account_id=purchase.bank_account_id,
            notes=allocation.notes or default_note,
        )
        for allocation in allocations
    )


def allocation_deltas(
    current: Iterable[SortingLine],
    replacement: Iterable[AllocationRequest],
) -> dict[UUID, int]:
    """Per-item change in sorted-in quantity when ``current`` is replaced.

    Items whose quantity does not change are omitted.
    """
    deltas: dict[UUID, int] = {}
    for line in current:
        deltas[line.item_id] = deltas.get(line.item_id, 0) - line.quantity
    for allocation in replacement:
        deltas[allocation.item_id] = deltas.get(allocation.item_id, 0) + allocation.quantity
    return {item_id: delta for item_id, delta in deltas.items() if delta != 0}


def allocated_amount(allocations: Iterable[AllocationRequest]) -> Decimal:
    return sum((a.amount for a in allocations if a.amount is not None), Decimal("0"))
