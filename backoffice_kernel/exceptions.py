"""
Typed Exception Hierarchy for the back-office services.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from BackofficeError:

    BackofficeError (base)
    |
    +-- PolicyError
    |   +-- PolicyNotFoundError
    |   |   +-- PolicyNotApplicableError
    |   +-- DuplicatePolicyError
    |   +-- InvalidPolicyError
    |
    +-- EmployeeError
    |   +-- EmployeeNotFoundError
    |   +-- DesignationNotFoundError
    |
    +-- ClaimError
    |   +-- ClaimNotFoundError
    |   +-- ClaimAlreadyApprovedError
    |   +-- UnknownClaimTypeError
    |   +-- InvalidClaimError
    |
    +-- StockError
        +-- ItemNotFoundError
        +-- PurchaseNotFoundError
        +-- PurchaseAlreadySortedError
        +-- PurchaseNotSortedError
        +-- QuantityMismatchError
        +-- InvalidAllocationError
        +-- InsufficientStockError
        +-- InvalidSaleError
        +-- SaleNotFoundError
        +-- SaleLockedError
        +-- ReturnExceedsSoldError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                       | When Raised
-----------|----------------------------|-------------------------------------------
Policy     | POLICY_NOT_FOUND           | No entitlement rule configured for the key
           | POLICY_NOT_APPLICABLE      | Rule exists but excludes the beneficiary
           | DUPLICATE_POLICY           | A rule already exists for the key
           | INVALID_POLICY             | Negative amounts, bad amount type, ...
-----------|----------------------------|-------------------------------------------
Employee   | EMPLOYEE_NOT_FOUND         | Employee ID doesn't exist
           | DESIGNATION_NOT_FOUND      | Designation ID doesn't exist
-----------|----------------------------|-------------------------------------------
Claim      | CLAIM_NOT_FOUND            | Claim ID doesn't exist
           | CLAIM_ALREADY_APPROVED     | Approving an approved claim
           | UNKNOWN_CLAIM_TYPE         | Claim type has no admissibility gate
           | INVALID_CLAIM              | Non-positive amount, inverted dates, ...
-----------|----------------------------|-------------------------------------------
Stock      | ITEM_NOT_FOUND             | Catalog item doesn't exist
           | PURCHASE_NOT_FOUND         | Purchase ID doesn't exist
           | PURCHASE_ALREADY_SORTED    | Sorting a purchase twice
           | PURCHASE_NOT_SORTED        | Editing allocations of an unsorted lot
           | QUANTITY_MISMATCH          | Allocation sum != purchased quantity
           | INVALID_ALLOCATION         | Missing item / non-positive quantity
           | INSUFFICIENT_STOCK         | Requested quantity > available quantity
           | INVALID_SALE               | No lines, bad price, missing bank account
           | SALE_NOT_FOUND             | Sale or sale line doesn't exist
           | SALE_LOCKED                | Editing a sale that has returns
           | RETURN_EXCEEDS_SOLD        | Returning more than was sold

===============================================================================
HANDLING PATTERNS
===============================================================================

Every rejection listed above is a recoverable, user-facing outcome: callers
catch the specific type and show the message near the relevant form field.
Only UnknownClaimTypeError is a configuration failure that should not be
swallowed.

    try:
        stock_service.record_sale(...)
    except InsufficientStockError as e:
        for shortfall in e.shortfalls:
            show_inline(shortfall.item_id, shortfall.message)

Claim admissibility rejections are NOT exceptions; they are returned as
``AdmissibilityDecision`` values so the caller keeps the form open.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class BackofficeError(Exception):
    """
    Base exception for all back-office errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "BACKOFFICE_ERROR"


# Policy-related exceptions


class PolicyError(BackofficeError):
    """Base exception for entitlement policy errors."""

    code: str = "POLICY_ERROR"


class PolicyNotFoundError(PolicyError):
    """
    No entitlement rule is configured for the lookup key.

    Non-fatal: balance computations translate this into a zero balance with
    an explicit "no policy" reason.
    """

    code: str = "POLICY_NOT_FOUND"

    def __init__(self, policy_kind: str, designation_id: Any, key: str | None = None):
        self.policy_kind = policy_kind
        self.designation_id = designation_id
        self.key = key
        detail = f" / {key}" if key is not None else ""
        super().__init__(
            f"No {policy_kind} policy configured for designation "
            f"{designation_id}{detail}"
        )


class PolicyNotApplicableError(PolicyNotFoundError):
    """A rule exists for the key but does not cover the requested beneficiary."""

    code: str = "POLICY_NOT_APPLICABLE"

    def __init__(self, policy_kind: str, designation_id: Any, key: str | None, beneficiary: str):
        super().__init__(policy_kind, designation_id, key)
        self.beneficiary = beneficiary
        self.args = (
            f"{policy_kind} policy for designation {designation_id} / {key} "
            f"is not applicable to {beneficiary}",
        )


class DuplicatePolicyError(PolicyError):
    """A rule already exists for the same lookup key."""

    code: str = "DUPLICATE_POLICY"

    def __init__(self, policy_kind: str, designation_id: Any, key: str | None = None):
        self.policy_kind = policy_kind
        self.designation_id = designation_id
        self.key = key
        detail = f" / {key}" if key is not None else ""
        super().__init__(
            f"A {policy_kind} policy already exists for designation "
            f"{designation_id}{detail}"
        )


class InvalidPolicyError(PolicyError):
    """Policy attributes are inconsistent (negative amounts, bad type, ...)."""

    code: str = "INVALID_POLICY"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid policy: {reason}")


# Employee-related exceptions


class EmployeeError(BackofficeError):
    """Base exception for employee master data errors."""

    code: str = "EMPLOYEE_ERROR"


class EmployeeNotFoundError(EmployeeError):
    """Employee with given ID was not found."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: Any):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


class DesignationNotFoundError(EmployeeError):
    """Designation with given ID was not found."""

    code: str = "DESIGNATION_NOT_FOUND"

    def __init__(self, designation_id: Any):
        self.designation_id = designation_id
        super().__init__(f"Designation not found: {designation_id}")


# Claim-related exceptions


class ClaimError(BackofficeError):
    """Base exception for reimbursement claim errors."""

    code: str = "CLAIM_ERROR"


class ClaimNotFoundError(ClaimError):
    """Claim with given ID was not found."""

    code: str = "CLAIM_NOT_FOUND"

    def __init__(self, claim_id: Any):
        self.claim_id = claim_id
        super().__init__(f"Claim not found: {claim_id}")


class ClaimAlreadyApprovedError(ClaimError):
    """Claim was already approved."""

    code: str = "CLAIM_ALREADY_APPROVED"

    def __init__(self, claim_id: Any):
        self.claim_id = claim_id
        super().__init__(f"Claim {claim_id} is already approved")


class UnknownClaimTypeError(ClaimError):
    """
    Claim type has no admissibility gate.

    This is a configuration error, not a user-correctable rejection.
    """

    code: str = "UNKNOWN_CLAIM_TYPE"

    def __init__(self, claim_type: Any):
        self.claim_type = claim_type
        super().__init__(f"Unrecognized claim type: {claim_type!r}")


class InvalidClaimError(ClaimError):
    """Claim input is malformed (non-positive amount, inverted dates, ...)."""

    code: str = "INVALID_CLAIM"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid claim: {reason}")


# Stock-related exceptions


class StockError(BackofficeError):
    """Base exception for purchase, sorting and sale errors."""

    code: str = "STOCK_ERROR"


class ItemNotFoundError(StockError):
    """Catalog item with given ID was not found."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: Any):
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}")


class PurchaseNotFoundError(StockError):
    """Purchase with given ID was not found."""

    code: str = "PURCHASE_NOT_FOUND"

    def __init__(self, purchase_id: Any):
        self.purchase_id = purchase_id
        super().__init__(f"Purchase not found: {purchase_id}")


class PurchaseAlreadySortedError(StockError):
    """Purchase has already been sorted; sorting is a one-way transition."""

    code: str = "PURCHASE_ALREADY_SORTED"

    def __init__(self, purchase_id: Any):
        self.purchase_id = purchase_id
        super().__init__(f"Purchase {purchase_id} is already sorted")


class PurchaseNotSortedError(StockError):
    """Operation requires a sorted purchase."""

    code: str = "PURCHASE_NOT_SORTED"

    def __init__(self, purchase_id: Any):
        self.purchase_id = purchase_id
        super().__init__(f"Purchase {purchase_id} has not been sorted")


class QuantityMismatchError(StockError):
    """Sum of allocated quantities differs from the purchased quantity."""

    code: str = "QUANTITY_MISMATCH"

    def __init__(self, purchase_id: Any, allocated: int, purchased: int):
        self.purchase_id = purchase_id
        self.allocated = allocated
        self.purchased = purchased
        super().__init__(
            f"Total quantity ({allocated}) must match purchase quantity ({purchased})"
        )


class InvalidAllocationError(StockError):
    """An allocation row is missing its item or has a non-positive quantity."""

    code: str = "INVALID_ALLOCATION"

    def __init__(self, reason: str, row: int | None = None):
        self.reason = reason
        self.row = row
        where = f" (row {row})" if row is not None else ""
        super().__init__(f"Invalid allocation{where}: {reason}")


class InsufficientStockError(StockError):
    """
    One or more items lack the requested quantity.

    ``shortfalls`` lists every offending item, not only the first.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, shortfalls: Sequence[Any]):
        self.shortfalls = tuple(shortfalls)
        super().__init__("; ".join(s.message for s in self.shortfalls))


class InvalidSaleError(StockError):
    """Sale input is malformed (no lines, bad prices, missing bank account)."""

    code: str = "INVALID_SALE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class SaleNotFoundError(StockError):
    """Sale or sale line with given ID was not found."""

    code: str = "SALE_NOT_FOUND"

    def __init__(self, sale_id: Any):
        self.sale_id = sale_id
        super().__init__(f"Sale not found: {sale_id}")


class SaleLockedError(StockError):
    """Sale cannot be edited because returns were recorded against it."""

    code: str = "SALE_LOCKED"

    def __init__(self, sale_id: Any):
        self.sale_id = sale_id
        super().__init__(f"Sale {sale_id} has returns and can no longer be edited")


class ReturnExceedsSoldError(StockError):
    """Returned quantity exceeds what remains returnable on the sale line."""

    code: str = "RETURN_EXCEEDS_SOLD"

    def __init__(self, sale_detail_id: Any, returnable: int, requested: int):
        self.sale_detail_id = sale_detail_id
        self.returnable = returnable
        self.requested = requested
        super().__init__(
            f"Cannot return {requested} units on sale line {sale_detail_id}: "
            f"only {returnable} remain returnable"
        )
