"""
Module: backoffice_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for the
    service layer in ``backoffice_modules``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import kernel exceptions and module DTOs (``models.py``) only.
    MUST NOT import ORM models or services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Dates are passed in by the services, which read the injected clock.
    - Decimal-only arithmetic for money; whole units for stock quantities.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from backoffice_engines.entitlement import compute_balance
    from backoffice_engines.admissibility import can_submit
    from backoffice_engines.sorting import plan_sorting
"""

from backoffice_kernel.logging_config import get_logger

logger = get_logger("engines")

from backoffice_engines.admissibility import (
    ADMISSIBILITY_RULES,
    CLAIM_GATES,
    AdmissibilityDecision,
    Eligibility,
    Gate,
    RejectionCode,
    can_submit,
    evaluate_handset_eligibility,
)
from backoffice_engines.entitlement import (
    BalanceResult,
    accumulation_window,
    compute_balance,
    compute_entitlement_amount,
)
from backoffice_engines.policy_lookup import (
    resolve_handset_policy,
    resolve_policy,
    resolve_reimbursement_policy,
    resolve_travel_policy,
)
from backoffice_engines.sorting import plan_sorting, validate_allocations
from backoffice_engines.stock import (
    StockShortfall,
    compute_available_quantity,
    find_shortfalls,
)
from backoffice_engines.tracer import traced_engine

__all__ = [
    # Admissibility
    "ADMISSIBILITY_RULES",
    "CLAIM_GATES",
    "AdmissibilityDecision",
    "Eligibility",
    "Gate",
    "RejectionCode",
    "can_submit",
    "evaluate_handset_eligibility",
    # Entitlement
    "BalanceResult",
    "accumulation_window",
    "compute_balance",
    "compute_entitlement_amount",
    # Policy lookup
    "resolve_handset_policy",
    "resolve_policy",
    "resolve_reimbursement_policy",
    "resolve_travel_policy",
    # Sorting
    "plan_sorting",
    "validate_allocations",
    # Stock
    "StockShortfall",
    "compute_available_quantity",
    "find_shortfalls",
    # Tracing
    "traced_engine",
]
