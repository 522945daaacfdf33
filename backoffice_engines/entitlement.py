"""
Entitlement Balance Calculator (``backoffice_engines.entitlement``).

Responsibility
--------------
Compute how much of an employee's reimbursement or allowance entitlement
remains for a claim type:

    balance = entitlement accrued in the accumulation window
            + opening balance adjustments dated in the window
            - same-type claims dated in the window (up to ``as_of``)

A claim dated in an earlier fiscal year is admitted against the tightest
window containing its date (``compute_claim_balance``), not the current one.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO clock reads.
The service passes the policy, the employee snapshot, the persisted claims
and "as of" date it read inside its transaction.

Invariants enforced
-------------------
* Deterministic: same inputs produce an identical ``BalanceResult``.
* The balance is never cached; every call recomputes from the claims given.
* A missing policy yields ``balance == 0`` with reason ``"no policy"``,
  which callers distinguish from an exhausted balance (``reason is None``).
* The balance is not clamped: over-consumption shows as a negative value
  so the admissibility engine can reject with ``BALANCE_EXHAUSTED``.

Failure modes
-------------
* Raises ``ValueError`` only for programming errors (bad fiscal month,
  negative accumulable years).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from backoffice_engines.tracer import traced_engine
from backoffice_modules.claims.models import BalanceAdjustment, Claim, ClaimType
from backoffice_modules.hr.models import Employee
from backoffice_modules.policy.models import (
    AmountType,
    HandsetPolicy,
    ReimbursementPolicy,
)

NO_POLICY_REASON = "no policy"

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class BalanceResult:
    """Remaining entitlement for one employee and claim type."""
    balance: Decimal
    used_this_period: Decimal
    entitlement: Decimal
    window_start: date
    window_end: date
    reason: str | None = None
    annual_entitlement: Decimal = _ZERO
    accrued_years: int = 0


def _salary_base(policy: ReimbursementPolicy, employee: Employee) -> Decimal:
    if policy.amount_type is AmountType.GROSS_SALARY:
        return employee.gross_salary
    if policy.amount_type is AmountType.BASIC_SALARY:
        return employee.basic_salary
    return _ZERO


def compute_entitlement_amount(
    policy: ReimbursementPolicy | HandsetPolicy,
    employee: Employee,
) -> Decimal:
    """Annual entitlement granted by ``policy`` to ``employee``.

    Reimbursement policies derive ``salary * salary_percentage / 100`` from
    the configured salary field (a negative result counts as zero).  With
    ``use_whichever_is_higher`` the larger of that and ``fixed_amount``
    applies; otherwise the fixed amount alone.  Handset policies grant
    their flat ``amount``.
    """
    if isinstance(policy, HandsetPolicy):
        return policy.amount

    if policy.amount_type is AmountType.FIXED:
        return policy.fixed_amount

    salary_derived = _salary_base(policy, employee) * policy.salary_percentage / _HUNDRED
    salary_derived = max(salary_derived, _ZERO)

    if policy.use_whichever_is_higher:
        return max(policy.fixed_amount, salary_derived)
    return policy.fixed_amount


def _fiscal_year_start(as_of: date, start_month: int) -> date:
    if as_of.month >= start_month:
        return date(as_of.year, start_month, 1)
    return date(as_of.year - 1, start_month, 1)


def accumulation_window(
    as_of: date,
    accumulable_years: int | None,
    fiscal_year_start_month: int = 1,
) -> tuple[date, date]:
    """Return the inclusive (start, end) dates of the accumulation window.

    ``None`` or ``0`` accumulable years means the fiscal year containing
    ``as_of``; ``N`` extends the window back ``N`` whole fiscal years.
    """
    if not 1 <= fiscal_year_start_month <= 12:
        raise ValueError(
            f"fiscal_year_start_month must be 1-12, got {fiscal_year_start_month}"
        )
    years = accumulable_years or 0
    if years < 0:
        raise ValueError(f"accumulable_years cannot be negative, got {years}")

    current_start = _fiscal_year_start(as_of, fiscal_year_start_month)
    window_start = current_start.replace(year=current_start.year - years)
    window_end = current_start.replace(year=current_start.year + 1) - timedelta(days=1)
    return window_start, window_end


def _accrued_years(
    window_start: date,
    years_in_window: int,
    joining_date: date | None,
) -> int:
    """Count fiscal years in the window that end on or after the joining date."""
    if joining_date is None:
        return years_in_window
    accrued = 0
    for offset in range(years_in_window):
        year_end = window_start.replace(year=window_start.year + offset + 1) - timedelta(days=1)
        if year_end >= joining_date:
            accrued += 1
    return accrued


def sum_claims_in_window(
    claims: Iterable[Claim],
    claim_type: ClaimType,
    window_start: date,
    as_of: date,
    *,
    count_pending: bool = True,
    exclude_claim_id: UUID | None = None,
) -> Decimal:
    """Total of same-type claims dated ``window_start <= claim_date <= as_of``."""
    used = _ZERO
    for claim in claims:
        if claim.claim_type is not claim_type:
            continue
        if exclude_claim_id is not None and claim.id == exclude_claim_id:
            continue
        if not count_pending and not claim.is_approved:
            continue
        if window_start <= claim.claim_date <= as_of:
            used += claim.claim_amount
    return used


@traced_engine(
    "entitlement", "1.0",
    fingerprint_fields=("policy", "employee", "claim_type", "as_of", "fiscal_year_start_month"),
)
def compute_balance(
    policy: ReimbursementPolicy | HandsetPolicy | None,
    employee: Employee,
    prior_claims: Iterable[Claim],
    as_of: date,
    claim_type: ClaimType,
    *,
    adjustments: Iterable[BalanceAdjustment] = (),
    fiscal_year_start_month: int = 1,
    count_pending: bool = True,
    exclude_claim_id: UUID | None = None,
) -> BalanceResult:
    """Compute the remaining entitlement for ``employee`` and ``claim_type``.

    Preconditions:
        ``prior_claims`` are the employee's persisted claims (any type;
        other types are ignored).  ``as_of`` is supplied by the caller.

    Postconditions:
        ``balance == entitlement - used_this_period`` when a policy exists,
        otherwise ``balance == 0`` and ``reason == "no policy"``.
        ``exclude_claim_id`` removes the claim being edited from
        ``used_this_period``.
    """
    claims = tuple(prior_claims)

    if policy is None:
        window_start, window_end = accumulation_window(as_of, 0, fiscal_year_start_month)
        used = sum_claims_in_window(
            claims, claim_type, window_start, as_of,
            count_pending=count_pending, exclude_claim_id=exclude_claim_id,
        )
        return BalanceResult(
            balance=_ZERO,
            used_this_period=used,
            entitlement=_ZERO,
            window_start=window_start,
            window_end=window_end,
            reason=NO_POLICY_REASON,
        )

    window_start, window_end = accumulation_window(
        as_of, policy.accumulable_years, fiscal_year_start_month,
    )
    years_in_window = (policy.accumulable_years or 0) + 1
    accrued = _accrued_years(window_start, years_in_window, employee.joining_date)

    annual = compute_entitlement_amount(policy, employee)
    opening = sum(
        (
            adj.amount
            for adj in adjustments
            if adj.claim_type is claim_type
            and adj.employee_id == employee.id
            and window_start <= adj.effective_date <= as_of
        ),
        _ZERO,
    )
    entitlement = annual * accrued + opening

    used = sum_claims_in_window(
        claims, claim_type, window_start, as_of,
        count_pending=count_pending, exclude_claim_id=exclude_claim_id,
    )

    return BalanceResult(
        balance=entitlement - used,
        used_this_period=used,
        entitlement=entitlement,
        window_start=window_start,
        window_end=window_end,
        annual_entitlement=annual,
        accrued_years=accrued,
    )


@traced_engine(
    "entitlement", "1.0",
    fingerprint_fields=("policy", "employee", "claim_type", "claim_date", "today"),
)
def compute_claim_balance(
    policy: ReimbursementPolicy | HandsetPolicy | None,
    employee: Employee,
    prior_claims: Iterable[Claim],
    claim_date: date,
    today: date,
    claim_type: ClaimType,
    *,
    adjustments: Iterable[BalanceAdjustment] = (),
    fiscal_year_start_month: int = 1,
    count_pending: bool = True,
    exclude_claim_id: UUID | None = None,
) -> BalanceResult:
    """Balance a claim dated ``claim_date`` is admitted against.

    A claim counts in every accumulation window that contains its date: the
    window of its own fiscal year and, for accumulable policies, the windows
    of up to ``accumulable_years`` later fiscal years (never past the year
    containing ``today``).  Closed fiscal years are evaluated at their last
    day so every claim of that window counts.  The window with the smallest
    balance is returned.

    For a claim dated in the current fiscal year this equals
    ``compute_balance(..., as_of=today)``.
    """
    claims = tuple(prior_claims)
    adjustments = tuple(adjustments)
    claim_year_start = _fiscal_year_start(claim_date, fiscal_year_start_month)
    current_year_start = _fiscal_year_start(today, fiscal_year_start_month)
    later_years = (policy.accumulable_years or 0) if policy is not None else 0

    binding: BalanceResult | None = None
    for offset in range(later_years + 1):
        year_start = claim_year_start.replace(year=claim_year_start.year + offset)
        if year_start > current_year_start:
            break
        year_end = year_start.replace(year=year_start.year + 1) - timedelta(days=1)
        result = compute_balance(
            policy,
            employee,
            claims,
            min(year_end, today),
            claim_type,
            adjustments=adjustments,
            fiscal_year_start_month=fiscal_year_start_month,
            count_pending=count_pending,
            exclude_claim_id=exclude_claim_id,
        )
        if binding is None or result.balance < binding.balance:
            binding = result

    if binding is None:
        # claim_date after today; callers reject this before asking
        binding = compute_balance(
            policy, employee, claims, today, claim_type,
            adjustments=adjustments,
            fiscal_year_start_month=fiscal_year_start_month,
            count_pending=count_pending,
            exclude_claim_id=exclude_claim_id,
        )
    return binding
