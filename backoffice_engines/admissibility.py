"""
Claim Admissibility Engine (``backoffice_engines.admissibility``).

Responsibility
--------------
Decide whether a proposed claim may be submitted given the employee's
current balance, and evaluate the "new handset claim possible" predicate.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO clock reads.

Invariants enforced
-------------------
* Rules are evaluated in a fixed order; the first failing rule wins:

  ====  ===========================  ========================  ===============
  #     rule                         applies to                code
  ====  ===========================  ========================  ===============
  1     balance <= 0                 Medicine, Hospital,       BALANCE_EXHAUSTED
                                     Mobile Handset
  2     balance - amount < 0         same                      BALANCE_WOULD_GO_NEGATIVE
  3     balance >= amount            Medicine, Hospital        ENTITLEMENT_EXCEEDED
  4     handset eligibility holds    Mobile Handset            INELIGIBLE_FOR_ALLOWANCE
  ====  ===========================  ========================  ===============

  Travel claims are admitted unconditionally.
* Every admitted claim satisfies ``balance - amount >= 0`` unless it is a
  Travel claim.
* The function is total over ``ClaimType``; a type without a gate is a
  configuration failure, not a rejection.

Failure modes
-------------
* Rejections are returned as ``AdmissibilityDecision`` values.
* ``UnknownClaimTypeError`` -- claim type string or enum without a gate.
"""

from __future__ import annotations

import calendar
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from backoffice_engines.tracer import traced_engine
from backoffice_kernel.exceptions import UnknownClaimTypeError
from backoffice_modules.claims.models import Claim, ClaimRequest, ClaimType
from backoffice_modules.policy.models import HandsetPolicy

HANDSET_NOT_POSSIBLE = "New mobile handset claim is not possible at this time"


class RejectionCode(Enum):
    """Machine-readable reason a claim was not admitted."""
    BALANCE_EXHAUSTED = "BALANCE_EXHAUSTED"
    BALANCE_WOULD_GO_NEGATIVE = "BALANCE_WOULD_GO_NEGATIVE"
    ENTITLEMENT_EXCEEDED = "ENTITLEMENT_EXCEEDED"
    INELIGIBLE_FOR_ALLOWANCE = "INELIGIBLE_FOR_ALLOWANCE"


class Gate(Enum):
    """How a claim type is checked before submission."""
    BALANCE = "balance"
    ALLOWANCE = "allowance"
    UNCONDITIONAL = "unconditional"


CLAIM_GATES: dict[ClaimType, Gate] = {
    ClaimType.MEDICINE: Gate.BALANCE,
    ClaimType.HOSPITAL: Gate.BALANCE,
    ClaimType.MOBILE_HANDSET: Gate.ALLOWANCE,
    ClaimType.TRAVEL: Gate.UNCONDITIONAL,
}


@dataclass(frozen=True)
class Eligibility:
    """Result of the new-handset-claim predicate."""
    eligible: bool
    reason: str | None = None
    next_eligible_date: date | None = None


@dataclass(frozen=True)
class AdmissibilityDecision:
    """Whether a claim may be submitted, and if not, which rule refused it."""
    admit: bool
    code: RejectionCode | None = None
    reason: str | None = None
    rule: str | None = None

    @classmethod
    def admitted(cls) -> AdmissibilityDecision:
        return cls(admit=True)

    @classmethod
    def rejected(cls, rule: str, code: RejectionCode, reason: str) -> AdmissibilityDecision:
        return cls(admit=False, code=code, reason=reason, rule=rule)


@dataclass(frozen=True)
class AdmissibilityRule:
    """One row of the ordered rule table."""
    name: str
    gates: frozenset[Gate]
    code: RejectionCode
    check: Callable[[Decimal, Decimal, Eligibility | None], str | None]


def _balance_exhausted(balance: Decimal, amount: Decimal, _: Eligibility | None) -> str | None:
    if balance <= 0:
        return "Balance exhausted: cannot submit a claim when the balance is 0 or negative"
    return None


def _would_go_negative(balance: Decimal, amount: Decimal, _: Eligibility | None) -> str | None:
    if balance - amount < 0:
        return (
            f"Claim would make balance negative: amount {amount} exceeds "
            f"available balance {balance}"
        )
    return None


def _within_entitlement(balance: Decimal, amount: Decimal, _: Eligibility | None) -> str | None:
    if balance >= amount:
        return None
    return f"Claim amount {amount} exceeds available balance {balance}"


def _handset_eligible(
    balance: Decimal, amount: Decimal, eligibility: Eligibility | None,
) -> str | None:
    if eligibility is not None and eligibility.eligible:
        return None
    if eligibility is not None and eligibility.reason:
        return eligibility.reason
    return HANDSET_NOT_POSSIBLE


_GATED = frozenset({Gate.BALANCE, Gate.ALLOWANCE})

ADMISSIBILITY_RULES: tuple[AdmissibilityRule, ...] = (
    AdmissibilityRule(
        "balance_exhausted", _GATED, RejectionCode.BALANCE_EXHAUSTED, _balance_exhausted,
    ),
    AdmissibilityRule(
        "balance_would_go_negative", _GATED,
        RejectionCode.BALANCE_WOULD_GO_NEGATIVE, _would_go_negative,
    ),
    AdmissibilityRule(
        "within_entitlement", frozenset({Gate.BALANCE}),
        RejectionCode.ENTITLEMENT_EXCEEDED, _within_entitlement,
    ),
    AdmissibilityRule(
        "handset_eligibility", frozenset({Gate.ALLOWANCE}),
        RejectionCode.INELIGIBLE_FOR_ALLOWANCE, _handset_eligible,
    ),
)


def parse_claim_type(value: ClaimType | str) -> ClaimType:
    """Coerce a form value such as ``"Mobile Handset"`` to ``ClaimType``."""
    if isinstance(value, ClaimType):
        return value
    try:
        return ClaimType(value)
    except ValueError:
        raise UnknownClaimTypeError(value) from None


def gate_for(claim_type: ClaimType | str) -> Gate:
    """Return the gate for a claim type.

    Raises:
        UnknownClaimTypeError: no gate is registered.
    """
    parsed = parse_claim_type(claim_type)
    gate = CLAIM_GATES.get(parsed)
    if gate is None:
        raise UnknownClaimTypeError(parsed)
    return gate


@traced_engine("admissibility", "1.0", fingerprint_fields=("claim", "balance", "eligibility"))
def can_submit(
    claim: ClaimRequest | Claim,
    balance: Decimal,
    eligibility: Eligibility | None = None,
) -> AdmissibilityDecision:
    """Evaluate the ordered rule table for a proposed claim.

    Preconditions:
        ``balance`` was recomputed from persisted state immediately before
        this call.  ``eligibility`` is required for Mobile Handset claims;
        a missing predicate counts as ineligible.

    Postconditions:
        ``admit`` is True only if no applicable rule failed.

    Raises:
        UnknownClaimTypeError: claim type has no gate.
    """
    gate = gate_for(claim.claim_type)
    if gate is Gate.UNCONDITIONAL:
        return AdmissibilityDecision.admitted()

    amount = claim.claim_amount
    for rule in ADMISSIBILITY_RULES:
        if gate not in rule.gates:
            continue
        reason = rule.check(balance, amount, eligibility)
        if reason is not None:
            return AdmissibilityDecision.rejected(rule.name, rule.code, reason)

    return AdmissibilityDecision.admitted()


def add_months(start: date, months: int) -> date:
    """Shift ``start`` by whole months, clamping to the last day of the month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


@traced_engine(
    "handset_eligibility", "1.0",
    fingerprint_fields=("policy", "amount", "balance", "as_of", "min_interval_months"),
)
def evaluate_handset_eligibility(
    policy: HandsetPolicy | None,
    prior_handset_claims: Iterable[Claim],
    amount: Decimal,
    balance: Decimal,
    as_of: date,
    min_interval_months: int = 24,
) -> Eligibility:
    """Decide whether a new mobile handset claim is possible.

    A claim is possible when a handset policy exists, at least
    ``min_interval_months`` have elapsed since the most recent handset
    claim dated on or before ``as_of``, and ``amount`` fits the remaining
    allowance.
    """
    if policy is None:
        return Eligibility(False, "No mobile handset policy is configured for this designation")

    previous = [
        c.claim_date
        for c in prior_handset_claims
        if c.claim_type is ClaimType.MOBILE_HANDSET and c.claim_date <= as_of
    ]
    if previous and min_interval_months > 0:
        next_date = add_months(max(previous), min_interval_months)
        if as_of < next_date:
            return Eligibility(
                False,
                f"A new mobile handset claim is possible only {min_interval_months} "
                f"months after the previous one; next claim possible on "
                f"{next_date.isoformat()}",
                next_date,
            )

    if amount > balance:
        return Eligibility(
            False,
            f"Handset claim amount {amount} exceeds remaining allowance {balance}",
        )

    return Eligibility(True)
