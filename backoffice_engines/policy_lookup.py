"""
Policy Lookup Engine (``backoffice_engines.policy_lookup``).

Responsibility
--------------
Resolve the entitlement rule that applies to a claim:

* medical / hospitalization reimbursement keyed by (designation, policy type)
* mobile handset allowance keyed by (designation, is_sales)
* travel allowance keyed by (designation, destination city)

Architecture position
---------------------
**Engines layer** -- pure functional core.  Callers pass in the policy
rows they loaded; this module never touches the database.

Invariants enforced
-------------------
* Pure reads: the same policy rows and key always resolve the same rule.
* A missing rule is a typed ``PolicyNotFoundError`` carrying the lookup
  key, never a silent zero.  Callers decide whether "no policy" means a
  zero balance or a user-facing "Policy not found" message.

Failure modes
-------------
* ``PolicyNotFoundError`` -- no rule for the key.
* ``PolicyNotApplicableError`` -- a reimbursement rule exists but its
  ``applicable_to`` excludes the requested beneficiary.
* ``UnknownClaimTypeError`` -- the claim type has no policy table.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from backoffice_engines.tracer import traced_engine
from backoffice_kernel.exceptions import (
    PolicyNotApplicableError,
    PolicyNotFoundError,
    UnknownClaimTypeError,
)
from backoffice_modules.claims.models import ClaimType
from backoffice_modules.hr.models import Designation
from backoffice_modules.policy.models import (
    Beneficiary,
    HandsetPolicy,
    PolicyTables,
    ReimbursementPolicy,
    ReimbursementPolicyType,
    TravelPolicy,
)

DEFAULT_FALLBACK_CITY = "Others"

REIMBURSEMENT_POLICY_TYPES: dict[ClaimType, ReimbursementPolicyType] = {
    ClaimType.MEDICINE: ReimbursementPolicyType.MEDICAL,
    ClaimType.HOSPITAL: ReimbursementPolicyType.HOSPITALIZATION,
}


def _normalize_city(city: str) -> str:
    return " ".join(city.split()).casefold()


@traced_engine(
    "policy_lookup", "1.0",
    fingerprint_fields=("designation_id", "claim_type", "beneficiary"),
)
def resolve_reimbursement_policy(
    policies: Iterable[ReimbursementPolicy],
    designation_id: UUID,
    claim_type: ClaimType,
    beneficiary: Beneficiary | None = None,
) -> ReimbursementPolicy:
    """Find the medical / hospitalization rule for a designation.

    Preconditions:
        ``claim_type`` is Medicine or Hospital.

    Raises:
        UnknownClaimTypeError: claim type has no reimbursement table.
        PolicyNotFoundError: no rule for (designation, policy type).
        PolicyNotApplicableError: rule does not cover ``beneficiary``.
    """
    policy_type = REIMBURSEMENT_POLICY_TYPES.get(claim_type)
    if policy_type is None:
        raise UnknownClaimTypeError(claim_type)

    for policy in policies:
        if policy.designation_id == designation_id and policy.policy_type == policy_type:
            if not policy.covers(beneficiary):
                raise PolicyNotApplicableError(
                    "reimbursement", designation_id, policy_type.value,
                    beneficiary.value if beneficiary else "unspecified",
                )
            return policy

    raise PolicyNotFoundError("reimbursement", designation_id, policy_type.value)


@traced_engine("policy_lookup", "1.0", fingerprint_fields=("designation",))
def resolve_handset_policy(
    policies: Iterable[HandsetPolicy],
    designation: Designation,
) -> HandsetPolicy:
    """Find the handset allowance for a designation.

    Sales designations prefer the ``is_sales=True`` row and fall back to the
    general row for the same designation.

    Raises:
        PolicyNotFoundError: neither row exists.
    """
    general: HandsetPolicy | None = None
    for policy in policies:
        if policy.designation_id != designation.id:
            continue
        if policy.is_sales == designation.is_sales:
            return policy
        if not policy.is_sales:
            general = policy

    if designation.is_sales and general is not None:
        return general

    raise PolicyNotFoundError(
        "handset", designation.id, "sales" if designation.is_sales else "general",
    )


@traced_engine(
    "policy_lookup", "1.0",
    fingerprint_fields=("designation_id", "city", "fallback_city"),
)
def resolve_travel_policy(
    policies: Iterable[TravelPolicy],
    designation_id: UUID,
    city: str,
    fallback_city: str | None = DEFAULT_FALLBACK_CITY,
) -> TravelPolicy:
    """Find the travel allowance for a designation and destination.

    City matching ignores case and repeated whitespace.  A city with no row
    of its own resolves to the ``fallback_city`` row when one exists.

    Raises:
        PolicyNotFoundError: neither the city nor the fallback has a row.
    """
    wanted = _normalize_city(city)
    fallback = _normalize_city(fallback_city) if fallback_city else None
    fallback_match: TravelPolicy | None = None

    for policy in policies:
        if policy.designation_id != designation_id:
            continue
        key = _normalize_city(policy.traveling_city)
        if key == wanted:
            return policy
        if fallback is not None and key == fallback:
            fallback_match = policy

    if fallback_match is not None:
        return fallback_match

    raise PolicyNotFoundError("travel", designation_id, city)


def resolve_policy(
    tables: PolicyTables,
    designation: Designation,
    claim_type: ClaimType,
    *,
    beneficiary: Beneficiary | None = None,
    city: str | None = None,
    fallback_city: str | None = DEFAULT_FALLBACK_CITY,
) -> ReimbursementPolicy | HandsetPolicy | TravelPolicy:
    """Dispatch to the policy table that governs ``claim_type``.

    Raises:
        PolicyNotFoundError: no rule for the key (or travel without a city).
        UnknownClaimTypeError: claim type has no policy table.
    """
    if claim_type in REIMBURSEMENT_POLICY_TYPES:
        return resolve_reimbursement_policy(
            tables.reimbursement, designation.id, claim_type, beneficiary,
        )
    if claim_type is ClaimType.MOBILE_HANDSET:
        return resolve_handset_policy(tables.handset, designation)
    if claim_type is ClaimType.TRAVEL:
        if not city:
            raise PolicyNotFoundError("travel", designation.id, None)
        return resolve_travel_policy(tables.travel, designation.id, city, fallback_city)
    raise UnknownClaimTypeError(claim_type)
