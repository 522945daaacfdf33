"""
Entitlement Policy Module (``backoffice_modules.policy``).

Responsibility
--------------
Administrator-maintained rules keyed by designation: medical and
hospitalization reimbursement, mobile handset allowance and travel
allowance.  The claim flow reads them through the pure lookup engine in
``backoffice_engines.policy_lookup``.

Invariants enforced
-------------------
* At most one rule per lookup key in each table.
"""

from backoffice_modules.policy.models import (
    AmountType,
    Beneficiary,
    HandsetPolicy,
    PolicyTables,
    ReimbursementPolicy,
    ReimbursementPolicyType,
    TravelPolicy,
)

__all__ = [
    "AmountType",
    "Beneficiary",
    "HandsetPolicy",
    "PolicyTables",
    "ReimbursementPolicy",
    "ReimbursementPolicyType",
    "TravelPolicy",
]
