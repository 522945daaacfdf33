"""
Reimbursement Claims Module (``backoffice_modules.claims``).

Responsibility
--------------
Claim intake for Medicine, Hospital, Mobile Handset and Travel claims:
balance lookup, admissibility, persistence and approval.

Invariants enforced
-------------------
* Transaction boundary owned by ``ClaimService``.
* ``balance - claim_amount >= 0`` for every admitted balance-gated claim,
  with the balance recomputed from persisted claims at submission.

Failure modes
-------------
* Inadmissible claims are returned as rejected ``ClaimSubmission`` values.
* Configuration errors (unknown claim type) raise ``UnknownClaimTypeError``.
"""

from backoffice_modules.claims.config import ClaimsConfig
from backoffice_modules.claims.models import (
    BalanceAdjustment,
    Claim,
    ClaimRequest,
    ClaimType,
    TravelClaim,
)

__all__ = [
    "BalanceAdjustment",
    "Claim",
    "ClaimRequest",
    "ClaimType",
    "TravelClaim",
    "ClaimsConfig",
]
