"""
Entitlement Policy Domain Models.

Administrator-configured rules mapping a designation (and a claim type or
travel city) to an entitlement formula.  Read-only to the claim flow.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import UUID

from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.policy.models")


class ReimbursementPolicyType(Enum):
    """Medical reimbursement policy kinds."""
    MEDICAL = "medical"
    HOSPITALIZATION = "hospitalization"


class AmountType(Enum):
    """Which salary field a reimbursement entitlement is derived from."""
    BASIC_SALARY = "basic_salary"
    GROSS_SALARY = "gross_salary"
    FIXED = "fixed"


class Beneficiary(Enum):
    """Who a medical reimbursement may cover."""
    SELF = "self"
    SPOUSE = "spouse"
    CHILDREN = "children"


@dataclass(frozen=True)
class ReimbursementPolicy:
    """Medical / hospitalization entitlement for a designation."""
    id: UUID
    designation_id: UUID
    policy_type: ReimbursementPolicyType
    amount_type: AmountType = AmountType.BASIC_SALARY
    fixed_amount: Decimal = Decimal("0")
    salary_percentage: Decimal = Decimal("100")
    use_whichever_is_higher: bool = True
    applicable_to: frozenset[Beneficiary] = field(default_factory=frozenset)
    accumulable_years: int | None = None

    def covers(self, beneficiary: Beneficiary | None) -> bool:
        """An empty ``applicable_to`` set covers everyone."""
        if beneficiary is None or not self.applicable_to:
            return True
        return beneficiary in self.applicable_to


@dataclass(frozen=True)
class HandsetPolicy:
    """Mobile handset allowance for a designation (optionally sales-only)."""
    id: UUID
    designation_id: UUID
    amount: Decimal
    is_sales: bool = False
    accumulable_years: int | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class TravelPolicy:
    """Travel allowance defaults for a designation and destination city."""
    id: UUID
    designation_id: UUID
    traveling_city: str
    accommodation_amount: Decimal
    daily_allowance: Decimal


@dataclass(frozen=True)
class PolicyTables:
    """Snapshot of the policy rows relevant to one lookup."""
    reimbursement: tuple[ReimbursementPolicy, ...] = ()
    handset: tuple[HandsetPolicy, ...] = ()
    travel: tuple[TravelPolicy, ...] = ()
