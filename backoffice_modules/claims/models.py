"""
Reimbursement Claim Domain Models.

The nouns of claim intake: claims, travel claims and opening balance
adjustments.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from backoffice_kernel.logging_config import get_logger
from backoffice_modules.policy.models import Beneficiary

logger = get_logger("modules.claims.models")


class ClaimType(Enum):
    """Claim types as they appear on the claim forms."""
    MEDICINE = "Medicine"
    HOSPITAL = "Hospital"
    MOBILE_HANDSET = "Mobile Handset"
    TRAVEL = "Travel"


@dataclass(frozen=True)
class Claim:
    """A reimbursement claim for one employee."""
    id: UUID
    employee_id: UUID
    designation_id: UUID
    claim_type: ClaimType
    claim_date: date
    claim_amount: Decimal
    balance: Decimal = Decimal("0")
    after_balance: Decimal = Decimal("0")
    department_id: UUID | None = None
    beneficiary: Beneficiary | None = None
    notes: str | None = None
    handset_name: str | None = None
    total_price: Decimal | None = None
    is_approved: bool = False
    approved_by_id: UUID | None = None
    approved_at: datetime | None = None


@dataclass(frozen=True)
class ClaimRequest:
    """A proposed claim as entered on the form, before any balance lookup."""
    employee_id: UUID
    claim_type: ClaimType
    claim_amount: Decimal
    claim_date: date | None = None
    beneficiary: Beneficiary | None = None
    notes: str | None = None
    handset_name: str | None = None
    total_price: Decimal | None = None


@dataclass(frozen=True)
class BalanceAdjustment:
    """An administrator-entered opening balance for an employee and claim type."""
    id: UUID
    employee_id: UUID
    claim_type: ClaimType
    amount: Decimal
    effective_date: date
    notes: str | None = None


@dataclass(frozen=True)
class TravelClaim:
    """A travel claim; amounts default from the travel policy."""
    id: UUID
    employee_id: UUID
    designation_id: UUID
    travel_city: str
    from_date: date
    to_date: date
    purpose: str
    accommodation_amount: Decimal
    daily_allowance: Decimal
    transport: str | None = None
    remarks: str | None = None
    is_approved: bool = False
    approved_by_id: UUID | None = None
    approved_at: datetime | None = None

    @property
    def days(self) -> int:
        return (self.to_date - self.from_date).days + 1
