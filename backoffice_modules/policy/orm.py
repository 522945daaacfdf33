"""
SQLAlchemy ORM persistence models for the Policy module.

Responsibility
--------------
Persist the three entitlement policy tables.  Each table enforces key
uniqueness so a lookup resolves to at most one row.

Invariants enforced
-------------------
* ``reimbursement_policies`` unique on (designation_id, policy_type).
* ``handset_policies`` unique on (designation_id, is_sales).
* ``travel_policies`` unique on (designation_id, traveling_city).
* Enum fields stored as String(50); ``applicable_to`` as a sorted
  comma-separated list.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice_kernel.db.base import TrackedBase


def _encode_beneficiaries(beneficiaries) -> str:
    return ",".join(sorted(b.value for b in beneficiaries))


def _decode_beneficiaries(raw: str | None):
    from backoffice_modules.policy.models import Beneficiary

    if not raw:
        return frozenset()
    return frozenset(Beneficiary(part) for part in raw.split(",") if part)


class ReimbursementPolicyModel(TrackedBase):
    """
    Medical / hospitalization entitlement rule.

    Maps to the ``ReimbursementPolicy`` DTO.
    """

    __tablename__ = "reimbursement_policies"

    __table_args__ = (
        UniqueConstraint("designation_id", "policy_type", name="uq_reimbursement_policy_key"),
    )

    designation_id: Mapped[UUID] = mapped_column(ForeignKey("designations.id"), nullable=False)
    policy_type: Mapped[str] = mapped_column(String(50), nullable=False)
    amount_type: Mapped[str] = mapped_column(String(50), nullable=False, default="basic_salary")
    fixed_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    salary_percentage: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("100"))
    use_whichever_is_higher: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    applicable_to: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    accumulable_years: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def to_dto(self):
        from backoffice_modules.policy.models import (
            AmountType,
            ReimbursementPolicy,
            ReimbursementPolicyType,
        )

        return ReimbursementPolicy(
            id=self.id,
            designation_id=self.designation_id,
            policy_type=ReimbursementPolicyType(self.policy_type),
            amount_type=AmountType(self.amount_type),
            fixed_amount=self.fixed_amount,
            salary_percentage=self.salary_percentage,
            use_whichever_is_higher=self.use_whichever_is_higher,
            applicable_to=_decode_beneficiaries(self.applicable_to),
            accumulable_years=self.accumulable_years,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "ReimbursementPolicyModel":
        return cls(
            id=dto.id,
            designation_id=dto.designation_id,
            policy_type=dto.policy_type.value,
            amount_type=dto.amount_type.value,
            fixed_amount=dto.fixed_amount,
            salary_percentage=dto.salary_percentage,
            use_whichever_is_higher=dto.use_whichever_is_higher,
            applicable_to=_encode_beneficiaries(dto.applicable_to),
            accumulable_years=dto.accumulable_years,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<ReimbursementPolicyModel {self.designation_id} {self.policy_type}>"


class HandsetPolicyModel(TrackedBase):
    """
    Mobile handset allowance rule.

    Maps to the ``HandsetPolicy`` DTO.
    """

    __tablename__ = "handset_policies"

    __table_args__ = (
        UniqueConstraint("designation_id", "is_sales", name="uq_handset_policy_key"),
    )

    designation_id: Mapped[UUID] = mapped_column(ForeignKey("designations.id"), nullable=False)
    is_sales: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    accumulable_years: Mapped[int | None] = mapped_column(Integer, nullable=True)
    remarks: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def to_dto(self):
        from backoffice_modules.policy.models import HandsetPolicy

        return HandsetPolicy(
            id=self.id,
            designation_id=self.designation_id,
            amount=self.amount,
            is_sales=self.is_sales,
            accumulable_years=self.accumulable_years,
            remarks=self.remarks,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "HandsetPolicyModel":
        return cls(
            id=dto.id,
            designation_id=dto.designation_id,
            is_sales=dto.is_sales,
            amount=dto.amount,
            accumulable_years=dto.accumulable_years,
            remarks=dto.remarks,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<HandsetPolicyModel {self.designation_id} sales={self.is_sales} {self.amount}>"


class TravelPolicyModel(TrackedBase):
    """
    Travel allowance defaults for a destination.

    Maps to the ``TravelPolicy`` DTO.
    """

    __tablename__ = "travel_policies"

    __table_args__ = (
        UniqueConstraint("designation_id", "traveling_city", name="uq_travel_policy_key"),
    )

    designation_id: Mapped[UUID] = mapped_column(ForeignKey("designations.id"), nullable=False)
    traveling_city: Mapped[str] = mapped_column(String(100), nullable=False)
    accommodation_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    daily_allowance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    def to_dto(self):
        from backoffice_modules.policy.models import TravelPolicy

        return TravelPolicy(
            id=self.id,
            designation_id=self.designation_id,
            traveling_city=self.traveling_city,
            accommodation_amount=self.accommodation_amount,
            daily_allowance=self.daily_allowance,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "TravelPolicyModel":
        return cls(
            id=dto.id,
            designation_id=dto.designation_id,
            traveling_city=dto.traveling_city,
            accommodation_amount=dto.accommodation_amount,
            daily_allowance=dto.daily_allowance,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<TravelPolicyModel {self.designation_id} {self.traveling_city}>"
