"""
SQLAlchemy ORM persistence models for the Claims module.

Responsibility
--------------
Persist reimbursement claims, travel claims and administrator-entered
opening balance adjustments.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* ``balance`` / ``after_balance`` on a claim are the values computed at
  submission (or last edit); they are a record, never a cache that later
  balance computations read back.
* Claim type stored as its form label (String(50)).

Audit relevance
---------------
* ``approved_by_id`` / ``approved_at`` record who approved a claim and when.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice_kernel.db.base import TrackedBase


class ClaimModel(TrackedBase):
    """
    A reimbursement claim (Medicine, Hospital, Mobile Handset).

    Maps to the ``Claim`` DTO in ``backoffice_modules.claims.models``.
    """

    __tablename__ = "claims"

    __table_args__ = (
        Index("idx_claim_employee_type", "employee_id", "claim_type"),
        Index("idx_claim_date", "claim_date"),
    )

    employee_id: Mapped[UUID] = mapped_column(ForeignKey("employees.id"), nullable=False)
    designation_id: Mapped[UUID] = mapped_column(ForeignKey("designations.id"), nullable=False)
    department_id: Mapped[UUID | None]
    claim_type: Mapped[str] = mapped_column(String(50), nullable=False)
    claim_date: Mapped[date] = mapped_column(Date, nullable=False)
    claim_amount: Mapped[Decimal] = mapped_column(nullable=False)
    balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    after_balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    beneficiary: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    handset_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    total_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved_by_id: Mapped[UUID | None]
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_dto(self):
        from backoffice_modules.claims.models import Claim, ClaimType
        from backoffice_modules.policy.models import Beneficiary

        return Claim(
            id=self.id,
            employee_id=self.employee_id,
            designation_id=self.designation_id,
            claim_type=ClaimType(self.claim_type),
            claim_date=self.claim_date,
            claim_amount=self.claim_amount,
            balance=self.balance,
            after_balance=self.after_balance,
            department_id=self.department_id,
            beneficiary=Beneficiary(self.beneficiary) if self.beneficiary else None,
            notes=self.notes,
            handset_name=self.handset_name,
            total_price=self.total_price,
            is_approved=self.is_approved,
            approved_by_id=self.approved_by_id,
            approved_at=self.approved_at,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "ClaimModel":
        return cls(
            id=dto.id,
            employee_id=dto.employee_id,
            designation_id=dto.designation_id,
            department_id=dto.department_id,
            claim_type=dto.claim_type.value,
            claim_date=dto.claim_date,
            claim_amount=dto.claim_amount,
            balance=dto.balance,
            after_balance=dto.after_balance,
            beneficiary=dto.beneficiary.value if dto.beneficiary else None,
            notes=dto.notes,
            handset_name=dto.handset_name,
            total_price=dto.total_price,
            is_approved=dto.is_approved,
            approved_by_id=dto.approved_by_id,
            approved_at=dto.approved_at,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<ClaimModel {self.claim_type} {self.claim_amount} employee={self.employee_id}>"


class BalanceAdjustmentModel(TrackedBase):
    """
    Opening balance granted to an employee for a claim type.

    Maps to the ``BalanceAdjustment`` DTO.
    """

    __tablename__ = "claim_balance_adjustments"

    __table_args__ = (
        Index("idx_balance_adjustment_employee_type", "employee_id", "claim_type"),
    )

    employee_id: Mapped[UUID] = mapped_column(ForeignKey("employees.id"), nullable=False)
    claim_type: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from backoffice_modules.claims.models import BalanceAdjustment, ClaimType

        return BalanceAdjustment(
            id=self.id,
            employee_id=self.employee_id,
            claim_type=ClaimType(self.claim_type),
            amount=self.amount,
            effective_date=self.effective_date,
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "BalanceAdjustmentModel":
        return cls(
            id=dto.id,
            employee_id=dto.employee_id,
            claim_type=dto.claim_type.value,
            amount=dto.amount,
            effective_date=dto.effective_date,
            notes=dto.notes,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<BalanceAdjustmentModel {self.claim_type} {self.amount}>"


class TravelClaimModel(TrackedBase):
    """
    A travel claim.

    Maps to the ``TravelClaim`` DTO.
    """

    __tablename__ = "travel_claims"

    __table_args__ = (
        Index("idx_travel_claim_employee", "employee_id"),
    )

    employee_id: Mapped[UUID] = mapped_column(ForeignKey("employees.id"), nullable=False)
    designation_id: Mapped[UUID] = mapped_column(ForeignKey("designations.id"), nullable=False)
    travel_city: Mapped[str] = mapped_column(String(100), nullable=False)
    from_date: Mapped[date] = mapped_column(Date, nullable=False)
    to_date: Mapped[date] = mapped_column(Date, nullable=False)
    purpose: Mapped[str] = mapped_column(String(500), nullable=False)
    accommodation_amount: Mapped[Decimal] = mapped_column(nullable=False)
    daily_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    transport: Mapped[str | None] = mapped_column(String(100), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved_by_id: Mapped[UUID | None]
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_dto(self):
        from backoffice_modules.claims.models import TravelClaim

        return TravelClaim(
            id=self.id,
            employee_id=self.employee_id,
            designation_id=self.designation_id,
            travel_city=self.travel_city,
            from_date=self.from_date,
            to_date=self.to_date,
            purpose=self.purpose,
            accommodation_amount=self.accommodation_amount,
            daily_allowance=self.daily_allowance,
            transport=self.transport,
            remarks=self.remarks,
            is_approved=self.is_approved,
            approved_by_id=self.approved_by_id,
            approved_at=self.approved_at,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "TravelClaimModel":
        return cls(
            id=dto.id,
            employee_id=dto.employee_id,
            designation_id=dto.designation_id,
            travel_city=dto.travel_city,
            from_date=dto.from_date,
            to_date=dto.to_date,
            purpose=dto.purpose,
            accommodation_amount=dto.accommodation_amount,
            daily_allowance=dto.daily_allowance,
            transport=dto.transport,
            remarks=dto.remarks,
            is_approved=dto.is_approved,
            approved_by_id=dto.approved_by_id,
            approved_at=dto.approved_at,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<TravelClaimModel {self.travel_city} {self.from_date}..{self.to_date}>"
