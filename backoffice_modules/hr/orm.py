"""
SQLAlchemy ORM persistence models for the HR module.

Responsibility
--------------
Persist the slice of HR master data the claim flow reads: designations and
employees with their current salaries.

Invariants enforced
-------------------
* All salary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* ``emp_code`` and designation ``name`` are unique.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import TrackedBase


class DesignationModel(TrackedBase):
    """
    A job designation.

    Maps to the ``Designation`` DTO in ``backoffice_modules.hr.models``.
    """

    __tablename__ = "designations"

    __table_args__ = (
        UniqueConstraint("name", name="uq_designation_name"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_sales: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dto(self):
        from backoffice_modules.hr.models import Designation

        return Designation(id=self.id, name=self.name, is_sales=self.is_sales)

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "DesignationModel":
        return cls(
            id=dto.id,
            name=dto.name,
            is_sales=dto.is_sales,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<DesignationModel {self.name}{' [sales]' if self.is_sales else ''}>"


class EmployeeModel(TrackedBase):
    """
    An employee.

    Maps to the ``Employee`` DTO in ``backoffice_modules.hr.models``.

    Guarantees:
        - ``designation_id`` references ``designations``.
        - The employee row is the lock target for claim submission.
    """

    __tablename__ = "employees"

    __table_args__ = (
        UniqueConstraint("emp_code", name="uq_employee_code"),
        Index("idx_employee_designation", "designation_id"),
    )

    emp_code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    designation_id: Mapped[UUID] = mapped_column(ForeignKey("designations.id"), nullable=False)
    department_id: Mapped[UUID | None]
    basic_salary: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    gross_salary: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    joining_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    designation: Mapped["DesignationModel"] = relationship(
        "DesignationModel",
        foreign_keys=[designation_id],
        lazy="joined",
        innerjoin=True,
    )

    def to_dto(self):
        from backoffice_modules.hr.models import Employee

        return Employee(
            id=self.id,
            emp_code=self.emp_code,
            name=self.name,
            designation_id=self.designation_id,
            basic_salary=self.basic_salary,
            gross_salary=self.gross_salary,
            department_id=self.department_id,
            joining_date=self.joining_date,
            is_active=self.is_active,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "EmployeeModel":
        return cls(
            id=dto.id,
            emp_code=dto.emp_code,
            name=dto.name,
            designation_id=dto.designation_id,
            department_id=dto.department_id,
            basic_salary=dto.basic_salary,
            gross_salary=dto.gross_salary,
            joining_date=dto.joining_date,
            is_active=dto.is_active,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<EmployeeModel {self.emp_code} {self.name}>"
