"""
Employee Directory Service (``backoffice_modules.hr.service``).

Responsibility
--------------
Maintain the designations and employees the claim flow reads: create
them, look them up, and record salary changes.

Architecture position
---------------------
**Modules layer** -- thin ERP glue.  ``EmployeeService`` is the sole write
path for the ``designations`` and ``employees`` tables.

Invariants enforced
-------------------
* Each public write method owns the transaction boundary
  (``commit`` on success, ``rollback`` on exception).
* Salaries are non-negative ``Decimal`` values.

Failure modes
-------------
* ``DesignationNotFoundError`` / ``EmployeeNotFoundError`` for unknown IDs.
* ``ValueError`` for negative salaries or blank names.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from backoffice_kernel.exceptions import DesignationNotFoundError, EmployeeNotFoundError
from backoffice_kernel.logging_config import get_logger
from backoffice_modules.hr.models import Designation, Employee
from backoffice_modules.hr.orm import DesignationModel, EmployeeModel

logger = get_logger("modules.hr.service")


class EmployeeService:
    """
    Reads and writes HR master data used by entitlement computations.

    Transaction boundary: this service commits on success, rolls back on
    failure.
    """

    def __init__(self, session: Session):
        self._session = session

    # =========================================================================
    # Designations
    # =========================================================================

    def add_designation(self, name: str, actor_id: UUID, *, is_sales: bool = False) -> Designation:
        """Create a designation and return its DTO."""
        try:
            if not name or not name.strip():
                raise ValueError("designation name cannot be empty")

            designation = Designation(id=uuid4(), name=name.strip(), is_sales=is_sales)
            self._session.add(DesignationModel.from_dto(designation, created_by_id=actor_id))
            self._session.commit()

            logger.info("designation_added", extra={
                "designation_id": str(designation.id),
                "designation_name": designation.name,
                "is_sales": is_sales,
            })
            return designation

        except Exception:
            self._session.rollback()
            raise

    def get_designation(self, designation_id: UUID) -> Designation:
        orm = self._session.get(DesignationModel, designation_id)
        if orm is None:
            raise DesignationNotFoundError(designation_id)
        return orm.to_dto()

    # =========================================================================
    # Employees
    # =========================================================================

    def add_employee(
        self,
        emp_code: str,
        name: str,
        designation_id: UUID,
        basic_salary: Decimal,
        gross_salary: Decimal,
        actor_id: UUID,
        *,
        department_id: UUID | None = None,
        joining_date: date | None = None,
    ) -> Employee:
        """
        Register an employee under an existing designation.

        Raises:
            DesignationNotFoundError: designation does not exist.
            ValueError: blank code/name or negative salary.
        """
        try:
            if not emp_code or not emp_code.strip():
                raise ValueError("emp_code cannot be empty")
            if not name or not name.strip():
                raise ValueError("employee name cannot be empty")
            _check_salaries(basic_salary, gross_salary)
            if self._session.get(DesignationModel, designation_id) is None:
                raise DesignationNotFoundError(designation_id)

            employee = Employee(
                id=uuid4(),
                emp_code=emp_code.strip(),
                name=name.strip(),
                designation_id=designation_id,
                basic_salary=basic_salary,
                gross_salary=gross_salary,
                department_id=department_id,
                joining_date=joining_date,
            )
            self._session.add(EmployeeModel.from_dto(employee, created_by_id=actor_id))
            self._session.commit()

            logger.info("employee_added", extra={
                "employee_id": str(employee.id),
                "emp_code": employee.emp_code,
                "designation_id": str(designation_id),
            })
            return employee

        except Exception:
            self._session.rollback()
            raise

    def get_employee(self, employee_id: UUID) -> Employee:
        orm = self._session.get(EmployeeModel, employee_id)
        if orm is None:
            raise EmployeeNotFoundError(employee_id)
        return orm.to_dto()

    def update_salary(
        self,
        employee_id: UUID,
        basic_salary: Decimal,
        gross_salary: Decimal,
        actor_id: UUID,
    ) -> Employee:
        """
        Record a salary change.

        Claims submitted afterwards compute their entitlement from the new
        figures; claims already persisted keep the balance they recorded.
        """
        try:
            _check_salaries(basic_salary, gross_salary)
            orm = self._session.get(EmployeeModel, employee_id)
            if orm is None:
                raise EmployeeNotFoundError(employee_id)

            previous_basic = orm.basic_salary
            orm.basic_salary = basic_salary
            orm.gross_salary = gross_salary
            orm.updated_by_id = actor_id
            self._session.commit()

            logger.info("employee_salary_updated", extra={
                "employee_id": str(employee_id),
                "previous_basic_salary": str(previous_basic),
                "basic_salary": str(basic_salary),
                "gross_salary": str(gross_salary),
            })
            return orm.to_dto()

        except Exception:
            self._session.rollback()
            raise


def _check_salaries(basic_salary: Decimal, gross_salary: Decimal) -> None:
    if basic_salary < 0:
        raise ValueError("basic_salary cannot be negative")
    if gross_salary < 0:
        raise ValueError("gross_salary cannot be negative")
