"""
Employee Domain Models.

The nouns the claim flow reads from HR master data: designations and
employees.  Maintaining them is the job of the HR screens; the claim flow
only needs a read-only snapshot taken at submission time.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.hr.models")


@dataclass(frozen=True)
class Designation:
    """A job designation; sales roles may carry a distinct handset allowance."""
    id: UUID
    name: str
    is_sales: bool = False


@dataclass(frozen=True)
class Employee:
    """An employee as seen by entitlement computations."""
    id: UUID
    emp_code: str
    name: str
    designation_id: UUID
    basic_salary: Decimal
    gross_salary: Decimal
    department_id: UUID | None = None
    joining_date: date | None = None
    is_active: bool = True
