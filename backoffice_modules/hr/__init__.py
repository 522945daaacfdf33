"""
HR Module (``backoffice_modules.hr``).

Responsibility
--------------
The slice of HR master data the claim flow reads: designations (with the
sales flag that selects a handset allowance) and employees with their
current basic and gross salaries.

Failure modes
-------------
* ``EmployeeNotFoundError`` / ``DesignationNotFoundError`` for unknown IDs.
"""

from backoffice_modules.hr.models import Designation, Employee

__all__ = [
    "Designation",
    "Employee",
]
