"""
Back-office Modules.

Thin orchestration layers over the kernel and the pure engines.
Each module contains:
- Domain models (the nouns)
- ORM persistence models
- Configuration schemas
- A service facade that owns the transaction boundary

Modules:
- HR: Designations and employees (salary snapshot for entitlements)
- Policy: Reimbursement, handset and travel entitlement rules
- Claims: Reimbursement and travel claims, opening balances
- Stock: Purchases, sorting, sales, wastage, returns, adjustments
"""

from backoffice_modules import (
    claims,
    hr,
    policy,
    stock,
)

__all__ = [
    "claims",
    "hr",
    "policy",
    "stock",
]
