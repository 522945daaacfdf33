"""
Module ORM Registry (``backoffice_modules._orm_registry``).

Responsibility
--------------
Ensure every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` contains its table definition before tables are created.
``create_all_tables()`` is the one safe way to get a complete schema.

Architecture position
---------------------
**Modules layer** -- utility.  Imports sibling ``backoffice_modules``
packages and ``backoffice_kernel.db.engine`` (allowed: modules -> kernel).
MUST NOT be imported by ``backoffice_kernel``.

Usage
-----
Scripts and ``tests/conftest.py`` call ``create_all_tables()``.
"""


def import_all_orm_models() -> None:
    """Import every ``backoffice_modules.*.orm`` module to register its models.

    HR comes first: the other modules reference ``employees`` and
    ``designations``.  Idempotent -- repeated calls are harmless.
    """
    # fmt: off
    import backoffice_modules.hr.orm  # noqa: F401
    import backoffice_modules.policy.orm  # noqa: F401
    import backoffice_modules.claims.orm  # noqa: F401
    import backoffice_modules.stock.orm  # noqa: F401
    # fmt: on


def create_all_tables() -> None:
    """Register all module ORM models, then create every table.

    Preconditions:
        Engine must be initialized via ``init_engine_from_url()``.
    Postconditions:
        All module tables exist.
    """
    from backoffice_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables()
