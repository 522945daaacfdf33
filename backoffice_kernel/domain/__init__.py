"""
Pure domain layer.

Objects here have NO dependencies on the ORM, the database or I/O.
The only sanctioned time source is an injected ``Clock``.
"""

from backoffice_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
]
