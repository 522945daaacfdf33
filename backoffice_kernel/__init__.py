"""
Back-office Kernel

Shared foundation for the claims and stock modules:
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging with request-scoped context
- Declarative ORM base, engine and transactional session scope
- Injectable clock for deterministic "as of" computations
"""

__version__ = "0.1.0"
