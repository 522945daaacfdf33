"""
Engine invocation tracing (``@traced_engine``).

Each decorated call emits one ``BACKOFFICE_ENGINE_TRACE`` debug record
with the engine name and version, a fingerprint of the selected inputs,
the duration, and whether the call returned or raised.  Identical inputs
give identical fingerprints, so two traces can be compared to tell whether
a balance or a sorting decision was computed from the same data.

The decorator reads arguments and logs; it never alters arguments, results
or exceptions.

Usage::

    @traced_engine("entitlement", "1.0", fingerprint_fields=("policy", "as_of"))
    def compute_balance(policy, employee, prior_claims, as_of, claim_type):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import json
import time
from collections.abc import Callable
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any

from backoffice_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_TYPE = "BACKOFFICE_ENGINE_TRACE"


def _normalize(value: Any) -> Any:
    """JSON-ready form of ``value`` with a stable ordering."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return {
            "__type__": type(value).__name__,
            **{f.name: _normalize(getattr(value, f.name)) for f in fields(value)},
        }
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_normalize(v) for v in value), key=repr)
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: dict[str, Any],
) -> str:
    """First 16 hex chars of a SHA-256 over the named arguments.

    Arguments not present in ``arguments`` hash as null.
    """
    selected = {name: _normalize(arguments.get(name)) for name in fingerprint_fields}
    canonical = json.dumps(selected, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fingerprint = compute_input_fingerprint(fingerprint_fields, dict(bound.arguments))

            outcome = "returned"
            started = time.monotonic()
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                outcome = type(exc).__name__
                raise
            finally:
                _logger.debug(
                    TRACE_TYPE,
                    extra={
                        "trace_type": TRACE_TYPE,
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": fingerprint,
                        "duration_ms": round((time.monotonic() - started) * 1000, 2),
                        "function": func.__qualname__,
                        "outcome": outcome,
                    },
                )

        return wrapper

    return decorator
