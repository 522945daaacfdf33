"""
backoffice_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the module config objects
    it returns; they never read files themselves.

Architecture position:
    Configuration -- sits above ``backoffice_kernel`` and next to
    ``backoffice_modules``, whose config schemas it instantiates.  The
    kernel MUST NEVER import from ``backoffice_config``.

Invariants enforced:
    - Defaults ship as ``defaults.yaml`` beside this file; a site file
      overrides them section by section.
    - Every successful call emits a ``BACKOFFICE_CONFIG_TRACE`` log entry
      with the source path and checksum.

Failure modes:
    - ``FileNotFoundError`` -- the site file does not exist.
    - ``ValueError`` -- unknown section or invalid setting.
"""

from __future__ import annotations

from pathlib import Path

from backoffice_config.loader import load_yaml_file, merge_documents, parse_config
from backoffice_config.schema import BackofficeConfig
from backoffice_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: Path | str | None = None) -> BackofficeConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: Optional site YAML file layered over ``defaults.yaml``.

    Returns:
        A frozen ``BackofficeConfig``.
    """
    document = load_yaml_file(DEFAULTS_PATH)
    if path is not None:
        document = merge_documents(document, load_yaml_file(Path(path)))

    config = parse_config(document)
    _logger.info(
        "BACKOFFICE_CONFIG_TRACE",
        extra={
            "trace_type": "BACKOFFICE_CONFIG_TRACE",
            "source": str(path) if path is not None else str(DEFAULTS_PATH),
            "checksum": config.checksum,
        },
    )
    return config


__all__ = [
    "BackofficeConfig",
    "get_active_config",
]
