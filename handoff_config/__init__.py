"""
handoff_config -- single public entrypoint for handoff engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a ``HandoffConfiguration``: the
    validated ``TemplateCatalog``, the ``WorkflowSettings`` and the
    configuration checksum.  YAML loading is internal tooling.

Architecture position:
    Configuration -- YAML-driven, validated before use.  This package sits
    above ``handoff_kernel``.  The kernel MUST NEVER import from
    ``handoff_config``; the catalog is injected into its services.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Validation before use: a catalog is only built from a configuration
      set with no validation errors.
    - Deterministic checksum: the same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration set directory or one of
      its required files does not exist.
    - ``CatalogValidationError`` (a ``ValueError``) -- template problems.
    - ``ValueError`` / ``KeyError`` -- malformed settings or templates.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``HANDOFF_CONFIG_TRACE`` log entry with the config id, version,
    checksum and template count, tying every locked section to the
    configuration that defined its template.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from handoff_config.catalog import CatalogValidationError, TemplateCatalog, build_catalog
from handoff_config.loader import load_configuration_set
from handoff_config.schema import WorkflowSettings
from handoff_config.validator import validate_configuration

__all__ = [
    "CatalogValidationError",
    "HandoffConfiguration",
    "TemplateCatalog",
    "WorkflowSettings",
    "get_active_config",
]

_logger = logging.getLogger("handoff_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
_DEFAULT_SET = "default"


@dataclass(frozen=True)
class HandoffConfiguration:
    """The runtime configuration artifact."""

    config_id: str
    version: int
    catalog: TemplateCatalog
    settings: WorkflowSettings
    checksum: str


def get_active_config(
    config_dir: Path | None = None,
    config_set: str = _DEFAULT_SET,
) -> HandoffConfiguration:
    """The ONLY public configuration entrypoint.

    Args:
        config_dir: Override path to the configuration sets directory.
            Defaults to handoff_config/sets/.
        config_set: Name of the set subdirectory to load.

    Returns:
        HandoffConfiguration with a validated catalog.

    Raises:
        FileNotFoundError: If the set or a required file is missing.
        CatalogValidationError: If template validation fails.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    set_dir = sets_dir / config_set
    if not set_dir.is_dir():
        raise FileNotFoundError(f"Configuration set not found: {set_dir}")

    source = load_configuration_set(set_dir)

    validation = validate_configuration(source)
    for warning in validation.warnings:
        _logger.warning("config_validation_warning", extra={"detail": warning})

    catalog = build_catalog(source)

    _logger.info(
        "HANDOFF_CONFIG_TRACE",
        extra={
            "trace_type": "HANDOFF_CONFIG_TRACE",
            "config_set_id": source.config_id,
            "config_set_version": source.version,
            "checksum": source.checksum,
            "template_count": len(catalog),
            "departments": [d.value for d in catalog.departments],
            "max_conflict_retries": source.settings.max_conflict_retries,
        },
    )

    return HandoffConfiguration(
        config_id=source.config_id,
        version=source.version,
        catalog=catalog,
        settings=source.settings,
        checksum=source.checksum,
    )
