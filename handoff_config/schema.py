"""
HandoffConfigurationSet schema.

Defines the human-authored, reviewable source artifact for the handoff
engine's configuration. YAML files are parsed into these types by the
loader, checked by the validator, and turned into the runtime
``TemplateCatalog`` by ``catalog.build_catalog``.

Key distinction:
  HandoffConfigurationSet = source artifact (strings as authored)
  TemplateCatalog         = runtime artifact (kernel DocumentationTemplates)
"""

from __future__ import annotations

from dataclasses import dataclass

from handoff_kernel.domain.departments import Department

# ---------------------------------------------------------------------------
# Template definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldDef:
    """One field as declared in YAML."""

    id: str
    label: str
    type: str  # text, textarea, number, boolean, select, date
    required: bool = False
    placeholder: str | None = None
    options: tuple[str, ...] = ()


@dataclass(frozen=True)
class TemplateDef:
    """One documentation template as declared in YAML."""

    id: str
    name: str
    department: str
    fields: tuple[FieldDef, ...]
    description: str | None = None
    requires_signature: bool = False
    next_department: str | None = None


# ---------------------------------------------------------------------------
# Engine settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowSettings:
    """Tunables consumed by DepartmentWorkflowService."""

    max_conflict_retries: int = 3
    required_departments: tuple[Department, ...] = (
        Department.MAINTENANCE,
        Department.SAFETY,
        Department.QUALITY,
        Department.COMPLIANCE,
    )
    default_originating_department: Department = Department.MAINTENANCE


# ---------------------------------------------------------------------------
# Configuration set
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HandoffConfigurationSet:
    """A complete configuration directory, parsed but not yet validated."""

    config_id: str
    version: int
    templates: tuple[TemplateDef, ...]
    settings: WorkflowSettings
    description: str = ""
    checksum: str = ""
