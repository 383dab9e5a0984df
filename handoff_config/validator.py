"""
Configuration Validator (``handoff_config.validator``).

Responsibility
--------------
Checks a parsed ``HandoffConfigurationSet`` before any runtime catalog is
built from it, collecting every problem rather than stopping at the first.

Invariants enforced
-------------------
* Template ids are unique across the set.
* Field ids are unique within a template; every field has a label.
* Departments (owning and ``next_department``) are known.
* Field types are known; only ``select`` fields declare ``options`` and
  every ``select`` field declares at least one.

Failure modes
-------------
* Errors  -> the configuration MUST NOT be turned into a catalog.
* Warnings  -> the configuration is usable but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from handoff_config.schema import HandoffConfigurationSet, TemplateDef
from handoff_kernel.domain.departments import Department
from handoff_kernel.domain.schema import FieldType

_KNOWN_DEPARTMENTS = frozenset(d.value for d in Department)
_KNOWN_FIELD_TYPES = frozenset(t.value for t in FieldType)


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` is ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: HandoffConfigurationSet) -> ConfigValidationResult:
    """Validate a configuration set. Never raises."""
    result = ConfigValidationResult()

    _validate_template_uniqueness(config, result)
    for template in config.templates:
        _validate_template(template, result)

    for dept in config.settings.required_departments:
        if not any(t.department == dept.value for t in config.templates):
            result.add_warning(
                f"Required department '{dept.value}' owns no documentation templates"
            )

    return result


def _validate_template_uniqueness(
    config: HandoffConfigurationSet, result: ConfigValidationResult
) -> None:
    seen: set[str] = set()
    for template in config.templates:
        if template.id in seen:
            result.add_error(f"Duplicate template id: '{template.id}'")
        seen.add(template.id)


def _validate_template(template: TemplateDef, result: ConfigValidationResult) -> None:
    prefix = f"Template '{template.id}'"

    if not template.id:
        result.add_error(f"Template named '{template.name}' has no id")
    if template.department not in _KNOWN_DEPARTMENTS:
        result.add_error(f"{prefix}: unknown department '{template.department}'")
    if template.next_department is not None and template.next_department not in _KNOWN_DEPARTMENTS:
        result.add_error(
            f"{prefix}: unknown next_department '{template.next_department}'"
        )
    if not template.fields:
        result.add_warning(f"{prefix}: declares no fields")

    seen: set[str] = set()
    for f in template.fields:
        if f.id in seen:
            result.add_error(f"{prefix}: duplicate field id '{f.id}'")
        seen.add(f.id)

        if not f.label:
            result.add_error(f"{prefix}: field '{f.id}' has no label")

        if f.type not in _KNOWN_FIELD_TYPES:
            result.add_error(f"{prefix}: field '{f.id}' has unknown type '{f.type}'")
        elif f.type == FieldType.SELECT.value and not f.options:
            result.add_error(f"{prefix}: select field '{f.id}' declares no options")
        elif f.type != FieldType.SELECT.value and f.options:
            result.add_error(
                f"{prefix}: field '{f.id}' of type {f.type} cannot declare options"
            )
