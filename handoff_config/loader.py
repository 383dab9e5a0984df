"""
Configuration Loader (``handoff_config.loader``).

Responsibility
--------------
Loads the YAML files of a configuration set directory and parses them
into typed ``handoff_config.schema`` dataclass instances.  This is
internal tooling: the single public entry point for runtime config is
``handoff_config.get_active_config()``.

Architecture position
---------------------
**Config layer**.  Depends on ``handoff_kernel.domain`` only for the
Department enum; the kernel never imports this module.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required keys (``id``, ``label``,
  ``type``, ``name``, ``department``).
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  configuration for identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown department in settings  -> ``UnknownDepartmentError`` (a ``ValueError``).
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from handoff_config.schema import (
    FieldDef,
    HandoffConfigurationSet,
    TemplateDef,
    WorkflowSettings,
)
from handoff_kernel.domain.departments import Department

ROOT_FILE = "root.yaml"
TEMPLATES_FILE = "templates.yaml"
ENGINE_FILE = "engine.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(data).__name__}")
    return data


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def parse_field(data: dict[str, Any]) -> FieldDef:
    """Parse a ``FieldDef`` from a dict.

    Raises:
        KeyError: if ``id``, ``label`` or ``type`` is missing.
    """
    return FieldDef(
        id=str(data["id"]),
        label=str(data["label"]),
        type=str(data["type"]),
        required=bool(data.get("required", False)),
        placeholder=_optional_str(data.get("placeholder")),
        options=tuple(str(o) for o in data.get("options") or ()),
    )


def parse_template(data: dict[str, Any]) -> TemplateDef:
    """
    Parse a ``TemplateDef`` from a dict.

    Preconditions:
        - ``data`` must contain ``id``, ``name``, ``department`` and a
          ``fields`` list.
    Raises:
        KeyError: if required keys are missing.
    """
    return TemplateDef(
        id=str(data["id"]),
        name=str(data["name"]),
        department=str(data["department"]),
        fields=tuple(parse_field(f) for f in data.get("fields") or ()),
        description=_optional_str(data.get("description")),
        requires_signature=bool(data.get("requires_signature", False)),
        next_department=_optional_str(data.get("next_department")),
    )


def parse_settings(data: dict[str, Any]) -> WorkflowSettings:
    """Parse ``WorkflowSettings`` from the ``workflow`` block of engine.yaml.

    Missing keys fall back to the ``WorkflowSettings`` defaults.

    Raises:
        UnknownDepartmentError: on a department outside the configured set.
        ValueError: if ``max_conflict_retries`` is negative.
    """
    defaults = WorkflowSettings()

    retries = int(data.get("max_conflict_retries", defaults.max_conflict_retries))
    if retries < 0:
        raise ValueError(f"max_conflict_retries must be >= 0, got {retries}")

    required_raw = data.get("required_departments")
    required = (
        tuple(Department.parse(d) for d in required_raw)
        if required_raw is not None
        else defaults.required_departments
    )

    originating_raw = data.get("default_originating_department")
    originating = (
        Department.parse(originating_raw)
        if originating_raw is not None
        else defaults.default_originating_department
    )

    return WorkflowSettings(
        max_conflict_retries=retries,
        required_departments=required,
        default_originating_department=originating,
    )


def load_configuration_set(directory: Path) -> HandoffConfigurationSet:
    """Load and parse every file of one configuration set directory.

    ``root.yaml`` and ``templates.yaml`` are required; ``engine.yaml``
    is optional.

    Raises:
        FileNotFoundError: if a required file is missing.
    """
    root = load_yaml_file(directory / ROOT_FILE)
    templates_data = load_yaml_file(directory / TEMPLATES_FILE)
    engine_path = directory / ENGINE_FILE
    engine_data = load_yaml_file(engine_path) if engine_path.exists() else {}

    raw = {
        "root": root,
        "templates": templates_data.get("templates") or [],
        "engine": engine_data,
    }

    return HandoffConfigurationSet(
        config_id=str(root.get("config_id", directory.name)),
        version=int(root.get("version", 1)),
        description=str(root.get("description", "")),
        templates=tuple(parse_template(t) for t in raw["templates"]),
        settings=parse_settings(engine_data.get("workflow") or {}),
        checksum=compute_checksum(raw),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
