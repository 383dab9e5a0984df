"""
Tests for the YAML configuration pipeline and the Template Catalog.

Covers:
- The default set: fourteen templates, owning departments, settings
- Catalog lookups and TemplateNotFoundError
- Validation that reports every problem at once
- Deterministic checksum and the HANDOFF_CONFIG_TRACE audit record
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
import yaml

from handoff_config import CatalogValidationError, TemplateCatalog, get_active_config
from handoff_config.catalog import build_catalog
from handoff_config.loader import compute_checksum, load_configuration_set, parse_settings
from handoff_config.validator import validate_configuration
from handoff_kernel.domain.departments import Department
from handoff_kernel.domain.schema import FieldType, SelectField
from handoff_kernel.exceptions import TemplateNotFoundError, UnknownDepartmentError

DEFAULT_TEMPLATE_IDS = {
    "pre_op_inspection",
    "post_op_inspection",
    "safety_inspection",
    "hazard_assessment",
    "osha_compliance",
    "hygiene_report",
    "wet_clean",
    "dry_wipe",
    "quality_check",
    "glass_audit",
    "sqf_audit",
    "fda_audit",
    "vendor_verification",
    "calibration_record",
}


def _write_set(root: Path, templates: str, engine: str | None = None) -> Path:
    """Write a minimal configuration set named ``custom`` under ``root``."""
    set_dir = root / "custom"
    set_dir.mkdir(parents=True)
    (set_dir / "root.yaml").write_text("config_id: custom\nversion: 2\n")
    (set_dir / "templates.yaml").write_text(textwrap.dedent(templates))
    if engine is not None:
        (set_dir / "engine.yaml").write_text(textwrap.dedent(engine))
    return set_dir


class TestDefaultConfiguration:

    def test_fourteen_templates(self, active_config):
        assert len(active_config.catalog) == 14
        assert {t.id for t in active_config.catalog} == DEFAULT_TEMPLATE_IDS

    def test_identity(self, active_config):
        assert active_config.config_id == "default"
        assert active_config.version == 1
        assert len(active_config.checksum) == 64

    def test_departments(self, catalog):
        assert catalog.departments == tuple(Department)
        counts = {
            dept: len(catalog.get_templates_for_department(dept)) for dept in Department
        }
        assert counts == {
            Department.MAINTENANCE: 2,
            Department.SAFETY: 3,
            Department.QUALITY: 5,
            Department.COMPLIANCE: 3,
            Department.CALIBRATION: 1,
        }

    def test_templates_for_department_preserve_file_order(self, catalog):
        ids = [t.id for t in catalog.get_templates_for_department("maintenance")]
        assert ids == ["pre_op_inspection", "post_op_inspection"]

    def test_settings(self, active_config):
        settings = active_config.settings
        assert settings.max_conflict_retries == 3
        assert settings.default_originating_department is Department.MAINTENANCE
        assert settings.required_departments == (
            Department.MAINTENANCE,
            Department.SAFETY,
            Department.QUALITY,
            Department.COMPLIANCE,
        )

    def test_pre_op_template_shape(self, catalog):
        pre_op = catalog.get_template_by_id("pre_op_inspection")
        assert pre_op.department is Department.MAINTENANCE
        assert pre_op.requires_signature is True
        assert pre_op.next_department is Department.SAFETY
        required = [f.id for f in pre_op.fields if f.required]
        assert required == [
            "equipment_clean",
            "guards_in_place",
            "lubrication_checked",
            "no_leaks",
            "safety_devices_working",
        ]
        notes = pre_op.fields[-1]
        assert notes.id == "notes"
        assert notes.field_type is FieldType.TEXTAREA
        assert not notes.required

    def test_select_options_survive_yaml(self, catalog):
        field = next(
            f for f in catalog.get_template_by_id("safety_inspection").fields
            if f.id == "safe_to_proceed"
        )
        assert isinstance(field, SelectField)
        assert field.field_type is FieldType.SELECT
        assert field.options[0] == "Yes"

    def test_number_fields_typed(self, catalog):
        hygiene = catalog.get_template_by_id("hygiene_report")
        types = {f.id: f.field_type for f in hygiene.fields}
        assert types["atp_reading"] is FieldType.NUMBER
        assert types["sanitizer_concentration"] is FieldType.NUMBER


class TestCatalogLookup:

    def test_get_by_id(self, catalog):
        template = catalog.get_template_by_id("calibration_record")
        assert template.department is Department.CALIBRATION
        assert "calibration_record" in catalog

    def test_unknown_id(self, catalog):
        with pytest.raises(TemplateNotFoundError) as exc_info:
            catalog.get_template_by_id("no_such_template")
        assert exc_info.value.template_id == "no_such_template"
        assert "no_such_template" not in catalog

    def test_unknown_department(self, catalog):
        with pytest.raises(UnknownDepartmentError):
            catalog.get_templates_for_department("logistics")

    def test_duplicate_templates_rejected(self, pre_op_template):
        with pytest.raises(CatalogValidationError, match="pre_op_inspection"):
            TemplateCatalog([pre_op_template, pre_op_template])


class TestValidation:

    BROKEN = """\
        templates:
          - id: dup
            name: First
            department: maintenance
            fields:
              - {id: a, label: A, type: text}
          - id: dup
            name: Second
            department: maintenance
            fields:
              - {id: a, label: A, type: text}
          - id: bad_dept
            name: Bad Department
            department: logistics
            next_department: warehouse
            fields:
              - {id: a, label: A, type: text}
          - id: bad_fields
            name: Bad Fields
            department: quality
            fields:
              - {id: x, label: X, type: text}
              - {id: x, label: X again, type: text}
              - {id: y, label: "", type: text}
              - {id: z, label: Z, type: signature}
              - {id: s, label: S, type: select}
              - {id: t, label: T, type: text, options: [one]}
        """

    def test_every_problem_reported(self, tmp_path):
        _write_set(tmp_path, self.BROKEN)

        with pytest.raises(CatalogValidationError) as exc_info:
            get_active_config(config_dir=tmp_path, config_set="custom")

        errors = exc_info.value.errors
        message = str(exc_info.value)
        assert isinstance(exc_info.value, ValueError)
        assert exc_info.value.code == "CATALOG_INVALID"
        expected_fragments = [
            "Duplicate template id: 'dup'",
            "unknown department 'logistics'",
            "warehouse",
            "duplicate field id 'x'",
            "field 'y' has no label",
            "unknown type 'signature'",
            "select field 's' declares no options",
            "'t'",
        ]
        for fragment in expected_fragments:
            assert any(fragment in e for e in errors), fragment
            assert fragment in message

    def test_warnings_do_not_block(self, tmp_path):
        set_dir = _write_set(
            tmp_path,
            """\
            templates:
              - id: empty
                name: Empty
                department: calibration
                fields: []
            """,
        )
        result = validate_configuration(load_configuration_set(set_dir))
        assert result.is_valid
        assert any("declares no fields" in w for w in result.warnings)
        assert any("maintenance" in w for w in result.warnings)

    def test_custom_set_loads(self, tmp_path):
        _write_set(
            tmp_path,
            """\
            templates:
              - id: torque_check
                name: Torque Check
                department: calibration
                fields:
                  - {id: wrench_id, label: Wrench ID, type: text, required: true}
                  - {id: reading, label: Reading, type: number, required: true}
            """,
            engine="""\
            workflow:
              max_conflict_retries: 0
              required_departments: [calibration]
            """,
        )
        config = get_active_config(config_dir=tmp_path, config_set="custom")

        assert config.config_id == "custom"
        assert config.version == 2
        assert [t.id for t in config.catalog] == ["torque_check"]
        assert config.settings.max_conflict_retries == 0
        assert config.settings.required_departments == (Department.CALIBRATION,)
        assert config.settings.default_originating_department is Department.MAINTENANCE

    def test_missing_set(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(config_dir=tmp_path, config_set="nope")

    def test_missing_templates_file(self, tmp_path):
        set_dir = tmp_path / "custom"
        set_dir.mkdir()
        (set_dir / "root.yaml").write_text("config_id: custom\n")
        with pytest.raises(FileNotFoundError):
            get_active_config(config_dir=tmp_path, config_set="custom")

    def test_non_mapping_document(self, tmp_path):
        set_dir = tmp_path / "custom"
        set_dir.mkdir()
        (set_dir / "root.yaml").write_text("- just\n- a list\n")
        (set_dir / "templates.yaml").write_text("templates: []\n")
        with pytest.raises(ValueError, match="mapping"):
            get_active_config(config_dir=tmp_path, config_set="custom")

    def test_build_catalog_rejects_invalid_source(self, tmp_path):
        set_dir = _write_set(tmp_path, self.BROKEN)
        with pytest.raises(CatalogValidationError):
            build_catalog(load_configuration_set(set_dir))


class TestSettingsParsing:

    def test_defaults(self):
        settings = parse_settings({})
        assert settings.max_conflict_retries == 3
        assert Department.CALIBRATION not in settings.required_departments

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError, match="max_conflict_retries"):
            parse_settings({"max_conflict_retries": -1})

    def test_unknown_required_department(self):
        with pytest.raises(UnknownDepartmentError):
            parse_settings({"required_departments": ["maintenance", "logistics"]})


class TestChecksumAndTrace:

    def test_checksum_is_deterministic(self):
        a = get_active_config()
        b = get_active_config()
        assert a.checksum == b.checksum

    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": [1, 2]}) == compute_checksum({"b": [1, 2], "a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

    def test_checksum_tracks_content(self, tmp_path):
        body = yaml.safe_dump({"templates": [{
            "id": "t", "name": "T", "department": "safety",
            "fields": [{"id": "a", "label": "A", "type": "text"}],
        }]})
        first = tmp_path / "one"
        second = tmp_path / "two"
        for d in (first, second):
            d.mkdir()
            (d / "root.yaml").write_text("config_id: x\n")
        (first / "templates.yaml").write_text(body)
        (second / "templates.yaml").write_text(body.replace("label: A", "label: B"))

        assert (
            load_configuration_set(first).checksum
            != load_configuration_set(second).checksum
        )

    def test_config_trace_logged(self, captured_logs):
        config = get_active_config()

        traces = [r for r in captured_logs() if r["message"] == "HANDOFF_CONFIG_TRACE"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["logger"] == "handoff_kernel.config"
        assert trace["config_set_id"] == "default"
        assert trace["checksum"] == config.checksum
        assert trace["template_count"] == 14
        assert trace["departments"] == [d.value for d in Department]
