"""
Tests for departments, Field Schema variants and Documentation Templates.

These tests verify:
- Department parsing is closed over the configured set
- Only select fields carry options, and they must be non-empty
- Templates are frozen, department-owned and reject duplicate field ids
"""

import dataclasses

import pytest

from handoff_kernel.domain.departments import ALL_DEPARTMENTS, Department
from handoff_kernel.domain.schema import (
    FIELD_CLASSES,
    BooleanField,
    DateField,
    DocumentationTemplate,
    FieldType,
    NumberField,
    SelectField,
    TextAreaField,
    TextField,
    build_field,
)
from handoff_kernel.exceptions import UnknownDepartmentError


class TestDepartment:

    def test_five_departments(self):
        assert {d.value for d in ALL_DEPARTMENTS} == {
            "maintenance", "safety", "quality", "compliance", "calibration",
        }

    def test_parse_string(self):
        assert Department.parse("safety") is Department.SAFETY

    def test_parse_member_is_identity(self):
        assert Department.parse(Department.QUALITY) is Department.QUALITY

    def test_unknown_department_rejected(self):
        with pytest.raises(UnknownDepartmentError) as exc_info:
            Department.parse("finance")
        assert exc_info.value.code == "UNKNOWN_DEPARTMENT"

    def test_unknown_department_is_value_error(self):
        with pytest.raises(ValueError):
            Department.parse("")

    def test_str_is_value(self):
        assert str(Department.CALIBRATION) == "calibration"


class TestFieldVariants:

    def test_every_type_has_a_class(self):
        assert set(FIELD_CLASSES) == set(FieldType)

    @pytest.mark.parametrize(
        "field_type, cls",
        [
            ("text", TextField),
            ("textarea", TextAreaField),
            ("number", NumberField),
            ("boolean", BooleanField),
            ("date", DateField),
        ],
    )
    def test_build_field_dispatches_on_type(self, field_type, cls):
        field = build_field(field_type, id="f", label="F", required=True)
        assert isinstance(field, cls)
        assert field.field_type.value == field_type
        assert field.required is True

    def test_build_select_field(self):
        field = build_field("select", id="risk", label="Risk", options=["Low", "High"])
        assert isinstance(field, SelectField)
        assert field.options == ("Low", "High")

    def test_select_requires_options(self):
        with pytest.raises(ValueError, match="must declare options"):
            SelectField(id="risk", label="Risk")

    def test_options_rejected_on_non_select(self):
        with pytest.raises(ValueError, match="cannot declare options"):
            build_field("text", id="f", label="F", options=["x"])

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            build_field("signature", id="f", label="F")

    def test_label_required(self):
        with pytest.raises(ValueError, match="must have a label"):
            TextField(id="f", label="")

    def test_fields_are_frozen(self):
        field = TextField(id="f", label="F")
        with pytest.raises(dataclasses.FrozenInstanceError):
            field.required = True

    def test_placeholder_is_optional(self):
        assert TextField(id="f", label="F").placeholder is None
        assert NumberField(id="n", label="N", placeholder="Enter ATP reading").placeholder == (
            "Enter ATP reading"
        )


class TestDocumentationTemplate:

    def test_department_parsed(self):
        template = DocumentationTemplate(
            id="t", department="quality", name="T", fields=(TextField(id="a", label="A"),),
        )
        assert template.department is Department.QUALITY

    def test_unknown_department_rejected(self):
        with pytest.raises(UnknownDepartmentError):
            DocumentationTemplate(id="t", department="hr", name="T", fields=())

    def test_duplicate_field_ids_rejected(self):
        with pytest.raises(ValueError, match="more than once"):
            DocumentationTemplate(
                id="t",
                department=Department.SAFETY,
                name="T",
                fields=(TextField(id="a", label="A"), BooleanField(id="a", label="A2")),
            )

    def test_required_fields_in_order(self, two_field_template):
        assert [f.id for f in two_field_template.required_fields] == ["a", "b"]

    def test_get_field(self, two_field_template):
        assert two_field_template.get_field("c").label == "Field C"
        assert two_field_template.get_field("zzz") is None

    def test_fields_stored_as_tuple(self):
        template = DocumentationTemplate(
            id="t", department="safety", name="T", fields=[TextField(id="a", label="A")],
        )
        assert isinstance(template.fields, tuple)

    def test_next_department_parsed(self):
        template = DocumentationTemplate(
            id="t", department="maintenance", name="T", fields=(), next_department="safety",
        )
        assert template.next_department is Department.SAFETY
        assert template.requires_signature is False

    def test_template_is_frozen(self, two_field_template):
        with pytest.raises(dataclasses.FrozenInstanceError):
            two_field_template.name = "Other"
