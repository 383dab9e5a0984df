"""
Documentation template schema.

Field Schemas are a discriminated union: one frozen dataclass per field
type, each tagged with a ``field_type`` class attribute. Only
``SelectField`` carries ``options``. Templates are immutable,
department-owned, ordered lists of fields.

This is part of the functional core - no I/O, no ORM.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union

from handoff_kernel.domain.departments import Department


class FieldType(str, Enum):
    """Supported input types of a documentation field."""

    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    DATE = "date"  # ISO 8601 date (YYYY-MM-DD), entered as text


@dataclass(frozen=True)
class _FieldBase:
    id: str
    label: str
    required: bool = False
    placeholder: str | None = None

    field_type: ClassVar[FieldType]

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Field id is required")
        if not self.label:
            raise ValueError(f"Field '{self.id}' must have a label")


@dataclass(frozen=True)
class TextField(_FieldBase):
    field_type: ClassVar[FieldType] = FieldType.TEXT


@dataclass(frozen=True)
class TextAreaField(_FieldBase):
    field_type: ClassVar[FieldType] = FieldType.TEXTAREA


@dataclass(frozen=True)
class NumberField(_FieldBase):
    field_type: ClassVar[FieldType] = FieldType.NUMBER


@dataclass(frozen=True)
class BooleanField(_FieldBase):
    field_type: ClassVar[FieldType] = FieldType.BOOLEAN


@dataclass(frozen=True)
class DateField(_FieldBase):
    field_type: ClassVar[FieldType] = FieldType.DATE


@dataclass(frozen=True)
class SelectField(_FieldBase):
    """A choice among ``options``.

    The declared options drive rendering; submitted values are not
    checked against them.
    """

    options: tuple[str, ...] = ()

    field_type: ClassVar[FieldType] = FieldType.SELECT

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.options:
            raise ValueError(f"Select field '{self.id}' must declare options")
        object.__setattr__(self, "options", tuple(self.options))


FieldSchema = Union[
    TextField, TextAreaField, NumberField, BooleanField, SelectField, DateField
]

FIELD_CLASSES: dict[FieldType, type[_FieldBase]] = {
    FieldType.TEXT: TextField,
    FieldType.TEXTAREA: TextAreaField,
    FieldType.NUMBER: NumberField,
    FieldType.BOOLEAN: BooleanField,
    FieldType.SELECT: SelectField,
    FieldType.DATE: DateField,
}

if set(FIELD_CLASSES) != set(FieldType):
    raise RuntimeError("every FieldType needs a field class")


def build_field(field_type: FieldType | str, **attrs: Any) -> FieldSchema:
    """Construct the Field Schema variant for ``field_type``.

    Raises:
        ValueError: If ``field_type`` is unknown, or ``options`` is given
            for a non-select field.
    """
    kind = FieldType(field_type)
    if kind is not FieldType.SELECT and attrs.get("options"):
        raise ValueError(
            f"Field '{attrs.get('id')}' of type {kind.value} cannot declare options"
        )
    if kind is not FieldType.SELECT:
        attrs.pop("options", None)
    else:
        attrs["options"] = tuple(attrs.get("options") or ())
    return FIELD_CLASSES[kind](**attrs)


@dataclass(frozen=True)
class DocumentationTemplate:
    """
    A named, department-owned schema of fields.

    Contract: frozen; ``fields`` are in display order with unique ids.
    A template belongs to exactly one department.
    """

    id: str
    department: Department
    name: str
    fields: tuple[FieldSchema, ...]
    description: str | None = None
    requires_signature: bool = False
    # Routing hint for renderers; send_to does not enforce it.
    next_department: Department | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Template id is required")
        object.__setattr__(self, "department", Department.parse(self.department))
        object.__setattr__(self, "fields", tuple(self.fields))
        if self.next_department is not None:
            object.__setattr__(
                self, "next_department", Department.parse(self.next_department)
            )

        seen: set[str] = set()
        for f in self.fields:
            if f.id in seen:
                raise ValueError(
                    f"Template '{self.id}' declares field '{f.id}' more than once"
                )
            seen.add(f.id)

    @property
    def required_fields(self) -> tuple[FieldSchema, ...]:
        return tuple(f for f in self.fields if f.required)

    def get_field(self, field_id: str) -> FieldSchema | None:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None
