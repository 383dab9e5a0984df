"""SectionValidator -- Pure validation of a submission against its template."""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from handoff_kernel.domain.schema import DocumentationTemplate, FieldSchema, FieldType
from handoff_kernel.exceptions import FieldTypeError, ValidationError
from handoff_kernel.logging_config import get_logger

logger = get_logger("domain.validation")


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def _boolean_present(value: Any) -> bool:
    # An explicit False is an answer.
    return value is not None and value != ""


def _scalar_present(value: Any) -> bool:
    return not _is_blank(value)


_PRESENCE_CHECKS: dict[FieldType, Callable[[Any], bool]] = {
    FieldType.TEXT: _scalar_present,
    FieldType.TEXTAREA: _scalar_present,
    FieldType.NUMBER: _scalar_present,
    FieldType.BOOLEAN: _boolean_present,
    FieldType.SELECT: _scalar_present,
    FieldType.DATE: _scalar_present,
}

if set(_PRESENCE_CHECKS) != set(FieldType):
    raise RuntimeError("every FieldType needs a presence check")


def is_finite_number(value: Any) -> bool:
    """True if ``value`` reads as a finite number (bools excluded)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, str):
        try:
            return Decimal(value.strip()).is_finite()
        except InvalidOperation:
            return False
    return False


def is_present(field: FieldSchema, values: Mapping[str, Any]) -> bool:
    """Whether ``values`` holds an answer for ``field``."""
    return _PRESENCE_CHECKS[field.field_type](values.get(field.id))


def find_missing_fields(
    template: DocumentationTemplate, values: Mapping[str, Any]
) -> tuple[FieldSchema, ...]:
    """Required fields without an answer, in template field order."""
    return tuple(f for f in template.required_fields if not is_present(f, values))


def check_field_types(template: DocumentationTemplate, values: Mapping[str, Any]) -> None:
    """Reject answered number fields that do not read as finite numbers.

    Raises:
        FieldTypeError: On the first malformed value, in field order.
    """
    for f in template.fields:
        value = values.get(f.id)
        if _is_blank(value):
            continue
        if f.field_type is FieldType.NUMBER and not is_finite_number(value):
            raise FieldTypeError(template.id, f.id, f.field_type.value, value)
        if f.field_type is FieldType.SELECT and value not in f.options:
            # Accepted: select answers are not constrained to options.
            logger.debug(
                "select_value_outside_options",
                extra={"template_id": template.id, "field_id": f.id},
            )


def validate_section(template: DocumentationTemplate, values: Mapping[str, Any]) -> None:
    """Accept or reject a candidate submission. No side effects.

    Raises:
        FieldTypeError: An answered number field is not a finite number.
        ValidationError: Required fields are missing; ``missing_labels``
            lists their labels in template order.
    """
    check_field_types(template, values)

    missing = find_missing_fields(template, values)
    if missing:
        logger.info(
            "section_validation_failed",
            extra={
                "template_id": template.id,
                "missing_field_ids": [f.id for f in missing],
            },
        )
        raise ValidationError(template.id, [f.label for f in missing])
