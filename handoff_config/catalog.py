"""
TemplateCatalog -- the runtime department -> templates mapping.

Responsibility:
    Holds the validated, immutable set of DocumentationTemplates and
    answers the two lookups the kernel needs
    (``handoff_kernel.domain.providers.TemplateCatalogProvider``).

Architecture position:
    Configuration -- runtime artifact built from a validated
    ``HandoffConfigurationSet``.  Injected into the kernel's services.

Invariants enforced:
    - Template ids are unique across the catalog.
    - Template order within a department is the configured order.

Failure modes:
    - CatalogValidationError: the source configuration has problems; the
      error lists all of them.
    - TemplateNotFoundError: unknown template id on lookup.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from handoff_config.schema import HandoffConfigurationSet, TemplateDef
from handoff_config.validator import validate_configuration
from handoff_kernel.domain.departments import Department
from handoff_kernel.domain.schema import DocumentationTemplate, build_field
from handoff_kernel.exceptions import TemplateNotFoundError


class CatalogValidationError(ValueError):
    """The template configuration is inconsistent."""

    code: str = "CATALOG_INVALID"

    def __init__(self, errors: Iterable[str]):
        self.errors = tuple(errors)
        super().__init__(
            "Template catalog validation failed:\n"
            + "\n".join(f"  - {e}" for e in self.errors)
        )


class TemplateCatalog:
    """Immutable lookup over documentation templates."""

    def __init__(self, templates: Iterable[DocumentationTemplate]):
        ordered = tuple(templates)
        by_id: dict[str, DocumentationTemplate] = {}
        duplicates: list[str] = []
        for t in ordered:
            if t.id in by_id:
                duplicates.append(f"Duplicate template id: '{t.id}'")
            by_id[t.id] = t
        if duplicates:
            raise CatalogValidationError(duplicates)

        self._templates = ordered
        self._by_id = by_id

    def __len__(self) -> int:
        return len(self._templates)

    def __iter__(self) -> Iterator[DocumentationTemplate]:
        return iter(self._templates)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._by_id

    @property
    def templates(self) -> tuple[DocumentationTemplate, ...]:
        return self._templates

    @property
    def departments(self) -> tuple[Department, ...]:
        """Departments owning at least one template, in enum order."""
        owners = {t.department for t in self._templates}
        return tuple(d for d in Department if d in owners)

    def get_templates_for_department(
        self, department: Department | str
    ) -> tuple[DocumentationTemplate, ...]:
        dept = Department.parse(department)
        return tuple(t for t in self._templates if t.department == dept)

    def get_template_by_id(self, template_id: str) -> DocumentationTemplate:
        """
        Raises:
            TemplateNotFoundError: If no template has ``template_id``.
        """
        try:
            return self._by_id[template_id]
        except KeyError:
            raise TemplateNotFoundError(template_id) from None


def to_template(definition: TemplateDef) -> DocumentationTemplate:
    """Turn one validated ``TemplateDef`` into a kernel template."""
    return DocumentationTemplate(
        id=definition.id,
        department=definition.department,
        name=definition.name,
        fields=tuple(
            build_field(
                f.type,
                id=f.id,
                label=f.label,
                required=f.required,
                placeholder=f.placeholder,
                options=f.options,
            )
            for f in definition.fields
        ),
        description=definition.description,
        requires_signature=definition.requires_signature,
        next_department=definition.next_department,
    )


def build_catalog(config: HandoffConfigurationSet) -> TemplateCatalog:
    """
    Raises:
        CatalogValidationError: listing every problem found.
    """
    result = validate_configuration(config)
    if not result.is_valid:
        raise CatalogValidationError(result.errors)
    return TemplateCatalog(to_template(t) for t in config.templates)
