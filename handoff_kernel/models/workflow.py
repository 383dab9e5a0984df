"""
Module: handoff_kernel.models.workflow
Responsibility: ORM persistence for a case's department workflow: the
    case row, its locked documentation sections and its routing history.

Architecture position: Kernel > Models.  May import from db/base.py and,
    lazily inside to_dto(), from domain/ value objects.

Invariants enforced:
    - One row per case: UNIQUE(case_id) on case_workflows.
    - Optimistic concurrency: ``version`` is the mapper's version column,
      so every UPDATE carries ``WHERE version = <expected>``.
    - Append-only collections: sections and routing entries are unique per
      (workflow_id, position); ORM listeners refuse UPDATE and DELETE.
    - Monotonic completion: an UPDATE that removes a department from
      completed_departments is refused.

Failure modes:
    - IntegrityError on a duplicate case_id or a duplicate position.
    - StaleDataError when the stored version moved since the row was read.
    - ImmutabilityViolationError on section/entry UPDATE or DELETE, on
      case workflow DELETE, or on un-completing a department.

Audit relevance:
    Sections carry the content_hash taken when they were locked; the
    store re-verifies it on every load.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    event,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from handoff_kernel.db.base import Base, UUIDString
from handoff_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from handoff_kernel.domain.workflow import (
        CompletedSection,
        RoutingHistoryEntry,
        WorkflowAggregate,
    )


class CaseWorkflowModel(Base):
    """Persistent workflow state for one case.

    Contract:
        The mutable columns (current_department, completed_departments,
        version, updated_at) change only through WorkflowStore.save_workflow.
    """

    __tablename__ = "case_workflows"

    __table_args__ = (
        Index("ix_case_workflows_current_department", "current_department"),
    )

    case_id: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    current_department: Mapped[str | None] = mapped_column(String(50), nullable=True)
    completed_departments: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list,
    )
    version: Mapped[int] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": False,
    }

    sections: Mapped[list["DocumentationSectionModel"]] = relationship(
        "DocumentationSectionModel",
        back_populates="workflow",
        order_by="DocumentationSectionModel.position",
        lazy="selectin",
    )
    routing_entries: Mapped[list["RoutingEntryModel"]] = relationship(
        "RoutingEntryModel",
        back_populates="workflow",
        order_by="RoutingEntryModel.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<CaseWorkflow {self.case_id} "
            f"current={self.current_department} v{self.version}>"
        )

    def to_dto(self) -> WorkflowAggregate:
        """Convert ORM model (with its children) to the frozen aggregate."""
        from handoff_kernel.domain.workflow import WorkflowAggregate

        return WorkflowAggregate(
            case_id=self.case_id,
            current_department=self.current_department,
            completed_departments=tuple(self.completed_departments or ()),
            documentation_sections=tuple(s.to_dto() for s in self.sections),
            routing_history=tuple(e.to_dto() for e in self.routing_entries),
        )

    @classmethod
    def from_dto(
        cls, dto: WorkflowAggregate, *, version: int, now: datetime,
    ) -> CaseWorkflowModel:
        """Create the case row (children included) from a fresh aggregate."""
        model = cls(
            case_id=dto.case_id,
            current_department=(
                dto.current_department.value if dto.current_department else None
            ),
            completed_departments=[d.value for d in dto.completed_departments],
            version=version,
            created_at=now,
            updated_at=now,
        )
        model.sections = [
            DocumentationSectionModel.from_dto(s, position=i)
            for i, s in enumerate(dto.documentation_sections)
        ]
        model.routing_entries = [
            RoutingEntryModel.from_dto(e, position=i)
            for i, e in enumerate(dto.routing_history)
        ]
        return model


class DocumentationSectionModel(Base):
    """Persistent locked documentation section. Append-only.

    Contract:
        Sections are immutable once created -- no UPDATE, no DELETE.
    """

    __tablename__ = "documentation_sections"

    __table_args__ = (
        UniqueConstraint(
            "workflow_id", "position",
            name="uq_documentation_sections_position",
        ),
        Index("ix_documentation_sections_department", "department"),
    )

    workflow_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("case_workflows.id"), nullable=False,
    )
    position: Mapped[int] = mapped_column(nullable=False)
    section_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)
    template_id: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[str] = mapped_column(String(50), nullable=False)
    completed_by_user_id: Mapped[str] = mapped_column(String(200), nullable=False)
    completed_by_name: Mapped[str] = mapped_column(String(200), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(nullable=False)
    field_values: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    signature: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    workflow: Mapped["CaseWorkflowModel"] = relationship(
        "CaseWorkflowModel", back_populates="sections",
    )

    def __repr__(self) -> str:
        return (
            f"<DocumentationSection {self.section_id} "
            f"{self.template_id} #{self.position}>"
        )

    def to_dto(self) -> CompletedSection:
        """Convert ORM model to frozen domain DTO."""
        from handoff_kernel.domain.workflow import CompletedSection

        return CompletedSection(
            id=self.section_id,
            template_id=self.template_id,
            department=self.department,
            completed_by_user_id=self.completed_by_user_id,
            completed_by_name=self.completed_by_name,
            completed_at=self.completed_at,
            values=dict(self.field_values or {}),
            locked=self.locked,
            signature=self.signature,
            notes=self.notes,
            content_hash=self.content_hash,
        )

    @classmethod
    def from_dto(cls, dto: CompletedSection, *, position: int) -> DocumentationSectionModel:
        """Create ORM model from domain DTO."""
        return cls(
            position=position,
            section_id=dto.id,
            template_id=dto.template_id,
            department=dto.department.value,
            completed_by_user_id=dto.completed_by_user_id,
            completed_by_name=dto.completed_by_name,
            completed_at=dto.completed_at,
            field_values=dict(dto.values),
            locked=dto.locked,
            signature=dto.signature,
            notes=dto.notes,
            content_hash=dto.content_hash,
        )


class RoutingEntryModel(Base):
    """Persistent routing history entry. Append-only."""

    __tablename__ = "routing_history_entries"

    __table_args__ = (
        UniqueConstraint(
            "workflow_id", "position",
            name="uq_routing_history_entries_position",
        ),
    )

    workflow_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("case_workflows.id"), nullable=False,
    )
    position: Mapped[int] = mapped_column(nullable=False)
    department: Mapped[str] = mapped_column(String(50), nullable=False)
    from_department: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sent_by_name: Mapped[str] = mapped_column(String(200), nullable=False)
    sent_at: Mapped[datetime] = mapped_column(nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    workflow: Mapped["CaseWorkflowModel"] = relationship(
        "CaseWorkflowModel", back_populates="routing_entries",
    )

    def __repr__(self) -> str:
        return (
            f"<RoutingEntry #{self.position} "
            f"{self.from_department} -> {self.department}>"
        )

    def to_dto(self) -> RoutingHistoryEntry:
        from handoff_kernel.domain.workflow import RoutingHistoryEntry

        return RoutingHistoryEntry(
            department=self.department,
            sent_by_name=self.sent_by_name,
            sent_at=self.sent_at,
            notes=self.notes,
            from_department=self.from_department,
        )

    @classmethod
    def from_dto(cls, dto: RoutingHistoryEntry, *, position: int) -> RoutingEntryModel:
        return cls(
            position=position,
            department=dto.department.value,
            from_department=dto.from_department.value if dto.from_department else None,
            sent_by_name=dto.sent_by_name,
            sent_at=dto.sent_at,
            notes=dto.notes,
        )


# =============================================================================
# ORM-Level Immutability (Append-Only)
# =============================================================================


@event.listens_for(DocumentationSectionModel, "before_update")
def prevent_section_update(mapper, connection, target):
    """Prevent updates to locked documentation sections."""
    raise ImmutabilityViolationError(
        entity_type="CompletedSection",
        entity_id=str(target.section_id),
        reason="Completed sections are locked -- cannot modify",
    )


@event.listens_for(DocumentationSectionModel, "before_delete")
def prevent_section_delete(mapper, connection, target):
    """Prevent deletion of locked documentation sections."""
    raise ImmutabilityViolationError(
        entity_type="CompletedSection",
        entity_id=str(target.section_id),
        reason="Completed sections are locked -- cannot delete",
    )


@event.listens_for(RoutingEntryModel, "before_update")
def prevent_routing_entry_update(mapper, connection, target):
    """Prevent updates to routing history entries."""
    raise ImmutabilityViolationError(
        entity_type="RoutingHistoryEntry",
        entity_id=f"{target.workflow_id}#{target.position}",
        reason="Routing history is append-only -- cannot modify",
    )


@event.listens_for(RoutingEntryModel, "before_delete")
def prevent_routing_entry_delete(mapper, connection, target):
    """Prevent deletion of routing history entries."""
    raise ImmutabilityViolationError(
        entity_type="RoutingHistoryEntry",
        entity_id=f"{target.workflow_id}#{target.position}",
        reason="Routing history is append-only -- cannot delete",
    )


@event.listens_for(CaseWorkflowModel, "before_update")
def prevent_department_uncompletion(mapper, connection, target):
    """Refuse an UPDATE that drops a department from completed_departments."""
    history = inspect(target).attrs.completed_departments.history
    if not history.deleted:
        return
    previous = history.deleted[0] or []
    current = target.completed_departments or []
    dropped = [d for d in previous if d not in current]
    if dropped:
        raise ImmutabilityViolationError(
            entity_type="CaseWorkflow",
            entity_id=target.case_id,
            reason=f"completed departments cannot be removed: {dropped}",
        )


@event.listens_for(CaseWorkflowModel, "before_delete")
def prevent_workflow_delete(mapper, connection, target):
    """A case's workflow record is permanent."""
    raise ImmutabilityViolationError(
        entity_type="CaseWorkflow",
        entity_id=target.case_id,
        reason="Case workflows cannot be deleted",
    )
