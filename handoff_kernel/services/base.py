"""
BaseService -- abstract base for the kernel's persistence services.

Responsibility:
    Provides the common constructor and session-handling contract for
    services that write through a caller-supplied SQLAlchemy ``Session``
    using ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's
    transaction and never commit or rollback themselves.  The caller
    (DepartmentWorkflowService with ``auto_commit=True``, or the
    application) owns commit/rollback.

Failure modes:
    - If a subclass calls ``session.commit()``, the load -> compute ->
      save cycle of the workflow service is no longer atomic.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from handoff_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide query-only methods -- those belong in
          ``handoff_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
