"""
Typed Exception Hierarchy for the Handoff Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejection the engine produces is either user-correctable (a missing
field, the wrong department acting) or a caller/configuration bug (an
unknown template, a malformed number). Callers must be able to tell these
apart without parsing message strings:

    try:
        service.send_to_department(case_id, Department.SAFETY, actor)
    except AuthorizationError as e:
        show(f"{e.current_department} currently holds this case")
    except ConflictError:
        ...  # already retried by the service; surface to the user

Every class carries a ``code`` class attribute (machine-readable, API-safe)
and stores its context as attributes.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    HandoffKernelError (base)
    |
    +-- ValidationError
    +-- FieldTypeError               (also a builtin TypeError)
    +-- AuthorizationError
    +-- UnknownDepartmentError       (also a builtin ValueError)
    |
    +-- NotFoundError
    |   +-- TemplateNotFoundError
    |   +-- WorkflowNotFoundError
    |
    +-- WorkflowAlreadyExistsError
    |
    +-- ConcurrencyError
    |   +-- ConflictError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError
        +-- TamperDetectedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                        | When Raised                           | Retry?
----------------------------|---------------------------------------|--------
MISSING_REQUIRED_FIELDS     | Required template field absent        | No (user fixes form)
INVALID_FIELD_VALUE         | Value unparseable for its field type  | No (input-layer bug)
DEPARTMENT_NOT_AUTHORIZED   | Acting department does not hold case  | No (re-route actor)
UNKNOWN_DEPARTMENT          | String is not a configured department | No
TEMPLATE_NOT_FOUND          | Template id not in the catalog        | No (config bug)
WORKFLOW_NOT_FOUND          | No workflow stored for case id        | No (caller bug)
WORKFLOW_ALREADY_EXISTS     | Case already entered the workflow     | No
WORKFLOW_VERSION_CONFLICT   | Stored version != expected version    | Yes (re-read, recompute)
IMMUTABILITY_VIOLATION      | Locked section / history entry edited | No (investigate)
TAMPER_DETECTED             | Stored section fails its fingerprint  | No (investigate)

===============================================================================
PROPAGATION
===============================================================================

ValidationError and AuthorizationError are terminal for the call and are
returned to the immediate caller unchanged. ConflictError is the only error
the service retries automatically, bounded by ``max_conflict_retries``.
AuthorizationError is never retried with a substituted actor.
"""


class HandoffKernelError(Exception):
    """
    Base exception for all handoff kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "HANDOFF_KERNEL_ERROR"


class ValidationError(HandoffKernelError):
    """
    One or more required fields of a documentation template are absent.

    ``missing_labels`` holds the human-readable labels in template field
    order, so the message is directly user-displayable.
    """

    code: str = "MISSING_REQUIRED_FIELDS"

    def __init__(self, template_id: str, missing_labels: list[str] | tuple[str, ...]):
        self.template_id = template_id
        self.missing_labels = tuple(missing_labels)
        super().__init__(f"Please complete: {', '.join(self.missing_labels)}")


class FieldTypeError(HandoffKernelError, TypeError):
    """A submitted value cannot be read as its field's declared type."""

    code: str = "INVALID_FIELD_VALUE"

    def __init__(self, template_id: str, field_id: str, field_type: str, value: object):
        self.template_id = template_id
        self.field_id = field_id
        self.field_type = field_type
        self.value = repr(value)
        super().__init__(
            f"Field '{field_id}' of template {template_id} expects {field_type}, "
            f"got {self.value}"
        )


class AuthorizationError(HandoffKernelError):
    """The acting department is not allowed to perform this operation."""

    code: str = "DEPARTMENT_NOT_AUTHORIZED"

    def __init__(
        self,
        case_id: str,
        acting_department: str,
        current_department: str | None,
        reason: str | None = None,
    ):
        self.case_id = case_id
        self.acting_department = acting_department
        self.current_department = current_department
        self.reason = reason or (
            f"case is held by {current_department or 'no department'}"
        )
        super().__init__(
            f"Department {acting_department} cannot act on case {case_id}: {self.reason}"
        )


class UnknownDepartmentError(HandoffKernelError, ValueError):
    """A department identifier is not one of the configured departments."""

    code: str = "UNKNOWN_DEPARTMENT"

    def __init__(self, value: object):
        self.value = repr(value)
        super().__init__(f"Unknown department: {self.value}")


# Lookup failures


class NotFoundError(HandoffKernelError):
    """Base exception for unknown ids at the caller boundary."""

    code: str = "NOT_FOUND"


class TemplateNotFoundError(NotFoundError):
    """Template id is not present in the template catalog."""

    code: str = "TEMPLATE_NOT_FOUND"

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Documentation template not found: {template_id}")


class WorkflowNotFoundError(NotFoundError):
    """No workflow has been stored for the case."""

    code: str = "WORKFLOW_NOT_FOUND"

    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"Workflow not found for case: {case_id}")


class WorkflowAlreadyExistsError(HandoffKernelError):
    """The case has already entered the workflow."""

    code: str = "WORKFLOW_ALREADY_EXISTS"

    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"Workflow already exists for case: {case_id}")


# Concurrency


class ConcurrencyError(HandoffKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConflictError(ConcurrencyError):
    """The stored workflow changed since it was read."""

    code: str = "WORKFLOW_VERSION_CONFLICT"

    def __init__(self, case_id: str, expected_version: int, actual_version: int | None):
        self.case_id = case_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Workflow for case {case_id} was modified concurrently: "
            f"expected version {expected_version}, found {actual_version}"
        )


# Immutability


class ImmutabilityError(HandoffKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete a locked record.

    Completed sections and routing history entries are immutable from
    creation; a workflow may only grow by appending to them.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")


class TamperDetectedError(ImmutabilityError):
    """A stored section no longer matches the fingerprint taken when it was locked."""

    code: str = "TAMPER_DETECTED"

    def __init__(self, section_id: str, expected_hash: str, actual_hash: str):
        self.section_id = section_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Section {section_id} fingerprint mismatch: "
            f"expected {expected_hash}, computed {actual_hash}"
        )
