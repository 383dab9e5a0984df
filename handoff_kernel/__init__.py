"""
Handoff Kernel - Department Workflow Routing & Documentation Locking Engine

A pure, append-only engine for moving a case between departments with:
- Schema-driven documentation sections, locked on submission
- Actor-authorized hand-offs with an immutable routing history
- Optimistic concurrency at the storage boundary
"""

__version__ = "0.1.0"
