"""
Department -- the closed set of organizational units a case moves between.

Every boundary that accepts a department (templates, routing, storage,
the identity context) funnels strings through ``Department.parse`` so the
rest of the kernel only ever sees enum members.
"""

from __future__ import annotations

from enum import Enum, unique

from handoff_kernel.exceptions import UnknownDepartmentError


@unique
class Department(str, Enum):
    """Departments that can hold, document and forward a case."""

    MAINTENANCE = "maintenance"
    SAFETY = "safety"
    QUALITY = "quality"
    COMPLIANCE = "compliance"
    CALIBRATION = "calibration"

    @classmethod
    def parse(cls, value: Department | str) -> Department:
        """Coerce a raw identifier to a Department.

        Raises:
            UnknownDepartmentError: If ``value`` is not a configured department.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownDepartmentError(value) from None

    def __str__(self) -> str:
        return self.value


ALL_DEPARTMENTS: tuple[Department, ...] = tuple(Department)
