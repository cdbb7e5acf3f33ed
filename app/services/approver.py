"""
Approver identity for leave decisions.

An approval is made either by an employee (recorded in approved_by) or by the
system / an admin account without an employee profile (approved_by stays NULL).
"""
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class EmployeeApprover:
    employee_id: int
    name: str


@dataclass(frozen=True)
class SystemOrAdminApprover:
    display_name: str = "System"


Approver = Union[EmployeeApprover, SystemOrAdminApprover]

SYSTEM_APPROVER = SystemOrAdminApprover(display_name="System")


def approver_employee_id(approver: Approver) -> Optional[int]:
    """Value stored in approved_by."""
    if isinstance(approver, EmployeeApprover):
        return approver.employee_id
    return None


def approver_display_name(approver: Approver) -> str:
    if isinstance(approver, EmployeeApprover):
        return approver.name
    return approver.display_name
