"""
Employee lifecycle hooks for the surrounding HR system
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import Principal, get_collaborators, get_db, require_roles
from app.schemas.leave import EmployeeLeaveDataRemovedOut
from app.services import leave_service
from app.services.side_effects import LeaveCollaborators

router = APIRouter()


@router.delete("/{employee_id}/leave-data", response_model=EmployeeLeaveDataRemovedOut)
async def remove_employee_leave_data(
    employee_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles()),
    collaborators: LeaveCollaborators = Depends(get_collaborators),
):
    """
    Remove an employee's leave requests and ledger rows before the employee
    is deleted (ADMIN only). The employee row is left to the HR system.
    """
    summary = leave_service.on_employee_removed(db, employee_id, collaborators=collaborators)
    return EmployeeLeaveDataRemovedOut(employee_id=employee_id, **summary)
