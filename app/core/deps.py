"""
Dependencies and guards for FastAPI endpoints
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import BackgroundTasks, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.core.security import ADMIN_TOKEN_KIND, decode_token
from app.models.employee import Employee, Role
from app.services.approver import Approver, EmployeeApprover, SystemOrAdminApprover
from app.services.side_effects import LeaveCollaborators, default_collaborators


security = HTTPBearer()


@dataclass
class Principal:
    """
    Authenticated caller: an employee, or an admin account without an
    employee profile (employee is None, admin_login is set).
    """
    employee: Optional[Employee] = None
    admin_login: Optional[str] = None

    @property
    def is_admin_account(self) -> bool:
        return self.employee is None

    @property
    def employee_id(self) -> Optional[int]:
        return self.employee.id if self.employee is not None else None

    @property
    def role(self) -> str:
        if self.employee is None:
            return Role.ADMIN.value
        return self.employee.role

    @property
    def display_name(self) -> str:
        if self.employee is None:
            return self.admin_login or "Admin"
        return self.employee.name

    def as_approver(self) -> Approver:
        if self.employee is None:
            return SystemOrAdminApprover(display_name=self.display_name)
        return EmployeeApprover(employee_id=self.employee.id, name=self.employee.name)


def _unauthorized(detail: str = "Invalid authentication credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Principal:
    """
    Resolve the bearer token to a Principal
    """
    try:
        payload = decode_token(credentials.credentials)
    except ValueError:
        raise _unauthorized()

    sub_value = payload.get("sub")
    if sub_value is None:
        raise _unauthorized()

    if payload.get("kind") == ADMIN_TOKEN_KIND:
        return Principal(admin_login=str(sub_value))

    try:
        # sub is the employee id as a string
        employee_id = int(sub_value)
    except (ValueError, TypeError):
        raise _unauthorized()

    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise _unauthorized("User not found")
    if not employee.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )
    return Principal(employee=employee)


async def get_current_employee(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Routes that act on the caller's own leave need an employee profile"""
    if principal.employee is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This action requires an employee profile"
        )
    return principal


def require_roles(*allowed_roles: Role):
    """
    Dependency factory for role-based access control. ADMIN (employee or
    admin account) always passes.

    Usage:
        @router.get("/hr-only")
        async def hr_endpoint(principal: Principal = Depends(require_roles(Role.HR))):
            ...
    """
    allowed = {role.value for role in allowed_roles} | {Role.ADMIN.value}

    def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {sorted(allowed)}"
            )
        return principal
    return role_checker


def get_collaborators(background_tasks: BackgroundTasks) -> LeaveCollaborators:
    """Side effects of HTTP-triggered transitions run after the response is sent"""
    return default_collaborators(submit=background_tasks.add_task)
