"""
Admin system settings (auto-approve flag)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import Principal, get_db, require_roles
from app.models.employee import Role
from app.schemas.leave import AutoApproveSettingOut, AutoApproveSettingUpdate
from app.services import system_settings_service

router = APIRouter()


@router.get("/auto-approve", response_model=AutoApproveSettingOut)
async def get_auto_approve(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(Role.HR)),
):
    return AutoApproveSettingOut(enabled=system_settings_service.get_auto_approve_enabled(db))


@router.put("/auto-approve", response_model=AutoApproveSettingOut)
async def update_auto_approve(
    payload: AutoApproveSettingUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles()),
):
    """Enable or disable the auto-approval sweep (ADMIN only). Persists across restarts."""
    system_settings_service.set_auto_approve_enabled(db, payload.enabled, updated_by=principal.display_name)
    return AutoApproveSettingOut(enabled=payload.enabled)
