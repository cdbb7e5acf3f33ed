"""Admin API (HR/ADMIN, or an admin account without an employee profile)."""
from fastapi import APIRouter
from app.api.v1.admin import balances as admin_balances
from app.api.v1.admin import employees as admin_employees
from app.api.v1.admin import leaves as admin_leaves
from app.api.v1.admin import settings as admin_settings

admin_router = APIRouter(prefix="/admin", tags=["admin"])
admin_router.include_router(admin_leaves.router, prefix="/leaves", tags=["admin-leaves"])
admin_router.include_router(admin_balances.router, prefix="/balances", tags=["admin-balances"])
admin_router.include_router(admin_settings.router, prefix="/settings", tags=["admin-settings"])
admin_router.include_router(admin_employees.router, prefix="/employees", tags=["admin-employees"])
