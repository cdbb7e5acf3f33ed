"""
Leave schemas
"""
from datetime import date, datetime
from typing import Dict, Optional, List
from pydantic import BaseModel, Field, model_validator, field_serializer
from pydantic import ConfigDict
from decimal import Decimal
from app.models.leave import LeaveType, LeaveStatus
from app.schemas.employee import EmployeeBrief
from app.utils.datetime_utils import iso_local


class LeaveApplyRequest(BaseModel):
    """Schema for applying leave"""
    leave_type: LeaveType = Field(..., description="Type of leave")
    start_date: date = Field(..., description="First day of leave (inclusive)")
    end_date: date = Field(..., description="Last day of leave (inclusive)")
    reason: Optional[str] = Field(None, description="Reason for leave")
    is_half_day: bool = Field(False, description="Half day on start_date (start_date must equal end_date)")


class AdminLeaveApplyRequest(LeaveApplyRequest):
    """Schema for an admin creating leave on behalf of an employee"""
    status: LeaveStatus = Field(LeaveStatus.PENDING, description="pending, or approved to approve immediately")

    @model_validator(mode="after")
    def check_status(self) -> "AdminLeaveApplyRequest":
        if self.status not in (LeaveStatus.PENDING, LeaveStatus.APPROVED):
            raise ValueError("status must be pending or approved")
        return self


class LeaveUpdateRequest(BaseModel):
    """Schema for editing a pending leave request (only provided fields change)"""
    leave_type: Optional[LeaveType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = None
    is_half_day: Optional[bool] = None


class ApprovalActionRequest(BaseModel):
    """Schema for leave approval request"""
    comment: Optional[str] = Field(None, description="Optional approval comment")


class RejectActionRequest(BaseModel):
    """Schema for leave rejection request"""
    rejection_reason: str = Field(..., min_length=1, description="Reason for rejection")


class LeaveOut(BaseModel):
    """Schema for leave output"""
    id: int
    employee_id: int
    employee: Optional[EmployeeBrief] = None
    leave_type: LeaveType
    start_date: date
    end_date: date
    days_count: Decimal
    is_half_day: bool
    reason: Optional[str] = None
    status: LeaveStatus
    approved_by: Optional[int] = Field(None, description="Approver (suggested manager while pending)")
    approver: Optional[EmployeeBrief] = None
    approved_at: Optional[datetime] = None
    approval_comment: Optional[str] = None
    rejection_reason: Optional[str] = None
    applied_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("applied_at", "approved_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt) if dt is not None else None


class LeaveListResponse(BaseModel):
    """Schema for leave list response"""
    items: List[LeaveOut]
    total: int


class LeaveBalanceOut(BaseModel):
    """One ledger row"""
    employee_id: int
    year: int
    leave_type: LeaveType
    total_allocated: Decimal
    carry_forward: Decimal
    used_days: Decimal
    available_days: Decimal

    model_config = ConfigDict(from_attributes=True)


class LeaveBalanceResponse(BaseModel):
    employee_id: int
    year: int
    balances: List[LeaveBalanceOut]


class BalanceInitializeRequest(BaseModel):
    """Manual allocations win over the pro-rata table"""
    year: Optional[int] = Field(None, description="Ledger year (defaults to the current year)")
    join_date: Optional[date] = Field(None, description="Overrides the employee's join date for pro-rata")
    earned: Optional[Decimal] = Field(None, ge=0)
    sick: Optional[Decimal] = Field(None, ge=0)
    casual: Optional[Decimal] = Field(None, ge=0)


class AutoApproveSettingOut(BaseModel):
    enabled: bool


class AutoApproveSettingUpdate(BaseModel):
    enabled: bool


class SweepResultOut(BaseModel):
    enabled: bool
    approved_count: int
    total_processed: int
    errors: List[str]


class LeaveStatsOut(BaseModel):
    """Request counts for requests starting in `year`"""
    year: int
    total: int
    pending: int
    approved: int
    rejected: int
    cancelled: int
    by_type: Dict[str, int]
    by_month: Dict[int, int]


class CancelledCleanupRequest(BaseModel):
    before: Optional[date] = Field(None, description="Remove requests ending before this date (defaults to one month ago)")


class CancelledCleanupOut(BaseModel):
    before: date
    removed_count: int


class YearEndResetRequest(BaseModel):
    year: Optional[int] = Field(None, description="Year to close (defaults to the current year)")


class YearEndResetOut(BaseModel):
    year: int
    next_year: int
    archived_count: int
    reset_count: int
    skipped_count: int = 0
    total_carry_forward: float = 0.0


class EmployeeLeaveDataRemovedOut(BaseModel):
    employee_id: int
    leave_requests_removed: int
    balances_removed: int


class LeaveTransactionOut(BaseModel):
    """Ledger audit trail entry"""
    id: int
    employee_id: int
    leave_id: Optional[int] = None
    year: int
    leave_type: LeaveType
    delta_days: Decimal
    action: str
    remarks: Optional[str] = None
    action_by_employee_id: Optional[int] = None
    action_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("action_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt) if dt is not None else None


class AllocationUpdateRequest(BaseModel):
    """Admin adjustment of one ledger row's allocation"""
    year: int
    leave_type: LeaveType
    total_allocated: Decimal = Field(..., ge=0)
