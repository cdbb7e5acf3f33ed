"""
Employee schemas
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict


class EmployeeBrief(BaseModel):
    """Employee summary embedded in leave responses"""
    id: int
    emp_code: str
    name: str
    email: Optional[str] = None
    role: str

    model_config = ConfigDict(from_attributes=True)
