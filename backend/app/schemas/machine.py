from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.enums import MachineStatus


class MachineCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=100)
    production_speed: float = Field(default=0, ge=0)
    target_production: int = Field(default=0, ge=0)


class MachineUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    production_speed: Optional[float] = Field(default=None, ge=0)
    target_production: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class MachineResponse(BaseModel):
    id: int
    name: str
    code: str
    status: MachineStatus
    production_speed: float
    target_production: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
