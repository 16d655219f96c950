"""Warehouse and project schemas"""
from typing import Optional, Any
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, date

WAREHOUSE_STATUSES = ("active", "inactive")
PROJECT_STATUSES = ("planning", "active", "on_hold", "completed", "cancelled")


def _upper_code(v: Any) -> Any:
    if isinstance(v, str):
        v = v.strip().upper()
        return v or None
    return v


# ===== Warehouse =====
class WarehouseBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    address: Optional[str] = Field(None, max_length=300)
    description: Optional[str] = None
    capacity: Optional[float] = Field(None, ge=0)
    status: str = Field("active", pattern="^(active|inactive)$")


class WarehouseCreate(WarehouseBase):
    code: Optional[str] = Field(None, max_length=50, description="Generated as KHO-xxxxxx when empty")

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v: Any) -> Any:
        return _upper_code(v)


class WarehouseUpdate(BaseModel):
    code: Optional[str] = Field(None, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    address: Optional[str] = None
    description: Optional[str] = None
    capacity: Optional[float] = Field(None, ge=0)
    status: Optional[str] = Field(None, pattern="^(active|inactive)$")

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v: Any) -> Any:
        return _upper_code(v)


class WarehouseResponse(WarehouseBase):
    id: int
    code: str
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WarehouseMovementResponse(BaseModel):
    material_id: int
    material_code: str
    material_name: str
    primary_unit: str
    secondary_unit: str
    in_primary: float
    in_secondary: float
    out_primary: float
    out_secondary: float
    stock_primary: float
    stock_secondary: float
    receipt_count: int


# ===== Project =====
class ProjectBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    client_name: Optional[str] = Field(None, max_length=200)
    client_phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=300)
    status: str = Field("active", description="planning | active | on_hold | completed | cancelled")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Optional[float] = Field(None, ge=0)

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v: Any) -> Any:
        return _upper_code(v)

    @field_validator("status")
    @classmethod
    def known_status(cls, v: str) -> str:
        if v not in PROJECT_STATUSES:
            raise ValueError(f"status must be one of {', '.join(PROJECT_STATUSES)}")
        return v


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    address: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Optional[float] = Field(None, ge=0)

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v: Any) -> Any:
        return _upper_code(v)

    @field_validator("status")
    @classmethod
    def known_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in PROJECT_STATUSES:
            raise ValueError(f"status must be one of {', '.join(PROJECT_STATUSES)}")
        return v


class ProjectResponse(ProjectBase):
    id: int
    status_display: str = ""
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
