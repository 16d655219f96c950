"""Vehicle and transport unit schemas"""
from typing import Optional, Any
from pydantic import BaseModel, Field, field_validator
from datetime import datetime

VEHICLE_STATUSES = ("available", "in_transit", "maintenance", "inactive")


# ===== Transport unit =====
class TransportUnitBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Hauling company")
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=300)
    notes: Optional[str] = Field(None, max_length=500)
    is_active: bool = True


class TransportUnitCreate(TransportUnitBase):
    pass


class TransportUnitUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class TransportUnitResponse(TransportUnitBase):
    id: int
    vehicle_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


# ===== Vehicle =====
class VehicleBase(BaseModel):
    plate_number: str = Field(..., min_length=1, max_length=20, description="Plate number, stored upper case")
    driver_name: Optional[str] = Field(None, max_length=100)
    driver_phone: Optional[str] = Field(None, max_length=30)
    vehicle_type: Optional[str] = Field(None, max_length=50)
    capacity_tons: Optional[float] = Field(None, ge=0)
    status: str = Field("available", description="available | in_transit | maintenance | inactive")
    transport_unit_id: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=500)
    is_active: bool = True

    @field_validator("plate_number", mode="before")
    @classmethod
    def normalize_plate(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("status")
    @classmethod
    def known_status(cls, v: str) -> str:
        if v not in VEHICLE_STATUSES:
            raise ValueError(f"status must be one of {', '.join(VEHICLE_STATUSES)}")
        return v


class VehicleCreate(VehicleBase):
    pass


class VehicleUpdate(BaseModel):
    plate_number: Optional[str] = Field(None, min_length=1, max_length=20)
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None
    vehicle_type: Optional[str] = None
    capacity_tons: Optional[float] = Field(None, ge=0)
    status: Optional[str] = None
    transport_unit_id: Optional[int] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("plate_number", mode="before")
    @classmethod
    def normalize_plate(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("status")
    @classmethod
    def known_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in VEHICLE_STATUSES:
            raise ValueError(f"status must be one of {', '.join(VEHICLE_STATUSES)}")
        return v


class VehicleResponse(VehicleBase):
    id: int
    transport_unit_name: str = ""
    created_at: datetime

    class Config:
        from_attributes = True
