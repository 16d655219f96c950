"""Material schemas"""
from typing import Optional, List, Any
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, date


def _upper_code(v: Any) -> Any:
    return v.strip().upper() if isinstance(v, str) else v


class InitialStock(BaseModel):
    """Opening balance of a new material in one warehouse"""
    warehouse_id: int = Field(..., description="Warehouse ID")
    quantity_primary: Optional[float] = Field(None, ge=0, description="Tấn", allow_inf_nan=False)
    quantity_secondary: Optional[float] = Field(None, ge=0, description="m³, used when quantity_primary is empty", allow_inf_nan=False)
    unit_price: float = Field(default=0, ge=0, allow_inf_nan=False)


class MaterialBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=50, description="Material code, stored upper case")
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    material_type: Optional[str] = Field("Sản phẩm vật lý", max_length=50)
    primary_unit: str = Field("Tấn", min_length=1, max_length=20)
    secondary_unit: str = Field("m³", min_length=1, max_length=20)
    purchase_price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    sale_price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    wholesale_price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    vat_percentage: Optional[float] = Field(0, ge=0, le=100, allow_inf_nan=False)
    min_stock: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    is_active: bool = True

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v: Any) -> Any:
        return _upper_code(v)


class MaterialCreate(MaterialBase):
    """Create a material; density defaults to DEFAULT_DENSITY"""
    density: Optional[float] = Field(None, description="Tấn per m³", allow_inf_nan=False)
    initial_stocks: List[InitialStock] = Field(default_factory=list)


class MaterialUpdate(BaseModel):
    """Density changes are recorded in the density history"""
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = None
    material_type: Optional[str] = None
    primary_unit: Optional[str] = Field(None, min_length=1, max_length=20)
    secondary_unit: Optional[str] = Field(None, min_length=1, max_length=20)
    purchase_price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    sale_price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    wholesale_price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    vat_percentage: Optional[float] = Field(None, ge=0, le=100, allow_inf_nan=False)
    min_stock: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    is_active: Optional[bool] = None
    density: Optional[float] = Field(None, allow_inf_nan=False)
    density_reason: Optional[str] = Field(None, max_length=200)

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v: Any) -> Any:
        return _upper_code(v)


class MaterialResponse(MaterialBase):
    id: int
    current_density: float
    created_at: datetime
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    is_deleted: bool = False

    class Config:
        from_attributes = True


class DensityChange(BaseModel):
    density: float = Field(..., description="New density, must be > 0", allow_inf_nan=False)
    reason: Optional[str] = Field(None, max_length=200)


class DensityHistoryResponse(BaseModel):
    id: int
    material_id: int
    density: float
    effective_from: datetime
    effective_to: Optional[datetime] = None
    reason: Optional[str] = None
    created_by: Optional[str] = None
    is_open: bool = False

    class Config:
        from_attributes = True


class DensityAtResponse(BaseModel):
    material_id: int
    as_of: date
    density: float
    fallback: bool = Field(False, description="No history existed, the default of 1 was used")
