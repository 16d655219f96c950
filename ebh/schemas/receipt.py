"""Purchase / export receipt schemas"""
from typing import Optional, List, Any
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, date


# ===== Transport record =====
class TransportRecordBase(BaseModel):
    """Transport record fields"""
    vehicle_id: Optional[int] = Field(None, description="Vehicle ID")
    transport_unit_id: Optional[int] = Field(None, description="Hauling company ID")
    material_id: Optional[int] = Field(None, description="Material hauled")
    transport_date: Optional[date] = Field(None, description="Defaults to the receipt date")
    transport_company: Optional[str] = Field(None, max_length=200)
    vehicle_plate: Optional[str] = Field(None, max_length=20, description="Defaults to the vehicle's plate")
    ticket_number: Optional[str] = Field(None, max_length=50, description="Weighbridge ticket")
    driver_name: Optional[str] = Field(None, max_length=100)
    quantity_primary: float = Field(default=0, ge=0, description="Hauled tons", allow_inf_nan=False)
    density: Optional[float] = Field(None, gt=0, description="Defaults to the material density at the receipt date", allow_inf_nan=False)
    unit_price: float = Field(default=0, ge=0, description="Freight per ton", allow_inf_nan=False)
    transport_fee: float = Field(default=0, ge=0, allow_inf_nan=False)
    origin: Optional[str] = Field(None, max_length=300)
    destination: Optional[str] = Field(None, max_length=300)
    notes: Optional[str] = None


class TransportRecordCreate(TransportRecordBase):
    pass


class TransportRecordResponse(TransportRecordBase):
    id: int
    receipt_id: int
    transport_date: date
    density: float
    quantity_secondary: float = 0
    freight_amount: float = 0
    vehicle_display: str = ""
    transport_unit_name: str = ""
    material_name: str = ""
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


def normalize_transport(value: Any) -> Any:
    """Accept a transport record as an object or as a list of at most one"""
    if isinstance(value, (list, tuple)):
        if len(value) == 0:
            return None
        if len(value) > 1:
            raise ValueError("A receipt has at most one transport record")
        return value[0]
    return value


# ===== Items =====
class ReceiptItemCreate(BaseModel):
    """Line item - exactly one of quantity_primary / quantity_secondary"""
    material_id: int = Field(..., description="Material ID")
    quantity_primary: Optional[float] = Field(None, description="Quantity in the primary unit (Tấn)", allow_inf_nan=False)
    quantity_secondary: Optional[float] = Field(None, description="Quantity in the secondary unit (m³)", allow_inf_nan=False)
    unit_price: float = Field(default=0, ge=0, description="Price per entered unit", allow_inf_nan=False)
    notes: Optional[str] = None


class ReceiptItemResponse(BaseModel):
    id: int
    receipt_id: int
    material_id: int
    material_code: str = ""
    material_name: str = ""
    primary_unit: str = ""
    secondary_unit: str = ""
    entered_unit: str
    quantity_primary: float
    quantity_secondary: float
    density_used: float
    density_fallback: bool = False
    unit_price: float
    unit_price_primary: float
    unit_price_secondary: float
    total_amount: float
    notes: Optional[str] = None

    class Config:
        from_attributes = True


# ===== Header =====
class ReceiptBase(BaseModel):
    receipt_date: Optional[date] = Field(None, description="Defaults to today")
    warehouse_id: Optional[int] = None
    project_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    supplier_name: Optional[str] = Field(None, max_length=200)
    supplier_phone: Optional[str] = Field(None, max_length=30)
    quarry_name: Optional[str] = Field(None, max_length=200)
    destination_site: Optional[str] = Field(None, max_length=300)
    invoice_number: Optional[str] = Field(None, max_length=50)
    customer_name: Optional[str] = Field(None, max_length=200)
    customer_phone: Optional[str] = Field(None, max_length=30)
    destination: Optional[str] = Field(None, max_length=300)
    notes: Optional[str] = None


class ReceiptCreate(ReceiptBase):
    """Create a receipt with its items and an optional transport record"""
    receipt_type: Optional[str] = Field(
        None, description="warehouse_import | direct_to_site for purchases, export for exports"
    )
    items: List[ReceiptItemCreate] = Field(default_factory=list)
    transport: Optional[TransportRecordCreate] = None

    @field_validator("transport", mode="before")
    @classmethod
    def single_transport(cls, v: Any) -> Any:
        return normalize_transport(v)


class ReceiptUpdate(ReceiptBase):
    """Header fields update in place; items, when given, replace all items"""
    receipt_type: Optional[str] = None
    items: Optional[List[ReceiptItemCreate]] = None


class ReceiptResponse(BaseModel):
    id: int
    receipt_number: str
    kind: str
    receipt_type: str
    type_display: str = ""
    receipt_date: date
    warehouse_id: Optional[int] = None
    warehouse_name: str = ""
    project_id: Optional[int] = None
    project_name: str = ""
    vehicle_id: Optional[int] = None
    vehicle_plate: str = ""
    supplier_name: Optional[str] = None
    supplier_phone: Optional[str] = None
    quarry_name: Optional[str] = None
    destination_site: Optional[str] = None
    invoice_number: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    destination: Optional[str] = None
    notes: Optional[str] = None
    total_amount: float = 0
    total_quantity_primary: float = 0
    total_quantity_secondary: float = 0
    material_summary: str = ""
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    is_deleted: bool = False
    items: List[ReceiptItemResponse] = []
    transport: Optional[TransportRecordResponse] = None

    class Config:
        from_attributes = True
