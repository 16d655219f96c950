"""Report schemas"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime, date


class InventoryRow(BaseModel):
    """Derived stock of one material in one warehouse"""
    warehouse_id: int
    warehouse_code: str
    warehouse_name: str
    material_id: int
    material_code: str
    material_name: str
    primary_unit: str
    secondary_unit: str
    current_density: float
    quantity_primary: float
    quantity_secondary: float
    is_negative: bool = Field(False, description="More exported than received")
    is_low_stock: bool = False


class InventorySnapshotRow(BaseModel):
    snapshot_date: date
    warehouse_id: int
    warehouse_name: str = ""
    material_id: int
    material_name: str = ""
    quantity_primary: float
    quantity_secondary: float


class DailyPoint(BaseModel):
    date: date
    label: str = Field(..., description="DD/MM")
    revenue: float
    cost: float
    profit: float


class ProjectProfitRow(BaseModel):
    project_id: int
    project_code: str
    project_name: str
    status: str
    purchase_count: int = 0
    export_count: int = 0
    total_purchase: float
    total_export: float
    profit: float
    profit_margin: float


class ProjectProfitTotals(BaseModel):
    total_purchase: float
    total_export: float
    profit: float
    profit_margin: float


class ProjectProfitReport(BaseModel):
    projects: List[ProjectProfitRow]
    totals: ProjectProfitTotals


class ReceiptSummary(BaseModel):
    id: int
    receipt_number: str
    kind: str
    receipt_type: str
    type_display: str
    receipt_date: date
    counterpart: str = ""
    warehouse_name: str = ""
    project_name: str = ""
    material_summary: str = ""
    total_quantity_primary: float
    total_quantity_secondary: float
    total_amount: float
    created_at: datetime


class DashboardCounts(BaseModel):
    projects_total: int
    projects_active: int
    materials_total: int
    materials_active: int
    vehicles_total: int
    vehicles_active: int
    warehouses_total: int
    warehouses_active: int


class MovementStats(BaseModel):
    count: int
    quantity_primary: float
    quantity_secondary: float
    amount: float


class TodayStats(BaseModel):
    date: date
    purchases: MovementStats
    exports: MovementStats


class MonthStats(BaseModel):
    from_date: date
    to_date: date
    revenue: float
    cost: float
    profit: float
    profit_margin: float


class DashboardResponse(BaseModel):
    counts: DashboardCounts
    today: TodayStats
    month: MonthStats
    chart: List[DailyPoint]
    recent_purchases: List[ReceiptSummary]
    recent_exports: List[ReceiptSummary]


class TransportRow(BaseModel):
    id: int
    receipt_id: int
    receipt_number: str
    transport_date: date
    vehicle_id: Optional[int] = None
    vehicle_plate: str = ""
    driver_name: str = ""
    transport_company: str = ""
    material_name: str = ""
    quantity_primary: float
    quantity_secondary: float
    unit_price: float
    freight_amount: float
    transport_fee: float


class VehicleTransportSummary(BaseModel):
    vehicle_id: Optional[int] = None
    vehicle_plate: str = ""
    trips: int
    quantity_primary: float
    quantity_secondary: float
    freight_amount: float
    transport_fee: float


class TransportTotals(BaseModel):
    trips: int
    quantity_primary: float
    quantity_secondary: float
    freight_amount: float
    transport_fee: float


class TransportReport(BaseModel):
    records: List[TransportRow]
    vehicles: List[VehicleTransportSummary]
    totals: TransportTotals
