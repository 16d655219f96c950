"""
Report API - dashboard, inventory, financial and transport summaries
"""
from datetime import date, timedelta
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.config import settings
from ebh.core.deps import get_db
from ebh.schemas.common import ApiResponse, ok
from ebh.schemas.report import (
    DashboardResponse, InventoryRow, InventorySnapshotRow, DailyPoint,
    ProjectProfitReport, TransportReport,
)
from ebh.services import inventory, reports

router = APIRouter()


@router.get("/dashboard", response_model=ApiResponse[DashboardResponse])
async def get_dashboard(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    return ok(await reports.dashboard_snapshot(db))


@router.get("/inventory", response_model=ApiResponse[List[InventoryRow]])
async def get_inventory(
    *,
    db: AsyncSession = Depends(get_db),
    warehouse_id: Optional[int] = Query(None),
    material_id: Optional[int] = Query(None)) -> Any:
    """Current stock per (warehouse, material); negative positions are included"""
    return ok(await inventory.current_stock(db, warehouse_id=warehouse_id, material_id=material_id))


@router.get("/daily", response_model=ApiResponse[List[DailyPoint]])
async def get_daily_series(
    *,
    db: AsyncSession = Depends(get_db),
    from_date: Optional[date] = Query(None, description="Defaults to DASHBOARD_CHART_DAYS days ago"),
    to_date: Optional[date] = Query(None, description="Defaults to today")) -> Any:
    """Revenue, cost and profit for every day of the range"""
    to_date = to_date or date.today()
    from_date = from_date or to_date - timedelta(days=max(1, settings.DASHBOARD_CHART_DAYS) - 1)
    return ok(await reports.daily_series(db, from_date, to_date))


@router.get("/project-profit", response_model=ApiResponse[ProjectProfitReport])
async def get_project_profit(
    *,
    db: AsyncSession = Depends(get_db),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    project_id: Optional[int] = Query(None)) -> Any:
    return ok(await reports.project_profit(db, from_date, to_date, project_id))


@router.get("/transport", response_model=ApiResponse[TransportReport])
async def get_transport_report(
    *,
    db: AsyncSession = Depends(get_db),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    vehicle_id: Optional[int] = Query(None)) -> Any:
    return ok(await reports.transport_report(db, from_date, to_date, vehicle_id))


@router.get("/inventory-snapshots", response_model=ApiResponse[List[InventorySnapshotRow]])
async def get_inventory_snapshots(
    *,
    db: AsyncSession = Depends(get_db),
    snapshot_date: Optional[date] = Query(None, description="Defaults to the latest snapshot"),
    warehouse_id: Optional[int] = Query(None)) -> Any:
    snapshots = await inventory.list_snapshots(db, snapshot_date, warehouse_id)
    return ok([
        InventorySnapshotRow(
            snapshot_date=s.snapshot_date,
            warehouse_id=s.warehouse_id,
            warehouse_name=s.warehouse.name if s.warehouse else "",
            material_id=s.material_id,
            material_name=s.material.name if s.material else "",
            quantity_primary=float(s.quantity_primary),
            quantity_secondary=float(s.quantity_secondary))
        for s in snapshots
    ])
