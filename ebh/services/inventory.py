"""
Inventory aggregator

Stock is never stored as a running balance: every call sums the items of all
non-deleted receipts that touch a warehouse, purchases positive and exports
negative. Negative positions are reported as they are so that data problems
stay visible. Snapshots are a daily copy of the result for history only.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select, func, case, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ebh.models.material import Material
from ebh.models.receipt import Receipt, ReceiptItem
from ebh.models.site import Warehouse
from ebh.models.system import InventorySnapshot
from ebh.services.conversion import round_quantity, to_decimal, ZERO
from ebh.services.records import get_active

logger = logging.getLogger(__name__)


def _signed(column):
    return case((Receipt.kind == "purchase", column), else_=-column)


def _directional(column, kind: str):
    return case((Receipt.kind == kind, column), else_=0)


async def current_stock(
    db: AsyncSession,
    warehouse_id: Optional[int] = None,
    material_id: Optional[int] = None,
) -> List[dict]:
    """One row per (warehouse, material) with a non-zero net position"""
    query = (
        select(
            Receipt.warehouse_id,
            ReceiptItem.material_id,
            func.coalesce(func.sum(_signed(ReceiptItem.quantity_primary)), 0).label("quantity_primary"),
            func.coalesce(func.sum(_signed(ReceiptItem.quantity_secondary)), 0).label("quantity_secondary"),
            Warehouse.code.label("warehouse_code"),
            Warehouse.name.label("warehouse_name"),
            Material.code.label("material_code"),
            Material.name.label("material_name"),
            Material.primary_unit,
            Material.secondary_unit,
            Material.current_density,
            Material.min_stock,
        )
        .join(Receipt, ReceiptItem.receipt_id == Receipt.id)
        .join(Warehouse, Receipt.warehouse_id == Warehouse.id)
        .join(Material, ReceiptItem.material_id == Material.id)
        .where(Receipt.deleted_at.is_(None), Receipt.warehouse_id.isnot(None))
        .group_by(
            Receipt.warehouse_id, ReceiptItem.material_id,
            Warehouse.code, Warehouse.name,
            Material.code, Material.name, Material.primary_unit, Material.secondary_unit,
            Material.current_density, Material.min_stock,
        )
        .order_by(Warehouse.name, Material.name)
    )
    if warehouse_id:
        query = query.where(Receipt.warehouse_id == warehouse_id)
    if material_id:
        query = query.where(ReceiptItem.material_id == material_id)

    result = await db.execute(query)

    rows = []
    for row in result.all():
        quantity_primary = round_quantity(row.quantity_primary)
        quantity_secondary = round_quantity(row.quantity_secondary)
        if quantity_primary == ZERO and quantity_secondary == ZERO:
            continue
        min_stock = to_decimal(row.min_stock) if row.min_stock is not None else None
        rows.append({
            "warehouse_id": row.warehouse_id,
            "warehouse_code": row.warehouse_code,
            "warehouse_name": row.warehouse_name,
            "material_id": row.material_id,
            "material_code": row.material_code,
            "material_name": row.material_name,
            "primary_unit": row.primary_unit,
            "secondary_unit": row.secondary_unit,
            "current_density": to_decimal(row.current_density),
            "quantity_primary": quantity_primary,
            "quantity_secondary": quantity_secondary,
            "is_negative": quantity_primary < 0 or quantity_secondary < 0,
            "is_low_stock": min_stock is not None and quantity_primary < min_stock,
        })
    return rows


async def warehouse_movements(db: AsyncSession, warehouse_id: int) -> List[dict]:
    """Per material totals in, out and net for one warehouse"""
    await get_active(db, Warehouse, warehouse_id, "Warehouse")

    result = await db.execute(
        select(
            ReceiptItem.material_id,
            Material.code.label("material_code"),
            Material.name.label("material_name"),
            Material.primary_unit,
            Material.secondary_unit,
            func.coalesce(func.sum(_directional(ReceiptItem.quantity_primary, "purchase")), 0).label("in_primary"),
            func.coalesce(func.sum(_directional(ReceiptItem.quantity_secondary, "purchase")), 0).label("in_secondary"),
            func.coalesce(func.sum(_directional(ReceiptItem.quantity_primary, "export")), 0).label("out_primary"),
            func.coalesce(func.sum(_directional(ReceiptItem.quantity_secondary, "export")), 0).label("out_secondary"),
            func.count(func.distinct(Receipt.id)).label("receipt_count"),
        )
        .join(Receipt, ReceiptItem.receipt_id == Receipt.id)
        .join(Material, ReceiptItem.material_id == Material.id)
        .where(Receipt.deleted_at.is_(None), Receipt.warehouse_id == warehouse_id)
        .group_by(
            ReceiptItem.material_id, Material.code, Material.name,
            Material.primary_unit, Material.secondary_unit,
        )
        .order_by(Material.name)
    )

    movements = []
    for row in result.all():
        in_primary, out_primary = round_quantity(row.in_primary), round_quantity(row.out_primary)
        in_secondary, out_secondary = round_quantity(row.in_secondary), round_quantity(row.out_secondary)
        movements.append({
            "material_id": row.material_id,
            "material_code": row.material_code,
            "material_name": row.material_name,
            "primary_unit": row.primary_unit,
            "secondary_unit": row.secondary_unit,
            "in_primary": in_primary,
            "in_secondary": in_secondary,
            "out_primary": out_primary,
            "out_secondary": out_secondary,
            "stock_primary": in_primary - out_primary,
            "stock_secondary": in_secondary - out_secondary,
            "receipt_count": row.receipt_count,
        })
    return movements


async def take_snapshot(db: AsyncSession, snapshot_date: Optional[date] = None) -> int:
    """Store today's positions, replacing rows already stored for that date"""
    snapshot_date = snapshot_date or date.today()
    rows = await current_stock(db)

    await db.execute(delete(InventorySnapshot).where(InventorySnapshot.snapshot_date == snapshot_date))
    for row in rows:
        db.add(InventorySnapshot(
            snapshot_date=snapshot_date,
            warehouse_id=row["warehouse_id"],
            material_id=row["material_id"],
            quantity_primary=row["quantity_primary"],
            quantity_secondary=row["quantity_secondary"],
        ))
    await db.commit()

    logger.info(f"📦 Inventory snapshot {snapshot_date}: {len(rows)} positions")
    return len(rows)


async def list_snapshots(
    db: AsyncSession,
    snapshot_date: Optional[date] = None,
    warehouse_id: Optional[int] = None,
) -> List[InventorySnapshot]:
    """Rows of snapshot_date, or of the latest snapshot when no date is given"""
    if snapshot_date is None:
        result = await db.execute(select(func.max(InventorySnapshot.snapshot_date)))
        snapshot_date = result.scalar()
        if snapshot_date is None:
            return []

    query = (
        select(InventorySnapshot)
        .options(selectinload(InventorySnapshot.warehouse), selectinload(InventorySnapshot.material))
        .where(InventorySnapshot.snapshot_date == snapshot_date)
        .order_by(InventorySnapshot.warehouse_id, InventorySnapshot.material_id)
    )
    if warehouse_id:
        query = query.where(InventorySnapshot.warehouse_id == warehouse_id)
    result = await db.execute(query)
    return list(result.scalars().all())
