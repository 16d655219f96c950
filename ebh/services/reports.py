"""
Report aggregator

Revenue is the money total of exports, cost the money total of purchases,
both taken from the cached receipt totals of non-deleted receipts.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from sqlalchemy import select, func, case, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ebh.core.config import settings
from ebh.core.errors import ValidationError
from ebh.models.material import Material
from ebh.models.receipt import Receipt
from ebh.models.site import Warehouse, Project
from ebh.models.transport import TransportRecord
from ebh.models.vehicle import Vehicle
from ebh.services.conversion import round_money, round_quantity, to_secondary, ZERO
from ebh.services.ledger import receipt_load_options

logger = logging.getLogger(__name__)


def _check_range(from_date: Optional[date], to_date: Optional[date]) -> None:
    if from_date and to_date and from_date > to_date:
        raise ValidationError(f"from_date {from_date} is after to_date {to_date}")


def _amount_of(kind: str):
    return func.coalesce(func.sum(case((Receipt.kind == kind, Receipt.total_amount), else_=0)), 0)


def profit_margin(profit: Decimal, revenue: Decimal) -> Decimal:
    """profit / revenue × 100, 0 without revenue"""
    if revenue <= 0:
        return Decimal("0.00")
    return (profit / revenue * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


async def daily_series(db: AsyncSession, from_date: date, to_date: date) -> List[dict]:
    """One bucket per calendar day in [from_date, to_date], empty days included"""
    _check_range(from_date, to_date)
    span = (to_date - from_date).days + 1
    if span > settings.REPORT_MAX_DAYS:
        raise ValidationError(f"Daily series covers {span} days, at most {settings.REPORT_MAX_DAYS} are allowed")

    result = await db.execute(
        select(
            Receipt.receipt_date,
            _amount_of("export").label("revenue"),
            _amount_of("purchase").label("cost"),
        )
        .where(
            Receipt.deleted_at.is_(None),
            Receipt.receipt_date >= from_date,
            Receipt.receipt_date <= to_date,
        )
        .group_by(Receipt.receipt_date)
    )
    by_day: Dict[date, tuple] = {row.receipt_date: (row.revenue, row.cost) for row in result.all()}

    series = []
    day = from_date
    while day <= to_date:
        revenue, cost = by_day.get(day, (0, 0))
        revenue, cost = round_money(revenue), round_money(cost)
        series.append({
            "date": day,
            "label": day.strftime("%d/%m"),
            "revenue": revenue,
            "cost": cost,
            "profit": revenue - cost,
        })
        day += timedelta(days=1)
    return series


async def project_profit(
    db: AsyncSession,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    project_id: Optional[int] = None,
) -> dict:
    """Purchases and exports grouped by project, with period totals"""
    _check_range(from_date, to_date)

    conditions = [Receipt.deleted_at.is_(None), Receipt.project_id.isnot(None)]
    if from_date:
        conditions.append(Receipt.receipt_date >= from_date)
    if to_date:
        conditions.append(Receipt.receipt_date <= to_date)
    if project_id:
        conditions.append(Receipt.project_id == project_id)

    result = await db.execute(
        select(
            Receipt.project_id,
            Project.code,
            Project.name,
            Project.status,
            _amount_of("purchase").label("total_purchase"),
            _amount_of("export").label("total_export"),
            func.sum(case((Receipt.kind == "purchase", 1), else_=0)).label("purchase_count"),
            func.sum(case((Receipt.kind == "export", 1), else_=0)).label("export_count"),
        )
        .join(Project, Receipt.project_id == Project.id)
        .where(and_(*conditions))
        .group_by(Receipt.project_id, Project.code, Project.name, Project.status)
        .order_by(Project.name)
    )

    projects = []
    total_purchase = total_export = ZERO
    for row in result.all():
        purchase, export = round_money(row.total_purchase), round_money(row.total_export)
        profit = export - purchase
        projects.append({
            "project_id": row.project_id,
            "project_code": row.code,
            "project_name": row.name,
            "status": row.status,
            "purchase_count": int(row.purchase_count or 0),
            "export_count": int(row.export_count or 0),
            "total_purchase": purchase,
            "total_export": export,
            "profit": profit,
            "profit_margin": profit_margin(profit, export),
        })
        total_purchase += purchase
        total_export += export

    total_profit = total_export - total_purchase
    return {
        "projects": projects,
        "totals": {
            "total_purchase": round_money(total_purchase),
            "total_export": round_money(total_export),
            "profit": round_money(total_profit),
            "profit_margin": profit_margin(total_profit, total_export),
        },
    }


def receipt_summary(receipt: Receipt) -> dict:
    """Compact receipt row for dashboards"""
    if receipt.is_purchase:
        counterpart = receipt.supplier_name or ""
    else:
        counterpart = receipt.customer_name or (receipt.project.name if receipt.project else "")
    return {
        "id": receipt.id,
        "receipt_number": receipt.receipt_number,
        "kind": receipt.kind,
        "receipt_type": receipt.receipt_type,
        "type_display": receipt.type_display,
        "receipt_date": receipt.receipt_date,
        "counterpart": counterpart,
        "warehouse_name": receipt.warehouse.name if receipt.warehouse else "",
        "project_name": receipt.project.name if receipt.project else "",
        "material_summary": receipt.material_summary,
        "total_quantity_primary": round_quantity(receipt.total_quantity_primary),
        "total_quantity_secondary": round_quantity(receipt.total_quantity_secondary),
        "total_amount": round_money(receipt.total_amount),
        "created_at": receipt.created_at,
    }


async def _count(db: AsyncSession, model, *conditions) -> int:
    result = await db.execute(
        select(func.count(model.id)).where(model.deleted_at.is_(None), *conditions)
    )
    return result.scalar() or 0


async def _recent(db: AsyncSession, kind: str, limit: int) -> List[dict]:
    result = await db.execute(
        select(Receipt)
        .options(*receipt_load_options())
        .where(Receipt.kind == kind, Receipt.deleted_at.is_(None))
        .order_by(Receipt.created_at.desc(), Receipt.id.desc())
        .limit(limit)
    )
    return [receipt_summary(r) for r in result.scalars().unique().all()]


async def dashboard_snapshot(db: AsyncSession, today: Optional[date] = None) -> dict:
    """Fixed-shape overview: counts, today's movements, this month, 7-day chart, latest receipts"""
    today = today or date.today()
    month_start = today.replace(day=1)
    chart_days = max(1, settings.DASHBOARD_CHART_DAYS)
    recent_limit = settings.DASHBOARD_RECENT_LIMIT

    counts = {
        "projects_total": await _count(db, Project),
        "projects_active": await _count(db, Project, Project.status == "active"),
        "materials_total": await _count(db, Material),
        "materials_active": await _count(db, Material, Material.is_active.is_(True)),
        "vehicles_total": await _count(db, Vehicle),
        "vehicles_active": await _count(db, Vehicle, Vehicle.is_active.is_(True), Vehicle.status != "inactive"),
        "warehouses_total": await _count(db, Warehouse),
        "warehouses_active": await _count(db, Warehouse, Warehouse.status == "active"),
    }

    result = await db.execute(
        select(
            Receipt.kind,
            func.count(Receipt.id).label("count"),
            func.coalesce(func.sum(Receipt.total_quantity_primary), 0).label("quantity_primary"),
            func.coalesce(func.sum(Receipt.total_quantity_secondary), 0).label("quantity_secondary"),
            func.coalesce(func.sum(Receipt.total_amount), 0).label("amount"),
        )
        .where(Receipt.deleted_at.is_(None), Receipt.receipt_date == today)
        .group_by(Receipt.kind)
    )
    today_stats = {
        kind: {"count": 0, "quantity_primary": ZERO, "quantity_secondary": ZERO, "amount": ZERO}
        for kind in ("purchase", "export")
    }
    for row in result.all():
        today_stats[row.kind] = {
            "count": row.count,
            "quantity_primary": round_quantity(row.quantity_primary),
            "quantity_secondary": round_quantity(row.quantity_secondary),
            "amount": round_money(row.amount),
        }

    result = await db.execute(
        select(_amount_of("export").label("revenue"), _amount_of("purchase").label("cost"))
        .where(
            Receipt.deleted_at.is_(None),
            Receipt.receipt_date >= month_start,
            Receipt.receipt_date <= today,
        )
    )
    row = result.one()
    revenue, cost = round_money(row.revenue), round_money(row.cost)

    return {
        "counts": counts,
        "today": {"date": today, "purchases": today_stats["purchase"], "exports": today_stats["export"]},
        "month": {
            "from_date": month_start,
            "to_date": today,
            "revenue": revenue,
            "cost": cost,
            "profit": revenue - cost,
            "profit_margin": profit_margin(revenue - cost, revenue),
        },
        "chart": await daily_series(db, today - timedelta(days=chart_days - 1), today),
        "recent_purchases": await _recent(db, "purchase", recent_limit),
        "recent_exports": await _recent(db, "export", recent_limit),
    }


async def transport_report(
    db: AsyncSession,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    vehicle_id: Optional[int] = None,
) -> dict:
    """Transport records of non-deleted receipts, summarised per vehicle"""
    _check_range(from_date, to_date)

    query = (
        select(TransportRecord)
        .options(selectinload(TransportRecord.receipt), selectinload(TransportRecord.material))
        .join(Receipt, TransportRecord.receipt_id == Receipt.id)
        .where(Receipt.deleted_at.is_(None))
        .order_by(TransportRecord.transport_date, TransportRecord.id)
    )
    if from_date:
        query = query.where(TransportRecord.transport_date >= from_date)
    if to_date:
        query = query.where(TransportRecord.transport_date <= to_date)
    if vehicle_id:
        query = query.where(TransportRecord.vehicle_id == vehicle_id)
    result = await db.execute(query)
    records = result.scalars().all()

    rows = []
    vehicles: Dict[str, dict] = {}
    for record in records:
        quantity_primary = round_quantity(record.quantity_primary)
        quantity_secondary = to_secondary(quantity_primary, record.density)
        fee = round_money(record.transport_fee)
        freight = record.freight_amount
        rows.append({
            "id": record.id,
            "receipt_id": record.receipt_id,
            "receipt_number": record.receipt.receipt_number,
            "transport_date": record.transport_date,
            "vehicle_id": record.vehicle_id,
            "vehicle_plate": record.vehicle_plate or "",
            "driver_name": record.driver_name or "",
            "transport_company": record.transport_company or "",
            "material_name": record.material.name if record.material else "",
            "quantity_primary": quantity_primary,
            "quantity_secondary": quantity_secondary,
            "unit_price": round_money(record.unit_price),
            "freight_amount": freight,
            "transport_fee": fee,
        })

        key = str(record.vehicle_id) if record.vehicle_id else (record.vehicle_plate or "-")
        summary = vehicles.setdefault(key, {
            "vehicle_id": record.vehicle_id,
            "vehicle_plate": record.vehicle_plate or "",
            "trips": 0,
            "quantity_primary": ZERO,
            "quantity_secondary": ZERO,
            "freight_amount": ZERO,
            "transport_fee": ZERO,
        })
        summary["trips"] += 1
        summary["quantity_primary"] += quantity_primary
        summary["quantity_secondary"] += quantity_secondary
        summary["freight_amount"] += freight
        summary["transport_fee"] += fee

    per_vehicle = sorted(vehicles.values(), key=lambda v: v["vehicle_plate"])
    return {
        "records": rows,
        "vehicles": per_vehicle,
        "totals": {
            "trips": len(rows),
            "quantity_primary": sum((v["quantity_primary"] for v in per_vehicle), ZERO),
            "quantity_secondary": sum((v["quantity_secondary"] for v in per_vehicle), ZERO),
            "freight_amount": sum((v["freight_amount"] for v in per_vehicle), ZERO),
            "transport_fee": sum((v["transport_fee"] for v in per_vehicle), ZERO),
        },
    }
