"""
Transport unit (hauling company) API
"""
from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.deps import get_db
from ebh.models.vehicle import TransportUnit, Vehicle
from ebh.schemas.common import ApiResponse, Page, ok, paginate
from ebh.schemas.vehicle import TransportUnitCreate, TransportUnitUpdate, TransportUnitResponse
from ebh.services.records import get_active, ensure_unique, mark_deleted

router = APIRouter()


async def vehicle_count(db: AsyncSession, unit_id: int) -> int:
    result = await db.execute(
        select(func.count(Vehicle.id)).where(Vehicle.transport_unit_id == unit_id, Vehicle.deleted_at.is_(None))
    )
    return result.scalar() or 0


async def build_unit_response(db: AsyncSession, unit: TransportUnit) -> TransportUnitResponse:
    return TransportUnitResponse(
        id=unit.id,
        name=unit.name,
        phone=unit.phone,
        address=unit.address,
        notes=unit.notes,
        is_active=unit.is_active,
        vehicle_count=await vehicle_count(db, unit.id),
        created_at=unit.created_at)


@router.get("/", response_model=ApiResponse[Page[TransportUnitResponse]])
async def list_transport_units(
    *,
    db: AsyncSession = Depends(get_db),
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200)) -> Any:
    conditions = [TransportUnit.deleted_at.is_(None)]
    if search:
        conditions.append(TransportUnit.name.ilike(f"%{search}%"))
    if is_active is not None:
        conditions.append(TransportUnit.is_active.is_(is_active))

    count_result = await db.execute(select(func.count(TransportUnit.id)).where(and_(*conditions)))
    total = count_result.scalar() or 0

    result = await db.execute(
        select(TransportUnit).where(and_(*conditions))
        .order_by(TransportUnit.name).offset((page - 1) * limit).limit(limit)
    )
    units = [await build_unit_response(db, u) for u in result.scalars().all()]
    return ok(paginate(units, total, page, limit))


@router.get("/{unit_id}", response_model=ApiResponse[TransportUnitResponse])
async def get_transport_unit(
    *,
    db: AsyncSession = Depends(get_db),
    unit_id: int) -> Any:
    unit = await get_active(db, TransportUnit, unit_id, "Transport unit")
    return ok(await build_unit_response(db, unit))


@router.post("/", response_model=ApiResponse[TransportUnitResponse], status_code=201)
async def create_transport_unit(
    *,
    db: AsyncSession = Depends(get_db),
    unit_in: TransportUnitCreate) -> Any:
    await ensure_unique(db, TransportUnit, TransportUnit.name, unit_in.name, "Transport unit")
    unit = TransportUnit(**unit_in.model_dump())
    db.add(unit)
    await db.commit()
    await db.refresh(unit)
    return ok(await build_unit_response(db, unit), "Transport unit created")


@router.put("/{unit_id}", response_model=ApiResponse[TransportUnitResponse])
async def update_transport_unit(
    *,
    db: AsyncSession = Depends(get_db),
    unit_id: int,
    unit_in: TransportUnitUpdate) -> Any:
    unit = await get_active(db, TransportUnit, unit_id, "Transport unit")
    updates = unit_in.model_dump(exclude_unset=True)
    if updates.get("name") and updates["name"] != unit.name:
        await ensure_unique(db, TransportUnit, TransportUnit.name, updates["name"], "Transport unit", exclude_id=unit.id)

    for field, value in updates.items():
        if value is None and field in ("name", "is_active"):
            continue
        setattr(unit, field, value)
    await db.commit()
    await db.refresh(unit)
    return ok(await build_unit_response(db, unit), "Transport unit updated")


@router.delete("/{unit_id}", response_model=ApiResponse[None])
async def delete_transport_unit(
    *,
    db: AsyncSession = Depends(get_db),
    unit_id: int) -> Any:
    unit = await get_active(db, TransportUnit, unit_id, "Transport unit")
    mark_deleted(unit)
    unit.is_active = False
    await db.commit()
    return ok(message="Transport unit deleted")
