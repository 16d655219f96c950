"""
Vehicle API
"""
from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ebh.core.deps import get_db
from ebh.models.vehicle import Vehicle, TransportUnit
from ebh.schemas.common import ApiResponse, Page, ok, paginate
from ebh.schemas.vehicle import VehicleCreate, VehicleUpdate, VehicleResponse
from ebh.services.records import get_active, ensure_unique, mark_deleted

router = APIRouter()


def build_vehicle_response(vehicle: Vehicle) -> VehicleResponse:
    return VehicleResponse(
        id=vehicle.id,
        plate_number=vehicle.plate_number,
        driver_name=vehicle.driver_name,
        driver_phone=vehicle.driver_phone,
        vehicle_type=vehicle.vehicle_type,
        capacity_tons=float(vehicle.capacity_tons) if vehicle.capacity_tons is not None else None,
        status=vehicle.status,
        transport_unit_id=vehicle.transport_unit_id,
        transport_unit_name=vehicle.transport_unit.name if vehicle.transport_unit else "",
        notes=vehicle.notes,
        is_active=vehicle.is_active,
        created_at=vehicle.created_at)


async def load_vehicle(db: AsyncSession, vehicle_id: int) -> Vehicle:
    await get_active(db, Vehicle, vehicle_id, "Vehicle")
    result = await db.execute(
        select(Vehicle)
        .options(selectinload(Vehicle.transport_unit))
        .where(Vehicle.id == vehicle_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


@router.get("/", response_model=ApiResponse[Page[VehicleResponse]])
async def list_vehicles(
    *,
    db: AsyncSession = Depends(get_db),
    search: Optional[str] = Query(None, description="Plate or driver"),
    transport_unit_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200)) -> Any:
    conditions = [Vehicle.deleted_at.is_(None)]
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Vehicle.plate_number.ilike(pattern), Vehicle.driver_name.ilike(pattern)))
    if transport_unit_id:
        conditions.append(Vehicle.transport_unit_id == transport_unit_id)
    if status:
        conditions.append(Vehicle.status == status)
    if is_active is not None:
        conditions.append(Vehicle.is_active.is_(is_active))

    count_result = await db.execute(select(func.count(Vehicle.id)).where(and_(*conditions)))
    total = count_result.scalar() or 0

    result = await db.execute(
        select(Vehicle).options(selectinload(Vehicle.transport_unit))
        .where(and_(*conditions))
        .order_by(Vehicle.plate_number).offset((page - 1) * limit).limit(limit)
    )
    vehicles = [build_vehicle_response(v) for v in result.scalars().all()]
    return ok(paginate(vehicles, total, page, limit))


@router.get("/{vehicle_id}", response_model=ApiResponse[VehicleResponse])
async def get_vehicle(
    *,
    db: AsyncSession = Depends(get_db),
    vehicle_id: int) -> Any:
    return ok(build_vehicle_response(await load_vehicle(db, vehicle_id)))


@router.post("/", response_model=ApiResponse[VehicleResponse], status_code=201)
async def create_vehicle(
    *,
    db: AsyncSession = Depends(get_db),
    vehicle_in: VehicleCreate) -> Any:
    if vehicle_in.transport_unit_id:
        await get_active(db, TransportUnit, vehicle_in.transport_unit_id, "Transport unit")
    await ensure_unique(db, Vehicle, Vehicle.plate_number, vehicle_in.plate_number, "Plate number")

    vehicle = Vehicle(**vehicle_in.model_dump())
    db.add(vehicle)
    await db.commit()
    return ok(build_vehicle_response(await load_vehicle(db, vehicle.id)), "Vehicle created")


@router.put("/{vehicle_id}", response_model=ApiResponse[VehicleResponse])
async def update_vehicle(
    *,
    db: AsyncSession = Depends(get_db),
    vehicle_id: int,
    vehicle_in: VehicleUpdate) -> Any:
    vehicle = await get_active(db, Vehicle, vehicle_id, "Vehicle")
    updates = vehicle_in.model_dump(exclude_unset=True)
    if updates.get("plate_number") and updates["plate_number"] != vehicle.plate_number:
        await ensure_unique(db, Vehicle, Vehicle.plate_number, updates["plate_number"], "Plate number", exclude_id=vehicle.id)
    if updates.get("transport_unit_id"):
        await get_active(db, TransportUnit, updates["transport_unit_id"], "Transport unit")

    for field, value in updates.items():
        if value is None and field in ("plate_number", "status", "is_active"):
            continue
        setattr(vehicle, field, value)
    await db.commit()
    return ok(build_vehicle_response(await load_vehicle(db, vehicle.id)), "Vehicle updated")


@router.delete("/{vehicle_id}", response_model=ApiResponse[None])
async def delete_vehicle(
    *,
    db: AsyncSession = Depends(get_db),
    vehicle_id: int) -> Any:
    vehicle = await get_active(db, Vehicle, vehicle_id, "Vehicle")
    mark_deleted(vehicle)
    vehicle.is_active = False
    await db.commit()
    return ok(message="Vehicle deleted")
