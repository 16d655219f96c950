"""
Warehouse API
"""
import secrets
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.deps import get_db, get_actor
from ebh.models.site import Warehouse
from ebh.schemas.common import ApiResponse, Page, ok, paginate
from ebh.schemas.report import InventoryRow
from ebh.schemas.site import WarehouseCreate, WarehouseUpdate, WarehouseResponse, WarehouseMovementResponse
from ebh.services.inventory import current_stock, warehouse_movements
from ebh.services.records import get_active, ensure_unique, mark_deleted

router = APIRouter()


def generate_warehouse_code() -> str:
    """KHO- plus six upper-case hex digits"""
    return f"KHO-{secrets.token_hex(3).upper()}"


@router.get("/", response_model=ApiResponse[Page[WarehouseResponse]])
async def list_warehouses(
    *,
    db: AsyncSession = Depends(get_db),
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200)) -> Any:
    conditions = [Warehouse.deleted_at.is_(None)]
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Warehouse.code.ilike(pattern), Warehouse.name.ilike(pattern)))
    if status:
        conditions.append(Warehouse.status == status)

    count_result = await db.execute(select(func.count(Warehouse.id)).where(and_(*conditions)))
    total = count_result.scalar() or 0

    result = await db.execute(
        select(Warehouse).where(and_(*conditions))
        .order_by(Warehouse.name).offset((page - 1) * limit).limit(limit)
    )
    warehouses = [WarehouseResponse.model_validate(w) for w in result.scalars().all()]
    return ok(paginate(warehouses, total, page, limit))


@router.get("/{warehouse_id}", response_model=ApiResponse[WarehouseResponse])
async def get_warehouse(
    *,
    db: AsyncSession = Depends(get_db),
    warehouse_id: int) -> Any:
    warehouse = await get_active(db, Warehouse, warehouse_id, "Warehouse")
    return ok(WarehouseResponse.model_validate(warehouse))


@router.post("/", response_model=ApiResponse[WarehouseResponse], status_code=201)
async def create_warehouse(
    *,
    db: AsyncSession = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
    warehouse_in: WarehouseCreate) -> Any:
    code = warehouse_in.code or generate_warehouse_code()
    await ensure_unique(db, Warehouse, Warehouse.code, code, "Warehouse code")

    warehouse = Warehouse(**warehouse_in.model_dump(exclude={"code"}), code=code, created_by=actor)
    db.add(warehouse)
    await db.commit()
    await db.refresh(warehouse)
    return ok(WarehouseResponse.model_validate(warehouse), "Warehouse created")


@router.put("/{warehouse_id}", response_model=ApiResponse[WarehouseResponse])
async def update_warehouse(
    *,
    db: AsyncSession = Depends(get_db),
    warehouse_id: int,
    warehouse_in: WarehouseUpdate) -> Any:
    warehouse = await get_active(db, Warehouse, warehouse_id, "Warehouse")
    updates = warehouse_in.model_dump(exclude_unset=True)
    if updates.get("code") and updates["code"] != warehouse.code:
        await ensure_unique(db, Warehouse, Warehouse.code, updates["code"], "Warehouse code", exclude_id=warehouse.id)

    for field, value in updates.items():
        if value is None and field in ("code", "name", "status"):
            continue
        setattr(warehouse, field, value)
    await db.commit()
    await db.refresh(warehouse)
    return ok(WarehouseResponse.model_validate(warehouse), "Warehouse updated")


@router.delete("/{warehouse_id}", response_model=ApiResponse[None])
async def delete_warehouse(
    *,
    db: AsyncSession = Depends(get_db),
    warehouse_id: int) -> Any:
    warehouse = await get_active(db, Warehouse, warehouse_id, "Warehouse")
    mark_deleted(warehouse)
    await db.commit()
    return ok(message="Warehouse deleted")


@router.get("/{warehouse_id}/inventory", response_model=ApiResponse[List[InventoryRow]])
async def get_warehouse_inventory(
    *,
    db: AsyncSession = Depends(get_db),
    warehouse_id: int) -> Any:
    """Current stock of one warehouse"""
    await get_active(db, Warehouse, warehouse_id, "Warehouse")
    return ok(await current_stock(db, warehouse_id=warehouse_id))


@router.get("/{warehouse_id}/movements", response_model=ApiResponse[List[WarehouseMovementResponse]])
async def get_warehouse_movements(
    *,
    db: AsyncSession = Depends(get_db),
    warehouse_id: int) -> Any:
    """Totals in, out and net per material"""
    return ok(await warehouse_movements(db, warehouse_id))
