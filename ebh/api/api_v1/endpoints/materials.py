"""
Material API
"""
from datetime import date
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.deps import get_db, get_actor
from ebh.models.material import Material, MaterialDensityHistory
from ebh.schemas.common import ApiResponse, Page, ok, paginate
from ebh.schemas.material import (
    MaterialCreate, MaterialUpdate, MaterialResponse,
    DensityChange, DensityHistoryResponse, DensityAtResponse,
)
from ebh.services import materials as material_service
from ebh.services.density import density_at, density_history
from ebh.services.records import get_active

router = APIRouter()


def build_material_response(material: Material) -> MaterialResponse:
    return MaterialResponse.model_validate(material)


def build_history_response(entry: MaterialDensityHistory) -> DensityHistoryResponse:
    return DensityHistoryResponse.model_validate(entry)


@router.get("/", response_model=ApiResponse[Page[MaterialResponse]])
async def list_materials(
    *,
    db: AsyncSession = Depends(get_db),
    search: Optional[str] = Query(None, description="Code or name"),
    category: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200)) -> Any:
    """List materials"""
    materials, total = await material_service.list_materials(
        db, search=search, category=category, is_active=is_active, page=page, limit=limit
    )
    return ok(paginate([build_material_response(m) for m in materials], total, page, limit))


@router.get("/{material_id}", response_model=ApiResponse[MaterialResponse])
async def get_material(
    *,
    db: AsyncSession = Depends(get_db),
    material_id: int) -> Any:
    material = await get_active(db, Material, material_id, "Material")
    return ok(build_material_response(material))


@router.post("/", response_model=ApiResponse[MaterialResponse], status_code=201)
async def create_material(
    *,
    db: AsyncSession = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
    material_in: MaterialCreate) -> Any:
    """Create a material; initial_stocks post opening balance receipts"""
    material = await material_service.create_material(db, material_in, actor)
    return ok(build_material_response(material), "Material created")


@router.put("/{material_id}", response_model=ApiResponse[MaterialResponse])
async def update_material(
    *,
    db: AsyncSession = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
    material_id: int,
    material_in: MaterialUpdate) -> Any:
    material = await material_service.update_material(db, material_id, material_in, actor)
    return ok(build_material_response(material), "Material updated")


@router.delete("/{material_id}", response_model=ApiResponse[None])
async def delete_material(
    *,
    db: AsyncSession = Depends(get_db),
    material_id: int) -> Any:
    await material_service.delete_material(db, material_id)
    return ok(message="Material deleted")


@router.get("/{material_id}/density-history", response_model=ApiResponse[List[DensityHistoryResponse]])
async def get_density_history(
    *,
    db: AsyncSession = Depends(get_db),
    material_id: int) -> Any:
    """Density history, newest first"""
    await get_active(db, Material, material_id, "Material")
    entries = await density_history(db, material_id)
    return ok([build_history_response(e) for e in entries])


@router.get("/{material_id}/density", response_model=ApiResponse[DensityAtResponse])
async def get_density(
    *,
    db: AsyncSession = Depends(get_db),
    material_id: int,
    as_of: Optional[date] = Query(None, description="Defaults to today")) -> Any:
    """Density in effect on a date"""
    await get_active(db, Material, material_id, "Material")
    as_of = as_of or date.today()
    lookup = await density_at(db, material_id, as_of)
    return ok(DensityAtResponse(material_id=material_id, as_of=as_of, density=lookup.density, fallback=lookup.fallback))


@router.post("/{material_id}/density", response_model=ApiResponse[DensityHistoryResponse], status_code=201)
async def change_density(
    *,
    db: AsyncSession = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
    material_id: int,
    change_in: DensityChange) -> Any:
    """Record a new density; posted receipts keep the density they were written with"""
    entry = await material_service.change_density(db, material_id, change_in.density, change_in.reason, actor)
    return ok(build_history_response(entry), "Density updated")
