"""
Lookup API - material categories and units
"""
from typing import Any, List
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.deps import get_db
from ebh.core.errors import DuplicateError
from ebh.models.material import MaterialCategory, MaterialUnit
from ebh.schemas.common import ApiResponse, ok
from ebh.schemas.lookup import LookupCreate, LookupResponse

router = APIRouter()


async def _list(db: AsyncSession, model) -> list:
    result = await db.execute(select(model).order_by(model.name))
    return [LookupResponse.model_validate(row) for row in result.scalars().all()]


async def _create(db: AsyncSession, model, name: str, label: str) -> LookupResponse:
    row = model(name=name.strip())
    db.add(row)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateError(f"{label} '{name.strip()}' already exists")
    await db.refresh(row)
    return LookupResponse.model_validate(row)


@router.get("/categories", response_model=ApiResponse[List[LookupResponse]])
async def list_categories(*, db: AsyncSession = Depends(get_db)) -> Any:
    return ok(await _list(db, MaterialCategory))


@router.post("/categories", response_model=ApiResponse[LookupResponse], status_code=201)
async def create_category(*, db: AsyncSession = Depends(get_db), lookup_in: LookupCreate) -> Any:
    return ok(await _create(db, MaterialCategory, lookup_in.name, "Category"), "Category created")


@router.get("/units", response_model=ApiResponse[List[LookupResponse]])
async def list_units(*, db: AsyncSession = Depends(get_db)) -> Any:
    return ok(await _list(db, MaterialUnit))


@router.post("/units", response_model=ApiResponse[LookupResponse], status_code=201)
async def create_unit(*, db: AsyncSession = Depends(get_db), lookup_in: LookupCreate) -> Any:
    return ok(await _create(db, MaterialUnit, lookup_in.name, "Unit"), "Unit created")
