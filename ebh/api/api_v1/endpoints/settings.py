"""
System settings API - company profile printed on receipts
"""
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.deps import get_db
from ebh.schemas.common import ApiResponse, ok
from ebh.schemas.lookup import SettingsUpdate
from ebh.services.system_settings import get_settings, upsert_settings

router = APIRouter()


@router.get("/", response_model=ApiResponse[Dict[str, Optional[str]]])
async def read_settings(*, db: AsyncSession = Depends(get_db)) -> Any:
    return ok(await get_settings(db))


@router.put("/", response_model=ApiResponse[Dict[str, Optional[str]]])
async def update_settings(*, db: AsyncSession = Depends(get_db), settings_in: SettingsUpdate) -> Any:
    return ok(await upsert_settings(db, settings_in.values), "Settings saved")
