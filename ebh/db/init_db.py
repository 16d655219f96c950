import asyncio
import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.config import settings
from ebh.db.session import engine, SessionLocal
from ebh.db.base import Base

# every model must be imported before create_all
from ebh.models import (
    Material, MaterialDensityHistory, MaterialCategory, MaterialUnit,
    Warehouse, Project, TransportUnit, Vehicle,
    Receipt, ReceiptItem, TransportRecord, InventorySnapshot, SystemSetting
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ["Cát", "Đá", "Sỏi", "Đất", "Xi măng", "Gạch"]


def default_units() -> list:
    return [settings.DEFAULT_PRIMARY_UNIT, settings.DEFAULT_SECONDARY_UNIT, "Kg", "Bao", "Viên", "Chuyến"]


async def ensure_tables_exist() -> None:
    """
    Create missing tables (called at startup)
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_lookups(db: AsyncSession) -> int:
    """Insert the default categories and units that are missing"""
    added = 0
    for model, names in ((MaterialCategory, DEFAULT_CATEGORIES), (MaterialUnit, default_units())):
        result = await db.execute(select(model.name))
        existing = set(result.scalars().all())
        for name in names:
            if name not in existing:
                db.add(model(name=name))
                existing.add(name)
                added += 1
    if added:
        await db.commit()
        logger.info(f"🌱 Seeded {added} lookup value(s)")
    return added


async def init_db() -> None:
    """
    Create all tables and seed lookups
    """
    await ensure_tables_exist()
    async with SessionLocal() as db:
        await seed_lookups(db)


if __name__ == "__main__":
    asyncio.run(init_db())
