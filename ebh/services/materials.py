"""
Material registry

Creating a material opens its density history and may post opening balances.
Density is never written directly: updates go through record_density_change.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, func, and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.config import settings
from ebh.core.errors import AppError, DuplicateError, PersistenceError
from ebh.models.material import Material, MaterialDensityHistory
from ebh.models.site import Warehouse
from ebh.schemas.material import MaterialCreate, MaterialUpdate
from ebh.services.density import validate_density, material_created, record_density_change
from ebh.services.ledger import post_opening_balances, is_number_collision
from ebh.services.records import get_active, ensure_unique, mark_deleted

logger = logging.getLogger(__name__)


async def list_materials(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    category: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Material], int]:
    conditions = [Material.deleted_at.is_(None)]
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Material.code.ilike(pattern), Material.name.ilike(pattern)))
    if category:
        conditions.append(Material.category == category)
    if is_active is not None:
        conditions.append(Material.is_active.is_(is_active))

    total_result = await db.execute(select(func.count(Material.id)).where(and_(*conditions)))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Material)
        .where(and_(*conditions))
        .order_by(Material.code)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def create_material(db: AsyncSession, data: MaterialCreate, actor: Optional[str] = None) -> Material:
    """
    Create a material, open its density history and post its opening balances.
    All of it is committed together; a failing opening balance leaves nothing behind.
    """
    await ensure_unique(db, Material, Material.code, data.code, "Material code")
    density = validate_density(data.density if data.density is not None else settings.DEFAULT_DENSITY)
    for stock in data.initial_stocks:
        await get_active(db, Warehouse, stock.warehouse_id, "Warehouse")
    attempts = max(1, settings.RECEIPT_NUMBER_MAX_ATTEMPTS)

    for attempt in range(1, attempts + 1):
        material = Material(
            **data.model_dump(exclude={"density", "initial_stocks"}),
            current_density=density,
        )
        db.add(material)
        try:
            await db.flush()
            await material_created(db, material, density, actor=actor)
            receipts = await post_opening_balances(db, material, data.initial_stocks, actor)
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if not is_number_collision(e):
                logger.error(f"Saving material {data.code} failed: {e.orig}")
                raise PersistenceError(f"Could not save material: {e.orig}") from e
            logger.warning(f"Opening balance number already taken, retrying ({attempt}/{attempts})")
            continue
        except AppError:
            await db.rollback()
            raise

        logger.info(f"✅ Created material {material.code} (ρ={density})")
        if receipts:
            logger.info(f"📥 Posted {len(receipts)} opening balance receipt(s) for {material.code}")
        return material

    raise DuplicateError(f"Could not number the opening balances of {data.code}, please retry")


async def update_material(
    db: AsyncSession,
    material_id: int,
    data: MaterialUpdate,
    actor: Optional[str] = None,
) -> Material:
    """Update fields; a new density closes the open history entry"""
    material = await get_active(db, Material, material_id, "Material")
    updates = data.model_dump(exclude_unset=True, exclude={"density", "density_reason"})

    if updates.get("code") and updates["code"] != material.code:
        await ensure_unique(db, Material, Material.code, updates["code"], "Material code", exclude_id=material.id)

    for field, value in updates.items():
        if value is None and field in ("code", "name", "primary_unit", "secondary_unit", "is_active"):
            continue
        setattr(material, field, value)

    if data.density is not None:
        density = validate_density(data.density)
        if density != validate_density(material.current_density):
            await record_density_change(db, material, density, data.density_reason, actor)

    await db.commit()
    return material


async def change_density(
    db: AsyncSession,
    material_id: int,
    density,
    reason: Optional[str] = None,
    actor: Optional[str] = None,
) -> MaterialDensityHistory:
    material = await get_active(db, Material, material_id, "Material")
    entry = await record_density_change(db, material, density, reason, actor)
    await db.commit()
    return entry


async def delete_material(db: AsyncSession, material_id: int) -> Material:
    """Soft delete; posted receipts keep referencing the material"""
    material = await get_active(db, Material, material_id, "Material")
    mark_deleted(material)
    material.is_active = False
    await db.commit()
    logger.info(f"🗑️ Deleted material {material.code}")
    return material
