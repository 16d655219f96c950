"""
Density history

materials.current_density is a cached copy of the open history entry; both are
changed together by record_density_change and nowhere else. Entries cover
[effective_from, effective_to) and at most one per material is open.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional, Union

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.errors import ValidationError
from ebh.models.material import Material, MaterialDensityHistory
from ebh.services.conversion import to_decimal, round_density

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_DENSITY = Decimal("1")


@dataclass(frozen=True)
class DensityLookup:
    density: Decimal
    # True when no history exists and the default of 1 was used
    fallback: bool = False


def validate_density(value) -> Decimal:
    density = to_decimal(value)
    if density <= 0:
        raise ValidationError("Density must be greater than 0")
    return round_density(density)


def as_of_instant(value: Union[date, datetime], now: Optional[datetime] = None) -> datetime:
    """
    Instant used to look up the density for a receipt date: the end of that
    day, but never later than now (a receipt dated today uses today's latest
    density, a back-dated one uses the density that closed that day).
    """
    now = now or datetime.now()
    if isinstance(value, datetime):
        return min(value, now)
    return min(datetime.combine(value, time.max), now)


async def material_created(
    db: AsyncSession,
    material: Material,
    initial_density,
    reason: str = "Khởi tạo mới",
    actor: Optional[str] = None,
) -> MaterialDensityHistory:
    """Open the first history entry of a new material (flushed, not committed)"""
    density = validate_density(initial_density)
    entry = MaterialDensityHistory(
        material_id=material.id,
        density=density,
        effective_from=datetime.now(),
        effective_to=None,
        reason=reason,
        created_by=actor,
    )
    db.add(entry)
    material.current_density = density
    await db.flush()
    return entry


async def record_density_change(
    db: AsyncSession,
    material: Material,
    new_density,
    reason: Optional[str] = None,
    actor: Optional[str] = None,
) -> MaterialDensityHistory:
    """
    Change a material's density.

    Closes the open entry, opens a new one and updates the cached
    current_density. Runs in the caller's transaction; the caller commits.
    """
    density = validate_density(new_density)
    now = datetime.now()

    await db.execute(
        update(MaterialDensityHistory)
        .where(
            MaterialDensityHistory.material_id == material.id,
            MaterialDensityHistory.effective_to.is_(None),
        )
        .values(effective_to=now)
        .execution_options(synchronize_session="fetch")
    )

    entry = MaterialDensityHistory(
        material_id=material.id,
        density=density,
        effective_from=now,
        effective_to=None,
        reason=reason or "Cập nhật tỷ trọng",
        created_by=actor,
    )
    db.add(entry)
    old_density = material.current_density
    material.current_density = density
    await db.flush()

    logger.info(f"⚖️ Density of material {material.code}: {old_density} -> {density}")
    return entry


async def density_at(db: AsyncSession, material_id: int, as_of: Union[date, datetime]) -> DensityLookup:
    """Density in effect at as_of (a date means the end of that day)"""
    instant = as_of_instant(as_of)

    result = await db.execute(
        select(MaterialDensityHistory.density)
        .where(
            MaterialDensityHistory.material_id == material_id,
            MaterialDensityHistory.effective_from <= instant,
            or_(
                MaterialDensityHistory.effective_to.is_(None),
                MaterialDensityHistory.effective_to > instant,
            ),
        )
        .order_by(MaterialDensityHistory.effective_from.desc(), MaterialDensityHistory.id.desc())
        .limit(1)
    )
    density = result.scalar()
    if density is not None:
        return DensityLookup(round_density(density))

    # as_of predates the history: use the earliest known value
    result = await db.execute(
        select(MaterialDensityHistory.density)
        .where(MaterialDensityHistory.material_id == material_id)
        .order_by(MaterialDensityHistory.effective_from.asc(), MaterialDensityHistory.id.asc())
        .limit(1)
    )
    density = result.scalar()
    if density is not None:
        return DensityLookup(round_density(density))

    logger.warning(f"No density history for material {material_id}, defaulting to {DEFAULT_FALLBACK_DENSITY}")
    return DensityLookup(DEFAULT_FALLBACK_DENSITY, fallback=True)


async def density_history(db: AsyncSession, material_id: int) -> List[MaterialDensityHistory]:
    """History entries, newest first"""
    result = await db.execute(
        select(MaterialDensityHistory)
        .where(MaterialDensityHistory.material_id == material_id)
        .order_by(MaterialDensityHistory.effective_from.desc(), MaterialDensityHistory.id.desc())
    )
    return list(result.scalars().all())
