"""Shared lookups for soft-deletable rows"""

from datetime import datetime
from typing import Any, Optional, Type

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.errors import NotFoundError, DuplicateError


async def get_active(db: AsyncSession, model: Type[Any], obj_id: Optional[int], label: str) -> Any:
    """Row by id, NotFoundError when missing or soft-deleted"""
    obj = await db.get(model, obj_id) if obj_id is not None else None
    if obj is None or getattr(obj, "deleted_at", None) is not None:
        raise NotFoundError(f"{label} {obj_id} not found")
    return obj


async def ensure_unique(
    db: AsyncSession,
    model: Type[Any],
    column,
    value: Any,
    label: str,
    exclude_id: Optional[int] = None,
) -> None:
    """DuplicateError when another non-deleted row already holds value"""
    query = select(func.count()).select_from(model).where(column == value)
    if hasattr(model, "deleted_at"):
        query = query.where(model.deleted_at.is_(None))
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)
    result = await db.execute(query)
    if result.scalar():
        raise DuplicateError(f"{label} '{value}' already exists")


def mark_deleted(obj: Any) -> bool:
    """Set deleted_at once; False when the row was already deleted"""
    if obj.deleted_at is not None:
        return False
    obj.deleted_at = datetime.now()
    return True
