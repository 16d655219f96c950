"""Dependencies - single operator, no authentication"""
from typing import AsyncGenerator, Optional

from fastapi import Header
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.db.session import SessionLocal


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database session dependency
    """
    async with SessionLocal() as session:
        yield session


async def get_actor(x_actor: Optional[str] = Header(None, max_length=100)) -> Optional[str]:
    """Creator reference recorded on writes (X-Actor header)"""
    return x_actor.strip() if x_actor and x_actor.strip() else None
