"""Company profile key/value settings, printed on receipts"""

import logging
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.errors import ValidationError
from ebh.models.system import SystemSetting

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, str] = {
    "company_name": "CÔNG TY TNHH EBH",
    "company_address": "",
    "company_phone": "",
    "company_tax_code": "",
    "company_bank_account": "",
    "company_bank_name": "",
    "receipt_footer": "",
}


async def get_settings(db: AsyncSession) -> Dict[str, Optional[str]]:
    """Stored values over the defaults"""
    result = await db.execute(select(SystemSetting))
    values: Dict[str, Optional[str]] = dict(DEFAULT_SETTINGS)
    for setting in result.scalars().all():
        values[setting.key] = setting.value
    return values


async def upsert_settings(db: AsyncSession, values: Dict[str, Optional[str]]) -> Dict[str, Optional[str]]:
    """Insert or overwrite the given keys, others are left alone"""
    unknown = sorted(set(values) - set(DEFAULT_SETTINGS))
    if unknown:
        raise ValidationError(f"Unknown setting(s): {', '.join(unknown)}")

    result = await db.execute(select(SystemSetting).where(SystemSetting.key.in_(list(values))))
    existing = {s.key: s for s in result.scalars().all()}
    for key, value in values.items():
        if key in existing:
            existing[key].value = value
        else:
            db.add(SystemSetting(key=key, value=value))
    await db.commit()

    logger.info(f"⚙️ Settings updated: {', '.join(sorted(values))}")
    return await get_settings(db)
