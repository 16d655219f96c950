"""
Receipt numbers

Format {PREFIX}{YYMMDD}{seq:03d}, e.g. PN240101001. The date part is the
receipt date. Soft-deleted receipts keep their numbers, so they still count
when the next sequence is picked. Concurrent writers may pick the same number;
the unique constraint on receipts.receipt_number rejects the second one and
the ledger retries with a fresh number.
"""

from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.errors import ValidationError
from ebh.models.receipt import Receipt, RECEIPT_PREFIXES


def prefix_for(receipt_type: str) -> str:
    try:
        return RECEIPT_PREFIXES[receipt_type]
    except KeyError:
        raise ValidationError(f"Unknown receipt type: {receipt_type}")


def parse_sequence(receipt_number: Optional[str], stem: str) -> int:
    """Sequence part of a number, 0 when it does not belong to stem"""
    if not receipt_number or not receipt_number.startswith(stem):
        return 0
    try:
        return int(receipt_number[len(stem):])
    except ValueError:
        return 0


async def generate_receipt_number(db: AsyncSession, prefix: str, receipt_date: Optional[date] = None) -> str:
    """Next free number for prefix on receipt_date"""
    receipt_date = receipt_date or date.today()
    stem = f"{prefix}{receipt_date.strftime('%y%m%d')}"

    result = await db.execute(
        select(Receipt.receipt_number).where(Receipt.receipt_number.like(f"{stem}%"))
    )
    # compared numerically so that sequence 1000 sorts after 999
    seq = max((parse_sequence(no, stem) for no in result.scalars().all()), default=0) + 1

    return f"{stem}{seq:03d}"
