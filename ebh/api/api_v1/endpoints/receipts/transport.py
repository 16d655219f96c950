"""
Transport record routes of a receipt
"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.deps import get_db, get_actor
from ebh.schemas.common import ApiResponse, ok
from ebh.schemas.receipt import TransportRecordCreate, TransportRecordResponse
from ebh.services import ledger

from .core import build_transport_response


def build_transport_router(kind: str) -> APIRouter:
    router = APIRouter()

    @router.get("/{receipt_id}/transport", response_model=ApiResponse[List[TransportRecordResponse]])
    async def list_transport_records(
        *,
        db: AsyncSession = Depends(get_db),
        receipt_id: int) -> Any:
        """Always a list, empty or with the receipt's single record"""
        records = await ledger.list_transport_records(db, receipt_id, kind)
        return ok([build_transport_response(r) for r in records])

    @router.post("/{receipt_id}/transport", response_model=ApiResponse[TransportRecordResponse], status_code=201)
    async def add_transport_record(
        *,
        db: AsyncSession = Depends(get_db),
        actor: Optional[str] = Depends(get_actor),
        receipt_id: int,
        transport_in: TransportRecordCreate) -> Any:
        record = await ledger.add_transport_record(db, receipt_id, kind, transport_in, actor)
        return ok(build_transport_response(record), "Transport record added")

    @router.delete("/{receipt_id}/transport/{transport_id}", response_model=ApiResponse[None])
    async def delete_transport_record(
        *,
        db: AsyncSession = Depends(get_db),
        receipt_id: int,
        transport_id: int) -> Any:
        await ledger.delete_transport_record(db, receipt_id, transport_id, kind)
        return ok(message="Transport record deleted")

    return router
