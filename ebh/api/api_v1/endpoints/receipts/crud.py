"""
Receipt CRUD routes
"""

from datetime import date
from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ebh.core.deps import get_db, get_actor
from ebh.schemas.common import ApiResponse, Page, ok, paginate
from ebh.schemas.receipt import ReceiptCreate, ReceiptUpdate, ReceiptResponse
from ebh.services import ledger

from .core import build_receipt_response, KIND_LABELS


def build_crud_router(kind: str) -> APIRouter:
    router = APIRouter()
    label = KIND_LABELS[kind]

    @router.get("/", response_model=ApiResponse[Page[ReceiptResponse]])
    async def list_receipts(
        *,
        db: AsyncSession = Depends(get_db),
        receipt_type: Optional[str] = Query(None),
        warehouse_id: Optional[int] = Query(None),
        project_id: Optional[int] = Query(None),
        vehicle_id: Optional[int] = Query(None),
        search: Optional[str] = Query(None, description="Number, supplier, customer or notes"),
        start_date: Optional[date] = Query(None),
        end_date: Optional[date] = Query(None),
        include_deleted: bool = Query(False),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100)) -> Any:
        receipts, total = await ledger.list_receipts(
            db, kind,
            receipt_type=receipt_type,
            warehouse_id=warehouse_id,
            project_id=project_id,
            vehicle_id=vehicle_id,
            search=search,
            start_date=start_date,
            end_date=end_date,
            include_deleted=include_deleted,
            page=page,
            limit=limit,
        )
        return ok(paginate([build_receipt_response(r) for r in receipts], total, page, limit))

    @router.get("/{receipt_id}", response_model=ApiResponse[ReceiptResponse])
    async def get_receipt(
        *,
        db: AsyncSession = Depends(get_db),
        receipt_id: int) -> Any:
        """Deleted receipts stay readable"""
        receipt = await ledger.get_receipt(db, receipt_id, kind)
        return ok(build_receipt_response(receipt))

    @router.post("/", response_model=ApiResponse[ReceiptResponse], status_code=201)
    async def create_receipt(
        *,
        db: AsyncSession = Depends(get_db),
        actor: Optional[str] = Depends(get_actor),
        receipt_in: ReceiptCreate) -> Any:
        receipt = await ledger.create_receipt(db, kind, receipt_in, actor)
        return ok(build_receipt_response(receipt), f"{label} {receipt.receipt_number} created")

    @router.put("/{receipt_id}", response_model=ApiResponse[ReceiptResponse])
    async def update_receipt(
        *,
        db: AsyncSession = Depends(get_db),
        receipt_id: int,
        receipt_in: ReceiptUpdate) -> Any:
        receipt = await ledger.update_receipt(db, receipt_id, kind, receipt_in)
        return ok(build_receipt_response(receipt), f"{label} {receipt.receipt_number} updated")

    @router.delete("/{receipt_id}", response_model=ApiResponse[None])
    async def delete_receipt(
        *,
        db: AsyncSession = Depends(get_db),
        receipt_id: int) -> Any:
        receipt = await ledger.soft_delete_receipt(db, receipt_id, kind)
        return ok(message=f"{label} {receipt.receipt_number} deleted")

    return router
