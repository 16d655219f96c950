"""
Receipt API

Purchases and exports share the same routes, built per kind:
- core: response builders
- crud: list, read, create, update, delete
- transport: the receipt's transport record
"""

from fastapi import APIRouter
from .crud import build_crud_router
from .transport import build_transport_router


def build_receipt_router(kind: str) -> APIRouter:
    router = APIRouter()
    router.include_router(build_crud_router(kind))
    router.include_router(build_transport_router(kind))
    return router


purchases_router = build_receipt_router("purchase")
exports_router = build_receipt_router("export")
