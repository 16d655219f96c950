"""Response envelopes shared by every endpoint"""
from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """{"success": true, "data": ..., "message": ...}"""
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class Page(BaseModel, Generic[T]):
    """Paginated list"""
    items: List[T]
    total: int = Field(0, description="Total rows matching the filters")
    page: int = 1
    limit: int = 20
    total_pages: int = 0


def ok(data=None, message: Optional[str] = None) -> dict:
    return {"success": True, "data": data, "message": message}


def paginate(items: list, total: int, page: int, limit: int) -> dict:
    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": (total + limit - 1) // limit if limit else 0,
    }
