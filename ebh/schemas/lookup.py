"""Lookup and system setting schemas"""
from typing import Dict, Optional
from pydantic import BaseModel, Field
from datetime import datetime


class LookupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class LookupResponse(BaseModel):
    id: int
    name: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SettingsUpdate(BaseModel):
    values: Dict[str, Optional[str]] = Field(..., description="Keys to insert or overwrite")
