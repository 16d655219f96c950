"""API v1 router aggregation - single operator, no authentication"""
from fastapi import APIRouter

from ebh.api.api_v1.endpoints import (
    materials, warehouses, projects, vehicles, transport_units,
    reports, lookups, settings,
)
from ebh.api.api_v1.endpoints.receipts import purchases_router, exports_router

api_router = APIRouter()

# reference data
api_router.include_router(materials.router, prefix="/materials", tags=["Materials"])
api_router.include_router(warehouses.router, prefix="/warehouses", tags=["Warehouses"])
api_router.include_router(projects.router, prefix="/projects", tags=["Projects"])
api_router.include_router(transport_units.router, prefix="/transport-units", tags=["Transport units"])
api_router.include_router(vehicles.router, prefix="/vehicles", tags=["Vehicles"])

# receipt ledger
api_router.include_router(purchases_router, prefix="/purchases", tags=["Purchases"])
api_router.include_router(exports_router, prefix="/exports", tags=["Exports"])

# reports and system
api_router.include_router(reports.router, prefix="/reports", tags=["Reports"])
api_router.include_router(lookups.router, prefix="/lookups", tags=["Lookups"])
api_router.include_router(settings.router, prefix="/settings", tags=["Settings"])
