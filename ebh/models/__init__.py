# ORM models

from ebh.models.material import Material, MaterialDensityHistory, MaterialCategory, MaterialUnit
from ebh.models.site import Warehouse, Project
from ebh.models.vehicle import TransportUnit, Vehicle
from ebh.models.receipt import Receipt, ReceiptItem
from ebh.models.transport import TransportRecord
from ebh.models.system import InventorySnapshot, SystemSetting

__all__ = [
    "Material",
    "MaterialDensityHistory",
    "MaterialCategory",
    "MaterialUnit",
    "Warehouse",
    "Project",
    "TransportUnit",
    "Vehicle",
    "Receipt",
    "ReceiptItem",
    "TransportRecord",
    "InventorySnapshot",
    "SystemSetting",
]
