"""Daily inventory snapshots and key/value system settings"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, Date, ForeignKey, DECIMAL, UniqueConstraint
from sqlalchemy.orm import relationship
from ebh.db.base import Base


class InventorySnapshot(Base):
    """End-of-day stock per (warehouse, material), written by the scheduler"""
    __tablename__ = "inventory_snapshots"
    __table_args__ = (
        UniqueConstraint("snapshot_date", "warehouse_id", "material_id", name="uq_snapshot_day_position"),
    )

    id = Column(Integer, primary_key=True, index=True)
    snapshot_date = Column(Date, nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    quantity_primary = Column(DECIMAL(18, 3), nullable=False, default=Decimal("0.000"))
    quantity_secondary = Column(DECIMAL(18, 3), nullable=False, default=Decimal("0.000"))
    created_at = Column(DateTime, default=datetime.now)

    warehouse = relationship("Warehouse")
    material = relationship("Material")


class SystemSetting(Base):
    """Company profile printed on receipts"""
    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), nullable=False, unique=True)
    value = Column(Text)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
