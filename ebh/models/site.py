"""Warehouses and construction projects"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, Date, DECIMAL
from ebh.db.base import Base


class Warehouse(Base):
    """Kho - stock is derived per (warehouse, material) from the receipt ledger"""
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    address = Column(String(300))
    description = Column(Text)
    capacity = Column(DECIMAL(18, 3), default=0)
    status = Column(String(20), nullable=False, default="active")
    created_by = Column(String(100))
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
    deleted_at = Column(DateTime, index=True)

    def __repr__(self):
        return f"<Warehouse {self.code}>"


class Project(Base):
    """Construction project (công trình) - receipts may be booked against it"""
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    client_name = Column(String(200))
    client_phone = Column(String(30))
    address = Column(String(300))
    # planning | active | on_hold | completed | cancelled
    status = Column(String(20), nullable=False, default="active", index=True)
    start_date = Column(Date)
    end_date = Column(Date)
    budget = Column(DECIMAL(18, 2))
    created_by = Column(String(100))
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
    deleted_at = Column(DateTime, index=True)

    def __repr__(self):
        return f"<Project {self.code} ({self.status})>"

    @property
    def status_display(self) -> str:
        status_map = {
            "planning": "Lập kế hoạch",
            "active": "Đang thi công",
            "on_hold": "Tạm dừng",
            "completed": "Hoàn thành",
            "cancelled": "Đã hủy",
        }
        return status_map.get(self.status, self.status)
