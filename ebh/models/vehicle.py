"""
Vehicle models

Structure:
- Transport unit (hauling company)
  └── Vehicle
      - plate number (required, unique among non-deleted vehicles)
      - default driver

The driver actually on a trip is recorded on the transport record, since the
same truck may be driven by different people.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from ebh.db.base import Base


class TransportUnit(Base):
    """Đơn vị vận chuyển"""
    __tablename__ = "transport_units"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    phone = Column(String(30))
    address = Column(String(300))
    notes = Column(String(500))
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
    deleted_at = Column(DateTime, index=True)

    vehicles = relationship("Vehicle", back_populates="transport_unit")


class Vehicle(Base):
    """Xe"""
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    plate_number = Column(String(20), nullable=False, index=True, comment="Biển số xe")
    driver_name = Column(String(100))
    driver_phone = Column(String(30))
    vehicle_type = Column(String(50))
    capacity_tons = Column(DECIMAL(10, 2))
    # available | in_transit | maintenance | inactive
    status = Column(String(20), nullable=False, default="available")
    transport_unit_id = Column(Integer, ForeignKey("transport_units.id"), index=True)
    notes = Column(String(500))
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
    deleted_at = Column(DateTime, index=True)

    transport_unit = relationship("TransportUnit", back_populates="vehicles")

    @property
    def display_name(self) -> str:
        return self.plate_number
