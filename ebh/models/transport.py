"""
Transport record model

Logistics costing for one receipt: the haul's own quantity, freight price and
fee. It is independent of the receipt items and never touches inventory.
At most one record per receipt (unique receipt_id).
"""

from datetime import datetime, date
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, Date, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from ebh.db.base import Base


class TransportRecord(Base):
    """Vận chuyển"""
    __tablename__ = "transport_records"

    id = Column(Integer, primary_key=True, index=True)
    receipt_id = Column(Integer, ForeignKey("receipts.id"), nullable=False, unique=True, index=True)

    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), index=True)
    transport_unit_id = Column(Integer, ForeignKey("transport_units.id"), index=True)
    material_id = Column(Integer, ForeignKey("materials.id"))

    transport_date = Column(Date, nullable=False, default=date.today, index=True)
    transport_company = Column(String(200))
    vehicle_plate = Column(String(20))
    ticket_number = Column(String(50), comment="Số phiếu cân")
    driver_name = Column(String(100))

    quantity_primary = Column(DECIMAL(18, 3), nullable=False, default=Decimal("0.000"))
    density = Column(DECIMAL(10, 4), nullable=False, default=Decimal("1"))
    unit_price = Column(DECIMAL(18, 2), nullable=False, default=Decimal("0.00"), comment="Cước / Tấn")
    transport_fee = Column(DECIMAL(18, 2), nullable=False, default=Decimal("0.00"))

    origin = Column(String(300))
    destination = Column(String(300))
    notes = Column(Text)

    created_by = Column(String(100))
    created_at = Column(DateTime, default=datetime.now)

    receipt = relationship("Receipt", back_populates="transport_record")
    vehicle = relationship("Vehicle")
    transport_unit = relationship("TransportUnit")
    material = relationship("Material")

    def __repr__(self):
        return f"<TransportRecord receipt={self.receipt_id} vehicle={self.vehicle_plate}>"

    @property
    def freight_amount(self) -> Decimal:
        """Freight = quantity × unit price"""
        return (Decimal(str(self.quantity_primary or 0)) * Decimal(str(self.unit_price or 0))).quantize(Decimal("0.01"))
