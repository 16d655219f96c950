"""
Receipt ledger models

One header table for both directions:
- purchase (phiếu nhập): material coming in, either into a warehouse
  (warehouse_import, PN...) or delivered straight to a site (direct_to_site, DS...)
- export (phiếu xuất): material leaving a warehouse (PX...)

Headers are never physically deleted; deleted_at removes a receipt from every
aggregation while keeping it readable for audit.
"""

from datetime import datetime, date
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Date, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from ebh.db.base import Base
from ebh.services.conversion import price_to_primary, price_to_secondary

RECEIPT_KINDS = ("purchase", "export")

PURCHASE_TYPES = ("warehouse_import", "direct_to_site")
EXPORT_TYPES = ("export",)

# receipt number prefix per receipt type
RECEIPT_PREFIXES = {
    "warehouse_import": "PN",
    "direct_to_site": "DS",
    "export": "PX",
}


class Receipt(Base):
    """Receipt header"""
    __tablename__ = "receipts"

    id = Column(Integer, primary_key=True, index=True)

    # {PREFIX}{YYMMDD}{seq:03d}, e.g. PN240101001
    receipt_number = Column(String(50), unique=True, nullable=False, index=True)

    kind = Column(String(20), nullable=False, index=True)
    receipt_type = Column(String(30), nullable=False, index=True)
    receipt_date = Column(Date, nullable=False, default=date.today, index=True)

    # counterpart
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), index=True)

    # purchase side
    supplier_name = Column(String(200))
    supplier_phone = Column(String(30))
    quarry_name = Column(String(200), comment="Mỏ / nơi lấy hàng")
    destination_site = Column(String(300), comment="Công trường nhận hàng trực tiếp")
    invoice_number = Column(String(50))

    # export side
    customer_name = Column(String(200))
    customer_phone = Column(String(30))
    destination = Column(String(300))

    notes = Column(Text)

    # cached totals, always recomputed from items
    total_amount = Column(DECIMAL(18, 2), nullable=False, default=Decimal("0.00"))
    total_quantity_primary = Column(DECIMAL(18, 3), nullable=False, default=Decimal("0.000"))
    total_quantity_secondary = Column(DECIMAL(18, 3), nullable=False, default=Decimal("0.000"))

    created_by = Column(String(100))
    created_at = Column(DateTime, default=datetime.now, index=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
    deleted_at = Column(DateTime, index=True)

    items = relationship(
        "ReceiptItem",
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="ReceiptItem.id",
    )
    transport_record = relationship(
        "TransportRecord",
        back_populates="receipt",
        cascade="all, delete-orphan",
        uselist=False,
    )
    warehouse = relationship("Warehouse")
    project = relationship("Project")
    vehicle = relationship("Vehicle")

    def __repr__(self):
        return f"<Receipt {self.receipt_number} ({self.kind})>"

    @property
    def is_purchase(self) -> bool:
        return self.kind == "purchase"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def type_display(self) -> str:
        type_map = {
            "warehouse_import": "Nhập kho",
            "direct_to_site": "Giao thẳng công trình",
            "export": "Xuất kho",
        }
        return type_map.get(self.receipt_type, self.receipt_type)

    @property
    def material_summary(self) -> str:
        names = []
        for item in self.items:
            name = item.material.name if item.material else ""
            if name and name not in names:
                names.append(name)
        return ", ".join(names)

    def recalculate_totals(self):
        """Recompute the cached totals from the items"""
        self.total_amount = sum((item.total_amount for item in self.items), Decimal("0.00"))
        self.total_quantity_primary = sum((item.quantity_primary for item in self.items), Decimal("0.000"))
        self.total_quantity_secondary = sum((item.quantity_secondary for item in self.items), Decimal("0.000"))


class ReceiptItem(Base):
    """Receipt line item

    density_used is copied from the density history when the item is written
    and never re-derived, so later density edits leave the item untouched.
    unit_price is per entered_unit.
    """
    __tablename__ = "receipt_items"

    id = Column(Integer, primary_key=True, index=True)
    receipt_id = Column(Integer, ForeignKey("receipts.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)

    # primary | secondary
    entered_unit = Column(String(10), nullable=False, default="primary")
    quantity_primary = Column(DECIMAL(18, 3), nullable=False)
    quantity_secondary = Column(DECIMAL(18, 3), nullable=False)
    density_used = Column(DECIMAL(10, 4), nullable=False)
    # no density history existed, density_used is the default of 1
    density_fallback = Column(Boolean, nullable=False, default=False)

    unit_price = Column(DECIMAL(18, 2), nullable=False, default=Decimal("0.00"))
    total_amount = Column(DECIMAL(18, 2), nullable=False, default=Decimal("0.00"))

    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.now)

    receipt = relationship("Receipt", back_populates="items")
    material = relationship("Material")

    def __repr__(self):
        return f"<ReceiptItem {self.material_id} {self.quantity_primary}/{self.quantity_secondary} @ {self.unit_price}>"

    @property
    def entered_quantity(self) -> Decimal:
        return self.quantity_secondary if self.entered_unit == "secondary" else self.quantity_primary

    @property
    def unit_price_primary(self) -> Decimal:
        if self.entered_unit == "secondary":
            return price_to_primary(self.unit_price, self.density_used)
        return Decimal(str(self.unit_price))

    @property
    def unit_price_secondary(self) -> Decimal:
        if self.entered_unit == "primary":
            return price_to_secondary(self.unit_price, self.density_used)
        return Decimal(str(self.unit_price))
