"""
Material models

A material is measured in two units: the primary unit (mass, e.g. Tấn) and
the secondary unit (volume, e.g. m³). current_density is primary units per
secondary unit and is a cached copy of the open density history entry.
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from ebh.db.base import Base


class Material(Base):
    """Material (vật tư)"""
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    # unique among non-deleted materials, always upper case
    code = Column(String(50), nullable=False, index=True, comment="Mã hàng")
    name = Column(String(200), nullable=False, comment="Tên hàng")
    description = Column(Text)
    category = Column(String(100), comment="Nhóm hàng")
    material_type = Column(String(50), default="Sản phẩm vật lý")

    primary_unit = Column(String(20), nullable=False, default="Tấn")
    secondary_unit = Column(String(20), nullable=False, default="m³")
    # Tấn per m³; only changed through services.density.record_density_change
    current_density = Column(DECIMAL(10, 4), nullable=False, default=Decimal("1.5"))

    purchase_price = Column(DECIMAL(18, 2))
    sale_price = Column(DECIMAL(18, 2))
    wholesale_price = Column(DECIMAL(18, 2))
    vat_percentage = Column(DECIMAL(5, 2), default=Decimal("0"))
    min_stock = Column(DECIMAL(18, 3))

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
    deleted_at = Column(DateTime, index=True)

    density_history = relationship(
        "MaterialDensityHistory",
        back_populates="material",
        order_by="MaterialDensityHistory.effective_from.desc()",
    )

    def __repr__(self):
        return f"<Material {self.code} ρ={self.current_density}>"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class MaterialDensityHistory(Base):
    """Density timeline - [effective_from, effective_to), effective_to NULL = current"""
    __tablename__ = "material_density_history"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    density = Column(DECIMAL(10, 4), nullable=False)
    effective_from = Column(DateTime, nullable=False, default=datetime.now, index=True)
    effective_to = Column(DateTime, index=True)
    reason = Column(String(200))
    created_by = Column(String(100))
    created_at = Column(DateTime, default=datetime.now)

    material = relationship("Material", back_populates="density_history")

    def __repr__(self):
        return f"<DensityHistory {self.material_id}: {self.density} from {self.effective_from}>"

    @property
    def is_open(self) -> bool:
        return self.effective_to is None


class MaterialCategory(Base):
    """Material category lookup"""
    __tablename__ = "material_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime, default=datetime.now)


class MaterialUnit(Base):
    """Unit of measure lookup"""
    __tablename__ = "material_units"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(20), nullable=False, unique=True)
    created_at = Column(DateTime, default=datetime.now)
