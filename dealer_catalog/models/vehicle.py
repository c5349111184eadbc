import enum
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Float, Text, ForeignKey, TIMESTAMP, Enum
from sqlalchemy.orm import relationship
from dealer_catalog.database import Base


class VehicleStatus(str, enum.Enum):
    AVAILABLE = "available"
    RESERVED  = "reserved"
    SOLD      = "sold"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Vehicle(Base):
    __tablename__ = "vehicles"

    id                = Column(Integer, primary_key=True, index=True)
    categoryId        = Column("category_id", Integer, ForeignKey("categories.id"), nullable=False, index=True)
    make              = Column(String(100), nullable=False)
    model             = Column(String(100), nullable=False)
    year              = Column(Integer, nullable=False, index=True)
    mileage           = Column(Integer, default=0, nullable=False)
    price             = Column(Integer, nullable=False, index=True)
    engineType        = Column("engine_type", String(100), nullable=True)
    length            = Column(Float, nullable=True)
    width             = Column(Float, nullable=True)
    height            = Column(Float, nullable=True)
    condition         = Column(String(100), nullable=True)
    featuresJson      = Column("features_json", Text, nullable=False, default="[]")
    descriptionLocal  = Column("description_local",  Text, nullable=True)
    descriptionGlobal = Column("description_global", Text, nullable=True)
    status            = Column(
        Enum(VehicleStatus, name="vehicle_status", values_callable=lambda e: [m.value for m in e]),
        default=VehicleStatus.AVAILABLE, nullable=False, index=True,
    )
    createdAt         = Column("created_at", TIMESTAMP(timezone=True), default=utcnow, nullable=False, index=True)
    updatedAt         = Column("updated_at", TIMESTAMP(timezone=True), default=utcnow, nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    category = relationship("Category", back_populates="vehicles")
    images   = relationship(
        "VehicleImage", back_populates="vehicle",
        order_by="VehicleImage.order", passive_deletes="all",
    )

    def __repr__(self):
        return f"<Vehicle id={self.id} {self.make} {self.model} ({self.year})>"
