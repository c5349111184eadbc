from sqlalchemy import Column, Integer, String, ForeignKey, TIMESTAMP
from sqlalchemy.orm import relationship
from dealer_catalog.database import Base
from dealer_catalog.models.vehicle import utcnow


class VehicleImage(Base):
    __tablename__ = "vehicle_images"

    id           = Column(Integer, primary_key=True, index=True)
    vehicleId    = Column("vehicle_id", Integer, ForeignKey("vehicles.id", ondelete="CASCADE"),
                          nullable=False, index=True)
    filename     = Column(String(255), nullable=False, unique=True)
    url          = Column(String(500), nullable=False)
    thumbnailUrl = Column("thumbnail_url", String(500), nullable=False)
    order        = Column("display_order", Integer, nullable=False, default=0)
    uploadedAt   = Column("uploaded_at", TIMESTAMP(timezone=True), default=utcnow, nullable=False)

    vehicle = relationship("Vehicle", back_populates="images")

    @property
    def imagePath(self) -> str:
        return f"images/{self.filename}"

    @property
    def thumbnailPath(self) -> str:
        return f"thumbnails/thumb_{self.filename}"

    def __repr__(self):
        return f"<VehicleImage id={self.id} vehicleId={self.vehicleId} order={self.order}>"
