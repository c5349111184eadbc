from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.orm import relationship
from dealer_catalog.database import Base


class Category(Base):
    __tablename__ = "categories"

    id         = Column(Integer, primary_key=True, index=True)
    nameLocal  = Column("name_local",  String(100), nullable=False)
    nameGlobal = Column("name_global", String(100), nullable=False)
    slug       = Column(String(100), unique=True, nullable=False, index=True)
    icon       = Column(Text, nullable=True)    # raw SVG markup

    # ─── Relationships ─────────────────────────────────────────────────────────
    vehicles = relationship("Vehicle", back_populates="category")

    def __repr__(self):
        return f"<Category id={self.id} slug={self.slug}>"
