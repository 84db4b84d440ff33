"""Product model (catalog entry, read-only for the price pipeline)"""
import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func

from shelfprice.core.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    barcode = Column(String(32), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    brand = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
