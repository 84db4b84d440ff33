"""Device model (anonymous submitter registry)"""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func

from shelfprice.core.database import Base


class Device(Base):
    __tablename__ = "devices"

    # Client-generated identifier, registered on first successful submission
    id = Column(String(64), primary_key=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
