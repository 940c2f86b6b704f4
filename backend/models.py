"""
SQLAlchemy models for the kiosk's local key/value storage.
"""
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class StoredValue(Base):
    """One localStorage-style entry; value is a JSON document."""
    __tablename__ = "local_storage"

    key = Column(String, primary_key=True, index=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False)
