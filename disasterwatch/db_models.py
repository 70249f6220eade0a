"""
Database models for disasterwatch.
"""

from sqlalchemy import Column, String, Float, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CacheEntry(Base):
    """
    Cache row for aggregated results.

    Each row carries its own absolute expiry so callers can pick a TTL
    per write. Expired rows stay until something prunes them.
    """
    __tablename__ = "cache"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    expires_at = Column(Float, nullable=False, index=True)
