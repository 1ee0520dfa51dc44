from uuid import uuid4

from sqlalchemy import BigInteger, Column, DateTime, Float, String

from country_cache.database import Base


class Countries(Base):
    __tablename__ = "countries"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name = Column(String(100), nullable=False, unique=True)
    capital = Column(String(100))
    region = Column(String(100), index=True)
    population = Column(BigInteger, nullable=False, default=0)
    currency_code = Column(String(10), index=True)
    exchange_rate = Column(Float)
    estimated_gdp = Column(Float, index=True)
    flag_url = Column(String(255))
    last_refreshed_at = Column(DateTime(timezone=True), nullable=True)


class RefreshMeta(Base):
    """Key/value metadata written alongside each refresh batch."""

    __tablename__ = "refresh_meta"
    key = Column(String(64), primary_key=True)
    value = Column(String(64), nullable=False)


LAST_REFRESHED_KEY = "last_refreshed_at"
