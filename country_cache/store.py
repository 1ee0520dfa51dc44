"""
Cache store over a SQLAlchemy session.

A ``CountryStore`` wraps exactly one session. Writes made through
``upsert_country`` and ``set_last_refreshed_at`` do not commit: the
caller owns the transaction they run in.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from country_cache import models
from country_cache.exceptions import NotFound
from country_cache.logging_config import create_logger
from country_cache.reconciler import CountryRecord

logger = create_logger(__name__)

Country = models.Countries

VALID_SORTS = {"gdp_desc", "gdp_asc", "population_desc", "population_asc", "name_asc", "name_desc"}
DEFAULT_SORT = "name_asc"


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as SQLite returns them) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _order_by(sort: str):
    gdp_missing = Country.estimated_gdp.is_(None)
    if sort == "gdp_desc":
        return (gdp_missing, Country.estimated_gdp.desc(), Country.name.asc())
    if sort == "gdp_asc":
        return (gdp_missing, Country.estimated_gdp.asc(), Country.name.asc())
    if sort == "population_desc":
        return (Country.population.desc(), Country.name.asc())
    if sort == "population_asc":
        return (Country.population.asc(), Country.name.asc())
    if sort == "name_desc":
        return (Country.name.desc(),)
    return (Country.name.asc(),)


class CountryStore:
    def __init__(self, db: Session):
        self.db = db
        self._by_name = None

    def _existing(self) -> dict:
        # one query per batch instead of one per country
        if self._by_name is None:
            self._by_name = {c.name.lower(): c for c in self.db.query(Country).all()}
        return self._by_name

    def upsert_country(self, record: CountryRecord) -> Country:
        """Insert the record, or overwrite every field of the row with the same name."""
        existing = self._existing()
        data = record.as_dict()
        key = record.name.lower()
        country = existing.get(key)
        if country is None:
            country = Country(**data)
            self.db.add(country)
            existing[key] = country
        else:
            for k, v in data.items():
                setattr(country, k, v)
        self.db.flush()
        return country

    def set_last_refreshed_at(self, ts: datetime) -> None:
        value = isoformat_utc(ts)
        meta = self.db.get(models.RefreshMeta, models.LAST_REFRESHED_KEY)
        if meta:
            meta.value = value
        else:
            self.db.add(models.RefreshMeta(key=models.LAST_REFRESHED_KEY, value=value))
        self.db.flush()

    def last_refreshed_at(self) -> Optional[datetime]:
        meta = self.db.get(models.RefreshMeta, models.LAST_REFRESHED_KEY)
        if meta is None:
            return None
        return to_utc(datetime.fromisoformat(meta.value.replace("Z", "+00:00")))

    def count(self) -> int:
        return self.db.query(Country).count()

    def list_countries(
        self,
        region: Optional[str] = None,
        currency: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> list:
        """
        List countries, optionally filtered by region and currency.

        Rows with no estimated GDP come last for both GDP sorts.

        Unknown sort keys fall back to name ascending.
        """
        sort = (sort or DEFAULT_SORT).lower()
        if sort not in VALID_SORTS:
            logger.warning(f"Unknown sort {sort!r}, using {DEFAULT_SORT}")
            sort = DEFAULT_SORT

        query = self.db.query(Country)
        if region:
            query = query.filter(func.lower(Country.region) == func.lower(region))
        if currency:
            query = query.filter(Country.currency_code == currency)
        return query.order_by(*_order_by(sort)).all()

    def get_by_name(self, name: str) -> Country:
        country = self.db.query(Country).filter(func.lower(Country.name) == func.lower(name)).first()
        if country is None:
            raise NotFound(name)
        return country

    def delete_by_name(self, name: str) -> None:
        country = self.get_by_name(name)
        self.db.delete(country)
        self.db.commit()

    def top_by_gdp(self, limit: int = 5) -> list:
        return (
            self.db.query(Country)
            .filter(Country.estimated_gdp.isnot(None))
            .order_by(Country.estimated_gdp.desc(), Country.name.asc())
            .limit(limit)
            .all()
        )


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 in UTC with a ``Z`` suffix."""
    value = to_utc(value)
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")
