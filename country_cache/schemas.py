from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_serializer

from country_cache.store import isoformat_utc


class Country(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    capital: str | None = None
    region: str | None = None
    population: int = 0
    currency_code: str | None = None
    exchange_rate: float | None = None
    estimated_gdp: float | None = None
    flag_url: str | None = None
    last_refreshed_at: datetime | None = None

    @field_serializer("last_refreshed_at")
    def serialize_last_refreshed_at(self, value: datetime | None):
        return isoformat_utc(value)


class RefreshResponse(BaseModel):
    message: str
    total_countries: int
    last_refreshed_at: str


class Status(BaseModel):
    total_countries: int
    last_refreshed_at: str | None = None


class Message(BaseModel):
    message: str
