"""
Turn raw country directory entries into cache records.

Nothing here does I/O or raises for bad optional input: missing or
malformed fields fall back to defaults so one odd entry never fails a
refresh.
"""

import math
import random
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Iterable, Iterator, Mapping, Optional

from country_cache.logging_config import create_logger

logger = create_logger(__name__)

MULTIPLIER_MIN = 1000
MULTIPLIER_MAX = 2000

Multiplier = Callable[[], float]


def uniform_multiplier() -> float:
    """Draw a GDP multiplier uniformly from [1000, 2000)."""
    return MULTIPLIER_MIN + random.random() * (MULTIPLIER_MAX - MULTIPLIER_MIN)


@dataclass(frozen=True)
class CountryRecord:
    name: str
    capital: Optional[str]
    region: Optional[str]
    population: int
    currency_code: Optional[str]
    exchange_rate: Optional[float]
    estimated_gdp: Optional[float]
    flag_url: Optional[str]
    last_refreshed_at: datetime

    def as_dict(self) -> dict:
        return asdict(self)


def _text(value) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


def _population(value) -> int:
    # bool is an int subclass but never a population
    if value is None or isinstance(value, bool):
        return 0
    try:
        population = value if isinstance(value, int) else int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(population, 0)


def _currency_code(currencies) -> Optional[str]:
    if not isinstance(currencies, (list, tuple)) or not currencies:
        return None
    first = currencies[0]
    if not isinstance(first, Mapping):
        return None
    return _text(first.get("code"))


def _rate(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(rate) or rate <= 0:
        return None
    return rate


def reconcile(
    raw: Mapping,
    rates: Mapping[str, float],
    now: datetime,
    multiplier: Multiplier = uniform_multiplier,
) -> CountryRecord:
    """
    Build a cache record from one raw country entry and the rate table.

    The estimate is ``population * multiplier() / rate`` when the entry's
    first currency has a usable rate, ``None`` when it does not, and ``0``
    when the entry has no currency at all.

    :param raw: One entry from the country directory
    :param rates: Currency code to exchange rate mapping
    :param now: Refresh timestamp shared by the whole batch
    :param multiplier: Zero-argument callable returning a value in [1000, 2000)
    """
    population = _population(raw.get("population"))
    currency_code = _currency_code(raw.get("currencies"))

    if currency_code is None:
        exchange_rate = None
        estimated_gdp = 0.0
    else:
        exchange_rate = _rate(rates.get(currency_code))
        if exchange_rate is None:
            estimated_gdp = None
        else:
            estimated_gdp = population * multiplier() / exchange_rate

    return CountryRecord(
        name=_text(raw.get("name")),
        capital=_text(raw.get("capital")),
        region=_text(raw.get("region")),
        population=population,
        currency_code=currency_code,
        exchange_rate=exchange_rate,
        estimated_gdp=estimated_gdp,
        flag_url=_text(raw.get("flag")),
        last_refreshed_at=now,
    )


def reconcile_all(
    raw_countries: Iterable[Mapping],
    rates: Mapping[str, float],
    now: datetime,
    multiplier: Multiplier = uniform_multiplier,
) -> Iterator[CountryRecord]:
    """Reconcile every entry, skipping those without a usable name."""
    for raw in raw_countries:
        if not isinstance(raw, Mapping) or _text(raw.get("name")) is None:
            logger.warning(f"Skipping country entry without a name: {raw!r:.80}")
            continue
        yield reconcile(raw, rates, now, multiplier)
