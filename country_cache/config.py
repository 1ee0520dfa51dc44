"""
Configuration for the country cache service.

Values come from the environment, optionally via a ``.env`` file.
"""

import os

from dotenv import load_dotenv

from country_cache.exceptions import ConfigurationError

load_dotenv()

MYSQL_USERNAME = os.getenv("MYSQL_USERNAME")
MYSQL_HOST = os.getenv("MYSQL_HOST")
MYSQL_PORT = os.getenv("MYSQL_PORT", "3306")
MYSQL_PASSWORD = os.getenv("MYSQL_PASSWORD")
MYSQL_DATABASE = os.getenv("MYSQL_DATABASE", "railway")


def build_database_url() -> str:
    """Pick the database URL: explicit ``DATABASE_URL``, then MySQL, then SQLite."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    if MYSQL_HOST:
        return (
            f"mysql+pymysql://{MYSQL_USERNAME}:{MYSQL_PASSWORD}"
            f"@{MYSQL_HOST}:{MYSQL_PORT}/{MYSQL_DATABASE}"
        )
    return "sqlite:///./countries.db"


DATABASE_URL = build_database_url()

COUNTRIES_API_URL = os.getenv(
    "COUNTRIES_API_URL",
    "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies",
)
RATES_API_URL = os.getenv("RATES_API_URL", "https://open.er-api.com/v6/latest/USD")

EXTERNAL_TIMEOUT_MS = os.getenv("EXTERNAL_TIMEOUT_MS", "15000")
CACHE_IMAGE_PATH = os.getenv("CACHE_IMAGE_PATH", os.path.join("cache", "summary.png"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "8080")


def _positive_number(name: str, value: str, cast=float):
    try:
        number = cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e
    if number <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")
    return number


def external_timeout() -> float:
    """External fetch timeout in seconds."""
    return _positive_number("EXTERNAL_TIMEOUT_MS", EXTERNAL_TIMEOUT_MS) / 1000.0


def server_port() -> int:
    return _positive_number("PORT", PORT, cast=int)


def validate_config() -> None:
    """
    Check settings that would otherwise fail late.

    :raises ConfigurationError: If a setting is missing or invalid
    """
    external_timeout()
    server_port()
    if not DATABASE_URL:
        raise ConfigurationError("DATABASE_URL is empty")
    if not CACHE_IMAGE_PATH:
        raise ConfigurationError("CACHE_IMAGE_PATH is empty")
    for name, url in (("COUNTRIES_API_URL", COUNTRIES_API_URL), ("RATES_API_URL", RATES_API_URL)):
        if not url.startswith(("http://", "https://")):
            raise ConfigurationError(f"{name} must be an http(s) URL, got {url!r}")
