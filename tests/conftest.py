"""Pytest configuration and shared fixtures for the country cache tests.

This module provides fixtures for:
- A temporary SQLite database and session factory
- Fake country and exchange-rate services using httpx.MockTransport
- Refresh coordinators wired to the fakes
- A FastAPI TestClient with dependency overrides
"""

from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from country_cache import models
from country_cache.database import make_engine, make_session_factory
from country_cache.gateway import ExternalSourceGateway
from country_cache.reconciler import reconcile
from country_cache.refresh import RefreshCoordinator
from country_cache.store import CountryStore

COUNTRIES_URL = "https://countries.test/v2/all"
RATES_URL = "https://rates.test/v6/latest/USD"

FIXED_NOW = datetime(2025, 10, 22, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Payload Fixtures
# ============================================================================

@pytest.fixture
def raw_countries() -> List[Dict]:
    """Country directory payload in the upstream v2 shape."""
    return [
        {
            "name": "Wakanda",
            "capital": "Birnin Zana",
            "region": "Africa",
            "population": 1000000,
            "flag": "https://flags.test/wk.svg",
            "currencies": [{"code": "WKD", "name": "Wakandan dollar"}],
        },
        {
            "name": "Atlantis",
            "region": "Oceania",
            "population": 500,
            "currencies": [],
        },
        {
            "name": "Genovia",
            "capital": "Pyrus",
            "region": "Europe",
            "population": 30000,
            "flag": "https://flags.test/gv.svg",
            "currencies": [{"code": "GVF"}],
        },
        {
            "name": "Zubrowka",
            "region": "Europe",
            "population": 2000,
            "currencies": [{"code": "EUR"}, {"code": "ZBK"}],
        },
    ]


@pytest.fixture
def rates() -> Dict[str, float]:
    return {"WKD": 10, "EUR": 0.5, "USD": 1}


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def engine(tmp_path):
    """Provide a file-backed SQLite engine with the schema created."""
    eng = make_engine(f"sqlite:///{tmp_path / 'countries.db'}")
    models.Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def seed(session_factory) -> Callable:
    """Write raw entries straight into the store with a fixed multiplier."""

    def _seed(entries, rate_table, now=FIXED_NOW, multiplier=1500.0):
        with session_factory() as session:
            store = CountryStore(session)
            for raw in entries:
                store.upsert_country(reconcile(raw, rate_table, now, lambda: multiplier))
            store.set_last_refreshed_at(now)
            session.commit()

    return _seed


# ============================================================================
# External Service Fakes
# ============================================================================

@pytest.fixture
def fake_sources() -> Callable:
    """Build an httpx.MockTransport answering both external services.

    Each source takes either a JSON payload, an int status code, or an
    exception class to raise.
    """

    def _make(countries=None, rate_payload=None, countries_handler=None, rates_handler=None):
        def respond(request: httpx.Request, outcome):
            if isinstance(outcome, type) and issubclass(outcome, Exception):
                raise outcome("simulated failure", request=request)
            if isinstance(outcome, int):
                return httpx.Response(outcome, json={"error": "down"})
            return httpx.Response(200, json=outcome)

        async def handler(request: httpx.Request):
            if request.url.host == "countries.test":
                if countries_handler is not None:
                    return await countries_handler(request)
                return respond(request, countries)
            if rates_handler is not None:
                return await rates_handler(request)
            return respond(request, rate_payload)

        return httpx.MockTransport(handler)

    return _make


@pytest.fixture
def make_gateway() -> Callable:
    def _make(transport: httpx.AsyncBaseTransport, timeout: float = 1.0) -> ExternalSourceGateway:
        return ExternalSourceGateway(
            countries_url=COUNTRIES_URL,
            rates_url=RATES_URL,
            timeout=timeout,
            transport=transport,
        )

    return _make


class RendererSpy:
    """Records every summary render call."""

    def __init__(self, error: Optional[Exception] = None):
        self.calls = []
        self.error = error

    def __call__(self, total, top, now):
        self.calls.append({"total": total, "top": [(c.name, c.estimated_gdp) for c in top], "now": now})
        if self.error is not None:
            raise self.error


@pytest.fixture
def renderer() -> RendererSpy:
    return RendererSpy()


@pytest.fixture
def make_coordinator(fake_sources, make_gateway, session_factory, renderer) -> Callable:
    """Build a coordinator over the fakes with a fixed multiplier and clock."""

    def _make(countries=None, rate_payload=None, multiplier=1500.0, now=FIXED_NOW, **kwargs):
        transport = kwargs.pop("transport", None) or fake_sources(countries, rate_payload, **kwargs)
        return RefreshCoordinator(
            gateway=make_gateway(transport),
            session_factory=session_factory,
            multiplier=lambda: multiplier,
            renderer=renderer,
            clock=lambda: now,
        )

    return _make


# ============================================================================
# HTTP Fixtures
# ============================================================================

@pytest.fixture
def image_path(tmp_path) -> str:
    return str(tmp_path / "cache" / "summary.png")


@pytest.fixture
def client(session_factory, image_path):
    """TestClient bound to the temporary database.

    Set ``client.coordinator`` before calling the refresh endpoint.
    """
    from country_cache.database import get_db
    from country_cache.main import app, get_image_path, get_refresh_coordinator

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    test_client = TestClient(app)
    test_client.coordinator = None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_path] = lambda: image_path
    app.dependency_overrides[get_refresh_coordinator] = lambda: test_client.coordinator
    yield test_client
    app.dependency_overrides.clear()
