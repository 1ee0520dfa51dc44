import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from country_cache import config, models
from country_cache.database import SessionLocal, engine, get_db
from country_cache.exceptions import NotFound, PersistenceFailure, SourceUnavailable, ValidationFailure
from country_cache.gateway import ExternalSourceGateway
from country_cache.logging_config import create_logger
from country_cache.refresh import RefreshCoordinator
from country_cache.schemas import Country, Message, RefreshResponse, Status
from country_cache.store import CountryStore, isoformat_utc

logger = create_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config.validate_config()
    models.Base.metadata.create_all(bind=engine)
    logger.info(f"Country cache ready on {engine.url.render_as_string(hide_password=True)}")
    yield


app = FastAPI(title="Country Currency Cache", lifespan=lifespan)


def get_refresh_coordinator() -> RefreshCoordinator:
    return RefreshCoordinator(gateway=ExternalSourceGateway(), session_factory=SessionLocal)


def get_image_path() -> str:
    return config.CACHE_IMAGE_PATH


def _required_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationFailure({"name": "is required"})
    return name


@app.exception_handler(SourceUnavailable)
async def source_unavailable_handler(request: Request, exc: SourceUnavailable):
    return JSONResponse(
        status_code=503,
        content={"error": "External data source unavailable", "details": exc.details},
    )


@app.exception_handler(PersistenceFailure)
async def persistence_failure_handler(request: Request, exc: PersistenceFailure):
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"error": "Country not found"})


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "details": exc.details},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error = "Not found" if exc.status_code == 404 else exc.detail
    return JSONResponse(status_code=exc.status_code, content={"error": error})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/", response_model=Message)
def home():
    return {"message": "Country Cache API"}


@app.post("/countries/refresh", response_model=RefreshResponse)
async def refresh_countries(coordinator: RefreshCoordinator = Depends(get_refresh_coordinator)):
    result = await coordinator.refresh()
    return {
        "message": "Refresh completed",
        "total_countries": result.total_count,
        "last_refreshed_at": isoformat_utc(result.last_refreshed_at),
    }


@app.get("/countries", response_model=list[Country])
def get_countries(
    region: str | None = Query(None, description="Filter by region, e.g. Africa"),
    currency: str | None = Query(None, description="Filter by currency code, e.g. NGN"),
    sort: str | None = Query(None, description="gdp_desc, gdp_asc, population_desc, population_asc, name_asc (default), name_desc"),
    db: Session = Depends(get_db),
):
    return CountryStore(db).list_countries(region=region, currency=currency, sort=sort)


@app.get("/countries/image")
def get_summary_image(image_path: str = Depends(get_image_path)):
    if not os.path.exists(image_path):
        return JSONResponse(status_code=404, content={"error": "Summary image not found"})
    return FileResponse(image_path, media_type="image/png")


@app.get("/countries/{name}", response_model=Country)
def get_country(name: str, db: Session = Depends(get_db)):
    return CountryStore(db).get_by_name(_required_name(name))


@app.delete("/countries/{name}", response_model=Message)
def delete_country(name: str, db: Session = Depends(get_db)):
    name = _required_name(name)
    CountryStore(db).delete_by_name(name)
    logger.info(f"Deleted country {name}")
    return {"message": "Country deleted"}


@app.get("/status", response_model=Status)
def get_status(db: Session = Depends(get_db)):
    store = CountryStore(db)
    return {
        "total_countries": store.count(),
        "last_refreshed_at": isoformat_utc(store.last_refreshed_at()),
    }
