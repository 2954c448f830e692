# server/tripboard/main.py

import logging
import os
import sys
import time
import uuid
from typing import Optional

import httpx
import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import search, trips
from .config import Settings
from .logging_config import configure_logging
from .planner import split_trips
from .schemas import DestinationQuery, PictureQuery, TripIn, WeatherQuery
from .store import InMemoryTripStore, TripStore

logger = logging.getLogger(__name__)

STATUS_CODE_FAILED_VALIDATION = 422


def _respond(fn: str, status: int, body) -> JSONResponse:
    logger.info("exiting %s: status=%s", fn, status)
    return JSONResponse(status_code=status, content=body)


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _client(request: Request) -> Optional[httpx.AsyncClient]:
    return request.app.state.http_client


def _store(request: Request) -> TripStore:
    return request.app.state.store


# ---------- Validation errors ----------
async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=STATUS_CODE_FAILED_VALIDATION,
        content={"message": "Invalid argument(s).", "errors": errors},
    )


# ---------- Search ----------
search_router = APIRouter()


@search_router.post("/destination")
async def find_destination(req: DestinationQuery, request: Request):
    logger.info("entering find_destination")
    cfg = _settings(request)
    status, body = await search.get_destination(
        req.query, cfg.geonames_username, cfg.timeout_ms, client=_client(request))
    return _respond("find_destination", status, body)


@search_router.post("/weather")
async def find_weather(req: WeatherQuery, request: Request):
    logger.info("entering find_weather: num_days=%s", req.num_days)
    cfg = _settings(request)
    status, body = await search.get_weather(
        req.lon, req.lat, req.num_days, cfg.weatherbit_api_key, cfg.timeout_ms,
        client=_client(request))
    return _respond("find_weather", status, body)


@search_router.post("/picture")
async def find_picture(req: PictureQuery, request: Request):
    logger.info("entering find_picture")
    cfg = _settings(request)
    status, body = await search.get_picture(
        req.name, req.country_name, cfg.pixabay_api_key, cfg.timeout_ms,
        client=_client(request))
    return _respond("find_picture", status, body)


# ---------- Search (canned data, not mounted in production) ----------
canned_router = APIRouter()


@canned_router.post("/destination")
async def find_destination_canned(req: DestinationQuery, request: Request):
    logger.info("entering find_destination_canned")
    status, body = search.get_destination_canned(_settings(request).canned_dir)
    return _respond("find_destination_canned", status, body)


@canned_router.post("/weather")
async def find_weather_canned(req: WeatherQuery, request: Request):
    logger.info("entering find_weather_canned")
    status, body = search.get_weather_canned(req.num_days, _settings(request).canned_dir)
    return _respond("find_weather_canned", status, body)


@canned_router.post("/picture")
async def find_picture_canned(req: PictureQuery, request: Request):
    logger.info("entering find_picture_canned")
    status, body = search.get_picture_canned(_settings(request).canned_dir)
    return _respond("find_picture_canned", status, body)


# ---------- Trips ----------
trips_router = APIRouter()


@trips_router.get("")
async def get_trips(request: Request):
    status, body = trips.list_trips(_store(request))
    return _respond("get_trips", status, body)


@trips_router.get("/categorized")
async def get_trips_categorized(request: Request):
    _, body = trips.list_trips(_store(request))
    ongoing, pending, past = split_trips(body, int(time.time() * 1000))
    return _respond("get_trips_categorized", 200,
                    {"ongoing": ongoing, "pending": pending, "past": past})


@trips_router.post("")
async def post_trip(req: TripIn, request: Request):
    logger.info("entering post_trip")
    status, body = trips.add_trip(_store(request), req)
    return _respond("post_trip", status, body)


@trips_router.delete("/{trip_id}")
async def delete_trip(trip_id: uuid.UUID, request: Request):
    logger.info("entering delete_trip: trip_id=%s", trip_id)
    status, body = trips.remove_trip(_store(request), str(trip_id))
    return _respond("delete_trip", status, body)


# ---------- App ----------
def create_app(settings: Optional[Settings] = None,
               store: Optional[TripStore] = None,
               http_client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """
    Build the application. `http_client` replaces the per-call httpx clients
    for every upstream request (tests pass one backed by a mock transport).
    """
    settings = settings or Settings.from_env()
    app = FastAPI(title="Tripboard", version="0.1.0")
    app.state.settings = settings
    app.state.store = store if store is not None else InMemoryTripStore()
    app.state.http_client = http_client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _validation_error)

    @app.get("/health")
    async def health():
        return {"ok": True}

    app.include_router(search_router, prefix="/search")
    if not settings.is_production:
        logger.info("adding canned search endpoints (env=%s)", settings.run_env)
        app.include_router(canned_router, prefix="/search/test")
    app.include_router(trips_router, prefix="/trips")
    return app


def run() -> None:
    try:
        settings = Settings.from_env()
    except ValueError as exc:
        # Also covers pydantic's ValidationError.
        configure_logging(os.getenv("LOG_LEVEL"))
        logger.error("invalid configuration: %s", exc)
        logger.error("aborting")
        sys.exit(2)
    configure_logging(settings.log_level)

    missing = settings.missing_credentials()
    for name in missing:
        logger.error("environment variable not set or empty: %s", name)
    if missing:
        logger.error("aborting")
        sys.exit(2)

    logger.info("starting Tripboard on %s:%s (env=%s)", settings.host, settings.port, settings.run_env)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
