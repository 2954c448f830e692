import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from .config import CANNED_DIR
from .logging_config import sensitive
from .upstream import (
    DEFAULT_TIMEOUT_MS,
    Endpoint,
    NormalizedResult,
    call_upstream,
    canned_call,
)

logger = logging.getLogger(__name__)

GEONAMES_SEARCH_URL = "https://secure.geonames.org/searchJSON"
WEATHERBIT_CURRENT_URL = "https://api.weatherbit.io/v2.0/current"
WEATHERBIT_FORECAST_URL = "https://api.weatherbit.io/v2.0/forecast/daily"
WEATHERBIT_ICON_URL = "https://cdn.weatherbit.io/static/img/icons/{icon}.png"
PIXABAY_URL = "https://pixabay.com/api/"


def _url(base: str, params) -> str:
    return str(httpx.URL(base, params=params))


def _masked(url: str, secret: str) -> str:
    # The URL carries the credential percent-encoded, the same way `_url` does it.
    encoded = httpx.URL(params={"k": secret}).query.decode("ascii")[2:]
    return sensitive(url, secret, encoded)


def _build_url(endpoint: Endpoint, *args, **kwargs) -> Optional[str]:
    try:
        return endpoint.make_url(*args, **kwargs)
    except (ValueError, httpx.InvalidURL):
        # e.g. lone surrogates, which cannot be encoded
        logger.exception("could not build a request URL for the %s", endpoint.label)
        return None


# ---------- Destination (GeoNames search) ----------
def destination_url(query: str, username: str, max_rows: int = 1) -> str:
    """See https://www.geonames.org/export/geonames-search.html."""
    params = [("username", username), ("q", query), ("maxRows", str(max_rows))]
    params += [("featureClass", fc) for fc in ("H", "L", "P", "S", "T", "V")]
    params += [("lang", "en"), ("type", "json"), ("fuzzy", "0.9")]
    return _url(GEONAMES_SEARCH_URL, params)


def _extract_destination(data: Any) -> Dict[str, Any]:
    record = data["geonames"][0]
    return {
        "lon": record["lng"],
        "lat": record["lat"],
        "name": record["name"],
        "countryName": record["countryName"],
    }


DESTINATION = Endpoint(
    label="GeoNames Search API",
    make_url=destination_url,
    is_empty=lambda data: not data["geonames"],
    extract=_extract_destination,
    not_found_message="No destination found. Please check your spelling and try again.",
)


async def get_destination(query: str, username: str, timeout_ms: int = DEFAULT_TIMEOUT_MS,
                          client: Optional[httpx.AsyncClient] = None) -> NormalizedResult:
    # We only ever keep the first result, so ask for one row.
    error_message = f"Failed to find destination for query '{query}'."
    url = _build_url(DESTINATION, query, username, max_rows=1)
    if url is None:
        return 500, {"message": error_message}
    logger.info("built request URL %s", _masked(url, username))
    return await call_upstream(DESTINATION, url, error_message, timeout_ms, client=client)


def get_destination_canned(canned_dir: Path = CANNED_DIR) -> NormalizedResult:
    return canned_call(DESTINATION, canned_dir / "lamboing-geonames.json",
                       "Failed to find canned destination data.")


# ---------- Weather (WeatherBit current / daily forecast) ----------
def icon_url(icon: str) -> str:
    return WEATHERBIT_ICON_URL.format(icon=icon)


def _weather_url(base: str, lon: float, lat: float, api_key: str) -> str:
    params = [
        ("key", api_key),
        ("lang", "en"),
        ("units", "M"),  # metric
        ("lat", f"{lat:.5f}"),
        ("lon", f"{lon:.5f}"),
    ]
    return _url(base, params)


def weather_current_url(lon: float, lat: float, api_key: str) -> str:
    """See https://www.weatherbit.io/api/weather-current."""
    return _weather_url(WEATHERBIT_CURRENT_URL, lon, lat, api_key)


def weather_forecast_url(lon: float, lat: float, api_key: str) -> str:
    """See https://www.weatherbit.io/api/weather-forecast-16-day."""
    return _weather_url(WEATHERBIT_FORECAST_URL, lon, lat, api_key)


def _no_weather(data: Any) -> bool:
    return not data["data"]


def _describe(record: Dict[str, Any]) -> Dict[str, str]:
    return {
        "desc": record["weather"]["description"],
        "iconUrl": icon_url(record["weather"]["icon"]),
    }


def _extract_weather_current(data: Any) -> Dict[str, Any]:
    record = data["data"][0]
    return {
        "isCurrent": True,
        "temp": record["temp"],
        "tempMin": None,
        "tempMax": None,
        "desc": _describe(record),
    }


def _extract_weather_forecast(data: Any) -> Dict[str, Any]:
    # Last record = furthest day in the future.
    record = data["data"][-1]
    return {
        "isCurrent": False,
        "temp": record["temp"],
        "tempMin": record["min_temp"],
        "tempMax": record["max_temp"],
        "desc": _describe(record),
    }


WEATHER_CURRENT = Endpoint(
    label="WeatherBit Current Weather API",
    make_url=weather_current_url,
    is_empty=_no_weather,
    extract=_extract_weather_current,
    not_found_message="No current weather available for given location.",
)

WEATHER_FORECAST = Endpoint(
    label="WeatherBit Weather Forecasts API",
    make_url=weather_forecast_url,
    is_empty=_no_weather,
    extract=_extract_weather_forecast,
    not_found_message="No weather forecast available for given location.",
)


def _weather_endpoint(num_days: int) -> Endpoint:
    return WEATHER_CURRENT if num_days <= 1 else WEATHER_FORECAST


async def get_weather(lon: float, lat: float, num_days: int, api_key: str,
                      timeout_ms: int = DEFAULT_TIMEOUT_MS,
                      client: Optional[httpx.AsyncClient] = None) -> NormalizedResult:
    """
    Current weather if the trip starts within a day, otherwise the daily
    forecast (the free plan only covers about a week ahead).
    """
    endpoint = _weather_endpoint(num_days)
    if endpoint is WEATHER_CURRENT:
        error_message = "Failed to get current weather for given location."
    else:
        error_message = "Failed to get weather forecast for given location."
    url = _build_url(endpoint, lon, lat, api_key)
    if url is None:
        return 500, {"message": error_message}
    logger.info("built request URL %s", _masked(url, api_key))
    return await call_upstream(endpoint, url, error_message, timeout_ms, client=client)


def get_weather_canned(num_days: int, canned_dir: Path = CANNED_DIR) -> NormalizedResult:
    endpoint = _weather_endpoint(num_days)
    if endpoint is WEATHER_CURRENT:
        filename = "lamboing-weatherbit-current.json"
    else:
        filename = "lamboing-weatherbit-forecasts.json"
    return canned_call(endpoint, canned_dir / filename, "Failed to get canned weather data.")


# ---------- Picture (Pixabay) ----------
def picture_url(q: str, api_key: str, per_page: int = 5) -> str:
    """See https://pixabay.com/api/docs/."""
    params = [
        ("key", api_key),
        ("q", q),
        ("lang", "en"),
        ("image_type", "photo"),
        ("safesearch", "true"),
        ("order", "popular"),
        ("per_page", str(per_page)),  # default is 20
    ]
    return _url(PIXABAY_URL, params)


PICTURE = Endpoint(
    label="Pixabay API",
    make_url=picture_url,
    is_empty=lambda data: not data["hits"],
    extract=lambda data: {"imageUrl": data["hits"][0]["webformatURL"]},
    not_found_message="No picture available for given location.",
)


async def get_picture(name: str, country_name: str, api_key: str,
                      timeout_ms: int = DEFAULT_TIMEOUT_MS,
                      client: Optional[httpx.AsyncClient] = None) -> NormalizedResult:
    error_message = "Failed to find picture for given location."
    url = _build_url(PICTURE, f"{name} {country_name}", api_key)
    if url is None:
        return 500, {"message": error_message}
    logger.info("built request URL %s", _masked(url, api_key))
    return await call_upstream(PICTURE, url, error_message, timeout_ms, client=client)


def get_picture_canned(canned_dir: Path = CANNED_DIR) -> NormalizedResult:
    return canned_call(PICTURE, canned_dir / "lamboing-pixabay.json",
                       "Failed to find canned picture data.")
