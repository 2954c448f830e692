import asyncio
import json
import logging

import httpx
import pytest

from server.tripboard import search
from server.tripboard.config import CANNED_DIR


def load_fixture(name):
    return json.loads((CANNED_DIR / name).read_text(encoding="utf-8"))


LAMBOING = {"lon": "7.13476", "lat": "47.11682", "name": "Lamboing", "countryName": "Switzerland"}


def respond_with(payload, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request.url)
        return httpx.Response(200, json=payload)
    return handler


def geonames(*records):
    return {"totalResultsCount": len(records), "geonames": list(records)}


def geo_record(name, country, lng, lat):
    return {"name": name, "countryName": country, "lng": lng, "lat": lat, "fcode": "PPL"}


def weather_record(temp, lo, hi, desc, icon):
    return {"temp": temp, "min_temp": lo, "max_temp": hi,
            "weather": {"description": desc, "icon": icon, "code": 800}}


# ---------- URLs ----------
def test_destination_url():
    url = httpx.URL(search.destination_url("Lamboing", "geo-user"))
    assert url.host == "secure.geonames.org"
    assert url.params["q"] == "Lamboing"
    assert url.params["maxRows"] == "1"
    assert url.params.get_list("featureClass") == ["H", "L", "P", "S", "T", "V"]
    assert url.params["username"] == "geo-user"


def test_weather_urls_round_coordinates():
    current = httpx.URL(search.weather_current_url(7.134761234, 47.1, "k"))
    forecast = httpx.URL(search.weather_forecast_url(7.1, 47.1, "k"))
    assert current.path == "/v2.0/current"
    assert current.params["lon"] == "7.13476"
    assert current.params["lat"] == "47.10000"
    assert current.params["units"] == "M"
    assert forecast.path == "/v2.0/forecast/daily"


def test_picture_url():
    url = httpx.URL(search.picture_url("Lamboing Switzerland", "px"))
    assert url.params["q"] == "Lamboing Switzerland"
    assert url.params["per_page"] == "5"
    assert url.params["safesearch"] == "true"


# ---------- Destination ----------
@pytest.mark.asyncio
async def test_destination_found(make_client):
    cx = make_client(respond_with(load_fixture("lamboing-geonames.json")))
    assert await search.get_destination("Lamboing", "geo-user", client=cx) == (200, LAMBOING)


@pytest.mark.asyncio
async def test_destination_takes_first_record(make_client):
    payload = geonames(
        geo_record("Paris", "France", "2.3488", "48.85341"),
        geo_record("Paris", "United States", "-95.55551", "33.66094"),
    )
    status, body = await search.get_destination("Paris", "u", client=make_client(respond_with(payload)))
    assert status == 200
    assert body["countryName"] == "France"


@pytest.mark.asyncio
async def test_destination_not_found(make_client):
    cx = make_client(respond_with({"totalResultsCount": 0, "geonames": []}))
    assert await search.get_destination("Xyzzy", "u", client=cx) == (
        404, {"message": "No destination found. Please check your spelling and try again."})


@pytest.mark.asyncio
async def test_destination_timeout_is_503(make_client):
    async def handler(request):
        await asyncio.sleep(0.02)
        return httpx.Response(200, json=load_fixture("lamboing-geonames.json"))

    status, body = await search.get_destination("Lamboing", "u", timeout_ms=10, client=make_client(handler))
    assert status == 503
    assert body == {"message": "Failed to find destination for query 'Lamboing'."}


@pytest.mark.asyncio
async def test_destination_error_does_not_leak_credentials(make_client):
    cx = make_client(lambda request: httpx.Response(401, json={"status": {"message": "user geo-user"}}))
    status, body = await search.get_destination("Lamboing", "geo-user", client=cx)
    assert status == 500
    assert "geo-user" not in str(body)


@pytest.mark.asyncio
async def test_logged_url_masks_encoded_credentials(make_client, caplog):
    caplog.set_level(logging.INFO, logger="server.tripboard.search")
    cx = make_client(respond_with(geonames()))
    await search.get_destination("Lamboing", "me+geo@x", client=cx)
    cx = make_client(respond_with({"hits": []}))
    await search.get_picture("Lamboing", "Switzerland", "px/key=1&2", client=cx)
    logged = caplog.text
    assert "built request URL" in logged
    for leaked in ("me+geo@x", "me%2Bgeo%40x", "px/key=1&2", "px%2Fkey%3D1%262"):
        assert leaked not in logged


@pytest.mark.asyncio
async def test_unencodable_query_is_500_without_request(make_client):
    seen = []
    cx = make_client(respond_with(geonames(), seen))
    status, body = await search.get_destination("\ud800", "u", client=cx)
    assert status == 500
    assert set(body) == {"message"}
    status, _ = await search.get_picture("\ud800", "Switzerland", "k", client=cx)
    assert status == 500
    assert seen == []


# ---------- Weather ----------
@pytest.mark.asyncio
@pytest.mark.parametrize("num_days", [0, 1])
async def test_weather_current_for_today_and_tomorrow(make_client, num_days):
    seen = []
    payload = {"count": 2, "data": [
        weather_record(11.5, None, None, "Overcast clouds", "c04d"),
        weather_record(30.0, None, None, "Clear Sky", "c01d"),
    ]}
    cx = make_client(respond_with(payload, seen))
    status, body = await search.get_weather(7.13476, 47.11682, num_days, "wb", client=cx)
    assert seen[0].path == "/v2.0/current"
    assert (status, body) == (200, {
        "isCurrent": True,
        "temp": 11.5,
        "tempMin": None,
        "tempMax": None,
        "desc": {
            "desc": "Overcast clouds",
            "iconUrl": "https://cdn.weatherbit.io/static/img/icons/c04d.png",
        },
    })


@pytest.mark.asyncio
async def test_weather_forecast_takes_last_record(make_client):
    seen = []
    payload = {"data": [
        weather_record(10.0, 5.0, 12.0, "Light rain", "r01d"),
        weather_record(12.0, 6.0, 14.0, "Broken clouds", "c03d"),
        weather_record(14.2, 8.9, 18.4, "Few clouds", "c02d"),
    ]}
    cx = make_client(respond_with(payload, seen))
    status, body = await search.get_weather(7.1, 47.1, 5, "wb", client=cx)
    assert seen[0].path == "/v2.0/forecast/daily"
    assert status == 200
    assert body == {
        "isCurrent": False,
        "temp": 14.2,
        "tempMin": 8.9,
        "tempMax": 18.4,
        "desc": {
            "desc": "Few clouds",
            "iconUrl": "https://cdn.weatherbit.io/static/img/icons/c02d.png",
        },
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("data", [None, []])
async def test_weather_empty(make_client, data):
    cx = make_client(respond_with({"data": data}))
    assert await search.get_weather(7.1, 47.1, 0, "wb", client=cx) == (
        404, {"message": "No current weather available for given location."})
    assert await search.get_weather(7.1, 47.1, 3, "wb", client=cx) == (
        404, {"message": "No weather forecast available for given location."})


# ---------- Picture ----------
@pytest.mark.asyncio
async def test_picture_found_takes_first_hit(make_client):
    seen = []
    cx = make_client(respond_with(load_fixture("lamboing-pixabay.json"), seen))
    status, body = await search.get_picture("Lamboing", "Switzerland", "px", client=cx)
    assert seen[0].params["q"] == "Lamboing Switzerland"
    assert status == 200
    assert body == {"imageUrl": "https://pixabay.com/get/g3c1f0d5b7e2a49a8c6f4e1d2b3a5c7e9f_640.jpg"}


@pytest.mark.asyncio
async def test_picture_not_found(make_client):
    cx = make_client(respond_with({"total": 0, "totalHits": 0, "hits": []}))
    assert await search.get_picture("Nowhere", "Land", "px", client=cx) == (
        404, {"message": "No picture available for given location."})


# ---------- Canned data ----------
def test_canned_destination():
    assert search.get_destination_canned() == (200, LAMBOING)


def test_canned_weather_switches_fixture():
    status, current = search.get_weather_canned(1)
    assert status == 200 and current["isCurrent"] is True
    status, forecast = search.get_weather_canned(4)
    assert status == 200 and forecast["isCurrent"] is False
    # Last day of the fixture.
    assert (forecast["temp"], forecast["tempMin"], forecast["tempMax"]) == (14.2, 8.9, 18.4)


def test_canned_missing_dir_is_500(tmp_path):
    assert search.get_picture_canned(tmp_path) == (500, {"message": "Failed to find canned picture data."})


@pytest.mark.asyncio
@pytest.mark.parametrize("fixture, live, canned", [
    ("lamboing-geonames.json",
     lambda cx: search.get_destination("Lamboing", "u", client=cx),
     lambda: search.get_destination_canned()),
    ("lamboing-weatherbit-current.json",
     lambda cx: search.get_weather(7.13476, 47.11682, 0, "k", client=cx),
     lambda: search.get_weather_canned(0)),
    ("lamboing-weatherbit-forecasts.json",
     lambda cx: search.get_weather(7.13476, 47.11682, 6, "k", client=cx),
     lambda: search.get_weather_canned(6)),
    ("lamboing-pixabay.json",
     lambda cx: search.get_picture("Lamboing", "Switzerland", "k", client=cx),
     lambda: search.get_picture_canned()),
])
async def test_live_and_canned_converge(make_client, fixture, live, canned):
    cx = make_client(respond_with(load_fixture(fixture)))
    assert await live(cx) == canned()
