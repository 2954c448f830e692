import html
from typing import Annotated, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Hosts we accept images from when a trip is saved.
WEATHERBIT_HOSTS = {"cdn.weatherbit.io"}
PIXABAY_HOSTS = {"pixabay.com", "cdn.pixabay.com"}

MAX_TEXT_LENGTH = 256

NotBlank = Annotated[str, Field(strict=True, min_length=1, max_length=MAX_TEXT_LENGTH)]
Lon = Annotated[float, Field(strict=True, ge=-180.0, le=180.0)]
Lat = Annotated[float, Field(strict=True, ge=-90.0, le=90.0)]
Temp = Annotated[float, Field(strict=True, ge=-90.0, le=60.0)]
Timestamp = Annotated[int, Field(strict=True, ge=0)]


class _Schema(BaseModel):
    # camelCase on the wire, unknown fields rejected.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


def _approved_url(value: str, hosts) -> str:
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL:
        raise ValueError("must be a valid URL") from None
    if url.scheme not in ("http", "https") or not url.host:
        raise ValueError("must be a valid URL")
    if url.host not in hosts:
        raise ValueError("must be an approved URL")
    return value


# ---------- Search requests ----------
class DestinationQuery(_Schema):
    query: NotBlank


class WeatherQuery(_Schema):
    lon: Lon
    lat: Lat
    num_days: Annotated[int, Field(strict=True, ge=0)]


class PictureQuery(_Schema):
    name: NotBlank
    country_name: NotBlank


# ---------- Trips ----------
class Destination(_Schema):
    lon: Lon
    lat: Lat
    name: NotBlank
    country_name: NotBlank

    @field_validator("name", "country_name")
    @classmethod
    def escape_html(cls, v: str) -> str:
        return html.escape(v)


class WeatherDesc(_Schema):
    desc: NotBlank
    icon_url: str

    @field_validator("desc")
    @classmethod
    def escape_html(cls, v: str) -> str:
        return html.escape(v)

    @field_validator("icon_url")
    @classmethod
    def check_icon_host(cls, v: str) -> str:
        return _approved_url(v, WEATHERBIT_HOSTS)


class Weather(_Schema):
    is_current: Annotated[bool, Field(strict=True)]
    temp: Temp
    temp_min: Optional[Temp] = None
    temp_max: Optional[Temp] = None
    desc: WeatherDesc


class Picture(_Schema):
    image_url: str

    @field_validator("image_url")
    @classmethod
    def check_image_host(cls, v: str) -> str:
        return _approved_url(v, PIXABAY_HOSTS)


class TripIn(_Schema):
    destination: Destination
    date_departing: Timestamp
    date_returning: Timestamp
    weather: Weather
    picture: Picture

    @model_validator(mode="after")
    def check_dates_in_order(self):
        if self.date_returning < self.date_departing:
            raise ValueError("dateReturning must not be before dateDeparting")
        return self


class Trip(TripIn):
    trip_id: str
