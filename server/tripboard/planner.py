import datetime as dt
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

MAX_YEARS_FROM_NOW = 20

DateInput = Union[str, dt.date, None]


# ---------- Dates ----------
def to_millis(day: dt.date) -> int:
    """Epoch milliseconds at local midnight of `day`."""
    return int(dt.datetime.combine(day, dt.time.min).timestamp() * 1000)


def from_millis(ms: int) -> dt.date:
    return dt.datetime.fromtimestamp(ms / 1000).date()


def num_remaining_days(day: dt.date, today: dt.date) -> int:
    """Whole days from `today` to `day` (negative once `day` has passed)."""
    return (day - today).days


def _add_years(day: dt.date, years: int) -> dt.date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # Feb 29th -> Feb 28th
        return day.replace(year=day.year + years, day=28)


# ---------- Categories ----------
def split_trips(trips: Iterable[Dict[str, Any]], now_ms: int) -> Tuple[List[dict], List[dict], List[dict]]:
    """
    Split trips into (ongoing, pending, past):
      - ongoing: departed and not yet returned, soonest departure first
      - pending: not departed yet, soonest departure first
      - past: returned, most recent departure first
    """
    ongoing, pending, past = [], [], []
    for trip in trips:
        if trip["dateDeparting"] <= now_ms <= trip["dateReturning"]:
            ongoing.append(trip)
        elif now_ms < trip["dateDeparting"]:
            pending.append(trip)
        else:
            past.append(trip)

    def key(t):
        return t["dateDeparting"]

    ongoing.sort(key=key)
    pending.sort(key=key)
    past.sort(key=key, reverse=True)
    return ongoing, pending, past


# ---------- Form validation ----------
def validate_destination(text: Optional[str]) -> Tuple[bool, str]:
    """Returns (is_valid, error-or-trimmed-destination)."""
    trimmed = (text or "").strip()
    if not trimmed:
        return False, "Please, enter a destination."
    return True, trimmed


def validate_date(value: DateInput, date_min: Optional[dt.date] = None,
                  date_max: Optional[dt.date] = None) -> Tuple[bool, Union[str, dt.date]]:
    """Returns (is_valid, error-or-date). Bounds are inclusive."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return False, "Please, enter a date."
    if isinstance(value, str):
        try:
            value = dt.date.fromisoformat(value.strip())
        except ValueError:
            return False, "Invalid date."
    if isinstance(value, dt.datetime):
        value = value.date()

    if date_min is not None and value < date_min:
        return False, f"Invalid date: date cannot be before {date_min.isoformat()}."
    if date_max is not None and value > date_max:
        return False, f"Invalid date: date cannot be after {date_max.isoformat()}."
    return True, value


def validate_trip_inputs(destination: Optional[str], departing: DateInput, returning: DateInput,
                         today: dt.date) -> Tuple[Dict[str, str], Dict[str, Any]]:
    """
    Validate every form field in one pass.

    Returns (errors, values); `errors` maps a field name to its message and is
    empty when everything is valid, in which case `values` holds the parsed
    `destination`, `departing` and `returning`.
    """
    errors: Dict[str, str] = {}
    values: Dict[str, Any] = {}
    date_max = _add_years(today, MAX_YEARS_FROM_NOW)

    ok, res = validate_destination(destination)
    (values if ok else errors)["destination"] = res

    # A trip cannot be planned for the current day.
    ok, res = validate_date(departing, date_min=today + dt.timedelta(days=1), date_max=date_max)
    (values if ok else errors)["departing"] = res

    ok, res = validate_date(returning, date_min=values.get("departing"), date_max=date_max)
    (values if ok else errors)["returning"] = res

    if errors:
        return errors, {}
    return errors, values


# ---------- Trip payload ----------
def build_trip(destination: Dict[str, Any], departing: dt.date, returning: dt.date,
               weather: Dict[str, Any], picture: Dict[str, Any]) -> Dict[str, Any]:
    """Assemble the body of `POST /trips` from the three search results."""
    return {
        "destination": {
            # GeoNames sends coordinates as strings.
            "lon": float(destination["lon"]),
            "lat": float(destination["lat"]),
            "name": destination["name"],
            "countryName": destination["countryName"],
        },
        "dateDeparting": to_millis(departing),
        "dateReturning": to_millis(returning),
        "weather": weather,
        "picture": picture,
    }
