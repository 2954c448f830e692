# streamlit_app.py
# Tripboard – trip planner UI (Streamlit) on top of the FastAPI backend.
# - Search form: destination + departing/returning dates, validated before any call.
# - Backend flow: destination -> weather (current or forecast by days ahead) -> picture.
# - Saved trips shown as ongoing / upcoming / past, each deletable.

import os, datetime as dt, time
import streamlit as st
import httpx
from dotenv import load_dotenv

from server.tripboard.planner import (
    build_trip, from_millis, num_remaining_days, split_trips, validate_trip_inputs,
)

load_dotenv()

API_URL = os.getenv("TRIPBOARD_API_URL", "http://localhost:8000").rstrip("/")
TIMEOUT_S = 5.0
IMAGE_CAPTION = "A picture chosen to represent your destination."

# ---------------- Backend calls ----------------
def _call(method: str, path: str, payload=None):
    """Returns (ok, body). Network failures come back as (False, {'message': ...})."""
    try:
        with httpx.Client(base_url=API_URL, timeout=TIMEOUT_S) as cx:
            r = cx.request(method, path, json=payload)
    except httpx.TimeoutException:
        return False, {"message": "The server took too long to answer. Please try again."}
    except httpx.HTTPError:
        return False, {"message": "Cannot reach the server. Is the backend running?"}
    try:
        body = r.json()
    except ValueError:
        body = {"message": f"Unexpected response (HTTP {r.status_code})."}
    return r.is_success, body

def _search_path(kind: str, canned: bool) -> str:
    return f"/search/test/{kind}" if canned else f"/search/{kind}"

def search_trip(dest: str, departing: dt.date, returning: dt.date, today: dt.date, canned: bool):
    """Runs the three searches; returns (trip, None) or (None, error message)."""
    ok, destination = _call("POST", _search_path("destination", canned), {"query": dest})
    if not ok:
        return None, destination.get("message", "Destination lookup failed.")

    num_days = num_remaining_days(departing, today)
    ok, weather = _call("POST", _search_path("weather", canned), {
        "lon": float(destination["lon"]),
        "lat": float(destination["lat"]),
        "numDays": num_days,
    })
    if not ok:
        return None, weather.get("message", "Weather lookup failed.")

    ok, picture = _call("POST", _search_path("picture", canned), {
        "name": destination["name"],
        "countryName": destination["countryName"],
    })
    if not ok:
        return None, picture.get("message", "Picture lookup failed.")

    return build_trip(destination, departing, returning, weather, picture), None

# ---------------- Rendering ----------------
def render_trip(trip: dict, today: dt.date, key_prefix: str):
    dest, weather, picture = trip["destination"], trip["weather"], trip["picture"]
    departing = from_millis(trip["dateDeparting"])
    returning = from_millis(trip["dateReturning"])

    c1, c2 = st.columns([1, 2])
    c1.image(picture["imageUrl"], caption=IMAGE_CAPTION)
    with c2:
        st.markdown(f"**{dest['name']}, {dest['countryName']}**")
        st.caption(f"{departing.isoformat()} → {returning.isoformat()}")
        days = num_remaining_days(departing, today)
        if days > 0:
            st.write(f"{dest['name']} is {days} day(s) away.")
        label = "Current weather" if weather["isCurrent"] else "Forecast"
        temps = f"{weather['temp']}°C"
        if weather.get("tempMin") is not None and weather.get("tempMax") is not None:
            temps += f" (min {weather['tempMin']}°C, max {weather['tempMax']}°C)"
        st.image(weather["desc"]["iconUrl"], width=48)
        st.write(f"{label}: {weather['desc']['desc']}, {temps}")
        if "tripId" in trip and st.button("Delete", key=f"{key_prefix}-{trip['tripId']}"):
            ok, body = _call("DELETE", f"/trips/{trip['tripId']}")
            if ok:
                st.rerun()
            st.error(body.get("message", "Could not delete the trip."))

# ---------------- Streamlit UI ----------------
st.set_page_config(page_title="Tripboard – Trip Planner", page_icon="🧳", layout="centered")
st.title("🧳 Tripboard – Trip Planner")

today = dt.date.today()

with st.form("search"):
    dest_str = st.text_input("Destination", "Lamboing")
    c1, c2 = st.columns(2)
    departing_in = c1.date_input("Departing", today + dt.timedelta(days=3))
    returning_in = c2.date_input("Returning", today + dt.timedelta(days=7))
    canned = st.toggle("Use canned data", value=False)
    submitted = st.form_submit_button("Search")

if submitted:
    errors, values = validate_trip_inputs(dest_str, departing_in, returning_in, today)
    if errors:
        for field, msg in errors.items():
            st.error(f"{field.capitalize()}: {msg}")
        st.session_state.pop("found", None)
    else:
        with st.status("Searching…", expanded=False):
            trip, err = search_trip(values["destination"], values["departing"], values["returning"],
                                    today, canned)
        if err:
            st.error(err)
            st.session_state.pop("found", None)
        else:
            st.session_state["found"] = trip

found = st.session_state.get("found")
if found:
    st.subheader("Your next trip")
    render_trip(found, today, "found")
    if st.button("Save trip"):
        ok, body = _call("POST", "/trips", found)
        if ok:
            st.session_state.pop("found", None)
            st.success("Trip saved!")
        else:
            st.error(body.get("message", "Could not save the trip."))

ok, saved = _call("GET", "/trips")
if not ok:
    st.warning(saved.get("message", "Could not load saved trips."))
else:
    ongoing, pending, past = split_trips(saved, int(time.time() * 1000))
    for title, group in (("Ongoing", ongoing), ("Upcoming", pending), ("Past", past)):
        if group:
            st.header(title)
            for t in group:
                render_trip(t, today, title.lower())
                st.divider()
