from datetime import date

import pytest

from core.config import Settings
from core.errors import SchemaValidationError, TransientIOError
from core.models import ForecastDay, TripWindow
from tools import mcp_server
from tools.mcp_server import MAX_LIST_ITEMS, _bounded, _parse_trip_window, _to_dict, _upstream_error, build_services


def test_trip_window_parsing():
    assert _parse_trip_window(None, None) is None
    assert _parse_trip_window("2024-05-01", "2024-05-03") == TripWindow(date(2024, 5, 1), date(2024, 5, 3))


@pytest.mark.parametrize("start, end", [("2024-05-01", None), ("05/01/2024", "2024-05-03"), ("2024-05-03", "2024-05-01")])
def test_bad_trip_windows_raise_value_error(start, end):
    with pytest.raises(ValueError):
        _parse_trip_window(start, end)


def test_to_dict_makes_dates_json_safe():
    day = ForecastDay(date(2024, 5, 1), 50, 70, 10, "Clear")
    assert _to_dict([day]) == [{"date": "2024-05-01", "min_temp_f": 50, "max_temp_f": 70,
                               "chance_of_rain": 10, "condition": "Clear"}]


def test_bounded_lists_keep_the_total():
    result = _bounded("test", list(range(MAX_LIST_ITEMS + 5)), "items")
    assert len(result["items"]) == MAX_LIST_ITEMS
    assert result["total"] == MAX_LIST_ITEMS + 5


def test_upstream_errors_say_whether_to_retry():
    assert _upstream_error("t", TransientIOError("HTTP 503", status=503)) == {"error": "HTTP 503", "retryable": True}
    assert _upstream_error("t", SchemaValidationError("bad payload"))["retryable"] is False


def test_build_services_shares_one_transport(http, tables):
    services = build_services(Settings(nps_api_key="n", recgov_api_key="r", trail_enrich_workers=3), tables, http)

    assert services.nps.http is http
    assert services.recgov.http is http
    assert services.weather.http is http
    assert services.trails.max_workers == 3
    assert services.resolver.resolve("yose") == "2991"


# -----------------------------------------------------------------------------
# Tools, wired to a fake transport
# -----------------------------------------------------------------------------
PARK = {"data": [{
    "id": "p1",
    "parkCode": "zion",
    "fullName": "Zion National Park",
    "states": "UT",
    "latitude": "37.29839254",
    "longitude": "-113.0265138",
}]}
FORECAST = {"daily": {
    "time": ["2024-05-01", "2024-05-02"],
    "temperature_2m_max": [24.0, 26.0],
    "temperature_2m_min": [9.0, 11.0],
    "precipitation_probability_max": [0, 30],
    "weather_code": [0, 3],
}}
FACILITIES = {"RECDATA": [
    {"FacilityID": "101", "FacilityName": "Angels Landing Trail", "FacilityTypeDescription": "Trail"},
    {"FacilityID": "102", "FacilityName": "The Narrows", "FacilityTypeDescription": "Trail"},
    {"FacilityID": "103", "FacilityName": "Watchman Campground", "FacilityTypeDescription": "Campground",
     "FacilityLatitude": 37.19, "FacilityLongitude": -112.98},
]}


def _call(tool, **kwargs):
    return getattr(tool, "fn", tool)(**kwargs)


@pytest.fixture
def services(monkeypatch, http, tables):
    wired = build_services(Settings(nps_api_key="n", recgov_api_key="r"), tables, http)
    monkeypatch.setattr(mcp_server, "_services", lambda: wired)
    return wired


def test_unknown_park_is_not_retryable(services, http):
    http.add("/parks?", {"data": []})
    result = _call(mcp_server.plan_park_visit, park_code="nope")
    assert result["retryable"] is False
    assert "nope" in result["error"]


def test_failed_park_lookup_is_retryable(services, http):
    http.add("/parks?", TransientIOError("HTTP 503", status=503))
    result = _call(mcp_server.plan_park_visit, park_code="zion")
    assert result == {"error": "HTTP 503", "retryable": True}


def test_half_trip_window_is_an_error(services, http):
    result = _call(mcp_server.plan_park_visit, park_code="zion", start_date="2024-05-01")
    assert result["retryable"] is False
    assert http.calls == []


def test_park_overview_carries_every_section(services, http):
    http.add("/parks?", PARK)
    http.add("/alerts?", {"data": [{"id": "a1", "title": "Shuttle schedule", "category": "Information"}]})
    http.add("/events?", TransientIOError("HTTP 500", status=500))
    http.add("/campgrounds?", {"data": [{"id": "c1", "name": "Watchman", "campsites": {"totalSites": "176"}}]})
    http.add("api.open-meteo.com", FORECAST)

    result = _call(mcp_server.get_park_overview, park_code="zion")

    assert result["park"]["name"] == "Zion National Park"
    assert [a["id"] for a in result["alerts"]["items"]] == ["a1"]
    assert len(result["forecast"]["items"]) == 2
    assert result["forecast"]["items"][0]["date"] == "2024-05-01"
    assert result["events"]["items"] == []
    assert "not available" in result["events"]["note"]
    assert result["campgrounds"]["items"][0]["total_sites"] == 176
    assert "error" not in result


def test_list_park_trails_survives_a_broken_detail_body(services, http):
    http.add("recareas/3042/facilities", FACILITIES)
    http.add("facilities/101", {"RECDATA": {"FacilityID": "101", "FacilityName": "Angels Landing Trail"}})
    http.add("facilities/102", UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"))

    result = _call(mcp_server.list_park_trails, park_code="zion")

    assert result["total"] == 2
    assert [t["id"] for t in result["trails"]] == ["101", "102"]
    assert [t["enrichment_failed"] for t in result["trails"]] == [False, True]


def test_list_park_trails_bad_listing_payload_is_not_retryable(services, http):
    http.add("recareas/3042/facilities", {"RECDATA": "not a list"})
    result = _call(mcp_server.list_park_trails, park_code="zion")
    assert result["retryable"] is False


def test_list_park_trails_for_unknown_park_says_so(services, http):
    result = _call(mcp_server.list_park_trails, park_code="zzzz")
    assert result["trails"] == []
    assert "zzzz" in result["note"]


def test_find_nearby_recreation_filters_by_activity(services, http):
    http.add("facilities?", FACILITIES)
    http.add("api.open-meteo.com", FORECAST)

    result = _call(mcp_server.find_nearby_recreation, latitude=37.2, longitude=-113.0,
                   radius_miles=25, activity="camp")

    assert [f["name"] for f in result["facilities"]] == ["Watchman Campground"]
    assert result["facilities"][0]["location"]["latitude"] == 37.19
    assert result["current_weather"]["condition"] == "Clear"
    url = http.urls("facilities?")[0]
    assert "latitude=37.2" in url
    assert "radius=25" in url


def test_find_nearby_recreation_without_weather(services, http):
    http.add("facilities?", FACILITIES)
    http.add("api.open-meteo.com", TransientIOError("HTTP 502", status=502))

    result = _call(mcp_server.find_nearby_recreation, latitude=37.2, longitude=-113.0)

    assert result["total"] == 3
    assert result["current_weather"] is None
    assert "not available" in result["weather_note"]


def test_find_nearby_recreation_listing_failure_is_retryable(services, http):
    http.add("facilities?", TransientIOError("HTTP 503", status=503))
    result = _call(mcp_server.find_nearby_recreation, latitude=37.2, longitude=-113.0)
    assert result["retryable"] is True
