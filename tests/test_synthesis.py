from datetime import date, timedelta

import pytest

from core.errors import TransientIOError
from core.models import (
    Alert,
    ForecastDay,
    GeoPoint,
    Park,
    SubsourceResult,
    TripWindow,
    VisitSubsources,
)
from core.nps import NpsClient
from core.synthesis import compose_visit_report, gather_visit_subsources, is_closure_alert, plan_park_visit
from core.weather import OpenMeteoClient

YOSEMITE = Park(id="p1", code="yose", name="Yosemite National Park",
                location=GeoPoint(latitude=37.84, longitude=-119.55))


def _forecast(start, n):
    return [
        ForecastDay(date=start + timedelta(days=i), min_temp_f=55, max_temp_f=75,
                    chance_of_rain=10 * i, condition="Sunny")
        for i in range(n)
    ]


def _subsources(**overrides):
    defaults = {
        "alerts": SubsourceResult.ok([]),
        "events": SubsourceResult.ok([]),
        "campgrounds": SubsourceResult.ok([]),
        "forecast": SubsourceResult.ok(_forecast(date(2024, 5, 1), 5)),
    }
    defaults.update(overrides)
    return VisitSubsources(**defaults)


def test_trip_window_overlapping_forecast_gets_the_inclusive_slice():
    window = TripWindow(date(2024, 5, 3), date(2024, 5, 10))
    report = compose_visit_report(YOSEMITE, _subsources(), window)

    assert report.trip.overlaps_forecast
    assert [d.date for d in report.trip.days] == [date(2024, 5, 3), date(2024, 5, 4), date(2024, 5, 5)]


def test_trip_window_outside_forecast():
    window = TripWindow(date(2025, 1, 10), date(2025, 1, 15))
    report = compose_visit_report(YOSEMITE, _subsources(), window)

    assert not report.trip.overlaps_forecast
    assert report.trip.days == ()
    assert "outside" in report.trip.note


def test_trip_window_touching_forecast_edge_overlaps():
    window = TripWindow(date(2024, 4, 20), date(2024, 5, 1))
    report = compose_visit_report(YOSEMITE, _subsources(), window)
    assert [d.date for d in report.trip.days] == [date(2024, 5, 1)]


def test_trip_window_end_before_start_is_rejected():
    with pytest.raises(ValueError):
        TripWindow(date(2024, 5, 3), date(2024, 5, 1))


def test_no_trip_window_means_no_trip_outlook():
    assert compose_visit_report(YOSEMITE, _subsources()).trip is None


def test_closures_come_from_title_or_category():
    alerts = [
        Alert(id="1", title="Tioga Road closed", category="Information"),
        Alert(id="2", title="Bear activity", category="Caution"),
        Alert(id="3", title="Mist Trail update", category="Park Closure"),
    ]
    report = compose_visit_report(YOSEMITE, _subsources(alerts=SubsourceResult.ok(alerts)))

    assert [a.id for a in report.alerts.items] == ["1", "2", "3"]
    assert [a.id for a in report.closures.items] == ["1", "3"]
    assert is_closure_alert(Alert(id="4", title="Road CLOSURE", category=""))


def test_best_days_are_the_top_three():
    report = compose_visit_report(YOSEMITE, _subsources())
    assert len(report.best_days.items) == 3
    assert report.best_days.items[0].date == date(2024, 5, 1)
    assert len(report.forecast.items) == 5


def test_failed_and_empty_subsources_become_not_available_sections():
    report = compose_visit_report(
        YOSEMITE,
        _subsources(events=SubsourceResult.failed("HTTP 500"), campgrounds=SubsourceResult.ok([])),
        planning_tips=("Arrive early",),
    )

    assert not report.events.available
    assert "not available" in report.events.note
    assert "HTTP 500" in report.events.note
    assert not report.campgrounds.available
    assert report.forecast.available
    assert report.planning_tips == ("Arrive early",)


def test_missing_forecast_degrades_best_days_and_trip():
    window = TripWindow(date(2024, 5, 3), date(2024, 5, 4))
    report = compose_visit_report(YOSEMITE, _subsources(forecast=SubsourceResult.failed("no coordinates")), window)

    assert not report.forecast.available
    assert not report.best_days.available
    assert not report.trip.overlaps_forecast
    assert "not available" in report.trip.note


def test_failed_alerts_leave_closures_unknown():
    report = compose_visit_report(YOSEMITE, _subsources(alerts=SubsourceResult.failed("timeout")))
    assert not report.alerts.available
    assert not report.closures.available


# -----------------------------------------------------------------------------
# Gathering against a fake transport
# -----------------------------------------------------------------------------
PARK = {"data": [{
    "id": "p1",
    "parkCode": "yose",
    "fullName": "Yosemite National Park",
    "states": "CA",
    "latitude": "37.84883288",
    "longitude": "-119.5571873",
    "url": "https://www.nps.gov/yose/index.htm",
}]}
ALERTS = {"data": [{"id": "a1", "title": "Tioga Road Closed", "category": "Park Closure", "description": "Snow."}]}
CAMPGROUNDS = {"data": [{"id": "c1", "name": "Upper Pines", "campsites": {"totalSites": "235"}}]}
FORECAST = {"daily": {
    "time": ["2024-05-01", "2024-05-02"],
    "temperature_2m_max": [22.0, 24.0],
    "temperature_2m_min": [8.0, 9.0],
    "precipitation_probability_max": [5, 10],
    "weather_code": [0, 2],
}}


@pytest.fixture
def nps_http(http):
    http.add("/parks?", PARK)
    http.add("/alerts?", ALERTS)
    http.add("/events?", TransientIOError("HTTP 500", status=500))
    http.add("/campgrounds?", CAMPGROUNDS)
    http.add("api.open-meteo.com", FORECAST)
    return http


def test_gather_isolates_each_subsource(nps_http):
    subsources = gather_visit_subsources(
        YOSEMITE, NpsClient("key", nps_http), OpenMeteoClient(nps_http), today=date(2024, 5, 1)
    )

    assert subsources.events.error
    assert [a.id for a in subsources.alerts.items] == ["a1"]
    assert subsources.campgrounds.items[0].total_sites == 235
    assert len(subsources.forecast.items) == 2
    events_url = nps_http.urls("/events?")[0]
    assert "dateStart=2024-05-01" in events_url
    assert "dateEnd=2024-05-15" in events_url


def test_gather_isolates_unexpected_errors(nps_http):
    nps_http.add("/campgrounds?", UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"))

    subsources = gather_visit_subsources(YOSEMITE, NpsClient("key", nps_http), OpenMeteoClient(nps_http))

    assert "unexpected error" in subsources.campgrounds.error
    assert [a.id for a in subsources.alerts.items] == ["a1"]
    assert len(subsources.forecast.items) == 2


def test_gather_uses_trip_window_for_events(nps_http):
    window = TripWindow(date(2024, 6, 1), date(2024, 6, 3))
    gather_visit_subsources(YOSEMITE, NpsClient("key", nps_http), OpenMeteoClient(nps_http), window)
    events_url = nps_http.urls("/events?")[0]
    assert "dateStart=2024-06-01" in events_url
    assert "dateEnd=2024-06-03" in events_url


def test_park_without_coordinates_skips_the_forecast(nps_http):
    park = Park(id="p2", code="yose", name="Yosemite")
    subsources = gather_visit_subsources(park, NpsClient("key", nps_http), OpenMeteoClient(nps_http))

    assert subsources.forecast.error
    assert nps_http.urls("open-meteo") == []


def test_plan_park_visit_end_to_end(nps_http, tables):
    report = plan_park_visit("YOSE", NpsClient("key", nps_http), OpenMeteoClient(nps_http), tables,
                             today=date(2024, 5, 1))

    assert report.park.name == "Yosemite National Park"
    assert report.park.location.latitude == pytest.approx(37.84883288)
    assert [a.title for a in report.closures.items] == ["Tioga Road Closed"]
    assert not report.events.available
    assert report.best_days.items[0].date == date(2024, 5, 1)
    assert report.planning_tips == tables.tips_for("yose")
    assert nps_http.calls[0][1]["X-Api-Key"] == "key"


def test_plan_park_visit_unknown_park(http, tables):
    http.add("/parks?", {"data": []})
    assert plan_park_visit("nope", NpsClient("key", http), OpenMeteoClient(http), tables) is None


def test_plan_park_visit_park_lookup_failure_propagates(http, tables):
    http.add("/parks?", TransientIOError("HTTP 503", status=503))
    with pytest.raises(TransientIOError):
        plan_park_visit("yose", NpsClient("key", http), OpenMeteoClient(http), tables)
