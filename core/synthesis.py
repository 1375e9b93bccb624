# =============================================================================
# core/synthesis.py  -  Visit Report composition
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Takes everything we know about one park (alerts, events, campgrounds,
#   forecast) and produces a structured VisitReport.
#
# SPLIT OF WORK:
#   The LOGIC of "which alerts are closures", "which days are best" and
#   "does the forecast even cover the trip" lives here:
#     - compose_visit_report() is a pure function producing STRUCTURE
#     - the agent narrates that structure
#
# PARTIAL DATA IS NORMAL:
#   Each subsource arrives as a SubsourceResult (items, or the reason there
#   are none).  An empty or failed subsource becomes a section with a
#   "not available" note.  One dead API never sinks the whole report.
#   Only the park lookup itself is allowed to fail the request.
# =============================================================================

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, timedelta
from typing import Callable, Optional, Sequence

from core.errors import UpstreamError
from core.lookup_tables import LookupTables
from core.models import (
    Alert,
    ForecastDay,
    Park,
    ReportSection,
    SubsourceResult,
    TripOutlook,
    TripWindow,
    VisitReport,
    VisitSubsources,
)
from core.nps import NpsClient
from core.weather import OpenMeteoClient, best_visit_days, forecast_bounds

logger = logging.getLogger(__name__)

EVENT_LOOKAHEAD_DAYS = 14
SUBSOURCE_WORKERS = 4
_CLOSURE_WORDS = ("closure", "closed")


def is_closure_alert(alert: Alert) -> bool:
    text = f"{alert.title} {alert.category}".lower()
    return any(word in text for word in _CLOSURE_WORDS)


def _section(title: str, result: SubsourceResult) -> ReportSection:
    if result.error:
        return ReportSection(title=title, note=f"{title} not available ({result.error}).")
    if not result.items:
        return ReportSection(title=title, note=f"{title} not available.")
    return ReportSection(title=title, items=result.items)


def _trip_outlook(window: TripWindow, forecast: Sequence[ForecastDay]) -> TripOutlook:
    bounds = forecast_bounds(forecast)
    if bounds is None:
        return TripOutlook(window=window, overlaps_forecast=False,
                           note="Weather forecast not available for your trip dates.")

    f_start, f_end = bounds
    if not (window.start <= f_end and window.end >= f_start):
        return TripOutlook(
            window=window,
            overlaps_forecast=False,
            note=f"Your trip dates are outside the current forecast window ({f_start} to {f_end}).",
        )

    days = tuple(d for d in forecast if window.start <= d.date <= window.end)
    if not days:
        return TripOutlook(window=window, overlaps_forecast=True,
                           note="No forecast days fall inside your trip dates.")
    return TripOutlook(window=window, overlaps_forecast=True, days=days)


def compose_visit_report(
    park: Park,
    subsources: VisitSubsources,
    trip_window: Optional[TripWindow] = None,
    planning_tips: Sequence[str] = (),
    top_n: int = 3,
) -> VisitReport:
    """Combine one park's subsources into a VisitReport.  Pure; never raises."""
    alerts = subsources.alerts
    if alerts.error:
        closures = ReportSection(title="Closures", note="Closures not available (alerts could not be loaded).")
    else:
        closures = ReportSection(title="Closures", items=tuple(a for a in alerts.items if is_closure_alert(a)))

    forecast = subsources.forecast
    forecast_section = _section("Weather forecast", forecast)
    if forecast_section.available:
        best_days = ReportSection(title="Best days to visit", items=tuple(best_visit_days(forecast.items, top_n)))
    else:
        best_days = ReportSection(title="Best days to visit",
                                  note="Best days not available without a forecast.")

    trip = _trip_outlook(trip_window, forecast.items) if trip_window else None

    return VisitReport(
        park=park,
        alerts=_section("Alerts", alerts),
        closures=closures,
        forecast=forecast_section,
        best_days=best_days,
        events=_section("Events", subsources.events),
        campgrounds=_section("Campgrounds", subsources.campgrounds),
        trip=trip,
        planning_tips=tuple(planning_tips),
    )


# =============================================================================
# Gathering (the only part that talks to the network)
# =============================================================================
def gather_visit_subsources(
    park: Park,
    nps: NpsClient,
    weather: OpenMeteoClient,
    trip_window: Optional[TripWindow] = None,
    today: Optional[date] = None,
    forecast_days: int = 7,
) -> VisitSubsources:
    """Fetch alerts, events, campgrounds and forecast concurrently.

    Each fetch is isolated: any exception becomes SubsourceResult.failed.
    Events cover the trip window when given, else the next two weeks.
    """
    today = today or date.today()
    if trip_window:
        event_start, event_end = trip_window.start, trip_window.end
    else:
        event_start, event_end = today, today + timedelta(days=EVENT_LOOKAHEAD_DAYS)

    jobs: dict[str, Callable[[], list]] = {
        "alerts": lambda: nps.get_alerts(park.code),
        "events": lambda: nps.get_events(park.code, event_start, event_end),
        "campgrounds": lambda: nps.get_campgrounds(park.code),
    }
    results: dict[str, SubsourceResult] = {}
    if park.location:
        location = park.location
        jobs["forecast"] = lambda: weather.get_forecast(location.latitude, location.longitude, forecast_days)
    else:
        results["forecast"] = SubsourceResult.failed("park has no coordinates")

    with ThreadPoolExecutor(max_workers=SUBSOURCE_WORKERS) as pool:
        futures = {pool.submit(fetch): name for name, fetch in jobs.items()}
        for future in as_completed(futures):
            name = futures[future]
            try:
                results[name] = SubsourceResult.ok(future.result())
            except UpstreamError as e:
                logger.warning("%s for %s unavailable: %s", name, park.code, e)
                results[name] = SubsourceResult.failed(str(e))
            except Exception as e:
                logger.exception("Unexpected error fetching %s for %s", name, park.code)
                results[name] = SubsourceResult.failed(f"unexpected error: {e!r}")

    return VisitSubsources(**results)


def plan_park_visit(
    park_code: str,
    nps: NpsClient,
    weather: OpenMeteoClient,
    tables: LookupTables,
    trip_window: Optional[TripWindow] = None,
    today: Optional[date] = None,
    forecast_days: int = 7,
    top_n: int = 3,
) -> Optional[VisitReport]:
    """Full visit report for one park, or None if NPS does not know the park.

    Raises:
        UpstreamError: the park lookup itself failed.
    """
    park = nps.get_park(park_code)
    if park is None:
        return None
    subsources = gather_visit_subsources(park, nps, weather, trip_window, today, forecast_days)
    return compose_visit_report(park, subsources, trip_window, tables.tips_for(park.code), top_n)
