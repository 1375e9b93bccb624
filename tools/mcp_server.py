# =============================================================================
# tools/mcp_server.py  -  FastMCP Tool Server (ALL tools in one place)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Defines ALL MCP tools an agent can call to plan a national park visit.
#   Each tool is a thin wrapper around core/: it parses arguments, calls
#   the engine, converts dataclasses to dicts and keeps responses small.
#
# HOW IT WORKS (the flow):
#   1. The agent decides it needs information (e.g., trails for Zion)
#   2. It calls a tool by name via MCP (e.g., "list_park_trails")
#   3. FastMCP routes the call to the decorated function below
#   4. The function calls core/ logic, formats the result, and returns it
#
# TOOL NAMING CONVENTIONS:
#   - get_*     → Read-only retrieval (idempotent, safe to retry)
#   - list_* / search_* / find_* → Query with filters (idempotent, safe to retry)
#   - plan_* / resolve_* → Compute derived results (idempotent, safe to retry)
#
# ERRORS:
#   Tools never raise.  Missing data and upstream failures come back as
#   {"error": "...", "retryable": bool} so the agent can explain or retry.
#
# RUNNING THIS SERVER:
#     a) python -m tools.mcp_server
#     b) park-planner-mcp           (console script from pyproject.toml)
#   Either way it speaks MCP over stdio.
# =============================================================================

import json
import logging
import sys
import time
from dataclasses import asdict, dataclass
from datetime import date
from functools import lru_cache
from typing import Any, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP

# --- Import core logic ---
# The tools layer depends on core/ and nothing else.
from core.config import Settings
from core.errors import TransientIOError, UpstreamError
from core.http import UrllibTransport
from core.lookup_tables import LookupTables, load_lookup_tables
from core.models import TrailFilter, TripWindow, normalize_code
from core.nps import NpsClient
from core.recgov import RecGovClient
from core.resolver import RecAreaResolver
from core.synthesis import compose_visit_report, gather_visit_subsources
from core.synthesis import plan_park_visit as build_visit_report
from core.trails import TrailAggregator
from core.weather import OpenMeteoClient, best_visit_days

load_dotenv()

# =============================================================================
# Logging Setup
# =============================================================================
# We log to STDERR because the MCP server talks to the agent over STDOUT.
# Anything printed to stdout would corrupt the MCP JSON stream.
#
#     CYAN    incoming requests (tool name + parameters)
#     GREEN   response JSON
#     YELLOW  intermediate status/progress messages
# =============================================================================
_CYAN = "\033[36m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_RED = "\033[31m"
_RESET = "\033[0m"

logging.basicConfig(
    level=Settings.from_env().log_level,
    format="%(asctime)s [MCP] %(message)s",
    datefmt="%H:%M:%S",
    stream=sys.stderr,
)

MAX_LIST_ITEMS = 10


def _log_request(tool_name: str, **params) -> None:
    """Log an incoming tool call with its parameters in CYAN."""
    param_str = ", ".join(f"{k}={v!r}" for k, v in params.items())
    logging.info(f"{_CYAN}{tool_name} called with: {param_str}{_RESET}")


def _log_status(message: str) -> None:
    """Log an intermediate status message in YELLOW."""
    logging.info(f"{_YELLOW}  → {message}{_RESET}")


def _log_response(tool_name: str, result: dict) -> dict:
    """Log the tool response as compact JSON in GREEN, then return it."""
    logging.info(f"{_GREEN}  ← {tool_name} response: {json.dumps(result, separators=(',', ':'))}{_RESET}")
    return result


def _to_dict(obj: Any) -> Any:
    """Dataclass (or list of them) → plain JSON-safe dict/list.  Dates become ISO strings."""
    if isinstance(obj, (list, tuple)):
        data = [asdict(o) for o in obj]
    else:
        data = asdict(obj)
    return json.loads(json.dumps(data, default=str))


def _upstream_error(tool_name: str, e: UpstreamError) -> dict:
    retryable = isinstance(e, TransientIOError)
    logging.warning(f"{_RED}  ✗ {tool_name} failed: {e}{_RESET}")
    return _log_response(tool_name, {"error": str(e), "retryable": retryable})


def _bounded(tool_name: str, items: list, key: str) -> dict:
    """Trim a list to MAX_LIST_ITEMS, saying how many there were."""
    if len(items) > MAX_LIST_ITEMS:
        _log_status(f"Trimming {len(items)} {key} to {MAX_LIST_ITEMS}")
    return {key: items[:MAX_LIST_ITEMS], "total": len(items)}


# =============================================================================
# Service wiring
# =============================================================================
# Built on first use so importing this module never touches the network
# and a .env loaded above is already visible.
# =============================================================================
@dataclass(frozen=True)
class Services:
    settings: Settings
    tables: LookupTables
    nps: NpsClient
    recgov: RecGovClient
    weather: OpenMeteoClient
    resolver: RecAreaResolver
    trails: TrailAggregator


def build_services(settings: Settings, tables: Optional[LookupTables] = None, http=None) -> Services:
    tables = tables or load_lookup_tables()
    http = http or UrllibTransport(timeout=settings.http_timeout_seconds)
    nps = NpsClient(settings.nps_api_key, http)
    recgov = RecGovClient(settings.recgov_api_key, http)
    resolver = RecAreaResolver(recgov, tables)
    return Services(
        settings=settings,
        tables=tables,
        nps=nps,
        recgov=recgov,
        weather=OpenMeteoClient(http),
        resolver=resolver,
        trails=TrailAggregator(recgov, resolver, tables, settings.trail_enrich_workers),
    )


@lru_cache(maxsize=1)
def _services() -> Services:
    settings = Settings.from_env()
    if not settings.nps_api_key:
        logging.warning("NPS_API_KEY is not set; NPS requests will be rejected")
    if not settings.recgov_api_key:
        logging.warning("RECGOV_API_KEY is not set; Recreation.gov requests will be rejected")
    services = build_services(settings)
    logging.info(f"Lookup tables version {services.tables.version}")
    return services


def _parse_trip_window(start_date: Optional[str], end_date: Optional[str]) -> Optional[TripWindow]:
    """ISO dates → TripWindow.  Raises ValueError on bad or half-given dates."""
    if not start_date and not end_date:
        return None
    if not (start_date and end_date):
        raise ValueError("Provide both start_date and end_date (YYYY-MM-DD), or neither.")
    return TripWindow(start=date.fromisoformat(start_date), end=date.fromisoformat(end_date))


# =============================================================================
# Create the FastMCP server instance
# =============================================================================
mcp = FastMCP("park-visit-planner")


# =============================================================================
# TOOL 1: get_park_overview
# =============================================================================
@mcp.tool()
def get_park_overview(park_code: str) -> dict:
    """Get an overview of a US national park: details, current alerts,
    the weather forecast, upcoming events and campgrounds.

    WHEN TO CALL THIS: First, whenever the user names a park.  It confirms
    the park code is valid and shows what is going on there right now.

    Args:
        park_code: The NPS park code (e.g., "yose" for Yosemite, "zion" for Zion).

    Returns:
        A dict with park (name, states, location, ...), alerts, forecast,
        events (next 14 days), campgrounds and planning_tips.  Each section
        has "items" and a "note" that is set only when it is not available.
        An error dict if the park code is unknown.
    """
    _log_request("get_park_overview", park_code=park_code)
    services = _services()
    try:
        park = services.nps.get_park(park_code)
    except UpstreamError as e:
        return _upstream_error("get_park_overview", e)

    if park is None:
        _log_status(f"No park with code {park_code!r}")
        return _log_response("get_park_overview", {
            "error": f"Could not find park with code: {park_code}",
            "retryable": False,
        })

    _log_status(f"Fetching alerts, forecast, events and campgrounds for {park.name}")
    subsources = gather_visit_subsources(park, services.nps, services.weather,
                                         forecast_days=services.settings.forecast_days)
    report = _to_dict(compose_visit_report(park, subsources, planning_tips=services.tables.tips_for(park.code)))
    overview = {key: report[key] for key in ("park", "alerts", "forecast", "events", "campgrounds", "planning_tips")}
    return _log_response("get_park_overview", overview)


# =============================================================================
# TOOL 2: plan_park_visit
# =============================================================================
# The composite tool.  Alerts, events, campgrounds and the forecast are
# fetched concurrently; any of them may come back as "not available"
# without failing the whole plan.
# =============================================================================
@mcp.tool()
def plan_park_visit(park_code: str, start_date: Optional[str] = None, end_date: Optional[str] = None) -> dict:
    """Get recommendations for the best time to visit a park, based on weather,
    alerts, closures, events and campgrounds.

    WHEN TO CALL THIS: When the user asks when to go, or whether their
    planned dates look good.

    Args:
        park_code: The NPS park code (e.g., "yose").
        start_date: Optional trip start date (YYYY-MM-DD).
        end_date: Optional trip end date (YYYY-MM-DD).  Give both or neither.

    Returns:
        A dict with park, alerts, closures, forecast, best_days, events,
        campgrounds, trip and planning_tips.  Each section has "items" and
        a "note" that is set only when the section is not available.
    """
    _log_request("plan_park_visit", park_code=park_code, start_date=start_date, end_date=end_date)
    try:
        window = _parse_trip_window(start_date, end_date)
    except ValueError as e:
        return _log_response("plan_park_visit", {"error": str(e), "retryable": False})

    services = _services()
    try:
        report = build_visit_report(
            park_code,
            services.nps,
            services.weather,
            services.tables,
            trip_window=window,
            forecast_days=services.settings.forecast_days,
        )
    except UpstreamError as e:
        return _upstream_error("plan_park_visit", e)

    if report is None:
        return _log_response("plan_park_visit", {
            "error": f"Could not find park with code: {park_code}",
            "retryable": False,
        })

    _log_status(f"{len(report.alerts.items)} alerts, {len(report.closures.items)} closures, "
                f"{len(report.forecast.items)} forecast days")
    return _log_response("plan_park_visit", _to_dict(report))


# =============================================================================
# TOOL 3: list_park_trails
# =============================================================================
@mcp.tool()
def list_park_trails(
    park_code: str,
    trail_id: Optional[str] = None,
    difficulty: Optional[str] = None,
    min_length: Optional[float] = None,
    max_length: Optional[float] = None,
) -> dict:
    """List hiking trails in a national park, from Recreation.gov.

    WHEN TO CALL THIS: When the user asks about hikes or trails.  Filters
    are optional; a trail missing the filtered attribute is left out.

    Args:
        park_code: The NPS park code (e.g., "zion").
        trail_id: Only return this Recreation.gov facility id.
        difficulty: Case-insensitive match on difficulty (e.g., "easy").
        min_length: Minimum length in miles (inclusive).
        max_length: Maximum length in miles (inclusive).

    Returns:
        A dict with "trails" (at most 10) and "total".  Trails whose detail
        record could not be fetched have enrichment_failed=true.  An empty
        result carries a "note"; use resolve_rec_area to check the park code.
    """
    _log_request("list_park_trails", park_code=park_code, trail_id=trail_id,
                 difficulty=difficulty, min_length=min_length, max_length=max_length)
    services = _services()
    trail_filter = TrailFilter(trail_id=trail_id, difficulty=difficulty,
                               min_length=min_length, max_length=max_length)
    deadline = time.monotonic() + services.settings.trail_enrich_timeout_seconds

    try:
        trails = services.trails.trails_for_park(park_code, trail_filter, deadline=deadline)
    except UpstreamError as e:
        return _upstream_error("list_park_trails", e)

    result = _bounded("list_park_trails", _to_dict(trails), "trails")
    if not trails:
        result["note"] = f"No matching trails found on Recreation.gov for park code: {park_code}"
    return _log_response("list_park_trails", result)


# =============================================================================
# TOOL 4: resolve_rec_area
# =============================================================================
@mcp.tool()
def resolve_rec_area(park_code: str) -> dict:
    """Translate an NPS park code into its Recreation.gov RecArea ID.

    Args:
        park_code: The NPS park code (e.g., "yose").

    Returns:
        {"park_code": ..., "rec_area_id": ...} or an error dict.
    """
    _log_request("resolve_rec_area", park_code=park_code)
    try:
        area_id = _services().resolver.resolve(park_code)
    except UpstreamError as e:
        return _upstream_error("resolve_rec_area", e)
    if area_id is None:
        return _log_response("resolve_rec_area", {
            "error": f"No Recreation.gov area found for park code: {park_code}",
            "retryable": False,
        })
    return _log_response("resolve_rec_area", {"park_code": normalize_code(park_code), "rec_area_id": area_id})


# =============================================================================
# TOOL 5 & 6: weather
# =============================================================================
def _forecast_result(services: Services, latitude: float, longitude: float, days: Optional[int]) -> dict:
    forecast = services.weather.get_forecast(latitude, longitude, days or services.settings.forecast_days)
    _log_status(f"Got {len(forecast)} days of forecast data")
    return {
        "forecast": _to_dict(forecast),
        "best_days": _to_dict(best_visit_days(forecast)),
    }


@mcp.tool()
def get_park_weather_forecast(park_code: str, days: Optional[int] = None) -> dict:
    """Get the daily weather forecast for a national park, with the best days ranked.

    Args:
        park_code: The NPS park code (e.g., "grca").
        days: Number of forecast days (1-16, default 7).

    Returns:
        A dict with park_name, forecast (per-day °F temps, rain chance,
        condition) and best_days (top 3, each with a 0-8 score).
    """
    _log_request("get_park_weather_forecast", park_code=park_code, days=days)
    services = _services()
    try:
        park = services.nps.get_park(park_code)
        if park is None:
            return _log_response("get_park_weather_forecast", {
                "error": f"Could not find park with code: {park_code}",
                "retryable": False,
            })
        if park.location is None:
            return _log_response("get_park_weather_forecast", {
                "error": f"{park.name} has no coordinates; weather forecast not available.",
                "retryable": False,
            })
        result = _forecast_result(services, park.location.latitude, park.location.longitude, days)
    except UpstreamError as e:
        return _upstream_error("get_park_weather_forecast", e)

    result["park_name"] = park.name
    return _log_response("get_park_weather_forecast", result)


@mcp.tool()
def get_weather_by_coordinates(latitude: float, longitude: float, days: Optional[int] = None) -> dict:
    """Get the daily weather forecast for a latitude/longitude.

    Args:
        latitude: Decimal degrees.
        longitude: Decimal degrees.
        days: Number of forecast days (1-16, default 7).

    Returns:
        A dict with forecast and best_days, as get_park_weather_forecast.
    """
    _log_request("get_weather_by_coordinates", latitude=latitude, longitude=longitude, days=days)
    try:
        result = _forecast_result(_services(), latitude, longitude, days)
    except UpstreamError as e:
        return _upstream_error("get_weather_by_coordinates", e)
    return _log_response("get_weather_by_coordinates", result)


# =============================================================================
# TOOL 7: search_parks_by_state
# =============================================================================
@mcp.tool()
def search_parks_by_state(state_code: str) -> dict:
    """Find national parks in a US state.

    Args:
        state_code: Two-letter state code (e.g., "CA").

    Returns:
        A dict with "parks" (at most 10: code, name, states, url) and "total".
    """
    _log_request("search_parks_by_state", state_code=state_code)
    try:
        parks = _services().nps.search_parks_by_state(state_code)
    except UpstreamError as e:
        return _upstream_error("search_parks_by_state", e)

    summaries = [{"code": p.code, "name": p.name, "states": p.states, "url": p.url} for p in parks]
    return _log_response("search_parks_by_state", _bounded("search_parks_by_state", summaries, "parks"))


# =============================================================================
# TOOL 8: get_facilities_by_activity
# =============================================================================
@mcp.tool()
def get_facilities_by_activity(activity_id: str) -> dict:
    """Find Recreation.gov facilities that offer an activity.

    Args:
        activity_id: Recreation.gov activity id (e.g., "14" for hiking).

    Returns:
        A dict with "facilities" (at most 10: id, name, type, reservation_url)
        and "total".
    """
    _log_request("get_facilities_by_activity", activity_id=activity_id)
    try:
        facilities = _services().recgov.get_facilities_by_activity(activity_id)
    except UpstreamError as e:
        return _upstream_error("get_facilities_by_activity", e)

    summaries = [
        {"id": f.id, "name": f.name, "type": f.type_description, "reservation_url": f.reservation_url}
        for f in facilities
    ]
    return _log_response("get_facilities_by_activity",
                         _bounded("get_facilities_by_activity", summaries, "facilities"))


# =============================================================================
# TOOL 9: find_nearby_recreation
# =============================================================================
@mcp.tool()
def find_nearby_recreation(
    latitude: float,
    longitude: float,
    radius_miles: float = 50,
    activity: Optional[str] = None,
) -> dict:
    """Find recreation areas and camping options near a location, with today's weather.

    WHEN TO CALL THIS: When the user asks what else there is to do near a
    place (use a park's location from get_park_overview).

    Args:
        latitude: Decimal degrees.
        longitude: Decimal degrees.
        radius_miles: Search radius in miles (default 50).
        activity: Optional word to match in the facility name or type
            (e.g., "camp", "trail").

    Returns:
        A dict with "facilities" (at most 10: id, name, type, location,
        reservation_url), "total" and "current_weather" (today's forecast,
        or null with a "weather_note" when it is not available).
    """
    _log_request("find_nearby_recreation", latitude=latitude, longitude=longitude,
                 radius_miles=radius_miles, activity=activity)
    services = _services()
    try:
        facilities = services.recgov.search_facilities_near(latitude, longitude, radius_miles)
    except UpstreamError as e:
        return _upstream_error("find_nearby_recreation", e)

    if activity:
        wanted = activity.strip().lower()
        facilities = [f for f in facilities if wanted in f.name.lower() or wanted in f.type_description.lower()]
        _log_status(f"{len(facilities)} facilities match {activity!r}")

    summaries = [
        {
            "id": f.id,
            "name": f.name,
            "type": f.type_description,
            "location": asdict(f.trailhead) if f.trailhead else None,
            "reservation_url": f.reservation_url,
        }
        for f in facilities
    ]
    result = _bounded("find_nearby_recreation", summaries, "facilities")

    try:
        today = services.weather.get_forecast(latitude, longitude, 1)
        result["current_weather"] = _to_dict(today[0]) if today else None
    except UpstreamError as e:
        logging.warning(f"{_RED}  ✗ weather near ({latitude}, {longitude}) unavailable: {e}{_RESET}")
        result["current_weather"] = None
        result["weather_note"] = f"Weather not available ({e})."
    return _log_response("find_nearby_recreation", result)


# =============================================================================
# Server entry point
# =============================================================================
def main() -> None:
    """Start the MCP server on stdio."""
    mcp.run()


if __name__ == "__main__":
    main()
