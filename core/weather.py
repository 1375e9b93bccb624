# =============================================================================
# core/weather.py  -  Forecast fetching & Visit-Window scoring
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   1. Fetches a daily forecast for a coordinate from the Open-Meteo API
#      (free, no API key needed) and turns it into ForecastDay objects.
#   2. Scores every forecast day for "how nice is it to be outside?" and
#      ranks the days so the agent can say "go on Thursday".
#
# THE SEPARATION OF "FETCH" AND "SCORE":
#   - OpenMeteoClient.get_forecast() returns list[ForecastDay]
#   - score_forecast() / rank_scores() / best_visit_days() are pure
#   You can test the scoring without a network, and swap the forecast
#   provider without touching the scoring.
#
# THE SCORE (0-8, higher is better):
#
#     temperature   avg of min/max °F:  65-80 -> 3,  50-85 -> 2,  else 1
#     rain          chance %:  <20 -> 3,  <40 -> 2,  <60 -> 1,  else 0
#     condition     +2 if it reads sunny / clear / partly cloudy
#
#   Boundaries are inclusive on the temperature bands and exclusive on the
#   rain bands.
# =============================================================================

import logging
from datetime import date
from typing import Optional, Sequence

from core.config import MAX_FORECAST_DAYS
from core.http import HttpGet, UrllibTransport, build_url
from core.models import DayScore, ForecastDay
from core.schemas import OpenMeteoForecast, validate_record

logger = logging.getLogger(__name__)

OPEN_METEO_BASE_URL = "https://api.open-meteo.com/v1"

_DAILY_FIELDS = (
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_probability_max",
    "precipitation_sum",
    "weather_code",
)


# =============================================================================
# WMO Weather Code Mapping
# =============================================================================
# Open-Meteo returns WMO (World Meteorological Organization) weather codes
# instead of human-readable strings.  This mapping converts them.
# =============================================================================
_WMO_CODE_TO_CONDITION: dict[int, str] = {
    0: "Clear",
    1: "Mainly Clear",
    2: "Partly Cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing Rime Fog",
    51: "Light Drizzle",
    53: "Moderate Drizzle",
    55: "Dense Drizzle",
    56: "Freezing Drizzle",
    57: "Heavy Freezing Drizzle",
    61: "Slight Rain",
    63: "Moderate Rain",
    65: "Heavy Rain",
    66: "Freezing Rain",
    67: "Heavy Freezing Rain",
    71: "Slight Snow",
    73: "Moderate Snow",
    75: "Heavy Snow",
    77: "Snow Grains",
    80: "Slight Showers",
    81: "Moderate Showers",
    82: "Violent Showers",
    85: "Slight Snow Showers",
    86: "Heavy Snow Showers",
    95: "Thunderstorms",
    96: "Thunderstorms with Hail",
    99: "Heavy Thunderstorms with Hail",
}

_FAIR_CONDITIONS = ("sunny", "clear", "partly cloudy")


def _celsius_to_fahrenheit(celsius: float) -> int:
    """Convert Celsius to Fahrenheit, rounded to nearest integer."""
    return round(celsius * 9 / 5 + 32)


def _mm_to_precip_pct(mm: Optional[float]) -> int:
    """Convert precipitation mm to a rough 'chance of rain' percentage.

    Only used when Open-Meteo has no precipitation_probability_max for a
    day.  0mm -> 0%, 1mm -> ~25%, 5mm+ -> 80-95%.
    """
    if mm is None or mm <= 0:
        return 0
    elif mm < 1:
        return 25
    elif mm < 3:
        return 45
    elif mm < 5:
        return 65
    elif mm < 10:
        return 80
    else:
        return 95


# =============================================================================
# PROVIDER: Open-Meteo
# =============================================================================
class OpenMeteoClient:
    """Daily forecast by coordinates.  Temperatures come back in °F."""

    def __init__(self, http: Optional[HttpGet] = None, base_url: str = OPEN_METEO_BASE_URL):
        self.http = http or UrllibTransport()
        self.base_url = base_url

    def get_forecast(self, latitude: float, longitude: float, days: int = 7) -> list[ForecastDay]:
        """Fetch up to `days` (capped at 16) days of forecast starting today.

        Raises:
            TransientIOError: network failure or non-2xx status.
            SchemaValidationError: the response has no usable "daily" block.
        """
        url = build_url(
            self.base_url,
            "forecast",
            latitude=latitude,
            longitude=longitude,
            daily=",".join(_DAILY_FIELDS),
            forecast_days=max(1, min(days, MAX_FORECAST_DAYS)),
            timezone="auto",
        )
        payload = self.http(url, {})
        forecast = validate_record(OpenMeteoForecast, payload, source="open-meteo forecast")
        return parse_daily(forecast)


def parse_daily(forecast: OpenMeteoForecast) -> list[ForecastDay]:
    """Zip Open-Meteo's parallel daily arrays into ForecastDay objects.

    A day missing either temperature is skipped.
    """
    daily = forecast.daily
    days = []
    for i, day in enumerate(daily.time):
        t_max = _at(daily.temperature_2m_max, i)
        t_min = _at(daily.temperature_2m_min, i)
        if t_max is None or t_min is None:
            logger.debug("Skipping %s: missing temperature", day)
            continue

        probability = _at(daily.precipitation_probability_max, i)
        if probability is None:
            chance = _mm_to_precip_pct(_at(daily.precipitation_sum, i))
        else:
            chance = int(round(max(0.0, min(100.0, probability))))

        code = _at(daily.weather_code, i)
        days.append(ForecastDay(
            date=day,
            min_temp_f=_celsius_to_fahrenheit(t_min),
            max_temp_f=_celsius_to_fahrenheit(t_max),
            chance_of_rain=chance,
            condition=_WMO_CODE_TO_CONDITION.get(code, "Unknown") if code is not None else "Unknown",
        ))
    return days


def _at(values: Sequence, i: int):
    return values[i] if i < len(values) else None


# =============================================================================
# SCORING (pure)
# =============================================================================
def _temperature_points(avg_f: float) -> int:
    if 65 <= avg_f <= 80:
        return 3
    if 50 <= avg_f <= 85:
        return 2
    return 1


def _rain_points(chance: float) -> int:
    if chance < 20:
        return 3
    if chance < 40:
        return 2
    if chance < 60:
        return 1
    return 0


def _condition_points(condition: str) -> int:
    text = condition.lower()
    return 2 if any(word in text for word in _FAIR_CONDITIONS) else 0


def score_day(day: ForecastDay) -> DayScore:
    avg = (day.min_temp_f + day.max_temp_f) / 2
    score = _temperature_points(avg) + _rain_points(day.chance_of_rain) + _condition_points(day.condition)
    summary = (
        f"{day.min_temp_f:g}°F to {day.max_temp_f:g}°F, {day.condition}, "
        f"{day.chance_of_rain}% chance of rain"
    )
    return DayScore(date=day.date, score=score, summary=summary)


def score_forecast(days: Sequence[ForecastDay]) -> list[DayScore]:
    """One DayScore per input day, same order."""
    return [score_day(d) for d in days]


def rank_scores(scores: Sequence[DayScore]) -> list[DayScore]:
    """Highest score first.  Equal scores keep their input (chronological) order."""
    return sorted(scores, key=lambda s: s.score, reverse=True)


def best_visit_days(days: Sequence[ForecastDay], top_n: int = 3) -> list[DayScore]:
    """The `top_n` best days of a forecast, best first."""
    if top_n <= 0:
        return []
    return rank_scores(score_forecast(days))[:top_n]


def forecast_bounds(days: Sequence[ForecastDay]) -> Optional[tuple[date, date]]:
    if not days:
        return None
    dates = [d.date for d in days]
    return min(dates), max(dates)
