# =============================================================================
# core/models.py  -  Data Models (the "nouns" of the system)
# =============================================================================
#
# These dataclasses are the shapes that flow OUT of core/.  Raw upstream JSON
# never gets this far: core/schemas.py validates provider payloads first, and
# the provider clients convert them into the types below.
#
# Every model is request-scoped.  Nothing here is cached or shared between
# calls, and the report-side types are frozen so a VisitReport cannot change
# after compose_visit_report() returns it.
# =============================================================================

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Generic, Mapping, Optional, TypeVar

T = TypeVar("T")

# NPS park code ("yose").  Always lower-case once it enters core/.
LocationCode = str
# Recreation.gov RecArea ID, carried as a string ("2991").
RemoteAreaId = str


def normalize_code(code: str) -> LocationCode:
    return code.strip().lower()


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float
    name: Optional[str] = None


# -----------------------------------------------------------------------------
# AttributeSet: the one canonical shape all four attribute encodings become
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class AttributeSet:
    """Decoded facility attributes.

    values:        canonical name -> scalar.  Known trail attributes use the
                   keys length / difficulty / elevation_gain / surface_type /
                   trail_type; anything else keeps its upstream name.
    capabilities:  activity names, de-duplicated, in first-seen order.
    """

    values: Mapping[str, Any] = field(default_factory=dict)
    capabilities: tuple[str, ...] = ()

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)


# -----------------------------------------------------------------------------
# Trail: what list_trails() returns
# -----------------------------------------------------------------------------
@dataclass
class Trail:
    """One trail facility, enriched from its RIDB detail record when possible."""

    id: str
    name: str
    park_code: LocationCode
    description: Optional[str] = None
    trailhead: Optional[GeoPoint] = None
    length_miles: Optional[float] = None
    difficulty: Optional[str] = None
    elevation_gain_ft: Optional[float] = None
    trail_type: Optional[str] = None
    surface_type: Optional[str] = None
    trail_uses: list[str] = field(default_factory=list)
    enrichment_failed: bool = False     # detail fetch failed; attributes absent


@dataclass(frozen=True)
class TrailFilter:
    """Optional post-enrichment filter.  Every supplied criterion must match."""

    trail_id: Optional[str] = None
    difficulty: Optional[str] = None    # case-insensitive substring
    min_length: Optional[float] = None  # inclusive, miles
    max_length: Optional[float] = None  # inclusive, miles


# -----------------------------------------------------------------------------
# Weather
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ForecastDay:
    """One day of forecast, already in °F."""

    date: date
    min_temp_f: float
    max_temp_f: float
    chance_of_rain: int                 # 0-100
    condition: str                      # "Sunny", "Partly Cloudy", ...


@dataclass(frozen=True)
class DayScore:
    """Suitability of one forecast day, 0 (stay home) to 8 (go)."""

    date: date
    score: int
    summary: str


# -----------------------------------------------------------------------------
# NPS data
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Park:
    id: str
    code: LocationCode
    name: str
    description: Optional[str] = None
    url: Optional[str] = None
    states: Optional[str] = None
    location: Optional[GeoPoint] = None


@dataclass(frozen=True)
class Alert:
    id: str
    title: str
    category: str
    description: str = ""
    url: Optional[str] = None


@dataclass(frozen=True)
class Event:
    id: str
    title: str
    date_start: Optional[date] = None
    date_end: Optional[date] = None
    location: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class CampgroundSummary:
    id: str
    name: str
    total_sites: Optional[int] = None
    reservation_url: Optional[str] = None


# -----------------------------------------------------------------------------
# Report Composer inputs / outputs
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class SubsourceResult(Generic[T]):
    """Outcome of one non-primary fetch: items, or the reason there are none."""

    items: tuple[T, ...] = ()
    error: Optional[str] = None

    @classmethod
    def ok(cls, items) -> "SubsourceResult[T]":
        return cls(items=tuple(items))

    @classmethod
    def failed(cls, error: str) -> "SubsourceResult[T]":
        return cls(error=error)


@dataclass(frozen=True)
class VisitSubsources:
    alerts: SubsourceResult[Alert] = field(default_factory=SubsourceResult)
    events: SubsourceResult[Event] = field(default_factory=SubsourceResult)
    campgrounds: SubsourceResult[CampgroundSummary] = field(default_factory=SubsourceResult)
    forecast: SubsourceResult[ForecastDay] = field(default_factory=SubsourceResult)


@dataclass(frozen=True)
class TripWindow:
    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Trip end {self.end} is before start {self.start}")


@dataclass(frozen=True)
class ReportSection:
    """A titled list of items.  `note` is set exactly when the section is not available."""

    title: str
    items: tuple = ()
    note: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.note is None


@dataclass(frozen=True)
class TripOutlook:
    window: TripWindow
    overlaps_forecast: bool
    days: tuple[ForecastDay, ...] = ()
    note: str = ""


@dataclass(frozen=True)
class VisitReport:
    """Everything the agent needs to answer "when should I go?" for one park."""

    park: Park
    alerts: ReportSection
    closures: ReportSection
    forecast: ReportSection
    best_days: ReportSection
    events: ReportSection
    campgrounds: ReportSection
    trip: Optional[TripOutlook] = None
    planning_tips: tuple[str, ...] = ()
