# =============================================================================
# core/schemas.py  -  Upstream response schemas (validated at the boundary)
# =============================================================================
#
# One pydantic model per provider record:
#
#   RIDB (Recreation.gov)   RecAreaRecord, FacilityRecord
#   NPS Data API            NpsPark, NpsAlert, NpsEvent, NpsCampground
#   Open-Meteo              OpenMeteoForecast
#
# Provider clients call validate_records()/validate_record() on the decoded
# JSON and convert to core/models.py types via each schema's to_*() method.
# A payload that does not fit raises SchemaValidationError; nothing typed
# "Any" crosses into the aggregation logic except FacilityRecord.attributes,
# whose shape is deliberately left to core/attributes.py to classify.
# =============================================================================

from datetime import date
from typing import Any, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.attributes import parse_number
from core.errors import SchemaValidationError
from core.models import Alert, CampgroundSummary, Event, GeoPoint, Park

M = TypeVar("M", bound=BaseModel)


class _Upstream(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _as_str(v: Any) -> Any:
    return "" if v is None else str(v)


def _as_optional_float(v: Any) -> Optional[float]:
    return parse_number(v)


def _as_optional_date(v: Any) -> Optional[date]:
    if isinstance(v, date):
        return v
    if not isinstance(v, str) or not v.strip():
        return None
    try:
        return date.fromisoformat(v.strip()[:10])
    except ValueError:
        return None


def _geo(lat: Optional[float], lon: Optional[float], name: Optional[str] = None) -> Optional[GeoPoint]:
    # RIDB reports unknown coordinates as 0/0
    if lat is None or lon is None or (lat == 0 and lon == 0):
        return None
    return GeoPoint(latitude=lat, longitude=lon, name=name)


# =============================================================================
# RIDB (Recreation.gov)
# =============================================================================
class RecAreaRecord(_Upstream):
    id: str = Field(alias="RecAreaID")
    name: str = Field("", alias="RecAreaName")

    @field_validator("id", "name", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _as_str(v)


class FacilityRecord(_Upstream):
    id: str = Field(alias="FacilityID")
    name: str = Field("", alias="FacilityName")
    type_description: str = Field("", alias="FacilityTypeDescription")
    description: Optional[str] = Field(None, alias="FacilityDescription")
    latitude: Optional[float] = Field(None, alias="FacilityLatitude")
    longitude: Optional[float] = Field(None, alias="FacilityLongitude")
    reservation_url: Optional[str] = Field(None, alias="FacilityReservationURL")
    attributes: Any = Field(None, alias="ATTRIBUTES")

    @field_validator("id", "name", "type_description", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _as_str(v)

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def coerce_coordinate(cls, v):
        return _as_optional_float(v)

    @property
    def trailhead(self) -> Optional[GeoPoint]:
        return _geo(self.latitude, self.longitude, self.name)


# =============================================================================
# NPS Data API
# =============================================================================
class NpsPark(_Upstream):
    id: str
    park_code: str = Field(alias="parkCode")
    full_name: str = Field("", alias="fullName")
    description: Optional[str] = None
    url: Optional[str] = None
    states: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def coerce_coordinate(cls, v):
        return _as_optional_float(v)

    def to_park(self) -> Park:
        return Park(
            id=self.id,
            code=self.park_code.lower(),
            name=self.full_name,
            description=self.description,
            url=self.url,
            states=self.states,
            location=_geo(self.latitude, self.longitude, self.full_name),
        )


class NpsAlert(_Upstream):
    id: str
    title: str = ""
    description: str = ""
    category: str = ""
    url: Optional[str] = None

    @field_validator("title", "description", "category", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _as_str(v)

    def to_alert(self) -> Alert:
        return Alert(
            id=self.id,
            title=self.title,
            category=self.category,
            description=self.description,
            url=self.url or None,
        )


class NpsEvent(_Upstream):
    id: str
    title: str = ""
    description: str = ""
    location: Optional[str] = None
    date_start: Optional[date] = Field(None, alias="datestart")
    date_end: Optional[date] = Field(None, alias="dateend")

    @field_validator("title", "description", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _as_str(v)

    @field_validator("date_start", "date_end", mode="before")
    @classmethod
    def coerce_date(cls, v):
        return _as_optional_date(v)

    def to_event(self) -> Event:
        return Event(
            id=self.id,
            title=self.title,
            date_start=self.date_start,
            date_end=self.date_end,
            location=self.location or None,
            description=self.description,
        )


class NpsCampsites(_Upstream):
    total_sites: Optional[float] = Field(None, alias="totalSites")

    @field_validator("total_sites", mode="before")
    @classmethod
    def coerce_total(cls, v):
        return _as_optional_float(v)


class NpsCampground(_Upstream):
    id: str
    name: str = ""
    reservation_url: Optional[str] = Field(None, alias="reservationUrl")
    campsites: Optional[NpsCampsites] = None

    def to_summary(self) -> CampgroundSummary:
        total = self.campsites.total_sites if self.campsites else None
        return CampgroundSummary(
            id=self.id,
            name=self.name,
            total_sites=int(total) if total else None,
            reservation_url=self.reservation_url or None,
        )


# =============================================================================
# Open-Meteo
# =============================================================================
class OpenMeteoDaily(_Upstream):
    time: list[date]
    temperature_2m_max: list[Optional[float]] = []
    temperature_2m_min: list[Optional[float]] = []
    precipitation_probability_max: list[Optional[float]] = []
    precipitation_sum: list[Optional[float]] = []
    weather_code: list[Optional[int]] = []


class OpenMeteoForecast(_Upstream):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    daily: OpenMeteoDaily


# =============================================================================
# Validation helpers
# =============================================================================
def validate_record(model: type[M], payload: Any, source: str = "") -> M:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise SchemaValidationError(
            f"{source or model.__name__}: unexpected {model.__name__} payload "
            f"({e.error_count()} errors)",
            url=source or None,
        ) from e


def validate_records(model: type[M], records: Any, source: str = "") -> list[M]:
    if records is None:
        return []
    if not isinstance(records, Sequence) or isinstance(records, (str, bytes)):
        raise SchemaValidationError(
            f"{source or model.__name__}: expected a list of {model.__name__}", url=source or None
        )
    return [validate_record(model, r, source) for r in records]
