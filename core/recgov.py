# =============================================================================
# core/recgov.py  -  Recreation.gov (RIDB) client
# =============================================================================
#
# A thin wrapper over the HttpGet capability.  Every list endpoint answers
# with {"RECDATA": [...], "METADATA": {...}}; records are validated through
# core/schemas.py and come back as RecAreaRecord / FacilityRecord.
#
# The API key travels in the "apikey" header, never in the URL.
# =============================================================================

import logging
from typing import Any, Mapping, Optional

from core.http import HttpGet, UrllibTransport, build_url
from core.schemas import FacilityRecord, RecAreaRecord, validate_record, validate_records

logger = logging.getLogger(__name__)

RIDB_BASE_URL = "https://ridb.recreation.gov/api/v1"


class RecGovClient:
    def __init__(self, api_key: str = "", http: Optional[HttpGet] = None, base_url: str = RIDB_BASE_URL):
        self.api_key = api_key
        self.http = http or UrllibTransport()
        self.base_url = base_url

    def _get(self, path: str, **params: Any) -> Any:
        url = build_url(self.base_url, path, **params)
        return self.http(url, {"apikey": self.api_key})

    def _list(self, model, path: str, **params: Any) -> list:
        payload = self._get(path, **params)
        records = payload.get("RECDATA") if isinstance(payload, Mapping) else payload
        return validate_records(model, records, source=f"ridb {path}")

    # -------------------------------------------------------------------------
    # Rec areas
    # -------------------------------------------------------------------------
    def search_rec_areas(self, query: str) -> list[RecAreaRecord]:
        return self._list(RecAreaRecord, "recareas", query=query)

    def list_rec_area_facilities(self, area_id: str) -> list[FacilityRecord]:
        return self._list(FacilityRecord, f"recareas/{area_id}/facilities")

    # -------------------------------------------------------------------------
    # Facilities
    # -------------------------------------------------------------------------
    def search_facilities(self, query: str, limit: Optional[int] = None) -> list[FacilityRecord]:
        return self._list(FacilityRecord, "facilities", query=query, limit=limit)

    def search_facilities_near(
        self, latitude: float, longitude: float, radius_miles: float = 50, limit: Optional[int] = None
    ) -> list[FacilityRecord]:
        """Facilities within `radius_miles` of a point.  RIDB measures the radius in miles."""
        return self._list(
            FacilityRecord, "facilities", latitude=latitude, longitude=longitude, radius=radius_miles, limit=limit
        )

    def get_facilities_by_activity(self, activity_id: str, limit: Optional[int] = None) -> list[FacilityRecord]:
        return self._list(FacilityRecord, "facilities", activity=activity_id, limit=limit)

    def get_facility(self, facility_id: str) -> Optional[FacilityRecord]:
        """Full detail record (attributes included).  None if RIDB has nothing."""
        payload = self._get(f"facilities/{facility_id}", full="true")
        record = payload.get("RECDATA", payload) if isinstance(payload, Mapping) else payload
        if isinstance(record, list):
            record = record[0] if record else None
        if not record:
            logger.info("No detail record for facility %s", facility_id)
            return None
        return validate_record(FacilityRecord, record, source=f"ridb facilities/{facility_id}")
