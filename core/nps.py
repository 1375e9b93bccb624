# =============================================================================
# core/nps.py  -  NPS Data API client
# =============================================================================
#
# Responses look like {"total": "1", "limit": "50", "start": "0", "data": [...]}.
# We only ever read "data".  The key goes in the X-Api-Key header.
# =============================================================================

import logging
from datetime import date
from typing import Any, Mapping, Optional

from core.http import HttpGet, UrllibTransport, build_url
from core.models import Alert, CampgroundSummary, Event, Park, normalize_code
from core.schemas import NpsAlert, NpsCampground, NpsEvent, NpsPark, validate_records

logger = logging.getLogger(__name__)

NPS_BASE_URL = "https://developer.nps.gov/api/v1"


class NpsClient:
    def __init__(self, api_key: str = "", http: Optional[HttpGet] = None, base_url: str = NPS_BASE_URL):
        self.api_key = api_key
        self.http = http or UrllibTransport()
        self.base_url = base_url

    def _data(self, model, path: str, **params: Any) -> list:
        url = build_url(self.base_url, path, **params)
        payload = self.http(url, {"X-Api-Key": self.api_key})
        records = payload.get("data") if isinstance(payload, Mapping) else None
        return validate_records(model, records, source=f"nps {path}")

    def get_park(self, park_code: str) -> Optional[Park]:
        """The park, or None if NPS does not know the code."""
        code = normalize_code(park_code)
        parks = self._data(NpsPark, "parks", parkCode=code)
        for park in parks:
            if park.park_code.lower() == code:
                return park.to_park()
        if parks:
            logger.info("NPS answered %s with other parks; treating as not found", code)
        return None

    def search_parks_by_state(self, state_code: str, limit: int = 50) -> list[Park]:
        parks = self._data(NpsPark, "parks", stateCode=state_code.strip().upper(), limit=limit)
        return [p.to_park() for p in parks]

    def get_alerts(self, park_code: str) -> list[Alert]:
        return [a.to_alert() for a in self._data(NpsAlert, "alerts", parkCode=normalize_code(park_code))]

    def get_events(
        self, park_code: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[Event]:
        events = self._data(
            NpsEvent,
            "events",
            parkCode=normalize_code(park_code),
            dateStart=start.isoformat() if start else None,
            dateEnd=end.isoformat() if end else None,
        )
        return [e.to_event() for e in events]

    def get_campgrounds(self, park_code: str) -> list[CampgroundSummary]:
        camps = self._data(NpsCampground, "campgrounds", parkCode=normalize_code(park_code))
        return [c.to_summary() for c in camps]
