# =============================================================================
# core/trails.py  -  Facility / Trail Aggregator
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Given a RIDB RecArea ID, produce the park's trails with whatever detail
#   Recreation.gov can give us.
#
#   1. List the area's facilities (PRIMARY: a failure here propagates)
#   2. Keep the ones that look like trails ("trail" in type or name)
#   3. Nothing left?  One fallback facility search: "<park name> trail"
#   4. Fetch each candidate's detail record CONCURRENTLY (bounded pool)
#      - one failed detail fetch degrades that trail only, whatever it raised
#      - a deadline / cancel event stops new fetches; unfinished trails
#        come back degraded
#   5. Decode attributes (core/attributes.py) and build Trail objects
#   6. Apply the optional TrailFilter
#
#   The result never has more entries than there were candidates, and it
#   keeps candidate order no matter which fetch finished first.
# =============================================================================

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout, as_completed
from typing import Iterable, Optional, Sequence

from core.attributes import decode_attributes
from core.errors import UpstreamError
from core.lookup_tables import LookupTables
from core.models import LocationCode, RemoteAreaId, Trail, TrailFilter, normalize_code
from core.recgov import RecGovClient
from core.resolver import RecAreaResolver
from core.schemas import FacilityRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 5


def is_trail_facility(facility: FacilityRecord) -> bool:
    return "trail" in facility.type_description.lower() or "trail" in facility.name.lower()


def build_trail(
    facility: FacilityRecord,
    park_code: LocationCode,
    tables: LookupTables,
    detail: Optional[FacilityRecord] = None,
) -> Trail:
    """Map a facility (plus its detail record, when we have one) to a Trail."""
    source = detail or facility
    attrs = decode_attributes(source.attributes, tables)
    return Trail(
        id=facility.id,
        name=source.name or facility.name,
        park_code=park_code,
        description=source.description or facility.description,
        trailhead=source.trailhead or facility.trailhead,
        length_miles=attrs.get("length"),
        difficulty=attrs.get("difficulty"),
        elevation_gain_ft=attrs.get("elevation_gain"),
        trail_type=attrs.get("trail_type"),
        surface_type=attrs.get("surface_type"),
        trail_uses=list(attrs.capabilities),
    )


def degraded_trail(facility: FacilityRecord, park_code: LocationCode) -> Trail:
    return Trail(
        id=facility.id,
        name=facility.name,
        park_code=park_code,
        description=facility.description,
        trailhead=facility.trailhead,
        enrichment_failed=True,
    )


def trail_matches(trail: Trail, trail_filter: TrailFilter) -> bool:
    """Every supplied criterion must hold.  A missing attribute fails its criterion."""
    if trail_filter.trail_id is not None and trail.id != trail_filter.trail_id:
        return False
    if trail_filter.difficulty is not None:
        if trail.difficulty is None or trail_filter.difficulty.lower() not in trail.difficulty.lower():
            return False
    if trail_filter.min_length is not None:
        if trail.length_miles is None or trail.length_miles < trail_filter.min_length:
            return False
    if trail_filter.max_length is not None:
        if trail.length_miles is None or trail.length_miles > trail_filter.max_length:
            return False
    return True


def apply_trail_filter(trails: Iterable[Trail], trail_filter: Optional[TrailFilter]) -> list[Trail]:
    if trail_filter is None:
        return list(trails)
    return [t for t in trails if trail_matches(t, trail_filter)]


class TrailAggregator:
    def __init__(
        self,
        recgov: RecGovClient,
        resolver: RecAreaResolver,
        tables: LookupTables,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self.recgov = recgov
        self.resolver = resolver
        self.tables = tables
        self.max_workers = max(1, max_workers)

    def trails_for_park(
        self,
        park_code: str,
        trail_filter: Optional[TrailFilter] = None,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[Trail]:
        """Resolve the park, then list its trails.  Unknown parks give []."""
        area_id = self.resolver.resolve(park_code)
        if area_id is None:
            return []
        return self.list_trails(area_id, park_code, trail_filter, deadline, cancel_event)

    def list_trails(
        self,
        area_id: RemoteAreaId,
        park_code: str,
        trail_filter: Optional[TrailFilter] = None,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[Trail]:
        """Trails for one RecArea.

        Args:
            area_id: RIDB RecArea ID.
            park_code: NPS park code, used for the fallback search and
                stamped on every Trail.
            trail_filter: optional post-enrichment filter.
            deadline: absolute time.monotonic() value after which no new
                detail fetch starts.
            cancel_event: same effect as the deadline, triggered by the caller.

        Raises:
            UpstreamError: the facility listing (or the fallback search) failed.
        """
        code = normalize_code(park_code)
        candidates = self._find_candidates(area_id, code)
        if not candidates:
            logger.info("No trail facilities for %s (area %s)", code, area_id)
            return []

        trails = self._enrich(candidates, code, deadline, cancel_event)
        return apply_trail_filter(trails, trail_filter)

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------
    def _find_candidates(self, area_id: RemoteAreaId, code: LocationCode) -> list[FacilityRecord]:
        facilities = self.recgov.list_rec_area_facilities(area_id)
        candidates = [f for f in facilities if is_trail_facility(f)]
        if candidates:
            return candidates

        display_name = self.tables.park_names.get(code)
        if not display_name:
            return []
        logger.info("No trails listed under area %s; searching %r", area_id, f"{display_name} trail")
        return [f for f in self.recgov.search_facilities(f"{display_name} trail") if is_trail_facility(f)]

    # -------------------------------------------------------------------------
    # Enrichment fan-out
    # -------------------------------------------------------------------------
    def _enrich(
        self,
        candidates: Sequence[FacilityRecord],
        code: LocationCode,
        deadline: Optional[float],
        cancel_event: Optional[threading.Event],
    ) -> list[Trail]:
        def stopped() -> bool:
            if cancel_event is not None and cancel_event.is_set():
                return True
            return deadline is not None and time.monotonic() >= deadline

        def enrich_one(facility: FacilityRecord) -> Trail:
            if stopped():
                return degraded_trail(facility, code)
            try:
                detail = self.recgov.get_facility(facility.id)
                return build_trail(facility, code, self.tables, detail)
            except UpstreamError as e:
                logger.warning("Detail fetch for facility %s failed: %s", facility.id, e)
            except Exception:
                logger.exception("Unexpected error enriching facility %s", facility.id)
            return degraded_trail(facility, code)

        results: list[Optional[Trail]] = [None] * len(candidates)
        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(candidates)))
        futures = {executor.submit(enrich_one, f): i for i, f in enumerate(candidates)}
        timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
        try:
            for future in as_completed(futures, timeout=timeout):
                results[futures[future]] = future.result()
        except FuturesTimeout:
            pending = sum(1 for r in results if r is None)
            logger.warning("Trail enrichment for %s hit its deadline; %d of %d unfinished",
                           code, pending, len(candidates))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        trails = [r if r is not None else degraded_trail(candidates[i], code) for i, r in enumerate(results)]
        failed = sum(1 for t in trails if t.enrichment_failed)
        if failed:
            logger.warning("%d of %d trails for %s returned without details", failed, len(trails), code)
        return trails
