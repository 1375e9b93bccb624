# =============================================================================
# core/resolver.py  -  Identifier Resolver (NPS park code -> RIDB RecArea ID)
# =============================================================================
#
# The NPS and Recreation.gov APIs know the same park under different ids.
#
#   1. Static table hit                  -> return it, no network
#   2. No display name for the code      -> None, no network
#   3. Search RIDB rec areas by name     -> None when nothing comes back
#   4. choose_best_match():
#        exact name (case-insensitive)
#        name contains "<display> national park"
#        name contains "<display>"
#        first candidate
#
# Nothing is cached: every resolve() with a non-static code searches again.
# =============================================================================

import logging
from typing import Optional, Sequence

from core.lookup_tables import LookupTables
from core.models import RemoteAreaId, normalize_code
from core.recgov import RecGovClient
from core.schemas import RecAreaRecord

logger = logging.getLogger(__name__)


def choose_best_match(
    candidates: Sequence[RecAreaRecord], display_name: str
) -> tuple[Optional[RecAreaRecord], str]:
    """Pick one candidate and say which rule picked it."""
    if not candidates:
        return None, "none"

    wanted = display_name.strip().lower()
    names = [(c, c.name.strip().lower()) for c in candidates]

    for candidate, name in names:
        if name == wanted:
            return candidate, "exact"

    national_park = f"{wanted} national park"
    for candidate, name in names:
        if national_park in name:
            return candidate, "national_park"

    for candidate, name in names:
        if wanted in name:
            return candidate, "contains"

    return candidates[0], "first"


class RecAreaResolver:
    def __init__(self, recgov: RecGovClient, tables: LookupTables):
        self.recgov = recgov
        self.tables = tables

    def resolve(self, park_code: str) -> Optional[RemoteAreaId]:
        """RIDB RecArea ID for an NPS park code, or None if it cannot be found.

        Raises:
            TransientIOError: the RIDB search itself failed.
        """
        code = normalize_code(park_code)

        static_id = self.tables.rec_area_ids.get(code)
        if static_id:
            return static_id

        display_name = self.tables.park_names.get(code)
        if not display_name:
            logger.info("No display name for park code %r; cannot resolve", code)
            return None

        candidates = self.recgov.search_rec_areas(display_name)
        winner, rule = choose_best_match(candidates, display_name)
        if winner is None:
            logger.warning("No RecAreas found for query %r", display_name)
            return None

        log = logger.warning if rule == "first" else logger.info
        log("Resolved %s -> %s (%r) by rule %s", code, winner.id, winner.name, rule)
        return winner.id
