# =============================================================================
# core/lookup_tables.py  -  Versioned static configuration data
# =============================================================================
#
# The resolver and the attribute decoder both lean on hand-maintained tables:
#   - rec_area_ids:   NPS park code     -> Recreation.gov RecArea ID
#   - park_names:     NPS park code     -> display name used for RIDB search
#   - activity_ids:   opaque NPS/RIDB id -> canonical capability ("Hiking")
#   - planning_tips:  park code (or "default") -> short visit tips
#
# They live in core/data/lookup_tables.json, carry a "version" string, and
# are loaded ONCE into read-only mappings.  Callers receive a LookupTables
# instance and pass it into RecAreaResolver / decode_attributes.
# =============================================================================

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Union

DEFAULT_TABLES_PATH = Path(__file__).parent / "data" / "lookup_tables.json"


@dataclass(frozen=True)
class LookupTables:
    """Read-only lookup tables.  Park codes are stored lower-case."""

    version: str
    rec_area_ids: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    park_names: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    activity_ids: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    planning_tips: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_dict(cls, data: Mapping) -> "LookupTables":
        return cls(
            version=str(data.get("version", "unversioned")),
            rec_area_ids=MappingProxyType(
                {k.lower(): str(v) for k, v in data.get("rec_area_ids", {}).items()}
            ),
            park_names=MappingProxyType(
                {k.lower(): v for k, v in data.get("park_names", {}).items()}
            ),
            activity_ids=MappingProxyType(
                {k.upper(): v for k, v in data.get("activity_ids", {}).items()}
            ),
            planning_tips=MappingProxyType(
                {k.lower(): tuple(v) for k, v in data.get("planning_tips", {}).items()}
            ),
        )

    @property
    def capability_names(self) -> frozenset[str]:
        return frozenset(self.activity_ids.values())

    def capability_for_id(self, activity_id: str) -> Optional[str]:
        return self.activity_ids.get(activity_id.strip().upper())

    def tips_for(self, park_code: str) -> tuple[str, ...]:
        return self.planning_tips.get(park_code.lower(), self.planning_tips.get("default", ()))


def load_lookup_tables(path: Union[str, Path, None] = None) -> LookupTables:
    """Load tables from JSON.  With no path, the bundled file is loaded once and cached."""
    if path is None:
        return _load_default()
    with open(path, encoding="utf-8") as fh:
        return LookupTables.from_dict(json.load(fh))


@lru_cache(maxsize=1)
def _load_default() -> LookupTables:
    with open(DEFAULT_TABLES_PATH, encoding="utf-8") as fh:
        return LookupTables.from_dict(json.load(fh))
