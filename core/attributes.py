# =============================================================================
# core/attributes.py  -  Attribute Decoder
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Recreation.gov facility records carry their attributes in whatever shape
#   the data entry happened to use.  We have seen four:
#
#     FLAT_PAIRS     [{"AttributeName": "Trail Length", "AttributeValue": "4.5"}, ...]
#     NESTED_PAIRS   {"ATTRIBUTES": [ ...same pairs... ]}
#     ID_FLAGS       {"BFF8C027-...": "Yes"}  or a pair named by an opaque id
#                    (or by a capability name: "Hiking": "Yes")
#     FREEFORM       "Activities": '["Hiking", {"id": "A59947B7-..."}]'
#                    or just "Hiking, Fishing"
#
#   decode_attributes() turns any of them into ONE AttributeSet.
#
# HOW:
#   1. classify_attributes() looks at the STRUCTURE of the input and returns
#      a list of TaggedAttributes, one per shape present.
#   2. Each shape has its own decoder in _DECODERS.
#   3. The partial results are merged: scalar values first-seen wins,
#      capabilities are a set that remembers first-seen order.
#
# Nothing in here raises.  A malformed number is simply absent.
# =============================================================================

import json
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Sequence

from core.lookup_tables import LookupTables, load_lookup_tables
from core.models import AttributeSet


class AttributeShape(Enum):
    FLAT_PAIRS = "flat_pairs"
    NESTED_PAIRS = "nested_pairs"
    ID_FLAGS = "id_flags"
    FREEFORM = "freeform"


@dataclass(frozen=True)
class AttributePair:
    name: str
    value: Any


@dataclass(frozen=True)
class TaggedAttributes:
    """One recognized shape plus the payload its decoder needs."""

    shape: AttributeShape
    payload: Any


_NAME_KEYS = ("AttributeName", "AttributeKey", "name", "key")
_VALUE_KEYS = ("AttributeValue", "value")
_NESTED_KEYS = ("ATTRIBUTES", "Attributes", "attributes")
_FREEFORM_NAME = "activities"
_FLAG_VALUES = {"yes", "no", "true", "false"}

# Exact upstream attribute name -> (canonical key, numeric?)
SCALAR_ATTRIBUTES: dict[str, tuple[str, bool]] = {
    "Trail Length": ("length", True),
    "Trail Difficulty": ("difficulty", False),
    "Elevation Gain": ("elevation_gain", True),
    "Trail Surface": ("surface_type", False),
    "Trail Type": ("trail_type", False),
}

_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def parse_number(value: Any) -> Optional[float]:
    """Parse "4.5", "4.5 mi", "1,200 ft" or 4.5 to a float.  Anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value.strip().replace(",", ""))
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None
    return number if math.isfinite(number) else None


# =============================================================================
# Step 1: classification
# =============================================================================
def classify_attributes(raw: Any) -> list[TaggedAttributes]:
    """Return every shape present in `raw`, in decode order."""
    tagged: list[TaggedAttributes] = []
    pairs: tuple[AttributePair, ...] = ()

    if isinstance(raw, str):
        if raw.strip():
            tagged.append(TaggedAttributes(AttributeShape.FREEFORM, raw))
        return tagged

    if _is_list(raw):
        pairs = _pairs_from_list(raw)
        if pairs:
            tagged.append(TaggedAttributes(AttributeShape.FLAT_PAIRS, pairs))
    elif isinstance(raw, Mapping):
        for key in _NESTED_KEYS:
            inner = raw.get(key)
            if _is_list(inner):
                pairs = _pairs_from_list(inner)
                if pairs:
                    tagged.append(TaggedAttributes(AttributeShape.NESTED_PAIRS, pairs))
                    break

    flags = [(p.name, p.value) for p in pairs if _is_flag_value(p.value)]
    freeform = [p.value for p in pairs if p.name.strip().lower() == _FREEFORM_NAME and isinstance(p.value, str)]
    if isinstance(raw, Mapping):
        for key, value in raw.items():
            if not isinstance(key, str):
                continue
            if _is_flag_value(value):
                flags.append((key, value))
            elif key.lower() == _FREEFORM_NAME and isinstance(value, str):
                freeform.append(value)

    if flags:
        tagged.append(TaggedAttributes(AttributeShape.ID_FLAGS, tuple(flags)))
    for text in freeform:
        if text.strip():
            tagged.append(TaggedAttributes(AttributeShape.FREEFORM, text))
    return tagged


def _is_list(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _is_flag_value(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    return isinstance(value, str) and value.strip().lower() in _FLAG_VALUES


def _is_yes(value: Any) -> bool:
    return value is True or (isinstance(value, str) and value.strip().lower() in ("yes", "true"))


def _pairs_from_list(items: Sequence) -> tuple[AttributePair, ...]:
    pairs = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        name = next((item[k] for k in _NAME_KEYS if isinstance(item.get(k), str) and item[k]), None)
        if name is None or not any(k in item for k in _VALUE_KEYS):
            continue
        value = next((item[k] for k in _VALUE_KEYS if k in item), None)
        pairs.append(AttributePair(name=name, value=value))
    return tuple(pairs)


# =============================================================================
# Step 2: one decoder per shape
# =============================================================================
@dataclass
class _Partial:
    values: dict[str, Any] = field(default_factory=dict)
    capabilities: list[str] = field(default_factory=list)


def _decode_pairs(pairs: tuple[AttributePair, ...], tables: LookupTables) -> _Partial:
    partial = _Partial()
    for pair in pairs:
        if pair.name in SCALAR_ATTRIBUTES:
            key, numeric = SCALAR_ATTRIBUTES[pair.name]
            if numeric:
                value = parse_number(pair.value)
            elif isinstance(pair.value, (str, int, float)) and not isinstance(pair.value, bool):
                value = str(pair.value).strip() or None
            else:
                value = None
        else:
            key = pair.name
            value = pair.value if isinstance(pair.value, (str, int, float, bool)) else None
        if value is not None and key not in partial.values:
            partial.values[key] = value
    return partial


def _decode_flags(flags: tuple[tuple[str, Any], ...], tables: LookupTables) -> _Partial:
    partial = _Partial()
    known_names = tables.capability_names
    for name, value in flags:
        if not _is_yes(value):
            continue
        capability = tables.capability_for_id(name) or (name if name in known_names else None)
        if capability:
            partial.capabilities.append(capability)
    return partial


def _decode_freeform(text: str, tables: LookupTables) -> _Partial:
    partial = _Partial()
    try:
        parsed = json.loads(text)
    except (ValueError, RecursionError):
        parsed = None

    if isinstance(parsed, list):
        for entry in parsed:
            if isinstance(entry, str):
                capability = entry.strip()
            elif isinstance(entry, Mapping):
                name = entry.get("name")
                entry_id = entry.get("id")
                if isinstance(name, str) and name.strip():
                    capability = name.strip()
                elif entry_id is not None:
                    capability = tables.capability_for_id(str(entry_id))
                else:
                    capability = None
            else:
                capability = None
            if capability:
                partial.capabilities.append(capability)
        return partial

    # Not a JSON array: treat as "Hiking, Fishing, ..."
    for token in text.split(","):
        token = token.strip()
        if token:
            partial.capabilities.append(token)
    return partial


_DECODERS: dict[AttributeShape, Callable[[Any, LookupTables], _Partial]] = {
    AttributeShape.FLAT_PAIRS: _decode_pairs,
    AttributeShape.NESTED_PAIRS: _decode_pairs,
    AttributeShape.ID_FLAGS: _decode_flags,
    AttributeShape.FREEFORM: _decode_freeform,
}


# =============================================================================
# Step 3: merge
# =============================================================================
def decode_attributes(raw: Any, tables: Optional[LookupTables] = None) -> AttributeSet:
    """Decode one raw attribute container into an AttributeSet."""
    tables = tables or load_lookup_tables()
    values: dict[str, Any] = {}
    capabilities: dict[str, None] = {}   # ordered set

    for tagged in classify_attributes(raw):
        partial = _DECODERS[tagged.shape](tagged.payload, tables)
        for key, value in partial.values.items():
            values.setdefault(key, value)
        for capability in partial.capabilities:
            capabilities.setdefault(capability, None)

    return AttributeSet(values=values, capabilities=tuple(capabilities))
