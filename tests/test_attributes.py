import math

import pytest

from core.attributes import AttributeShape, classify_attributes, decode_attributes, parse_number

HIKING = "BFF8C027-7C8F-480B-A5F8-CD8CE490BFBA"
FISHING = "AE42B46C-E4B7-4889-A122-08FE180371AE"
CAMPING = "A59947B7-3376-49B4-AD02-C0423E08C5F7"


def _pair(name, value):
    return {"AttributeName": name, "AttributeValue": value}


@pytest.mark.parametrize("raw, expected", [
    ("4.5", 4.5),
    ("  4.5 mi", 4.5),
    ("1,200 ft", 1200.0),
    (3, 3.0),
    (2.25, 2.25),
    ("abc", None),
    ("", None),
    (None, None),
    (True, None),
    (float("nan"), None),
    ([4], None),
])
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_flat_pairs_named_scalars(tables):
    attrs = decode_attributes([
        _pair("Trail Length", "4.5"),
        _pair("Trail Difficulty", "Moderate"),
        _pair("Elevation Gain", "1,100"),
        _pair("Trail Surface", "Dirt"),
        _pair("Trail Type", "Out and Back"),
    ], tables)

    assert attrs.get("length") == 4.5
    assert attrs.get("difficulty") == "Moderate"
    assert attrs.get("elevation_gain") == 1100.0
    assert attrs.get("surface_type") == "Dirt"
    assert attrs.get("trail_type") == "Out and Back"


def test_nested_pairs_decode_like_flat(tables):
    flat = decode_attributes([_pair("Trail Length", "2"), _pair("Trail Difficulty", "Easy")], tables)
    nested = decode_attributes({"ATTRIBUTES": [_pair("Trail Length", "2"), _pair("Trail Difficulty", "Easy")]}, tables)
    assert nested.get("length") == flat.get("length") == 2.0
    assert nested.get("difficulty") == flat.get("difficulty") == "Easy"


def test_alternate_pair_keys(tables):
    attrs = decode_attributes([{"AttributeKey": "Trail Length", "value": "7"}], tables)
    assert attrs.get("length") == 7.0


def test_unparseable_number_is_absent(tables):
    attrs = decode_attributes([_pair("Trail Length", "abc"), _pair("Trail Difficulty", "Hard")], tables)
    assert "length" not in attrs.values
    assert attrs.get("difficulty") == "Hard"


def test_unknown_attribute_keeps_its_name(tables):
    attrs = decode_attributes([_pair("Pets Allowed", "Leashed")], tables)
    assert attrs.get("Pets Allowed") == "Leashed"


def test_id_flags_mapping(tables):
    attrs = decode_attributes({HIKING: "Yes", FISHING: "No", "Unknown-Id": "Yes"}, tables)
    assert attrs.capabilities == ("Hiking",)


def test_id_flag_pairs_and_capability_names(tables):
    attrs = decode_attributes([_pair(CAMPING, "yes"), _pair("Fishing", "Yes"), _pair("Not A Thing", "Yes")], tables)
    assert attrs.capabilities == ("Camping", "Fishing")


def test_freeform_json_array(tables):
    text = f'["Hiking", {{"name": "Swimming"}}, {{"id": "{CAMPING}"}}, {{"id": "nope"}}, 7]'
    attrs = decode_attributes([_pair("Activities", text)], tables)
    assert attrs.capabilities == ("Hiking", "Swimming", "Camping")


def test_freeform_comma_list(tables):
    attrs = decode_attributes({"activities": "Hiking, Fishing ,, Swimming"}, tables)
    assert attrs.capabilities == ("Hiking", "Fishing", "Swimming")


def test_freeform_malformed_json_falls_back_to_commas(tables):
    attrs = decode_attributes({"activities": '["Hiking", "Biking"'}, tables)
    assert attrs.capabilities == ('["Hiking"', '"Biking"')


def test_capabilities_merge_across_shapes_first_seen_order(tables):
    attrs = decode_attributes([
        _pair("Fishing", "Yes"),
        _pair(HIKING, "Yes"),
        _pair("Activities", "Hiking, Biking, Fishing"),
    ], tables)
    assert attrs.capabilities == ("Fishing", "Hiking", "Biking")


def test_classification_reports_every_shape():
    shapes = [t.shape for t in classify_attributes([_pair("Hiking", "Yes"), _pair("Activities", "Biking")])]
    assert shapes == [AttributeShape.FLAT_PAIRS, AttributeShape.ID_FLAGS, AttributeShape.FREEFORM]

    shapes = [t.shape for t in classify_attributes({"ATTRIBUTES": [_pair("Trail Length", "1")]})]
    assert shapes == [AttributeShape.NESTED_PAIRS]


@pytest.mark.parametrize("raw", [None, 42, "", [], {}, [1, "two", None], {"ATTRIBUTES": "nope"}, [{"AttributeName": 5}]])
def test_garbage_decodes_to_empty(raw, tables):
    attrs = decode_attributes(raw, tables)
    assert dict(attrs.values) == {}
    assert attrs.capabilities == ()


def test_numbers_are_finite(tables):
    attrs = decode_attributes([_pair("Trail Length", "1e400")], tables)
    length = attrs.get("length")
    assert length is None or math.isfinite(length)
