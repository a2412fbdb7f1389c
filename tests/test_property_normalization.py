import pytest

from flowkit.properties import classify_property_value, normalize_property_value, stringify_values


@pytest.mark.parametrize("value", ["abc", "", 5, 0, 2.5, -1])
def test_strings_and_numbers_pass_through(value):
    assert normalize_property_value(value) == value
    assert type(normalize_property_value(value)) is type(value)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ({"a": 1}, '{"a":1}'),
        ([1, "x"], '[1,"x"]'),
        (True, "true"),
        (False, "false"),
        (None, "null"),
        ({"nested": {"b": [1, 2]}}, '{"nested":{"b":[1,2]}}'),
    ],
)
def test_structured_values_become_compact_json(value, expected):
    assert normalize_property_value(value) == expected


def test_booleans_are_structured_not_numbers():
    assert classify_property_value(True) == "structured"
    assert classify_property_value(3) == "number"
    assert classify_property_value("3") == "text"
    assert classify_property_value([3]) == "structured"


def test_values_json_cannot_encode_still_become_strings():
    assert isinstance(normalize_property_value({1, 2}), str)
    assert isinstance(normalize_property_value(object()), str)


def test_stringify_values_mixed_payload():
    assert stringify_values({"count": 5, "meta": {"a": 1}}) == {"count": 5, "meta": '{"a":1}'}


def test_stringify_values_copies_input():
    props = {"meta": {"a": 1}, "name": "x"}
    result = stringify_values(props)
    assert props == {"meta": {"a": 1}, "name": "x"}
    assert result is not props


def test_stringify_values_none_and_non_mapping():
    assert stringify_values(None) is None
    with pytest.raises(TypeError, match=r"properties must be a mapping"):
        stringify_values(["a"])  # type: ignore[arg-type]
