import pytest

from footprint.calculator import payload_field, positive_measurement
from footprint.exceptions import MalformedActivityError
from footprint.schemas import ActivityType
from footprint.validation import build_payload, ensure_structure, parse_activity_type, validate_activity_data


def test_parse_activity_type():
    assert parse_activity_type("Transport") is ActivityType.TRANSPORT
    assert parse_activity_type(ActivityType.WATER) is ActivityType.WATER
    assert parse_activity_type("gardening") is None
    assert parse_activity_type(7) is None


def test_ensure_structure():
    ensure_structure("transport", {"distance": 1})
    ensure_structure("other", None)
    with pytest.raises(MalformedActivityError):
        ensure_structure(None, {})
    with pytest.raises(MalformedActivityError):
        ensure_structure("transport", "25km")


@pytest.mark.parametrize("activity_type, data, message", [
    ("transport", {}, "Distance must be greater than 0"),
    ("transport", {"distance": 20000}, "Distance seems unrealistic (over 10,000 km)"),
    ("electricity", {"units": -1}, "Electricity units must be greater than 0"),
    ("electricity", {"units": 10001}, "Electricity usage seems unrealistic (over 10,000 kWh)"),
    ("lpg", {"cylinders": 51}, "Number of cylinders seems unrealistic (over 50)"),
    ("diet", {"quantity": 0}, "Food quantity must be greater than 0"),
    ("purchases", {}, "Purchase amount must be greater than 0"),
    ("waste", {"weight": 1001}, "Waste weight seems unrealistic (over 1000 kg)"),
    ("water", {"volume": 0}, "Water volume must be greater than 0"),
])
def test_validation_messages(activity_type, data, message):
    report = validate_activity_data(activity_type, data)
    assert not report.is_valid
    assert report.errors == [message]


def test_valid_and_unchecked_types():
    assert validate_activity_data("transport", {"distance": 12}).is_valid
    assert validate_activity_data("heating", {}).is_valid
    assert validate_activity_data("gardening", None).is_valid


def test_build_payload_applies_defaults():
    assert build_payload("transport", {"distance": 5}) == {"distance": 5.0, "passengers": 1}
    assert build_payload("lpg", {"cylinders": 1}) == {"cylinders": 1.0, "cylinderSize": 14.2}
    assert build_payload("diet", {"food_type": "rice", "quantity": 1}) == {"foodType": "rice", "quantity": 1.0}


def test_build_payload_wraps_custom_fields():
    assert build_payload("other", {"note": "solar"}) == {"customFields": {"note": "solar"}}
    assert build_payload("heating", {}) == {"customFields": {}}


def test_build_payload_keeps_data_that_does_not_fit():
    raw = {"distance": "far", "vehicleType": "car"}
    assert build_payload("transport", raw) == raw


def test_build_payload_unknown_type_passes_through():
    assert build_payload("gardening", {"area": 3}) == {"area": 3}


def test_report_is_a_model():
    report = validate_activity_data("water", {"volume": "lots"})
    assert report.model_dump() == {"errors": ["Water volume must be greater than 0"]}


@pytest.mark.parametrize("value, expected", [
    (3, 3.0), ("2.5", 2.5), (0, None), (-1, None), (True, None), (float("inf"), None), ("x", None),
])
def test_positive_measurement(value, expected):
    assert positive_measurement(value) == expected
    assert payload_field({"cylinder_size": value}, "cylinderSize") == value
