# footprint/validation.py
"""Boundary checks run before an activity reaches the calculator."""
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError

from . import factors as F
from .calculator import payload_field, positive_measurement
from .exceptions import MalformedActivityError
from .schemas import PAYLOAD_MODELS, ActivityType, ValidationReport

logger = logging.getLogger(__name__)

# measurement field that must be positive for each type, with its message
REQUIRED_MEASUREMENTS = {
    ActivityType.TRANSPORT: ("distance", "Distance must be greater than 0"),
    ActivityType.ELECTRICITY: ("units", "Electricity units must be greater than 0"),
    ActivityType.LPG: ("cylinders", "Number of cylinders must be greater than 0"),
    ActivityType.DIET: ("quantity", "Food quantity must be greater than 0"),
    ActivityType.PURCHASES: ("amount", "Purchase amount must be greater than 0"),
    ActivityType.WASTE: ("weight", "Waste weight must be greater than 0"),
    ActivityType.WATER: ("volume", "Water volume must be greater than 0"),
}


def parse_activity_type(value) -> Optional[ActivityType]:
    if isinstance(value, ActivityType):
        return value
    if not isinstance(value, str):
        return None
    try:
        return ActivityType(value.strip().lower())
    except ValueError:
        return None


def ensure_structure(activity_type, payload) -> None:
    """Raise MalformedActivityError for input the calculator cannot even read."""
    if not isinstance(activity_type, str):
        raise MalformedActivityError(f"activity type must be a string, got {type(activity_type).__name__}")
    if payload is not None and not isinstance(payload, (Mapping, BaseModel)):
        raise MalformedActivityError(f"activity data must be an object, got {type(payload).__name__}")


def validate_activity_data(activity_type, data) -> ValidationReport:
    """
    Check measurements for presence and plausibility.

    The report is advisory: a failing report never blocks an activity, the
    calculator turns missing measurements into a zero result.
    """
    report = ValidationReport()
    kind = parse_activity_type(activity_type)
    if kind is None or kind not in REQUIRED_MEASUREMENTS:
        return report
    data = data or {}
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, exclude_none=True)

    name, message = REQUIRED_MEASUREMENTS[kind]
    value = positive_measurement(payload_field(data, name))
    if value is None:
        report.errors.append(message)

    limit = F.PLAUSIBILITY_LIMITS.get(kind.value)
    if limit and value is not None:
        _, ceiling, limit_message = limit
        if value > ceiling:
            report.errors.append(limit_message)
    return report


def build_payload(activity_type, data: Optional[Mapping]) -> Dict[str, Any]:
    """
    Normalise raw activity data into its typed variant with explicit defaults
    (passengers=1, cylinderSize=14.2, ...), returned as a camelCase dict.

    Data that does not fit the variant is kept as sent so the calculator can
    still degrade to a zero result.
    """
    ensure_structure(activity_type, data)
    kind = parse_activity_type(activity_type)
    raw = dict(data or {})
    if kind is None:
        return raw
    model = PAYLOAD_MODELS[kind]
    if model is PAYLOAD_MODELS[ActivityType.OTHER] and "customFields" not in raw and "custom_fields" not in raw:
        raw = {"customFields": raw} if raw else {}
    try:
        parsed = model.model_validate(raw)
    except ValidationError as exc:
        logger.warning("activity data for type=%s does not match its schema, keeping raw: %s", kind.value, exc)
        return raw
    return parsed.model_dump(by_alias=True, exclude_none=True)
