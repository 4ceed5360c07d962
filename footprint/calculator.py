# footprint/calculator.py
"""
Emission calculator.

Maps one activity (type, sub category, payload) to an EmissionResult carrying
the CO2e figure and the provenance of the factor that produced it. Pure
functions only: nothing here reads or writes user statistics or storage.
"""
import logging
import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel

from . import factors as F
from .exceptions import MalformedActivityError
from .schemas import ActivityType, CarbonEstimateOut, CarbonFormIn, EmissionFactor, EmissionResult

logger = logging.getLogger(__name__)


def _utcnow():
    return datetime.now(timezone.utc)


def _kg(value):
    # strip binary float noise (120 * 0.82 -> 98.39999999999999)
    return round(value, 10)


def _as_mapping(payload) -> Mapping:
    if payload is None:
        return {}
    if isinstance(payload, BaseModel):
        return payload.model_dump(by_alias=True, exclude_none=True)
    if isinstance(payload, Mapping):
        return payload
    raise MalformedActivityError(f"payload must be an object, got {type(payload).__name__}")


def _snake(name):
    return "".join("_" + c.lower() if c.isupper() else c for c in name)


def payload_field(data: Mapping, key: str):
    """Look a payload field up by its camelCase name, then its snake_case one."""
    if key in data:
        return data[key]
    return data.get(_snake(key))


def positive_measurement(value) -> Optional[float]:
    """Return value as a float if it is a usable measurement, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _label(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().lower()
    return text or None


def zero_emission_result(now: Optional[datetime] = None) -> EmissionResult:
    """The result used whenever no rule produces a figure."""
    return EmissionResult(
        co2=0.0,
        total_co2e=0.0,
        factor=EmissionFactor(
            value=0.0,
            unit=F.UNKNOWN_UNIT,
            source_label=F.DEFAULT_SOURCE,
            last_updated=now or _utcnow(),
        ),
        calculation_method="default",
    )


def _result(activity_type: str, co2: float, factor: float, now: datetime) -> Optional[EmissionResult]:
    if not math.isfinite(co2):
        # measurement so large the product overflowed
        logger.warning("%s emissions overflowed, using zero emissions", activity_type)
        return None
    unit, source = F.FACTOR_PROVENANCE[activity_type]
    co2 = _kg(co2)
    return EmissionResult(
        co2=co2,
        total_co2e=co2,
        factor=EmissionFactor(value=factor, unit=unit, source_label=source, last_updated=now),
        calculation_method="default",
    )

# -----------------
# Factor selection
# -----------------
def transport_factor(vehicle_type=None, fuel_type=None) -> float:
    vehicle = _label(vehicle_type) or F.DEFAULT_VEHICLE_TYPE
    fuel = _label(fuel_type) or F.DEFAULT_FUEL_TYPE
    key = f"{vehicle}_{fuel}"
    if key in F.TRANSPORT_FACTORS:
        return F.TRANSPORT_FACTORS[key]
    # bus, train, flight_*, bike and walk are keyed without a fuel
    if vehicle in F.TRANSPORT_FACTORS:
        return F.TRANSPORT_FACTORS[vehicle]
    return F.TRANSPORT_FACTORS[F.DEFAULT_TRANSPORT_KEY]


def food_factor(food_type=None) -> float:
    return F.FOOD_FACTORS.get(_label(food_type) or F.DEFAULT_FOOD_TYPE, F.FOOD_FACTORS[F.DEFAULT_FOOD_TYPE])


def purchase_factor(category=None) -> float:
    return F.PURCHASE_FACTORS.get(
        _label(category) or F.DEFAULT_PURCHASE_CATEGORY, F.PURCHASE_FACTORS[F.DEFAULT_PURCHASE_CATEGORY]
    )


def waste_factor(waste_type=None) -> float:
    return F.WASTE_FACTORS.get(_label(waste_type) or F.DEFAULT_WASTE_TYPE, F.WASTE_FACTORS[F.DEFAULT_WASTE_TYPE])

# -----------------
# Per-type rules. Each returns None when the measurement is missing.
# -----------------
def _transport(data, now):
    distance = positive_measurement(payload_field(data, "distance"))
    if distance is None:
        return None
    factor = transport_factor(payload_field(data, "vehicleType"), payload_field(data, "fuelType"))
    return _result("transport", distance * factor, factor, now)


def _electricity(data, now):
    units = positive_measurement(payload_field(data, "units"))
    if units is None:
        return None
    return _result("electricity", units * F.ELECTRICITY_KGCO2_PER_KWH, F.ELECTRICITY_KGCO2_PER_KWH, now)


def _lpg(data, now):
    cylinders = positive_measurement(payload_field(data, "cylinders"))
    if cylinders is None:
        return None
    size = positive_measurement(payload_field(data, "cylinderSize")) or F.DEFAULT_CYLINDER_SIZE_KG
    return _result("lpg", cylinders * size * F.LPG_KGCO2_PER_KG, F.LPG_KGCO2_PER_KG, now)


def _diet(data, now):
    quantity = positive_measurement(payload_field(data, "quantity"))
    if quantity is None:
        return None
    factor = food_factor(payload_field(data, "foodType"))
    return _result("diet", quantity * factor, factor, now)


def _purchases(data, now):
    amount = positive_measurement(payload_field(data, "amount"))
    if amount is None:
        return None
    factor = purchase_factor(payload_field(data, "category"))
    return _result("purchases", (amount / F.PURCHASE_AMOUNT_DIVISOR) * factor, factor, now)


def _waste(data, now):
    weight = positive_measurement(payload_field(data, "weight"))
    if weight is None:
        return None
    factor = waste_factor(payload_field(data, "wasteType"))
    return _result("waste", weight * factor, factor, now)


def _water(data, now):
    volume = positive_measurement(payload_field(data, "volume"))
    if volume is None:
        return None
    return _result("water", volume * F.WATER_KGCO2_PER_LITER, F.WATER_KGCO2_PER_LITER, now)


# heating, cooling and other have no rule and fall through to the zero result
RULES = {
    ActivityType.TRANSPORT.value: _transport,
    ActivityType.ELECTRICITY.value: _electricity,
    ActivityType.LPG.value: _lpg,
    ActivityType.DIET.value: _diet,
    ActivityType.PURCHASES.value: _purchases,
    ActivityType.WASTE.value: _waste,
    ActivityType.WATER.value: _water,
}


def compute(activity_type, sub_category=None, payload=None, now: Optional[datetime] = None) -> EmissionResult:
    """
    Compute the emissions of one activity.

    Missing or non-positive measurements and unknown types give the zero
    emission result. Raises MalformedActivityError only when activity_type is
    not a string or payload is not an object.
    """
    if not isinstance(activity_type, str):
        raise MalformedActivityError(f"activity type must be a string, got {type(activity_type).__name__}")
    data = _as_mapping(payload)
    now = now or _utcnow()

    key = activity_type.value if isinstance(activity_type, ActivityType) else activity_type.strip().lower()
    rule = RULES.get(key)
    result = rule(data, now) if rule else None
    if result is None:
        logger.debug("no emission rule applied for type=%s sub_category=%s", key, sub_category)
        return zero_emission_result(now)
    return result


def compute_activity(activity: Any, now: Optional[datetime] = None) -> EmissionResult:
    """compute() over an activity record: {type, subCategory|category, payload|data}."""
    record = _as_mapping(activity)
    sub_category = payload_field(record, "subCategory") or record.get("category")
    payload = record.get("payload", record.get("data"))
    return compute(record.get("type"), sub_category, payload, now=now)


def safe_compute(activity_type, sub_category=None, payload=None, now: Optional[datetime] = None) -> EmissionResult:
    """compute(), substituting the zero result on any failure."""
    try:
        return compute(activity_type, sub_category, payload, now=now)
    except Exception:
        logger.exception("emission calculation failed for type=%r, using zero emissions", activity_type)
        return zero_emission_result(now)

# -----------------
# Standalone helpers
# -----------------
def calculate_transport_emissions(distance, vehicle_type, fuel_type="petrol"):
    return _kg(float(distance or 0) * transport_factor(vehicle_type, fuel_type))

def calculate_electricity_emissions(units, grid_factor=F.ELECTRICITY_KGCO2_PER_KWH):
    return _kg(float(units or 0) * grid_factor)

def calculate_lpg_emissions(cylinders, cylinder_size=F.DEFAULT_CYLINDER_SIZE_KG):
    return _kg(float(cylinders or 0) * cylinder_size * F.LPG_KGCO2_PER_KG)

def calculate_diet_emissions(food_type, quantity):
    return _kg(float(quantity or 0) * food_factor(food_type))

def calculate_purchase_emissions(amount, category="general"):
    return _kg(float(amount or 0) / F.PURCHASE_AMOUNT_DIVISOR * purchase_factor(category))


def estimate_monthly_footprint(form: CarbonFormIn) -> CarbonEstimateOut:
    """Quick monthly estimate from daily commute, bills and diet."""
    m = F.MONTHLY_ESTIMATE_FACTORS
    days = m["days_per_month"]
    car = form.transport.car_km * days * m["car_kgco2_per_km"]
    bus = form.transport.bus_km * days * m["bus_kgco2_per_km"]
    flight = form.transport.flights_hours * m["flight_avg_speed_kmh"] * m["flight_kgco2_per_km"]
    breakdown = {
        "transport": _kg(car + bus + flight),
        "electricity": _kg(form.electricity.units_per_month * m["electricity_kgco2_per_kwh"]),
        "lpg": _kg(form.lpg.cylinders_per_month * m["lpg_kgco2_per_cylinder"]),
        "diet": float(m["diet_veg_kgco2_per_month"] if form.diet == "veg" else m["diet_nonveg_kgco2_per_month"]),
        "purchases": _kg(form.purchases.monthly_spend / 1000 * m["purchases_kgco2_per_1000"]),
    }
    total = _kg(sum(breakdown.values()))
    return CarbonEstimateOut(
        total_emissions=total,
        breakdown=breakdown,
        message=f"Your estimated monthly carbon footprint is {total:.2f} kg CO₂.",
    )
