# footprint/schemas.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from typing import Optional, Any, Dict, List, Literal
from datetime import datetime
from enum import Enum


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire; both accepted on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ActivityType(str, Enum):
    TRANSPORT = "transport"
    ELECTRICITY = "electricity"
    LPG = "lpg"
    DIET = "diet"
    PURCHASES = "purchases"
    WASTE = "waste"
    WATER = "water"
    HEATING = "heating"
    COOLING = "cooling"
    OTHER = "other"


class ActivityCategory(str, Enum):
    CAR = "car"
    BUS = "bus"
    TRAIN = "train"
    FLIGHT = "flight"
    BIKE = "bike"
    WALK = "walk"
    ELECTRICITY_CONSUMPTION = "electricity_consumption"
    LPG_USAGE = "lpg_usage"
    FOOD_CONSUMPTION = "food_consumption"
    SHOPPING = "shopping"
    WASTE_DISPOSAL = "waste_disposal"
    WATER_USAGE = "water_usage"
    HEATING_USAGE = "heating_usage"
    COOLING_USAGE = "cooling_usage"
    CUSTOM = "custom"


CalculationMethod = Literal["default", "custom", "api"]
AchievementCategory = Literal["emission", "streak", "savings", "community", "milestone"]
Rarity = Literal["common", "rare", "epic", "legendary"]

# -----------------
# Payload variants, one per activity type
# -----------------
class TransportData(CamelModel):
    distance: Optional[float] = None  # km
    duration: Optional[float] = None  # hours
    vehicle_type: Optional[str] = None
    fuel_type: Optional[Literal["petrol", "diesel", "electric", "hybrid", "cng"]] = None
    passengers: int = 1

class ElectricityData(CamelModel):
    units: Optional[float] = None  # kWh
    appliance: Optional[str] = None

class LpgData(CamelModel):
    cylinders: Optional[float] = None
    cylinder_size: float = 14.2  # kg

class DietData(CamelModel):
    food_type: Optional[str] = None
    quantity: Optional[float] = None  # kg
    meal_type: Optional[Literal["breakfast", "lunch", "dinner", "snack"]] = None

class PurchaseData(CamelModel):
    amount: Optional[float] = None  # currency
    category: Optional[str] = None
    item: Optional[str] = None

class WasteData(CamelModel):
    waste_type: Optional[Literal["organic", "plastic", "paper", "metal", "glass", "mixed"]] = None
    weight: Optional[float] = None  # kg

class WaterData(CamelModel):
    volume: Optional[float] = None  # liters
    usage_type: Optional[Literal["drinking", "cooking", "cleaning", "bathing", "other"]] = None

class GenericData(CamelModel):
    custom_fields: Dict[str, Any] = Field(default_factory=dict)


PAYLOAD_MODELS = {
    ActivityType.TRANSPORT: TransportData,
    ActivityType.ELECTRICITY: ElectricityData,
    ActivityType.LPG: LpgData,
    ActivityType.DIET: DietData,
    ActivityType.PURCHASES: PurchaseData,
    ActivityType.WASTE: WasteData,
    ActivityType.WATER: WaterData,
    ActivityType.HEATING: GenericData,
    ActivityType.COOLING: GenericData,
    ActivityType.OTHER: GenericData,
}

# -----------------
# Emission results
# -----------------
class EmissionFactor(CamelModel):
    model_config = ConfigDict(frozen=True)

    value: float = 0.0
    ch4_value: float = 0.0
    n2o_value: float = 0.0
    unit: str
    source_label: str
    last_updated: datetime


class EmissionResult(CamelModel):
    model_config = ConfigDict(frozen=True)

    co2: float = Field(ge=0)
    ch4: float = Field(default=0.0, ge=0)
    n2o: float = Field(default=0.0, ge=0)
    total_co2e: float = Field(ge=0, alias="totalCO2e")
    factor: EmissionFactor
    calculation_method: CalculationMethod = "default"
    verified: bool = False

# -----------------
# User statistics
# -----------------
class Achievement(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    icon: str
    unlocked_at: datetime
    category: AchievementCategory
    rarity: Rarity = "common"


class UserStats(CamelModel):
    model_config = ConfigDict(frozen=True)

    total_emissions: float = 0.0
    monthly_average: float = 0.0
    yearly_total: float = 0.0
    streak: int = 0
    last_calculation: Optional[datetime] = None
    achievements: List[Achievement] = Field(default_factory=list)
    carbon_savings: float = 0.0
    trees_planted: int = 0
    offset_purchases: float = 0.0

# -----------------
# API models
# -----------------
class UserIn(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr

class UserGoals(CamelModel):
    # kg CO2
    monthly_target: float = Field(default=200.0, gt=0, allow_inf_nan=False)
    yearly_target: float = Field(default=2400.0, gt=0, allow_inf_nan=False)

class UserOut(CamelModel):
    id: str
    name: str
    email: str
    stats: UserStats
    goals: UserGoals = Field(default_factory=UserGoals)
    created_at: Optional[datetime] = None

class ValidationReport(BaseModel):
    """Advisory outcome of the boundary checks on one activity."""
    errors: List[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

class ContributionIn(CamelModel):
    total_emissions: Optional[float] = Field(default=None, alias="totalEmissions", allow_inf_nan=False)
    goals: Optional[UserGoals] = None

class ActivityMetadata(CamelModel):
    source: Literal["manual", "import", "api", "device", "app"] = "manual"
    device_id: Optional[str] = None
    app_version: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

class ActivityIn(CamelModel):
    user_id: str
    type: Any
    category: str
    data: Any
    timestamp: Optional[datetime] = None
    metadata: Optional[ActivityMetadata] = None

class ActivityOut(CamelModel):
    id: str
    user_id: str
    type: str
    category: str
    data: Dict[str, Any]
    emissions: EmissionResult
    timestamp: datetime
    metadata: Optional[ActivityMetadata] = None
    created_at: Optional[datetime] = None

class TypeBreakdown(CamelModel):
    type: str
    total_emissions: float
    count: int
    average_emissions: float

class EmissionSummary(CamelModel):
    total_emissions: float = 0.0
    activity_count: int = 0
    average_emissions: float = 0.0
    breakdown: List[TypeBreakdown] = Field(default_factory=list)

class CarbonFormTransport(CamelModel):
    car_km: float = 0
    bus_km: float = 0
    flights_hours: float = 0

class CarbonFormElectricity(CamelModel):
    units_per_month: float = 0

class CarbonFormLpg(CamelModel):
    cylinders_per_month: float = 0

class CarbonFormPurchases(CamelModel):
    monthly_spend: float = 0

class CarbonFormIn(CamelModel):
    transport: CarbonFormTransport = Field(default_factory=CarbonFormTransport)
    electricity: CarbonFormElectricity = Field(default_factory=CarbonFormElectricity)
    lpg: CarbonFormLpg = Field(default_factory=CarbonFormLpg)
    diet: Literal["veg", "non-veg"] = "veg"
    purchases: CarbonFormPurchases = Field(default_factory=CarbonFormPurchases)

class CarbonEstimateOut(CamelModel):
    total_emissions: float
    breakdown: Dict[str, float]
    message: str

class ErrorResponse(BaseModel):
    success: bool = False
    status: int
    code: str
    reason: str
    timeStamp: str
    path: str
