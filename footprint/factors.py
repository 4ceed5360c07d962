# footprint/factors.py
# Static emission factors (kg CO2e per unit). India grid average for electricity.

TRANSPORT_FACTORS = {
    # kg CO2 per km
    "car_petrol": 0.192,
    "car_diesel": 0.171,
    "car_electric": 0.053,
    "car_hybrid": 0.120,
    "car_cng": 0.147,
    "bus": 0.089,
    "train": 0.041,
    "flight_domestic": 0.255,
    "flight_international": 0.285,
    "bike": 0.000,
    "walk": 0.000,
}
DEFAULT_TRANSPORT_KEY = "car_petrol"
DEFAULT_VEHICLE_TYPE = "car"
DEFAULT_FUEL_TYPE = "petrol"

ELECTRICITY_KGCO2_PER_KWH = 0.82

LPG_KGCO2_PER_KG = 1.5
DEFAULT_CYLINDER_SIZE_KG = 14.2

FOOD_FACTORS = {
    # kg CO2 per kg of food
    "beef": 27.0,
    "lamb": 21.0,
    "pork": 12.0,
    "chicken": 6.9,
    "fish": 3.0,
    "eggs": 4.2,
    "dairy": 3.2,
    "rice": 4.0,
    "wheat": 1.4,
    "vegetables": 2.0,
    "fruits": 1.0,
    "nuts": 2.3,
    "legumes": 2.0,
}
DEFAULT_FOOD_TYPE = "vegetables"

PURCHASE_FACTORS = {
    # kg CO2 per 1000 currency units
    "clothing": 0.8,
    "electronics": 0.6,
    "food": 0.4,
    "furniture": 0.7,
    "general": 0.5,
    "transport": 0.9,
    "entertainment": 0.3,
}
DEFAULT_PURCHASE_CATEGORY = "general"
PURCHASE_AMOUNT_DIVISOR = 1000.0

WASTE_FACTORS = {
    # kg CO2 per kg of waste
    "organic": 0.5,
    "plastic": 2.0,
    "paper": 1.0,
    "metal": 1.5,
    "glass": 0.8,
    "mixed": 1.2,
}
DEFAULT_WASTE_TYPE = "mixed"

WATER_KGCO2_PER_LITER = 0.0003

# (unit, source label) written into the provenance record of each result
FACTOR_PROVENANCE = {
    "transport": ("km", "transport_emissions"),
    "electricity": ("kWh", "electricity_emissions"),
    "lpg": ("kg", "lpg_emissions"),
    "diet": ("kg", "diet_emissions"),
    "purchases": ("currency", "purchase_emissions"),
    "waste": ("kg", "waste_emissions"),
    "water": ("liters", "water_emissions"),
}
UNKNOWN_UNIT = "unknown"
DEFAULT_SOURCE = "default"

# Quick monthly estimate used by the /carbon form
MONTHLY_ESTIMATE_FACTORS = {
    "car_kgco2_per_km": 0.192,
    "bus_kgco2_per_km": 0.089,
    "flight_kgco2_per_km": 0.255,
    "flight_avg_speed_kmh": 800,
    "electricity_kgco2_per_kwh": 0.82,
    "lpg_kgco2_per_cylinder": 21.1,
    "diet_veg_kgco2_per_month": 15,
    "diet_nonveg_kgco2_per_month": 25,
    "purchases_kgco2_per_1000": 0.5,
    "days_per_month": 30,
}

# Plausibility ceilings checked at the boundary (warnings only)
PLAUSIBILITY_LIMITS = {
    "transport": ("distance", 10000, "Distance seems unrealistic (over 10,000 km)"),
    "electricity": ("units", 10000, "Electricity usage seems unrealistic (over 10,000 kWh)"),
    "lpg": ("cylinders", 50, "Number of cylinders seems unrealistic (over 50)"),
    "waste": ("weight", 1000, "Waste weight seems unrealistic (over 1000 kg)"),
    "water": ("volume", 10000, "Water usage seems unrealistic (over 10,000 liters)"),
}
