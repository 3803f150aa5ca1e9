# tools.py
from __future__ import annotations

import datetime as dt
import math
from typing import Mapping

from models import Crop

SEASONAL_AMPLITUDE = 0.15
SOLAR_CAPACITY_FACTOR = 0.25

# Fraction of yield lost per 100 % rainfall deficit
RAIN_SENSITIVITY: Mapping[Crop, float] = {
    Crop.COFFEE: 0.60,
    Crop.SUGAR_CANE: 0.80,
    Crop.CORN: 0.70,
    Crop.BEANS: 0.75,
}

# Fraction of yield lost per °C of warming
HEAT_SENSITIVITY: Mapping[Crop, float] = {
    Crop.COFFEE: 0.10,
    Crop.SUGAR_CANE: 0.04,
    Crop.CORN: 0.07,
    Crop.BEANS: 0.08,
}

WATERLOGGING_THRESHOLD_PCT = 20.0
WATERLOGGING_SENSITIVITY = 0.25
COLD_SENSITIVITY = 0.03
IRRIGATION_YIELD_GAIN = 0.30

# === Growth & seasonality ===

def compound_growth(rate_pct: float, years: float) -> float:
    return (1.0 + rate_pct / 100.0) ** years

def day_of_year(date: dt.date) -> int:
    return date.timetuple().tm_yday

def seasonal_factor(date: dt.date) -> float:
    return 1.0 + SEASONAL_AMPLITUDE * math.sin(2.0 * math.pi * day_of_year(date) / 365.0)

def clamp(x: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, x))

def shortfall_ratio(demand: float, supplied: float) -> float:
    """Unmet share of demand in [0, 1]; zero demand is never stressed."""
    if demand <= 0:
        return 0.0
    return clamp((demand - supplied) / demand)

# === Energy ===

def solar_cap_kwh(installed_capacity_mw: float) -> float:
    return installed_capacity_mw * 24.0 * SOLAR_CAPACITY_FACTOR

def seasonal_temperature(baseline_c: float, date: dt.date) -> float:
    # warm half / cool half of the year
    return baseline_c + (2.0 if day_of_year(date) > 180 else -2.0)

# === Agriculture ===

def climate_factor(crop: Crop, rainfall_change_pct: float, temperature_change_c: float) -> float:
    """Yield multiplier for a crop under a rainfall/temperature shift (>= 0)."""
    factor = 1.0
    if rainfall_change_pct < 0:
        factor -= RAIN_SENSITIVITY[crop] * (-rainfall_change_pct) / 100.0
    elif rainfall_change_pct > WATERLOGGING_THRESHOLD_PCT:
        factor -= WATERLOGGING_SENSITIVITY * (rainfall_change_pct - WATERLOGGING_THRESHOLD_PCT) / 100.0

    if temperature_change_c > 0:
        factor -= HEAT_SENSITIVITY[crop] * temperature_change_c
    else:
        factor -= COLD_SENSITIVITY * (-temperature_change_c)
    return max(0.0, factor)

def irrigation_mitigation(irrigation_improvement_pct: float) -> float:
    return 1.0 + IRRIGATION_YIELD_GAIN * irrigation_improvement_pct / 100.0
