# models.py
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Tuple, Union

from errors import InvalidRange, UnknownCropType

MAX_RANGE_DAYS = 365 * 5


class Domain(str, Enum):
    ENERGY = "energy"
    WATER = "water"
    AGRICULTURE = "agriculture"


class Crop(str, Enum):
    COFFEE = "coffee"
    SUGAR_CANE = "sugar_cane"
    CORN = "corn"
    BEANS = "beans"
    ALL = "all"

    @classmethod
    def parse(cls, value: Union["Crop", str]) -> "Crop":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownCropType(value) from None

    @classmethod
    def grown(cls) -> Tuple["Crop", ...]:
        """Concrete crops, i.e. everything except the ALL selector."""
        return tuple(c for c in cls if c is not cls.ALL)


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ---------------------------------
# Regions
# ---------------------------------

@dataclass(frozen=True)
class Baseline:
    """Historical daily averages for a region. Units: kWh, m³, mm, °C, kg."""
    demand_kwh: Optional[float] = None
    solar_kwh: Optional[float] = None
    grid_capacity_kwh: Optional[float] = None
    water_demand_m3: Optional[float] = None
    water_supply_m3: Optional[float] = None
    rainfall_mm: Optional[float] = None
    temperature_c: Optional[float] = None
    crop_yields_kg: Mapping[Crop, float] = field(default_factory=dict)


@dataclass(frozen=True)
class Region:
    id: str
    name: str
    population: int = 0
    remote: bool = False
    baseline: Baseline = field(default_factory=Baseline)


# ---------------------------------
# Scenario parameters
# ---------------------------------

@dataclass(frozen=True)
class _Scenario:
    start_date: dt.date
    end_date: dt.date

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days

    def check_range(self) -> None:
        if self.end_date <= self.start_date:
            raise InvalidRange(
                f"end_date {self.end_date} must be after start_date {self.start_date}"
            )
        if self.days > MAX_RANGE_DAYS:
            raise InvalidRange(f"Date range of {self.days} days exceeds 5 years")

    def dates(self):
        for d in range(self.days):
            yield d, self.start_date + dt.timedelta(days=d)


@dataclass(frozen=True)
class EnergyScenario(_Scenario):
    solar_growth_pct: float = 0.0
    demand_growth_pct: float = 0.0
    rainfall_change_pct: float = 0.0
    installed_capacity_mw: Optional[float] = None

    domain = Domain.ENERGY


@dataclass(frozen=True)
class WaterScenario(_Scenario):
    water_demand_growth_pct: float = 0.0
    rainfall_change_pct: float = 0.0
    conservation_rate_pct: float = 0.0

    domain = Domain.WATER


@dataclass(frozen=True)
class AgricultureScenario(_Scenario):
    rainfall_change_pct: float = 0.0
    temperature_change_c: float = 0.0
    irrigation_improvement_pct: float = 0.0
    crop_type: Crop = Crop.ALL
    yield_growth_pct: float = 0.0

    domain = Domain.AGRICULTURE


Scenario = Union[EnergyScenario, WaterScenario, AgricultureScenario]


# ---------------------------------
# Projection output
# ---------------------------------

@dataclass(frozen=True)
class DailyResult:
    date: dt.date
    region_id: str
    region_name: str
    stress: float


@dataclass(frozen=True)
class EnergyDailyResult(DailyResult):
    demand_kwh: float = 0.0
    solar_kwh: float = 0.0
    grid_kwh: float = 0.0
    deficit_kwh: float = 0.0
    rainfall_mm: Optional[float] = None
    temperature_c: Optional[float] = None


@dataclass(frozen=True)
class WaterDailyResult(DailyResult):
    demand_m3: float = 0.0
    supply_m3: float = 0.0
    unmet_demand_m3: float = 0.0
    shortage: bool = False


@dataclass(frozen=True)
class AgricultureDailyResult(DailyResult):
    crop_type: Crop = Crop.ALL
    baseline_yield_kg: float = 0.0
    actual_yield_kg: float = 0.0
    yield_change_pct: float = 0.0


@dataclass(frozen=True)
class RegionStress:
    region_id: str
    region_name: str
    population: int
    remote: bool
    avg_stress: float
    max_stress: float
    critical_days: int


@dataclass(frozen=True)
class StressedRegion:
    """Economics input row. population=0 / remote=None mean "look it up"."""
    region: str
    stress_level: float
    population: int = 0
    remote: Optional[bool] = None


@dataclass(frozen=True)
class SimulationSummary:
    domain: Domain
    avg_stress: float
    max_stress: float
    critical_days: int
    critical_threshold: float
    top_stressed_regions: Tuple[RegionStress, ...]
    regions: Tuple[RegionStress, ...]
    metrics: Mapping[str, Union[float, str, None]] = field(default_factory=dict)
    crop_losses_kg: Mapping[Crop, float] = field(default_factory=dict)

    def stressed_regions(self) -> list[StressedRegion]:
        return [
            StressedRegion(
                region=r.region_name,
                stress_level=r.avg_stress,
                population=r.population,
                remote=r.remote,
            )
            for r in self.regions
        ]


@dataclass(frozen=True)
class SimulationRun:
    scenario: Scenario
    daily_results: Tuple[DailyResult, ...]
    summary: SimulationSummary


# ---------------------------------
# Trend analysis
# ---------------------------------

@dataclass(frozen=True)
class DataPoint:
    date: dt.date
    value: float


@dataclass(frozen=True)
class MovingAverageResult:
    simple: list[float]
    exponential: list[float]


@dataclass(frozen=True)
class GrowthRateResult:
    overall: float
    period_over_period: list[float]
    average_daily: float
    trend_direction: str


@dataclass(frozen=True)
class Anomaly:
    date: dt.date
    value: float
    expected: float
    deviation: float
    z_score: float
    severity: Severity


@dataclass(frozen=True)
class RegressionResult:
    slope: float
    intercept: float
    r_squared: float
    predictions: list[float]
    equation: str


@dataclass(frozen=True)
class ForecastPoint:
    date: dt.date
    value: float
    confidence_interval: Tuple[float, float]


@dataclass(frozen=True)
class AccuracyMetrics:
    mae: float = 0.0
    rmse: float = 0.0
    mape: float = 0.0


@dataclass(frozen=True)
class ForecastResult:
    predictions: list[ForecastPoint]
    accuracy_metrics: AccuracyMetrics
    model_type: str = "exponential_smoothing"


@dataclass(frozen=True)
class TrendReport:
    moving_average: MovingAverageResult
    growth: GrowthRateResult
    anomalies: list[Anomaly]
    regression: RegressionResult
    forecast: ForecastResult


# ---------------------------------
# Economics output
# ---------------------------------

@dataclass(frozen=True)
class EconomicAnalysis:
    infrastructure_investment_usd: int
    annual_savings_usd: int
    annual_costs_prevented_usd: int
    roi_5_year: float
    payback_period_months: float  # integer months, or inf when nothing is saved
    net_present_value_usd: int
    opportunity_cost_6mo_delay_usd: int
    total_economic_exposure_usd: int
    cost_of_inaction_5_year_usd: int

    @classmethod
    def zero(cls) -> "EconomicAnalysis":
        return cls(0, 0, 0, 0.0, 0, 0, 0, 0, 0)
