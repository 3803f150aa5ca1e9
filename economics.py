# economics.py
from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from errors import UnknownSimulationType
from models import (
    AgricultureScenario,
    Crop,
    Domain,
    EconomicAnalysis,
    SimulationRun,
    StressedRegion,
)
from reference_data import EL_SALVADOR_ECONOMICS, EconomicsConfig

log = logging.getLogger(__name__)


class WaterInfrastructure(str, Enum):
    TREATMENT = "treatment"
    DESALINATION = "desalination"
    PIPES = "pipes"


class IrrigationSystem(str, Enum):
    DRIP = "drip"
    SPRINKLER = "sprinkler"


# === Infrastructure investment ===

def solar_investment(capacity_mw: float, config: EconomicsConfig = EL_SALVADOR_ECONOMICS) -> float:
    return capacity_mw * config.infrastructure.solar_cost_per_kw * 1000.0

def grid_upgrade(
    region: str,
    capacity_increase_pct: float,
    remote: Optional[bool] = None,
    config: EconomicsConfig = EL_SALVADOR_ECONOMICS,
) -> float:
    """Base cost per 10 percentage points, x1.5 in remote regions."""
    infra = config.infrastructure
    if remote is None:
        remote = config.is_remote(region)
    multiplier = infra.remote_region_multiplier if remote else 1.0
    return infra.grid_upgrade_cost_per_10pct * (capacity_increase_pct / 10.0) * multiplier

def water_infrastructure(
    kind: Union[WaterInfrastructure, str],
    capacity_or_length: float,
    config: EconomicsConfig = EL_SALVADOR_ECONOMICS,
) -> float:
    """capacity in m³/day for treatment/desalination, length in km for pipes."""
    kind = WaterInfrastructure(kind)
    infra = config.infrastructure
    if kind is WaterInfrastructure.PIPES:
        return infra.pipes_cost_per_10km * (capacity_or_length / 10.0)
    per_100k = (infra.water_treatment_cost_per_100k_m3 if kind is WaterInfrastructure.TREATMENT
                else infra.desalination_cost_per_100k_m3)
    return per_100k * (capacity_or_length / 100_000.0)

def irrigation_system(
    hectares: float,
    system: Union[IrrigationSystem, str] = IrrigationSystem.DRIP,
    config: EconomicsConfig = EL_SALVADOR_ECONOMICS,
) -> float:
    """Installation plus maintenance over the maintenance horizon (5 years)."""
    system = IrrigationSystem(system)
    infra = config.infrastructure
    per_ha = (infra.drip_irrigation_cost_per_hectare if system is IrrigationSystem.DRIP
              else infra.sprinkler_irrigation_cost_per_hectare)
    installation = hectares * per_ha
    return installation + installation * infra.annual_maintenance_rate * infra.maintenance_years

# === Social & economic cost ===

def power_outage_cost(population: float, outage_hours: float, config: EconomicsConfig = EL_SALVADOR_ECONOMICS) -> float:
    s = config.social
    productivity = population * s.outage_cost_per_capita_hour * outage_hours
    businesses = population / s.people_per_business
    business = businesses * s.business_cost_per_outage_hour * outage_hours
    extended = population * s.extended_outage_cost_per_capita if outage_hours > s.extended_outage_hours else 0.0
    return productivity + business + extended

def water_shortage_cost(population: float, shortage_days: float, config: EconomicsConfig = EL_SALVADOR_ECONOMICS) -> float:
    s = config.social
    health = population * s.shortage_health_cost_per_capita_day * shortage_days
    time_cost = population * s.shortage_time_cost_per_capita_day * shortage_days
    return health + time_cost

def crop_loss(yield_reduction_kg: float, crop: Union[Crop, str], config: EconomicsConfig = EL_SALVADOR_ECONOMICS) -> float:
    """Market value of the lost crop times the GDP ripple multiplier.

    Raises UnknownCropType for anything outside the priced crop set.
    """
    return yield_reduction_kg * config.crop_price(crop) * config.agriculture.gdp_multiplier

# === Financial metrics ===

def roi(investment: float, annual_benefit: float, years: int, rate: Optional[float] = None,
        config: EconomicsConfig = EL_SALVADOR_ECONOMICS) -> float:
    """Discounted benefits net of investment, as a fraction of investment."""
    if investment == 0:
        return 0.0
    r = config.discount_rate if rate is None else rate
    benefits = sum(annual_benefit / (1 + r) ** t for t in range(1, years + 1))
    return (benefits - investment) / investment

def payback_period_months(investment: float, annual_savings: float) -> float:
    return investment / annual_savings * 12.0 if annual_savings != 0 else float("inf")

def npv(investment: float, cashflows: Sequence[float], rate: Optional[float] = None,
        config: EconomicsConfig = EL_SALVADOR_ECONOMICS) -> float:
    r = config.discount_rate if rate is None else rate
    return -investment + sum(cf / (1 + r) ** (t + 1) for t, cf in enumerate(cashflows))

def opportunity_cost(delayed_months: int, monthly_loss: float, rate: Optional[float] = None,
                     config: EconomicsConfig = EL_SALVADOR_ECONOMICS) -> float:
    """Monthly loss compounding per month of delay; the first month is uncompounded."""
    r = config.opportunity_cost_monthly_rate if rate is None else rate
    return sum(monthly_loss * (1 + r) ** (m - 1) for m in range(1, delayed_months + 1))

# ---------------------------------
# Integrated impact
# ---------------------------------

def _param(scenario_params, name: str, default: float = 0.0) -> float:
    if scenario_params is None:
        return default
    if isinstance(scenario_params, Mapping):
        value = scenario_params.get(name, default)
    else:
        value = getattr(scenario_params, name, default)
    return default if value is None else value


def _usd(x: float) -> int:
    # half-up, not banker's rounding
    return int(math.floor(x + 0.5))

def _tenths(x: float) -> float:
    return math.floor(x * 10 + 0.5) / 10


def _report(domain: Domain, investment: float, exposure: float, config: EconomicsConfig) -> EconomicAnalysis:
    impact = config.impact
    years = impact.analysis_years
    savings = exposure * impact.loss_reduction[domain]
    payback = payback_period_months(investment, savings)

    return EconomicAnalysis(
        infrastructure_investment_usd=_usd(investment),
        annual_savings_usd=_usd(savings),
        annual_costs_prevented_usd=_usd(exposure),
        roi_5_year=_tenths(roi(investment, savings, years, config=config)),
        payback_period_months=_usd(payback) if math.isfinite(payback) else payback,
        net_present_value_usd=_usd(npv(investment, [savings] * years, config=config)),
        opportunity_cost_6mo_delay_usd=_usd(opportunity_cost(impact.delay_months, exposure / 12.0, config=config)),
        total_economic_exposure_usd=_usd(exposure),
        cost_of_inaction_5_year_usd=_usd(exposure * years * impact.inaction_escalation[domain]),
    )


def _energy(regions: List[StressedRegion], scenario_params, crop_losses, config: EconomicsConfig) -> EconomicAnalysis:
    impact = config.impact
    investment = 0.0
    outage_costs = 0.0
    for r in regions:
        if r.stress_level > impact.stress_trigger:
            increase = (r.stress_level - impact.stress_offset) * 100.0
            investment += grid_upgrade(r.region, increase, remote=r.remote, config=config)
        hours = r.stress_level * impact.outage_hours_per_stress
        outage_costs += power_outage_cost(r.population, hours, config=config)

    solar_growth = _param(scenario_params, "solar_growth_pct")
    if solar_growth > 0:
        investment += solar_investment(solar_growth / 100.0 * impact.baseline_solar_capacity_mw, config=config)
    return _report(Domain.ENERGY, investment, outage_costs, config)


def _water(regions: List[StressedRegion], scenario_params, crop_losses, config: EconomicsConfig) -> EconomicAnalysis:
    impact = config.impact
    investment = 0.0
    shortage_costs = 0.0
    for r in regions:
        if r.stress_level > impact.stress_trigger:
            capacity_m3_day = r.population * impact.water_per_capita_m3_day * r.stress_level
            investment += water_infrastructure(WaterInfrastructure.TREATMENT, capacity_m3_day, config=config)
        days = r.stress_level * impact.shortage_days_per_stress
        shortage_costs += water_shortage_cost(r.population, days, config=config)
    return _report(Domain.WATER, investment, shortage_costs, config)


def _agriculture(regions: List[StressedRegion], scenario_params, crop_losses, config: EconomicsConfig) -> EconomicAnalysis:
    impact = config.impact
    losses = sum(crop_loss(kg, crop, config=config) for crop, kg in (crop_losses or {}).items())
    hectares = min(impact.max_affected_hectares, len(regions) * impact.hectares_per_stressed_region)
    investment = irrigation_system(hectares, IrrigationSystem.DRIP, config=config)
    return _report(Domain.AGRICULTURE, investment, losses, config)


_CALCULATORS: Dict[Domain, Callable[..., EconomicAnalysis]] = {
    Domain.ENERGY: _energy,
    Domain.WATER: _water,
    Domain.AGRICULTURE: _agriculture,
}


def _with_reference_data(regions: Iterable[StressedRegion], config: EconomicsConfig) -> List[StressedRegion]:
    filled = []
    for r in regions:
        if isinstance(r, Mapping):
            r = StressedRegion(
                region=r["region"],
                stress_level=r["stress_level"],
                population=r.get("population") or 0,
                remote=r.get("remote"),
            )
        population = r.population or config.population(r.region)
        filled.append(StressedRegion(region=r.region, stress_level=r.stress_level,
                                     population=population, remote=r.remote))
    return filled


def calculate_economic_impact(
    simulation_type: Union[Domain, str],
    stressed_regions: Iterable[Union[StressedRegion, Mapping]],
    scenario_params=None,
    crop_losses: Optional[Mapping[Union[Crop, str], float]] = None,
    config: EconomicsConfig = EL_SALVADOR_ECONOMICS,
) -> EconomicAnalysis:
    """
    Investment, exposure and return figures for one simulation's stressed regions.

    stressed_regions rows may be StressedRegion or plain dicts with
    region / stress_level / population (0 or missing -> reference table).
    scenario_params may be a scenario dataclass or a dict. An empty region
    list gives the all-zero report.
    """
    try:
        domain = Domain(simulation_type)
    except ValueError:
        raise UnknownSimulationType(simulation_type) from None

    regions = list(stressed_regions)
    if not regions:
        return EconomicAnalysis.zero()

    regions = _with_reference_data(regions, config)
    log.debug("economic impact: %s over %d regions", domain.value, len(regions))
    return _CALCULATORS[domain](regions, scenario_params, crop_losses, config)


def economic_impact_for_run(run: SimulationRun, config: EconomicsConfig = EL_SALVADOR_ECONOMICS) -> EconomicAnalysis:
    """Feed a projection run's summary straight into calculate_economic_impact.

    Crop losses are annualized over the run length, since the impact model
    treats exposure as a yearly figure.
    """
    crop_losses = None
    if isinstance(run.scenario, AgricultureScenario) and run.scenario.days > 0:
        scale = 365.0 / run.scenario.days
        crop_losses = {crop: kg * scale for crop, kg in run.summary.crop_losses_kg.items()}
    return calculate_economic_impact(
        run.summary.domain,
        run.summary.stressed_regions(),
        scenario_params=run.scenario,
        crop_losses=crop_losses,
        config=config,
    )
