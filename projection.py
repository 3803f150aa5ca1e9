# projection.py
"""
Deterministic scenario projection for energy, water and agriculture.

Every region is projected day by day over [start_date, end_date). Growth
compounds on fractional years since the start, a sinusoidal seasonal factor
models the annual cycle, and each day yields a stress ratio in [0, 1]
(0 = demand fully met, 1 = total failure). No clocks, no randomness: the
same regions and scenario always produce the same run.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from itertools import chain
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from errors import InvalidRange, InvalidScenario, UnknownSimulationType
from models import (
    AgricultureDailyResult,
    AgricultureScenario,
    Crop,
    DailyResult,
    Domain,
    EnergyDailyResult,
    EnergyScenario,
    Region,
    RegionStress,
    Scenario,
    SimulationRun,
    SimulationSummary,
    WaterDailyResult,
    WaterScenario,
)
from tools import (
    climate_factor,
    compound_growth,
    irrigation_mitigation,
    seasonal_factor,
    seasonal_temperature,
    shortfall_ratio,
    solar_cap_kwh,
)

log = logging.getLogger(__name__)

CRITICAL_STRESS_THRESHOLD = 0.60
DEFAULT_TOP_N = 5
DAYS_PER_YEAR = 365.0


@dataclass(frozen=True)
class RegionProjection:
    """One region's daily results plus the sums the summary needs."""
    region: Region
    results: Tuple[DailyResult, ...]
    totals: Mapping[str, float] = field(default_factory=dict)
    crop_baseline_kg: Mapping[Crop, float] = field(default_factory=dict)
    crop_losses_kg: Mapping[Crop, float] = field(default_factory=dict)


# ---------------------------------
# Input checks
# ---------------------------------

def _at_least(name: str, value: float, lo: float) -> None:
    if value < lo:
        raise InvalidRange(f"{name} must be >= {lo:g} (got {value:g})")

def _between(name: str, value: float, lo: float, hi: float) -> None:
    if not lo <= value <= hi:
        raise InvalidRange(f"{name} must be between {lo:g} and {hi:g} (got {value:g})")

def check_scenario(scenario: Scenario) -> None:
    """Re-check the invariants the projection math relies on.

    Full bounds validation happens upstream; this only rejects inputs that
    would make the formulas meaningless (negative growth bases, reversed or
    over-long date ranges).
    """
    domain = getattr(scenario, "domain", None)
    if domain not in _PROJECTORS:
        raise UnknownSimulationType(domain if domain is not None else type(scenario).__name__)

    scenario.check_range()
    _at_least("rainfall_change_pct", scenario.rainfall_change_pct, -100)

    if isinstance(scenario, EnergyScenario):
        _at_least("solar_growth_pct", scenario.solar_growth_pct, -100)
        _at_least("demand_growth_pct", scenario.demand_growth_pct, -100)
        if scenario.installed_capacity_mw is not None:
            _at_least("installed_capacity_mw", scenario.installed_capacity_mw, 0)
    elif isinstance(scenario, WaterScenario):
        _at_least("water_demand_growth_pct", scenario.water_demand_growth_pct, -100)
        _between("conservation_rate_pct", scenario.conservation_rate_pct, 0, 100)
    else:
        _at_least("yield_growth_pct", scenario.yield_growth_pct, -100)
        _between("irrigation_improvement_pct", scenario.irrigation_improvement_pct, 0, 100)
        Crop.parse(scenario.crop_type)


def _crop_yields(region: Region) -> Dict[Crop, float]:
    return {Crop.parse(k): v for k, v in region.baseline.crop_yields_kg.items() if v is not None}

def _crops_for(region: Region, scenario: AgricultureScenario) -> List[Crop]:
    yields = _crop_yields(region)
    crop = Crop.parse(scenario.crop_type)
    if crop is Crop.ALL:
        # enum order keeps the per-crop iteration stable
        return [c for c in Crop.grown() if c in yields]
    return [crop] if crop in yields else []

def check_baseline(region: Region, scenario: Scenario) -> None:
    b = region.baseline
    if isinstance(scenario, EnergyScenario):
        missing = [f for f in ("demand_kwh", "solar_kwh") if getattr(b, f) is None]
    elif isinstance(scenario, WaterScenario):
        missing = [f for f in ("water_demand_m3", "water_supply_m3") if getattr(b, f) is None]
    else:
        crop = Crop.parse(scenario.crop_type)
        missing = [] if _crops_for(region, scenario) else [f"crop_yields_kg[{crop.value}]"]
    if missing:
        raise InvalidScenario(region.id, missing, scenario.domain.value)


# ---------------------------------
# Per-domain daily loops
# ---------------------------------

def project_energy(region: Region, scenario: EnergyScenario) -> RegionProjection:
    b = region.baseline
    cap = None if scenario.installed_capacity_mw is None else solar_cap_kwh(scenario.installed_capacity_mw)
    results: List[DailyResult] = []
    total_demand = total_solar = total_grid = total_deficit = 0.0

    for d, date in scenario.dates():
        years = d / DAYS_PER_YEAR
        seasonal = seasonal_factor(date)

        demand = b.demand_kwh * compound_growth(scenario.demand_growth_pct, years) * seasonal
        solar = b.solar_kwh * compound_growth(scenario.solar_growth_pct, years) * seasonal
        if cap is not None:
            solar = min(solar, cap)
        grid = max(0.0, demand - solar)
        if b.grid_capacity_kwh is not None:
            grid = min(grid, b.grid_capacity_kwh)
        deficit = max(0.0, demand - solar - grid)

        rainfall = None
        if b.rainfall_mm is not None:
            rainfall = b.rainfall_mm * (1 + scenario.rainfall_change_pct / 100.0) * seasonal
        temperature = None if b.temperature_c is None else seasonal_temperature(b.temperature_c, date)

        results.append(EnergyDailyResult(
            date=date,
            region_id=region.id,
            region_name=region.name,
            stress=shortfall_ratio(demand, solar + grid),
            demand_kwh=demand,
            solar_kwh=solar,
            grid_kwh=grid,
            deficit_kwh=deficit,
            rainfall_mm=rainfall,
            temperature_c=temperature,
        ))
        total_demand += demand
        total_solar += solar
        total_grid += grid
        total_deficit += deficit

    return RegionProjection(
        region=region,
        results=tuple(results),
        totals={
            "total_demand_kwh": total_demand,
            "total_solar_kwh": total_solar,
            "total_grid_kwh": total_grid,
            "total_deficit_kwh": total_deficit,
        },
    )


def project_water(region: Region, scenario: WaterScenario) -> RegionProjection:
    b = region.baseline
    conservation = 1 - scenario.conservation_rate_pct / 100.0
    rainfall = 1 + scenario.rainfall_change_pct / 100.0
    results: List[DailyResult] = []
    total_unmet = 0.0

    for d, date in scenario.dates():
        years = d / DAYS_PER_YEAR
        demand = b.water_demand_m3 * compound_growth(scenario.water_demand_growth_pct, years) * conservation
        supply = b.water_supply_m3 * rainfall * seasonal_factor(date)
        stress = shortfall_ratio(demand, supply)
        unmet = max(0.0, demand - supply)

        results.append(WaterDailyResult(
            date=date,
            region_id=region.id,
            region_name=region.name,
            stress=stress,
            demand_m3=demand,
            supply_m3=supply,
            unmet_demand_m3=unmet,
            shortage=stress > CRITICAL_STRESS_THRESHOLD,
        ))
        total_unmet += unmet

    return RegionProjection(region=region, results=tuple(results),
                            totals={"total_unmet_demand_m3": total_unmet})


def project_agriculture(region: Region, scenario: AgricultureScenario) -> RegionProjection:
    yields = _crop_yields(region)
    crops = _crops_for(region, scenario)
    selected = Crop.parse(scenario.crop_type)
    climate = {c: climate_factor(c, scenario.rainfall_change_pct, scenario.temperature_change_c) for c in crops}
    mitigation = irrigation_mitigation(scenario.irrigation_improvement_pct)

    crop_baseline = {c: 0.0 for c in crops}
    crop_losses = {c: 0.0 for c in crops}
    results: List[DailyResult] = []

    for d, date in scenario.dates():
        growth = compound_growth(scenario.yield_growth_pct, d / DAYS_PER_YEAR)
        seasonal = seasonal_factor(date)
        expected_total = actual_total = 0.0
        for c in crops:
            expected = yields[c] * seasonal
            actual = expected * growth * climate[c] * mitigation
            crop_baseline[c] += expected
            crop_losses[c] += max(0.0, expected - actual)
            expected_total += expected
            actual_total += actual

        change = (actual_total - expected_total) / expected_total * 100.0 if expected_total > 0 else 0.0
        results.append(AgricultureDailyResult(
            date=date,
            region_id=region.id,
            region_name=region.name,
            stress=shortfall_ratio(expected_total, actual_total),
            crop_type=selected,
            baseline_yield_kg=expected_total,
            actual_yield_kg=actual_total,
            yield_change_pct=change,
        ))

    return RegionProjection(
        region=region,
        results=tuple(results),
        crop_baseline_kg=crop_baseline,
        crop_losses_kg=crop_losses,
    )


_PROJECTORS: Dict[Domain, Callable[..., RegionProjection]] = {
    Domain.ENERGY: project_energy,
    Domain.WATER: project_water,
    Domain.AGRICULTURE: project_agriculture,
}


# ---------------------------------
# Summary
# ---------------------------------

def _region_stress(p: RegionProjection) -> RegionStress:
    stresses = [r.stress for r in p.results]
    return RegionStress(
        region_id=p.region.id,
        region_name=p.region.name,
        population=p.region.population,
        remote=p.region.remote,
        avg_stress=sum(stresses) / len(stresses) if stresses else 0.0,
        max_stress=max(stresses, default=0.0),
        critical_days=sum(1 for s in stresses if s > CRITICAL_STRESS_THRESHOLD),
    )

def _sum_keyed(maps: Iterable[Mapping]) -> dict:
    out: dict = {}
    for m in maps:
        for k, v in m.items():
            out[k] = out.get(k, 0.0) + v
    return out

def _domain_metrics(domain: Domain, projections: Sequence[RegionProjection], critical_days: int):
    totals = _sum_keyed(p.totals for p in projections)
    crop_losses: Dict[Crop, float] = {}

    if domain is Domain.ENERGY:
        metrics = {k: totals.get(k, 0.0) for k in (
            "total_demand_kwh", "total_solar_kwh", "total_grid_kwh", "total_deficit_kwh")}
        demand = metrics["total_demand_kwh"]
        metrics["solar_percentage"] = metrics["total_solar_kwh"] / demand * 100.0 if demand > 0 else 0.0
    elif domain is Domain.WATER:
        metrics = {
            "total_unmet_demand_m3": totals.get("total_unmet_demand_m3", 0.0),
            "critical_shortage_days": critical_days,
        }
    else:
        baseline = _sum_keyed(p.crop_baseline_kg for p in projections)
        crop_losses = _sum_keyed(p.crop_losses_kg for p in projections)
        total_baseline = sum(baseline.values())
        total_loss = sum(crop_losses.values())
        most_affected = None
        worst = -1.0
        for c in Crop.grown():
            if total_loss <= 0:
                break
            if baseline.get(c, 0.0) <= 0:
                continue
            share = crop_losses[c] / baseline[c]
            if share > worst:
                most_affected, worst = c.value, share
        metrics = {
            "total_baseline_yield_kg": total_baseline,
            "total_yield_loss_kg": total_loss,
            "total_yield_loss_pct": total_loss / total_baseline * 100.0 if total_baseline > 0 else 0.0,
            "most_affected_crop": most_affected,
        }
    return metrics, crop_losses


def summarize(domain: Domain, projections: Sequence[RegionProjection], top_n: int = DEFAULT_TOP_N) -> SimulationSummary:
    regions = tuple(_region_stress(p) for p in projections)
    stresses = [r.stress for p in projections for r in p.results]
    critical_days = sum(r.critical_days for r in regions)
    metrics, crop_losses = _domain_metrics(domain, projections, critical_days)
    ranked = sorted(regions, key=lambda r: (-r.avg_stress, r.region_id))

    return SimulationSummary(
        domain=domain,
        avg_stress=sum(stresses) / len(stresses) if stresses else 0.0,
        max_stress=max(stresses, default=0.0),
        critical_days=critical_days,
        critical_threshold=CRITICAL_STRESS_THRESHOLD,
        top_stressed_regions=tuple(ranked[:top_n]),
        regions=regions,
        metrics=metrics,
        crop_losses_kg=crop_losses,
    )


# ---------------------------------
# Entry points
# ---------------------------------

def project_region(region: Region, scenario: Scenario) -> RegionProjection:
    check_scenario(scenario)
    check_baseline(region, scenario)
    return _PROJECTORS[scenario.domain](region, scenario)


def run_projection(
    regions: Iterable[Region],
    scenario: Scenario,
    *,
    top_n: int = DEFAULT_TOP_N,
    max_workers: Optional[int] = None,
) -> SimulationRun:
    """Project every region and summarize the run.

    With max_workers, regions fan out to a thread pool; Executor.map gathers
    them back in input order so the output does not depend on scheduling.
    """
    check_scenario(scenario)
    regions = list(regions)
    for region in regions:
        check_baseline(region, scenario)

    projector = partial(_PROJECTORS[scenario.domain], scenario=scenario)
    if max_workers and len(regions) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            projections = list(pool.map(projector, regions))
    else:
        projections = [projector(r) for r in regions]

    daily = tuple(chain.from_iterable(p.results for p in projections))
    summary = summarize(scenario.domain, projections, top_n)
    log.debug(
        "%s projection: %d regions x %d days, avg_stress=%.4f max_stress=%.4f",
        scenario.domain.value, len(regions), scenario.days, summary.avg_stress, summary.max_stress,
    )
    return SimulationRun(scenario=scenario, daily_results=daily, summary=summary)
