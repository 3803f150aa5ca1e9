# reference_data.py
"""
Reference tables for El Salvador: economics constants and the 14 departments.

The economics tables are an immutable EconomicsConfig value that callers pass
into the economics functions, so another country or year can be swapped in
(see load_economics for YAML overrides).

Sources behind the defaults:
  • DIGESTYC Census 2023 (population)
  • Central Reserve Bank Annual Report 2023 (GDP)
  • CEL Tariff Schedule 2024 / Infrastructure Development Plan 2023-2030
  • ANDA Rate Structure 2024 and Capital Investment Analysis 2024
  • MAG Agricultural Statistics 2023
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

import yaml

from errors import ConfigError, UnknownCropType, UnknownRegion
from models import Baseline, Crop, Domain, Region

log = logging.getLogger(__name__)


def _frozen(d: Mapping) -> Mapping:
    return MappingProxyType(dict(d))


# ---------------------------------
# Economics tables
# ---------------------------------

@dataclass(frozen=True)
class GdpShares:
    total_usd: float = 32_000_000_000
    per_capita_usd: float = 5_079
    agriculture_share: float = 0.12
    industry_share: float = 0.27
    services_share: float = 0.61


@dataclass(frozen=True)
class InfrastructureCosts:
    solar_cost_per_kw: float = 1_200
    grid_upgrade_cost_per_10pct: float = 2_000_000
    remote_region_multiplier: float = 1.5
    water_treatment_cost_per_100k_m3: float = 5_000_000
    desalination_cost_per_100k_m3: float = 10_000_000
    pipes_cost_per_10km: float = 1_000_000
    drip_irrigation_cost_per_hectare: float = 3_000
    sprinkler_irrigation_cost_per_hectare: float = 2_000
    annual_maintenance_rate: float = 0.05
    maintenance_years: int = 5


@dataclass(frozen=True)
class SocialCosts:
    outage_cost_per_capita_hour: float = 5.00       # lost productivity
    business_cost_per_outage_hour: float = 50.00
    people_per_business: float = 50
    extended_outage_hours: float = 4
    extended_outage_cost_per_capita: float = 2.00   # health impact, flat
    shortage_health_cost_per_capita_day: float = 10.00
    shortage_time_cost_per_capita_day: float = 6.00  # 2 h @ $3/h fetching water


@dataclass(frozen=True)
class AgricultureEconomics:
    crop_prices_per_kg: Mapping[Crop, float] = field(default_factory=lambda: _frozen({
        Crop.COFFEE: 2.50,
        Crop.SUGAR_CANE: 0.08,
        Crop.CORN: 0.40,
        Crop.BEANS: 1.20,
    }))
    gdp_multiplier: float = 1.3
    total_hectares: float = 1_200_000


@dataclass(frozen=True)
class ImpactModel:
    """Rules that turn stress levels into investment needs and exposure."""
    stress_trigger: float = 0.6
    stress_offset: float = 0.5
    outage_hours_per_stress: float = 100      # stress 1.0 -> 100 h/yr
    shortage_days_per_stress: float = 60      # stress 1.0 -> 60 days/yr
    water_per_capita_m3_day: float = 0.15
    baseline_solar_capacity_mw: float = 500
    hectares_per_stressed_region: float = 5_000
    max_affected_hectares: float = 50_000
    analysis_years: int = 5
    delay_months: int = 6
    loss_reduction: Mapping[Domain, float] = field(default_factory=lambda: _frozen({
        Domain.ENERGY: 0.80,
        Domain.WATER: 0.85,
        Domain.AGRICULTURE: 0.70,
    }))
    inaction_escalation: Mapping[Domain, float] = field(default_factory=lambda: _frozen({
        Domain.ENERGY: 1.10,
        Domain.WATER: 1.15,
        Domain.AGRICULTURE: 1.20,
    }))


@dataclass(frozen=True)
class EconomicsConfig:
    region_population: Mapping[str, int] = field(default_factory=lambda: _frozen({
        "San Salvador": 1_800_000,
        "La Libertad": 750_000,
        "Santa Ana": 550_000,
        "San Miguel": 520_000,
        "Sonsonate": 480_000,
        "La Paz": 340_000,
        "Usulután": 370_000,
        "Chalatenango": 220_000,
        "Cuscatlán": 250_000,
        "Ahuachapán": 340_000,
        "Morazán": 190_000,
        "La Unión": 270_000,
        "San Vicente": 180_000,
        "Cabañas": 160_000,
    }))
    remote_regions: FrozenSet[str] = frozenset({"Morazán", "La Unión", "Cabañas", "Chalatenango"})
    total_population: int = 6_300_000
    gdp: GdpShares = field(default_factory=GdpShares)
    infrastructure: InfrastructureCosts = field(default_factory=InfrastructureCosts)
    social: SocialCosts = field(default_factory=SocialCosts)
    agriculture: AgricultureEconomics = field(default_factory=AgricultureEconomics)
    impact: ImpactModel = field(default_factory=ImpactModel)
    discount_rate: float = 0.05                  # per year, planned investment
    opportunity_cost_monthly_rate: float = 0.02  # per month, cost of delay

    def population(self, region: str) -> int:
        try:
            return self.region_population[region]
        except KeyError:
            raise UnknownRegion(region) from None

    def is_remote(self, region: str) -> bool:
        if region in self.remote_regions:
            return True
        if region not in self.region_population:
            raise UnknownRegion(region)
        return False

    def crop_price(self, crop: Union[Crop, str]) -> float:
        crop = Crop.parse(crop)
        try:
            return self.agriculture.crop_prices_per_kg[crop]
        except KeyError:
            raise UnknownCropType(crop.value) from None


EL_SALVADOR_ECONOMICS = EconomicsConfig()


# ---------------------------------
# YAML overrides
# ---------------------------------

def _priced_crop(key: Union[Crop, str]) -> Crop:
    crop = Crop.parse(key)
    if crop is Crop.ALL:
        raise UnknownCropType(crop.value)
    return crop


_KEY_PARSERS = {
    "crop_prices_per_kg": _priced_crop,
    "loss_reduction": Domain,
    "inaction_escalation": Domain,
}


def _merge(obj: Any, overrides: Mapping[str, Any], path: str) -> Any:
    if not isinstance(overrides, Mapping):
        raise ConfigError(f"{path or 'economics'}: expected a mapping, got {type(overrides).__name__}")
    names = {f.name for f in dataclasses.fields(obj)}
    changes: Dict[str, Any] = {}
    for key, value in overrides.items():
        where = f"{path}.{key}" if path else str(key)
        if key not in names:
            raise ConfigError(f"Unknown economics key: {where}")
        current = getattr(obj, key)
        if dataclasses.is_dataclass(current):
            changes[key] = _merge(current, value, where)
        elif isinstance(current, frozenset):
            if not isinstance(value, (list, tuple, set, frozenset)) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"{where}: expected a list of names")
            changes[key] = frozenset(value)
        elif isinstance(current, Mapping):
            if not isinstance(value, Mapping):
                raise ConfigError(f"{where}: expected a mapping")
            parse = _KEY_PARSERS.get(key, str)
            try:
                merged = dict(current)
                merged.update({parse(k): v for k, v in value.items()})
            except (UnknownCropType, ValueError) as e:
                raise ConfigError(f"{where}: {e}") from e
            changes[key] = _frozen(merged)
        else:
            changes[key] = value
    return dataclasses.replace(obj, **changes)


def load_economics(
    source: Union[str, Path, Mapping[str, Any]],
    base: EconomicsConfig = EL_SALVADOR_ECONOMICS,
) -> EconomicsConfig:
    """
    Build an EconomicsConfig from a YAML file (or an already-parsed mapping).

    Only the keys present are overridden; nested tables merge key by key:

        discount_rate: 0.07
        infrastructure:
          solar_cost_per_kw: 950
        agriculture:
          crop_prices_per_kg:
            coffee: 3.10
    """
    if isinstance(source, Mapping):
        data = source
    else:
        path = Path(source)
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        log.info("Loaded economics overrides from %s", path)
    return _merge(base, data, "")


# ---------------------------------
# Departments
# ---------------------------------

# kg/hectare/year, mid-range MAG values
_CROP_YIELD_PER_HA = {
    Crop.COFFEE: 1_000,
    Crop.SUGAR_CANE: 70_000,
    Crop.CORN: 2_750,
    Crop.BEANS: 1_150,
}
_CROP_HECTARES = {
    Crop.COFFEE: 150_000,
    Crop.SUGAR_CANE: 80_000,
    Crop.CORN: 300_000,
    Crop.BEANS: 100_000,
}
# altitude -> crop suitability weight (coffee likes highlands, cane the coast)
_SUITABILITY = {
    "high": {Crop.COFFEE: 1.5, Crop.SUGAR_CANE: 0.5, Crop.CORN: 1.0, Crop.BEANS: 1.0},
    "medium": {Crop.COFFEE: 1.0, Crop.SUGAR_CANE: 1.0, Crop.CORN: 1.0, Crop.BEANS: 1.0},
    "low": {Crop.COFFEE: 0.5, Crop.SUGAR_CANE: 1.5, Crop.CORN: 1.0, Crop.BEANS: 1.0},
}
_BASE_TEMPERATURE_C = {"high": 20.0, "medium": 24.0, "low": 28.0}

_DEPARTMENTS: Tuple[Tuple[str, str, str], ...] = (
    ("AH", "Ahuachapán", "high"),
    ("CA", "Cabañas", "medium"),
    ("CH", "Chalatenango", "high"),
    ("CU", "Cuscatlán", "medium"),
    ("LI", "La Libertad", "low"),
    ("LP", "La Paz", "low"),
    ("LU", "La Unión", "low"),
    ("MO", "Morazán", "high"),
    ("SA", "Santa Ana", "high"),
    ("SM", "San Miguel", "medium"),
    ("SO", "Sonsonate", "low"),
    ("SS", "San Salvador", "medium"),
    ("SV", "San Vicente", "medium"),
    ("US", "Usulután", "low"),
)


def _department(region_id: str, name: str, altitude: str, config: EconomicsConfig) -> Region:
    population = config.population(name)
    n = len(_DEPARTMENTS)
    crop_yields = {
        crop: _CROP_HECTARES[crop] / n * _SUITABILITY[altitude][crop] * per_ha / 365.0
        for crop, per_ha in _CROP_YIELD_PER_HA.items()
    }
    return Region(
        id=region_id,
        name=name,
        population=population,
        remote=config.is_remote(name),
        baseline=Baseline(
            demand_kwh=population * 0.9,          # ~0.9 kWh/person/day
            solar_kwh=population * 0.9 * 0.30,   # ~30 % solar share
            water_demand_m3=population * 0.15,   # 150 L/person/day
            water_supply_m3=population * 0.165,  # ~10 % headroom
            rainfall_mm=5.5,                     # ~2000 mm/yr
            temperature_c=_BASE_TEMPERATURE_C[altitude],
            crop_yields_kg=_frozen(crop_yields),
        ),
    )


def default_regions(config: EconomicsConfig = EL_SALVADOR_ECONOMICS) -> Tuple[Region, ...]:
    """The 14 departments with baselines derived from the reference tables."""
    return tuple(_department(rid, name, alt, config) for rid, name, alt in _DEPARTMENTS)


def region_by_id(region_id: str, regions: Optional[Tuple[Region, ...]] = None) -> Region:
    for region in regions if regions is not None else default_regions():
        if region.id == region_id:
            return region
    raise UnknownRegion(region_id)
