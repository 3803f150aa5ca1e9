"""
Pytest configuration and shared fixtures.
"""
import datetime as dt

import pytest

from models import (
    AgricultureScenario,
    Baseline,
    Crop,
    EnergyScenario,
    Region,
    WaterScenario,
)

START = dt.date(2024, 1, 1)
END = dt.date(2024, 1, 31)


@pytest.fixture
def alpha_region():
    return Region(
        id="AA",
        name="Alpha",
        population=100_000,
        remote=False,
        baseline=Baseline(
            demand_kwh=1_000.0,
            solar_kwh=300.0,
            water_demand_m3=150.0,
            water_supply_m3=140.0,
            rainfall_mm=5.5,
            temperature_c=24.0,
            crop_yields_kg={Crop.COFFEE: 100.0, Crop.CORN: 200.0},
        ),
    )


@pytest.fixture
def beta_region():
    return Region(
        id="BB",
        name="Beta",
        population=50_000,
        remote=True,
        baseline=Baseline(
            demand_kwh=2_000.0,
            solar_kwh=100.0,
            grid_capacity_kwh=900.0,
            water_demand_m3=80.0,
            water_supply_m3=40.0,
            crop_yields_kg={Crop.COFFEE: 50.0},
        ),
    )


@pytest.fixture
def regions(alpha_region, beta_region):
    return [alpha_region, beta_region]


@pytest.fixture
def energy_scenario():
    return EnergyScenario(start_date=START, end_date=END, solar_growth_pct=10, demand_growth_pct=5)


@pytest.fixture
def water_scenario():
    return WaterScenario(
        start_date=START,
        end_date=END,
        water_demand_growth_pct=5,
        rainfall_change_pct=-20,
        conservation_rate_pct=10,
    )


@pytest.fixture
def agriculture_scenario():
    return AgricultureScenario(
        start_date=START,
        end_date=END,
        rainfall_change_pct=-30,
        temperature_change_c=1.5,
        irrigation_improvement_pct=0,
        crop_type=Crop.ALL,
    )
