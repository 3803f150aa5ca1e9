"""
Tests for the scenario projection engine.
"""
import dataclasses
import datetime as dt
import math

import pytest

from errors import InvalidRange, InvalidScenario, UnknownCropType, UnknownSimulationType
from models import (
    AgricultureScenario,
    Baseline,
    Crop,
    Domain,
    EnergyScenario,
    Region,
    WaterScenario,
)
from projection import CRITICAL_STRESS_THRESHOLD, project_region, run_projection
from reference_data import default_regions
from tools import seasonal_factor, solar_cap_kwh

START = dt.date(2024, 1, 1)
END = dt.date(2024, 1, 31)


@pytest.mark.unit
class TestStressBounds:

    def test_every_domain_stays_in_unit_interval(self, regions, energy_scenario, water_scenario, agriculture_scenario):
        for scenario in (energy_scenario, water_scenario, agriculture_scenario):
            run = run_projection(regions, scenario)
            assert run.daily_results
            assert all(0.0 <= r.stress <= 1.0 for r in run.daily_results)

    def test_extreme_drought_saturates_at_one(self, alpha_region):
        scenario = WaterScenario(start_date=START, end_date=END, rainfall_change_pct=-100)
        run = run_projection([alpha_region], scenario)
        assert all(r.stress == 1.0 for r in run.daily_results)

    def test_default_regions_run_in_bounds(self):
        scenario = EnergyScenario(start_date=START, end_date=dt.date(2024, 3, 1), demand_growth_pct=40)
        run = run_projection(default_regions(), scenario)
        assert len(run.summary.regions) == 14
        assert all(0.0 <= r.stress <= 1.0 for r in run.daily_results)


@pytest.mark.unit
class TestDailyResults:

    def test_one_result_per_region_per_day(self, regions, energy_scenario):
        run = run_projection(regions, energy_scenario)
        assert len(run.daily_results) == len(regions) * 30

    def test_results_are_region_major_and_dated_from_start(self, regions, energy_scenario):
        run = run_projection(regions, energy_scenario)
        first, second = run.daily_results[:30], run.daily_results[30:]
        assert {r.region_id for r in first} == {"AA"}
        assert {r.region_id for r in second} == {"BB"}
        assert first[0].date == START
        assert first[-1].date == END - dt.timedelta(days=1)

    def test_first_day_has_no_growth_only_seasonality(self, alpha_region, energy_scenario):
        p = project_region(alpha_region, energy_scenario)
        first = p.results[0]
        assert first.demand_kwh == pytest.approx(1_000.0 * seasonal_factor(START))
        assert first.solar_kwh == pytest.approx(300.0 * seasonal_factor(START))

    def test_demand_compounds_over_time(self, alpha_region):
        scenario = EnergyScenario(start_date=START, end_date=dt.date(2026, 1, 1), demand_growth_pct=10)
        p = project_region(alpha_region, scenario)
        same_day_next_year = p.results[366]  # 2024 is a leap year
        assert same_day_next_year.date == dt.date(2025, 1, 1)
        growth = same_day_next_year.demand_kwh / seasonal_factor(same_day_next_year.date) / 1_000.0
        assert growth == pytest.approx(1.1 ** (366 / 365.0))


@pytest.mark.unit
class TestEnergy:

    def test_uncapped_grid_covers_everything(self, alpha_region, energy_scenario):
        p = project_region(alpha_region, energy_scenario)
        assert all(r.stress == pytest.approx(0.0, abs=1e-12) for r in p.results)
        assert all(r.deficit_kwh == pytest.approx(0.0, abs=1e-9) for r in p.results)

    def test_grid_capacity_produces_deficit(self, beta_region, energy_scenario):
        p = project_region(beta_region, energy_scenario)
        for r in p.results:
            assert r.grid_kwh == pytest.approx(900.0)
            assert r.deficit_kwh == pytest.approx(r.demand_kwh - r.solar_kwh - 900.0)
            assert r.stress == pytest.approx(r.deficit_kwh / r.demand_kwh)
            assert r.stress > 0

    def test_installed_capacity_caps_solar(self, alpha_region):
        scenario = EnergyScenario(start_date=START, end_date=END, installed_capacity_mw=10)
        p = project_region(alpha_region, scenario)
        assert all(r.solar_kwh <= solar_cap_kwh(10) for r in p.results)
        assert solar_cap_kwh(10) == pytest.approx(60.0)

    def test_temperature_follows_half_year(self, alpha_region):
        scenario = EnergyScenario(start_date=dt.date(2023, 6, 28), end_date=dt.date(2023, 7, 2))
        p = project_region(alpha_region, scenario)
        temps = [r.temperature_c for r in p.results]
        # day 179, 180 -> cool half; 181, 182 -> warm half
        assert temps == [22.0, 22.0, 26.0, 26.0]

    def test_summary_metrics(self, regions, energy_scenario):
        run = run_projection(regions, energy_scenario)
        m = run.summary.metrics
        assert m["total_demand_kwh"] == pytest.approx(
            sum(r.demand_kwh for r in run.daily_results))
        assert m["solar_percentage"] == pytest.approx(m["total_solar_kwh"] / m["total_demand_kwh"] * 100)
        assert m["total_deficit_kwh"] > 0


@pytest.mark.unit
class TestWater:

    def test_conservation_and_rainfall_formula(self, alpha_region):
        scenario = WaterScenario(start_date=START, end_date=END, rainfall_change_pct=-50, conservation_rate_pct=20)
        p = project_region(alpha_region, scenario)
        first = p.results[0]
        assert first.demand_m3 == pytest.approx(150.0 * 0.8)
        assert first.supply_m3 == pytest.approx(140.0 * 0.5 * seasonal_factor(START))
        assert first.unmet_demand_m3 == pytest.approx(first.demand_m3 - first.supply_m3)

    def test_shortage_days_counted(self, alpha_region):
        scenario = WaterScenario(start_date=START, end_date=END, rainfall_change_pct=-80)
        run = run_projection([alpha_region], scenario)
        assert all(r.shortage for r in run.daily_results)
        assert run.summary.critical_days == 30
        assert run.summary.metrics["critical_shortage_days"] == 30


@pytest.mark.unit
class TestZeroBaseline:

    def test_zero_water_demand_is_not_stressed(self):
        region = Region("ZZ", "Zero", baseline=Baseline(water_demand_m3=0.0, water_supply_m3=0.0))
        p = project_region(region, WaterScenario(start_date=START, end_date=END))
        assert all(r.stress == 0.0 for r in p.results)

    def test_zero_energy_demand_is_not_stressed(self):
        region = Region("ZE", "Zero", baseline=Baseline(demand_kwh=0.0, solar_kwh=0.0, grid_capacity_kwh=0.0))
        run = run_projection([region], EnergyScenario(start_date=START, end_date=END, demand_growth_pct=10))
        assert all(r.stress == 0.0 for r in run.daily_results)
        assert all(not math.isnan(r.stress) for r in run.daily_results)
        assert run.summary.metrics["solar_percentage"] == 0.0

    def test_zero_crop_yield_is_not_stressed(self):
        region = Region("ZA", "Zero", baseline=Baseline(crop_yields_kg={Crop.COFFEE: 0.0}))
        scenario = AgricultureScenario(start_date=START, end_date=END, rainfall_change_pct=-60)
        run = run_projection([region], scenario)
        for r in run.daily_results:
            assert r.stress == 0.0
            assert r.yield_change_pct == 0.0
            assert not math.isnan(r.stress)
        assert run.summary.metrics["total_yield_loss_pct"] == 0.0
        assert run.summary.metrics["most_affected_crop"] is None


@pytest.mark.unit
class TestAgriculture:

    def test_unchanged_climate_has_no_loss(self, alpha_region):
        scenario = AgricultureScenario(start_date=START, end_date=END)
        run = run_projection([alpha_region], scenario)
        assert all(r.stress == 0.0 for r in run.daily_results)
        assert all(r.yield_change_pct == pytest.approx(0.0) for r in run.daily_results)
        assert run.summary.metrics["total_yield_loss_kg"] == pytest.approx(0.0)
        assert run.summary.metrics["most_affected_crop"] is None

    def test_gains_only_have_no_most_affected_crop(self, alpha_region):
        scenario = AgricultureScenario(start_date=START, end_date=END, irrigation_improvement_pct=50)
        run = run_projection([alpha_region], scenario)
        assert run.summary.metrics["total_yield_loss_kg"] == 0.0
        assert run.summary.metrics["most_affected_crop"] is None

    def test_drought_loss_for_single_crop(self, alpha_region):
        scenario = AgricultureScenario(start_date=START, end_date=END, rainfall_change_pct=-50,
                                       crop_type=Crop.COFFEE)
        p = project_region(alpha_region, scenario)
        for r in p.results:
            assert r.crop_type is Crop.COFFEE
            assert r.stress == pytest.approx(0.3)
            assert r.yield_change_pct == pytest.approx(-30.0)

    def test_irrigation_mitigates_loss(self, alpha_region):
        scenario = AgricultureScenario(start_date=START, end_date=END, rainfall_change_pct=-50,
                                       irrigation_improvement_pct=100, crop_type="coffee")
        p = project_region(alpha_region, scenario)
        assert p.results[0].stress == pytest.approx(1 - 0.7 * 1.3)

    def test_most_affected_crop(self, alpha_region):
        scenario = AgricultureScenario(start_date=START, end_date=END, temperature_change_c=2)
        run = run_projection([alpha_region], scenario)
        assert run.summary.metrics["most_affected_crop"] == "coffee"
        losses = run.summary.crop_losses_kg
        assert set(losses) == {Crop.COFFEE, Crop.CORN}
        assert losses[Crop.COFFEE] > 0

    def test_missing_crop_baseline(self, alpha_region):
        scenario = AgricultureScenario(start_date=START, end_date=END, crop_type=Crop.BEANS)
        with pytest.raises(InvalidScenario) as exc:
            project_region(alpha_region, scenario)
        assert exc.value.region_id == "AA"

    def test_unknown_crop_rejected(self, alpha_region):
        scenario = AgricultureScenario(start_date=START, end_date=END, crop_type="rice")
        with pytest.raises(UnknownCropType):
            run_projection([alpha_region], scenario)


@pytest.mark.unit
class TestValidation:

    def test_missing_energy_baseline(self):
        region = Region("XX", "Empty")
        with pytest.raises(InvalidScenario) as exc:
            run_projection([region], EnergyScenario(start_date=START, end_date=END))
        assert exc.value.missing == ["demand_kwh", "solar_kwh"]
        assert exc.value.domain == "energy"

    def test_reversed_range(self, alpha_region):
        with pytest.raises(InvalidRange):
            run_projection([alpha_region], EnergyScenario(start_date=END, end_date=START))

    def test_empty_range(self, alpha_region):
        with pytest.raises(InvalidRange):
            run_projection([alpha_region], EnergyScenario(start_date=START, end_date=START))

    def test_range_over_five_years(self, alpha_region):
        scenario = WaterScenario(start_date=dt.date(2020, 1, 1), end_date=dt.date(2026, 1, 1))
        with pytest.raises(InvalidRange):
            run_projection([alpha_region], scenario)

    def test_conservation_above_hundred(self, alpha_region):
        scenario = WaterScenario(start_date=START, end_date=END, conservation_rate_pct=150)
        with pytest.raises(InvalidRange):
            run_projection([alpha_region], scenario)

    def test_unknown_scenario_type(self, alpha_region):
        with pytest.raises(UnknownSimulationType):
            run_projection([alpha_region], object())


@pytest.mark.unit
class TestSummaryAndDeterminism:

    def test_two_runs_are_equal(self, regions, agriculture_scenario):
        first = run_projection(regions, agriculture_scenario)
        second = run_projection(regions, agriculture_scenario)
        assert first.daily_results == second.daily_results
        assert first.summary == second.summary

    def test_thread_pool_matches_sequential(self, water_scenario):
        regions = default_regions()
        sequential = run_projection(regions, water_scenario)
        pooled = run_projection(regions, water_scenario, max_workers=4)
        assert pooled.daily_results == sequential.daily_results
        assert pooled.summary == sequential.summary

    def test_ties_rank_by_region_id(self, alpha_region):
        twin = dataclasses.replace(alpha_region, id="A0", name="Twin")
        scenario = WaterScenario(start_date=START, end_date=END, rainfall_change_pct=-40)
        run = run_projection([alpha_region, twin], scenario)
        assert [r.region_id for r in run.summary.top_stressed_regions] == ["A0", "AA"]

    def test_top_n_limits_ranking(self, water_scenario):
        run = run_projection(default_regions(), water_scenario, top_n=3)
        top = run.summary.top_stressed_regions
        assert len(top) == 3
        assert [r.avg_stress for r in top] == sorted((r.avg_stress for r in top), reverse=True)

    def test_summary_aggregates(self, regions, water_scenario):
        run = run_projection(regions, water_scenario)
        s = run.summary
        stresses = [r.stress for r in run.daily_results]
        assert s.domain is Domain.WATER
        assert s.critical_threshold == CRITICAL_STRESS_THRESHOLD
        assert s.max_stress == max(stresses)
        assert s.avg_stress == pytest.approx(sum(stresses) / len(stresses))
        assert s.critical_days == sum(1 for x in stresses if x > CRITICAL_STRESS_THRESHOLD)

    def test_stressed_regions_feed_economics(self, regions, water_scenario):
        run = run_projection(regions, water_scenario)
        rows = run.summary.stressed_regions()
        assert [r.region for r in rows] == ["Alpha", "Beta"]
        assert rows[1].remote is True
        assert rows[0].population == 100_000
