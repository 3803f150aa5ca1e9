# export.py
"""
Serialization of engine output for storage, charting and API layers.

NaN (the SMA warm-up) and inf (payback with no savings) become None so a
JSON consumer can tell "undefined" apart from a real 0.
"""
from __future__ import annotations

import dataclasses
import datetime as dt
import math
from enum import Enum
from typing import Any, Iterable, List

import pandas as pd

from models import DailyResult, SimulationRun, SimulationSummary


def to_records(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_records(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (dt.date, dt.datetime)):
        return obj.isoformat()
    if isinstance(obj, float):
        return obj if math.isfinite(obj) else None
    if isinstance(obj, dict) or hasattr(obj, "items"):
        return {to_records(k): to_records(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_records(v) for v in obj]
    return obj


def results_frame(results: Iterable[DailyResult]) -> pd.DataFrame:
    rows: List[dict] = [to_records(r) for r in results]
    df = pd.DataFrame(rows)
    if not df.empty:
        df["date"] = pd.to_datetime(df["date"])
    return df


def results_to_csv(run: SimulationRun) -> str:
    df = results_frame(run.daily_results)
    if not df.empty:
        df["date"] = df["date"].dt.strftime("%Y-%m-%d")
    return df.to_csv(index=False, float_format="%.4f")


def summary_to_csv(summary: SimulationSummary) -> str:
    df = pd.DataFrame([
        {
            "rank": i + 1,
            "region_id": r.region_id,
            "region_name": r.region_name,
            "avg_stress": r.avg_stress,
            "max_stress": r.max_stress,
            "critical_days": r.critical_days,
        }
        for i, r in enumerate(summary.top_stressed_regions)
    ], columns=["rank", "region_id", "region_name", "avg_stress", "max_stress", "critical_days"])
    return df.to_csv(index=False, float_format="%.4f")
