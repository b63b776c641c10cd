from __future__ import annotations

from dataclasses import asdict, is_dataclass
from typing import Any, Dict, List, Mapping, Sequence

import numpy as np
import pandas as pd
from pydantic import BaseModel

from minute_analyzer.metrics import METRIC_NAMES
from minute_analyzer.models import MinuteAggregate

PROFILE_COLUMNS = [
    "player_key",
    "timestamp_begin",
    "timestamp_end",
    "sample_size",
    "metric",
    "low",
    "high",
    "mean",
]


def to_serializable(obj: Any) -> Any:
    """Recursively convert models, dataclasses and numpy values to plain Python for JSON."""
    if isinstance(obj, BaseModel):
        return to_serializable(obj.model_dump())
    if is_dataclass(obj) and not isinstance(obj, type):
        return to_serializable(asdict(obj))
    if isinstance(obj, dict):
        return {str(k): to_serializable(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [to_serializable(v) for v in obj]
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    return obj


def profiles_to_frame(profiles: Mapping[str, Sequence[MinuteAggregate]]) -> pd.DataFrame:
    """One row per player, minute bucket and metric."""
    rows: List[Dict[str, Any]] = []
    for player_key, minutes in profiles.items():
        for minute in minutes:
            for metric in METRIC_NAMES:
                low, high, mean = minute.metrics[metric]
                rows.append(
                    {
                        "player_key": player_key,
                        "timestamp_begin": minute.timestamp_begin,
                        "timestamp_end": minute.timestamp_end,
                        "sample_size": minute.sample_size,
                        "metric": metric,
                        "low": low,
                        "high": high,
                        "mean": mean,
                    }
                )
    return pd.DataFrame(rows, columns=PROFILE_COLUMNS)


def deltas_to_frame(players: Mapping[str, Sequence[Any]]) -> pd.DataFrame:
    """Flatten one match's minute deltas; list metrics become counts and sums."""
    rows: List[Dict[str, Any]] = []
    for player_key, deltas in players.items():
        for delta in deltas:
            row = {"player_key": player_key, **asdict(delta)}
            for name, value in list(row.items()):
                if isinstance(value, list):
                    row[name] = sum(value)
                    row[f"{name}_count"] = len(value)
            rows.append(row)
    return pd.DataFrame(rows)
