from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from minute_analyzer.batching import BatchConfig


def _bool_env(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _int_env(name: str, default: str) -> int:
    raw = os.getenv(name, default).strip()
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _float_env(name: str, default: str) -> float:
    raw = os.getenv(name, default).strip()
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _path_env(name: str) -> Optional[Path]:
    value = os.getenv(name)
    if not value:
        return None
    return Path(value)


@dataclass(frozen=True)
class Settings:
    percentile_min_max: float = 90.0
    default_region: str = "na1"
    batch_size: int = 10
    batch_delay_s: float = 1.0
    batch_time_limit_s: float = 0.0
    batch_item_limit: int = 0
    skip_failed_matches: bool = False
    timeline_dir: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            percentile_min_max=_float_env("MINUTE_PERCENTILE_MIN_MAX", "90"),
            default_region=os.getenv("MINUTE_DEFAULT_REGION", "na1").strip().lower(),
            batch_size=_int_env("MINUTE_BATCH_SIZE", "10"),
            batch_delay_s=_float_env("MINUTE_BATCH_DELAY_S", "1.0"),
            batch_time_limit_s=_float_env("MINUTE_BATCH_TIME_LIMIT_S", "0"),
            batch_item_limit=_int_env("MINUTE_BATCH_ITEM_LIMIT", "0"),
            skip_failed_matches=_bool_env("MINUTE_SKIP_FAILED_MATCHES"),
            timeline_dir=_path_env("MINUTE_TIMELINE_DIR"),
        )

    def batch_config(self) -> BatchConfig:
        return BatchConfig(
            batch_size=self.batch_size,
            delay_s=self.batch_delay_s,
            time_limit_s=self.batch_time_limit_s,
            item_limit=self.batch_item_limit,
        )
