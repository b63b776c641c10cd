from __future__ import annotations

import logging
import math
import time
from typing import Dict, List

import numpy as np

from minute_analyzer.accumulator import PoolState, SamplePool
from minute_analyzer.frame_differ import FRAME_WINDOW_S
from minute_analyzer.metrics import METRIC_NAMES
from minute_analyzer.models import MetricTriple, MinuteAggregate

logger = logging.getLogger(__name__)

DEFAULT_PERCENTILE_MIN_MAX = 90.0

EMPTY_TRIPLE: MetricTriple = (0.0, 0.0, 0.0)


class AggregationConfigError(ValueError):
    pass


def validate_percentile(percentile: float) -> float:
    try:
        value = float(percentile)
    except (TypeError, ValueError) as exc:
        raise AggregationConfigError(f"Percentile must be a number, got {percentile!r}") from exc
    if math.isnan(value) or not 50 < value <= 100:
        raise AggregationConfigError(f"Percentile must be in (50, 100], got {percentile!r}")
    return value


def summarize_samples(values: List[float], percentile: float) -> MetricTriple:
    if not values:
        return EMPTY_TRIPLE
    samples = np.asarray(values, dtype=np.float64)
    low, high = np.percentile(samples, [100 - percentile, percentile])
    # fsum keeps the mean exact over large pools
    mean = math.fsum(values) / len(values)
    return float(low), float(high), float(mean)


def summarize_pool(pool: SamplePool, percentile: float) -> Dict[str, MetricTriple]:
    return {name: summarize_samples(pool.samples[name], percentile) for name in METRIC_NAMES}


def aggregate(
    state: PoolState, percentile: float = DEFAULT_PERCENTILE_MIN_MAX
) -> Dict[str, List[MinuteAggregate]]:
    """Summarize every pool into per-player, per-minute aggregates.

    ``percentile`` keeps the central band: 90 means the 10th and 90th
    percentiles become the low/high bounds. The pool is only read.
    """
    percentile = validate_percentile(percentile)
    t0 = time.perf_counter()

    profiles: Dict[str, List[MinuteAggregate]] = {}
    for player_key in state.players():
        minutes: List[MinuteAggregate] = []
        for timestamp_end, pool in state.buckets(player_key):
            minutes.append(
                MinuteAggregate(
                    timestamp_begin=max(0, timestamp_end - FRAME_WINDOW_S),
                    timestamp_end=timestamp_end,
                    sample_size=pool.sample_size,
                    metrics=summarize_pool(pool, percentile),
                )
            )
        profiles[player_key] = minutes

    logger.info(
        f"[MINUTE TIMING] aggregate: {time.perf_counter() - t0:.2f}s "
        f"({len(profiles)} players, {state.bucket_count()} buckets, p={percentile:g})"
    )
    return profiles
