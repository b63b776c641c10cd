from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from minute_analyzer.metrics import LIST_METRICS, METRIC_NAMES, SCALAR_METRICS, MinuteDelta


def _empty_samples() -> Dict[str, List[float]]:
    return {name: [] for name in METRIC_NAMES}


@dataclass
class SamplePool:
    """Samples of every metric for one player in one minute bucket.

    Scalar metrics get one value per contributing match-minute. List
    metrics are flattened, so they hold every bounty recorded in the
    bucket. ``sample_size`` counts match-minutes only.
    """

    samples: Dict[str, List[float]] = field(default_factory=_empty_samples)
    sample_size: int = 0

    def add(self, delta: MinuteDelta) -> None:
        for name in SCALAR_METRICS:
            self.samples[name].append(getattr(delta, name))
        for name in LIST_METRICS:
            self.samples[name].extend(getattr(delta, name))
        self.sample_size += 1


class PoolState:
    """Sample pools keyed by player key, then by bucket end second."""

    def __init__(self) -> None:
        self._pools: Dict[str, Dict[int, SamplePool]] = {}

    def pool_for(self, player_key: str, timestamp_end: int) -> SamplePool:
        buckets = self._pools.setdefault(player_key, {})
        pool = buckets.get(timestamp_end)
        if pool is None:
            pool = SamplePool()
            buckets[timestamp_end] = pool
        return pool

    def get(self, player_key: str, timestamp_end: int) -> Optional[SamplePool]:
        return self._pools.get(player_key, {}).get(timestamp_end)

    def players(self) -> List[str]:
        return list(self._pools)

    def buckets(self, player_key: str) -> Iterator[Tuple[int, SamplePool]]:
        buckets = self._pools.get(player_key, {})
        for timestamp_end in sorted(buckets):
            yield timestamp_end, buckets[timestamp_end]

    def bucket_count(self) -> int:
        return sum(len(buckets) for buckets in self._pools.values())

    def __contains__(self, player_key: object) -> bool:
        return player_key in self._pools

    def __len__(self) -> int:
        return len(self._pools)


def fold(
    state: PoolState, deltas_by_player: Mapping[str, Sequence[MinuteDelta]]
) -> PoolState:
    """Add one match's deltas to ``state`` and return it.

    Not idempotent: folding the same match twice counts it twice.
    """
    for player_key, deltas in deltas_by_player.items():
        for delta in deltas:
            state.pool_for(player_key, delta.timestamp_end).add(delta)
    return state
