from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Tuple


class MetricKind(str, Enum):
    SCALAR = "scalar"
    LIST = "list"


class Metric(NamedTuple):
    name: str
    kind: MetricKind


# Order matters: it is the column order of every aggregate.
METRICS: Tuple[Metric, ...] = (
    Metric("kills", MetricKind.SCALAR),
    Metric("deaths", MetricKind.SCALAR),
    Metric("assists", MetricKind.SCALAR),
    Metric("bounties_claimed", MetricKind.LIST),
    Metric("bounties_given", MetricKind.LIST),
    Metric("bounties_helped_claim", MetricKind.LIST),
    Metric("damage_dealt_to_champions", MetricKind.SCALAR),
    Metric("damage_taken", MetricKind.SCALAR),
    Metric("net_damage_traded", MetricKind.SCALAR),
    Metric("creeps_killed", MetricKind.SCALAR),
    Metric("gold_gained", MetricKind.SCALAR),
    Metric("xp_gained", MetricKind.SCALAR),
    Metric("barons_killed", MetricKind.SCALAR),
    Metric("barons_given", MetricKind.SCALAR),
    Metric("heralds_killed", MetricKind.SCALAR),
    Metric("heralds_given", MetricKind.SCALAR),
    Metric("dragons_killed", MetricKind.SCALAR),
    Metric("dragons_given", MetricKind.SCALAR),
    Metric("objective_bounties_gold_gained", MetricKind.SCALAR),
    Metric("objective_bounties_gold_given", MetricKind.SCALAR),
    Metric("objective_bounties_claimed", MetricKind.LIST),
    Metric("objective_bounties_given", MetricKind.LIST),
)

METRIC_NAMES: Tuple[str, ...] = tuple(metric.name for metric in METRICS)
SCALAR_METRICS: Tuple[str, ...] = tuple(
    metric.name for metric in METRICS if metric.kind is MetricKind.SCALAR
)
LIST_METRICS: Tuple[str, ...] = tuple(
    metric.name for metric in METRICS if metric.kind is MetricKind.LIST
)


@dataclass
class MinuteDelta:
    """What one participant did during one minute of one match.

    ``timestamp_begin``/``timestamp_end`` are whole seconds. Resource and
    damage fields are first differences of the cumulative frame snapshots;
    the list fields hold one entry per bounty (base + shutdown).
    """

    timestamp_begin: int
    timestamp_end: int
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    bounties_claimed: List[int] = field(default_factory=list)
    bounties_given: List[int] = field(default_factory=list)
    bounties_helped_claim: List[int] = field(default_factory=list)
    damage_dealt_to_champions: float = 0
    damage_taken: float = 0
    net_damage_traded: float = 0
    creeps_killed: int = 0
    gold_gained: float = 0
    xp_gained: float = 0
    barons_killed: int = 0
    barons_given: int = 0
    heralds_killed: int = 0
    heralds_given: int = 0
    dragons_killed: int = 0
    dragons_given: int = 0
    objective_bounties_gold_gained: float = 0
    objective_bounties_gold_given: float = 0
    objective_bounties_claimed: List[int] = field(default_factory=list)
    objective_bounties_given: List[int] = field(default_factory=list)
