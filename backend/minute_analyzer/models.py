from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

MetricTriple = Tuple[float, float, float]


class AnalyzeRequest(BaseModel):
    match_ids: List[str] = Field(..., min_length=1)
    player_keys: Optional[List[str]] = None
    region: str = Field("na1", min_length=1)
    percentile: float = Field(90, gt=50, le=100)

    @field_validator("match_ids", mode="before")
    @classmethod
    def _stringify_match_ids(cls, value):
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value]
        return value


class MinuteAggregate(BaseModel):
    """Trimmed [low, high, mean] of every metric for one minute bucket."""

    model_config = ConfigDict(frozen=True)

    timestamp_begin: int
    timestamp_end: int
    sample_size: int = Field(..., ge=0)
    metrics: Dict[str, MetricTriple]

    def low(self, metric: str) -> float:
        return self.metrics[metric][0]

    def high(self, metric: str) -> float:
        return self.metrics[metric][1]

    def mean(self, metric: str) -> float:
        return self.metrics[metric][2]


class MinuteProfile(BaseModel):
    player_key: str
    matches_analyzed: int
    minutes: List[MinuteAggregate] = Field(default_factory=list)
