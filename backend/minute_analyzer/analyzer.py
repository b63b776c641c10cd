from __future__ import annotations

import asyncio
from dataclasses import replace
import logging
import time
from typing import Dict, Iterable, List, Optional

from minute_analyzer.accumulator import PoolState, fold
from minute_analyzer.aggregator import aggregate, validate_percentile
from minute_analyzer.batching import BatchConfig, iter_batches
from minute_analyzer.env import load_env
from minute_analyzer.frame_differ import diff_timeline, player_key_set
from minute_analyzer.metrics import MinuteDelta
from minute_analyzer.models import AnalyzeRequest, MinuteAggregate, MinuteProfile
from minute_analyzer.settings import Settings
from minute_analyzer.timeline_source import JsonDirectoryTimelineSource, TimelineSource

logger = logging.getLogger(__name__)


class MatchAnalysisError(RuntimeError):
    def __init__(self, match_id: str, message: str) -> None:
        super().__init__(f"Match {match_id}: {message}")
        self.match_id = match_id


class MinuteAnalyzer:
    """Per-minute performance profiles over a set of matches.

    Timelines are fetched through ``source`` in bounded batches, differenced
    one match at a time and folded into a single pool; the pool is
    aggregated once at the end.
    """

    def __init__(
        self,
        match_ids: Iterable[str],
        source: TimelineSource,
        region: Optional[str] = None,
        player_keys: Optional[Iterable[str]] = None,
        settings: Optional[Settings] = None,
        skip_failed: Optional[bool] = None,
    ) -> None:
        if isinstance(match_ids, (str, bytes)):
            raise TypeError("match_ids must be a collection of ids, not a single string")
        self.settings = settings or Settings()
        self.match_ids: List[str] = list(dict.fromkeys(str(m) for m in match_ids))
        self.source = source
        self.region = (region or self.settings.default_region).lower()
        self.player_keys = player_key_set(player_keys)
        self.skip_failed = (
            self.settings.skip_failed_matches if skip_failed is None else skip_failed
        )
        self.failed_matches: Dict[str, BaseException] = {}
        self.matches_analyzed = 0
        self.pool = PoolState()

    @classmethod
    def from_request(
        cls,
        request: AnalyzeRequest,
        source: TimelineSource,
        settings: Optional[Settings] = None,
    ) -> "MinuteAnalyzer":
        settings = replace(settings or Settings(), percentile_min_max=request.percentile)
        return cls(
            request.match_ids,
            source,
            region=request.region,
            player_keys=request.player_keys,
            settings=settings,
        )

    @classmethod
    def from_env(
        cls,
        match_ids: Iterable[str],
        source: Optional[TimelineSource] = None,
        region: Optional[str] = None,
        player_keys: Optional[Iterable[str]] = None,
    ) -> "MinuteAnalyzer":
        load_env()
        settings = Settings.from_env()
        if source is None:
            if settings.timeline_dir is None:
                raise ValueError("MINUTE_TIMELINE_DIR is required when no source is given.")
            source = JsonDirectoryTimelineSource(settings.timeline_dir)
        return cls(match_ids, source, region=region, player_keys=player_keys, settings=settings)

    @property
    def batch_config(self) -> BatchConfig:
        return self.settings.batch_config()

    async def analyze_game(self, match_id: str) -> Dict[str, List[MinuteDelta]]:
        """Unaggregated per-minute deltas of a single match."""
        t0 = time.perf_counter()
        timeline = await asyncio.to_thread(
            self.source.get_match_timeline, str(match_id), self.region
        )
        t_fetch = time.perf_counter() - t0
        players = diff_timeline(timeline, self.player_keys)
        logger.info(
            f"[MINUTE TIMING] analyze_game {match_id}: fetch {t_fetch:.2f}s, "
            f"diff {time.perf_counter() - t0 - t_fetch:.2f}s ({len(players)} players)"
        )
        return players

    async def analyze(self) -> Dict[str, List[MinuteAggregate]]:
        """Fold every match into the pool, then aggregate it."""
        percentile = validate_percentile(self.settings.percentile_min_max)
        self.pool = PoolState()
        self.failed_matches = {}
        self.matches_analyzed = 0
        t0 = time.perf_counter()
        async for batch in iter_batches(self.match_ids, self.analyze_game, self.batch_config):
            for match_id, outcome in batch:
                if not isinstance(outcome, BaseException):
                    fold(self.pool, outcome)
                    self.matches_analyzed += 1
                    continue
                if not isinstance(outcome, Exception):
                    raise outcome
                if not self.skip_failed:
                    raise MatchAnalysisError(match_id, str(outcome)) from outcome
                logger.warning(f"Skipping match {match_id}: {outcome}")
                self.failed_matches[match_id] = outcome

        logger.info(
            f"[MINUTE TIMING] analyze: {time.perf_counter() - t0:.2f}s "
            f"({self.matches_analyzed} matches, {len(self.failed_matches)} skipped)"
        )
        return aggregate(self.pool, percentile)

    async def analyze_profiles(self) -> List[MinuteProfile]:
        profiles = await self.analyze()
        return [
            MinuteProfile(
                player_key=player_key,
                matches_analyzed=self.matches_analyzed,
                minutes=minutes,
            )
            for player_key, minutes in profiles.items()
        ]
