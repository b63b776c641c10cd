from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from minute_analyzer.analyzer import MatchAnalysisError, MinuteAnalyzer
from minute_analyzer.models import AnalyzeRequest
from minute_analyzer.settings import Settings
from minute_analyzer.timeline_source import (
    InMemoryTimelineSource,
    JsonDirectoryTimelineSource,
    TimelineNotFoundError,
)
from timeline_fixtures import _build_frame, _build_participant_frame, _build_timeline

FAST_SETTINGS = Settings(batch_size=2, batch_delay_s=0.0)


def _build_gold_timeline(gold_per_minute: int, minutes: int = 3) -> dict:
    frames = [
        _build_frame(
            minute * 60_000 + 17,
            {1: _build_participant_frame(1, gold=500 + minute * gold_per_minute)},
        )
        for minute in range(minutes + 1)
    ]
    return _build_timeline(frames)


def _build_source() -> InMemoryTimelineSource:
    return InMemoryTimelineSource(
        {
            "NA1_1": _build_gold_timeline(300),
            "NA1_2": _build_gold_timeline(400),
            "NA1_3": _build_gold_timeline(500, minutes=2),
        }
    )


def test_analyze_game_returns_raw_deltas() -> None:
    analyzer = MinuteAnalyzer([], _build_source(), settings=FAST_SETTINGS)
    players = asyncio.run(analyzer.analyze_game("NA1_1"))

    assert len(players) == 10
    assert [d.gold_gained for d in players["puuid-1"]] == [500, 300, 300]


def test_analyze_aggregates_across_matches() -> None:
    analyzer = MinuteAnalyzer(
        ["NA1_1", "NA1_2", "NA1_3"],
        _build_source(),
        player_keys=["puuid-1"],
        settings=FAST_SETTINGS,
    )
    profiles = asyncio.run(analyzer.analyze())

    assert list(profiles) == ["puuid-1"]
    minutes = profiles["puuid-1"]
    assert [m.timestamp_end for m in minutes] == [0, 60, 120]
    assert [m.sample_size for m in minutes] == [3, 3, 2]
    assert minutes[0].metrics["gold_gained"] == (500.0, 500.0, 500.0)
    assert minutes[1].mean("gold_gained") == 400.0
    assert minutes[2].mean("gold_gained") == 350.0
    assert minutes[1].low("gold_gained") == pytest.approx(320.0)
    assert minutes[1].high("gold_gained") == pytest.approx(480.0)
    assert analyzer.matches_analyzed == 3


def test_duplicate_match_ids_fold_once() -> None:
    analyzer = MinuteAnalyzer(
        ["NA1_1", "NA1_1", "NA1_2"], _build_source(), settings=FAST_SETTINGS
    )
    profiles = asyncio.run(analyzer.analyze())
    assert profiles["puuid-1"][0].sample_size == 2


def test_failed_match_raises_and_names_match() -> None:
    analyzer = MinuteAnalyzer(["NA1_1", "NA1_404"], _build_source(), settings=FAST_SETTINGS)
    with pytest.raises(MatchAnalysisError) as excinfo:
        asyncio.run(analyzer.analyze())
    assert excinfo.value.match_id == "NA1_404"
    assert isinstance(excinfo.value.__cause__, TimelineNotFoundError)


def test_skipped_failures_leave_pool_untouched() -> None:
    source = _build_source()
    broken = _build_gold_timeline(900)
    del broken["info"]["frames"][2]["participantFrames"]["1"]
    source.add("NA1_BAD", broken)

    analyzer = MinuteAnalyzer(
        ["NA1_1", "NA1_BAD", "NA1_2"], source, settings=FAST_SETTINGS, skip_failed=True
    )
    profiles = asyncio.run(analyzer.analyze())

    assert list(analyzer.failed_matches) == ["NA1_BAD"]
    assert analyzer.matches_analyzed == 2
    assert [m.sample_size for m in profiles["puuid-1"]] == [2, 2, 2]
    assert profiles["puuid-2"][0].sample_size == 2


def test_from_request_uses_request_percentile() -> None:
    request = AnalyzeRequest(match_ids=[1, 2], player_keys=["puuid-1"], percentile=75)
    analyzer = MinuteAnalyzer.from_request(request, _build_source(), settings=FAST_SETTINGS)

    assert analyzer.match_ids == ["1", "2"]
    assert analyzer.settings.percentile_min_max == 75
    assert analyzer.settings.batch_size == 2
    assert analyzer.region == "na1"


def test_from_env_reads_timeline_directory(tmp_path, monkeypatch) -> None:
    region_dir = tmp_path / "euw1"
    region_dir.mkdir()
    (region_dir / "EUW1_9.json").write_text(json.dumps(_build_gold_timeline(250)))
    monkeypatch.setenv("MINUTE_TIMELINE_DIR", str(tmp_path))
    monkeypatch.setenv("MINUTE_BATCH_DELAY_S", "0")
    monkeypatch.setenv("MINUTE_PERCENTILE_MIN_MAX", "80")

    analyzer = MinuteAnalyzer.from_env(["EUW1_9"], region="EUW1")
    assert isinstance(analyzer.source, JsonDirectoryTimelineSource)
    profiles = asyncio.run(analyzer.analyze_profiles())

    profile = next(p for p in profiles if p.player_key == "puuid-1")
    assert profile.matches_analyzed == 1
    assert [m.mean("gold_gained") for m in profile.minutes] == [500.0, 250.0, 250.0]


def test_json_directory_falls_back_to_root(tmp_path) -> None:
    (tmp_path / "NA1_5.json").write_text(json.dumps({"frames": []}))
    source = JsonDirectoryTimelineSource(tmp_path)

    assert source.get_match_timeline("NA1_5", "na1") == {"frames": []}
    with pytest.raises(TimelineNotFoundError):
        source.get_match_timeline("NA1_6", "na1")


def test_json_directory_rejects_path_escapes(tmp_path) -> None:
    root = tmp_path / "timelines"
    root.mkdir()
    (tmp_path / "secret.json").write_text(json.dumps({"frames": []}))
    source = JsonDirectoryTimelineSource(root)

    for match_id in ("../secret", "..", "a/b", "a\\b", ""):
        with pytest.raises(ValueError):
            source.get_match_timeline(match_id, "na1")
    with pytest.raises(ValueError):
        source.get_match_timeline("NA1_1", "../na1")


def test_single_string_ids_are_rejected() -> None:
    with pytest.raises(TypeError):
        MinuteAnalyzer("NA1_1", _build_source())
    with pytest.raises(TypeError):
        MinuteAnalyzer(["NA1_1"], _build_source(), player_keys="puuid-1")
