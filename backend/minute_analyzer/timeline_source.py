from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class TimelineNotFoundError(LookupError):
    pass


@runtime_checkable
class TimelineSource(Protocol):
    """Where match timelines come from.

    Fetching, caching and retries are the source's business. The analyzer
    calls it from a worker thread, once per match id.
    """

    def get_match_timeline(self, match_id: str, region: str) -> Mapping[str, Any]:
        ...


class InMemoryTimelineSource:
    def __init__(self, timelines: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        self._timelines: Dict[str, Mapping[str, Any]] = {
            str(match_id): timeline for match_id, timeline in (timelines or {}).items()
        }

    def add(self, match_id: str, timeline: Mapping[str, Any]) -> None:
        self._timelines[str(match_id)] = timeline

    def get_match_timeline(self, match_id: str, region: str) -> Mapping[str, Any]:
        try:
            return self._timelines[str(match_id)]
        except KeyError:
            raise TimelineNotFoundError(f"No timeline for match {match_id}") from None


def _check_path_part(value: str, label: str) -> None:
    if not value or value in (".", "..") or "/" in value or "\\" in value or "\x00" in value:
        raise ValueError(f"Invalid {label} for a timeline file: {value!r}")


class JsonDirectoryTimelineSource:
    """Reads ``<root>/<region>/<match_id>.json``, falling back to ``<root>/<match_id>.json``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _candidates(self, match_id: str, region: str) -> List[Path]:
        _check_path_part(match_id, "match id")
        paths = []
        if region:
            _check_path_part(region, "region")
            paths.append(self.root / region.lower() / f"{match_id}.json")
        paths.append(self.root / f"{match_id}.json")
        return paths

    def get_match_timeline(self, match_id: str, region: str) -> Mapping[str, Any]:
        for path in self._candidates(str(match_id), region):
            if path.exists():
                logger.debug(f"Loading timeline {match_id} from {path}")
                with open(path, "r", encoding="utf-8") as f:
                    return json.load(f)
        raise TimelineNotFoundError(f"No timeline file for match {match_id} under {self.root}")
