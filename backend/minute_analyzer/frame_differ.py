from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from minute_analyzer.metrics import MinuteDelta

logger = logging.getLogger(__name__)

BLUE_TEAM_ID = 100
RED_TEAM_ID = 200

FRAME_WINDOW_S = 60

MONSTER_COUNTERS = {
    "BARON_NASHOR": ("barons_killed", "barons_given"),
    "RIFTHERALD": ("heralds_killed", "heralds_given"),
    "DRAGON": ("dragons_killed", "dragons_given"),
}

OBJECTIVE_EVENT_TYPES = ("ELITE_MONSTER_KILL", "BUILDING_KILL")


class TimelineIntegrityError(ValueError):
    pass


@dataclass(frozen=True)
class CumulativeStats:
    """Running totals of one participant at one frame."""

    damage_dealt_to_champions: float = 0
    damage_taken: float = 0
    creeps_killed: int = 0
    total_gold: float = 0
    xp: float = 0

    @classmethod
    def from_participant_frame(cls, participant_frame: Mapping[str, Any]) -> "CumulativeStats":
        damage_stats = participant_frame.get("damageStats") or {}
        return cls(
            damage_dealt_to_champions=damage_stats.get("totalDamageDoneToChampions") or 0,
            damage_taken=damage_stats.get("totalDamageTaken") or 0,
            creeps_killed=(participant_frame.get("minionsKilled") or 0)
            + (participant_frame.get("jungleMinionsKilled") or 0),
            total_gold=participant_frame.get("totalGold") or 0,
            xp=participant_frame.get("xp") or 0,
        )

    def __sub__(self, other: "CumulativeStats") -> "CumulativeStats":
        return CumulativeStats(
            damage_dealt_to_champions=self.damage_dealt_to_champions
            - other.damage_dealt_to_champions,
            damage_taken=self.damage_taken - other.damage_taken,
            creeps_killed=self.creeps_killed - other.creeps_killed,
            total_gold=self.total_gold - other.total_gold,
            xp=self.xp - other.xp,
        )


@dataclass(frozen=True)
class TimelineParticipant:
    participant_id: int
    player_key: str
    team_id: int


def _timeline_body(timeline: Mapping[str, Any]) -> Mapping[str, Any]:
    if not isinstance(timeline, Mapping):
        raise TimelineIntegrityError("Timeline document must be a mapping.")
    for key in ("info", "data"):
        body = timeline.get(key)
        if isinstance(body, Mapping) and "frames" in body:
            return body
    return timeline


def default_team_id(participant_id: int) -> int:
    return BLUE_TEAM_ID if 1 <= participant_id <= 5 else RED_TEAM_ID


def timeline_participants(timeline: Mapping[str, Any]) -> List[TimelineParticipant]:
    body = _timeline_body(timeline)
    raw_participants = body.get("participants")
    if not raw_participants:
        raise TimelineIntegrityError("Timeline has no participants.")

    participants: List[TimelineParticipant] = []
    for entry in raw_participants:
        participant_id = entry.get("participantId")
        if participant_id is None:
            raise TimelineIntegrityError(f"Participant without participantId: {entry!r}")
        participant_id = int(participant_id)
        player_key = entry.get("puuid") or str(participant_id)
        team_id = entry.get("teamId")
        participants.append(
            TimelineParticipant(
                participant_id=participant_id,
                player_key=str(player_key),
                team_id=int(team_id) if team_id else default_team_id(participant_id),
            )
        )
    return participants


def timeline_frames(timeline: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    body = _timeline_body(timeline)
    frames = body.get("frames")
    if frames is None:
        raise TimelineIntegrityError("Timeline has no frames.")
    return sorted(frames, key=lambda frame: frame.get("timestamp") or 0)


def frame_window(frame: Mapping[str, Any]) -> Tuple[int, int]:
    timestamp_end = int((frame.get("timestamp") or 0) // 1000)
    timestamp_begin = max(0, timestamp_end - FRAME_WINDOW_S)
    return timestamp_begin, timestamp_end


def _participant_frame(frame: Mapping[str, Any], participant_id: int) -> Mapping[str, Any]:
    participant_frames = frame.get("participantFrames") or {}
    snapshot = participant_frames.get(str(participant_id))
    if snapshot is None:
        snapshot = participant_frames.get(participant_id)
    if snapshot is None:
        raise TimelineIntegrityError(
            f"Frame at {frame.get('timestamp')}ms has no snapshot for participant {participant_id}."
        )
    return snapshot


def _participant_id(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _killer_team_id(
    event: Mapping[str, Any], team_by_participant: Mapping[int, int]
) -> Optional[int]:
    """Team credited with an objective, or None when it can't be told from the event."""
    known_teams = set(team_by_participant.values())
    killer_team_id = event.get("killerTeamId")
    if killer_team_id:
        team_id = int(killer_team_id)
        return team_id if team_id in known_teams else None
    if event.get("type") == "BUILDING_KILL" and event.get("teamId"):
        # teamId on a building kill is the team that lost the building
        owner = int(event["teamId"])
        if owner == BLUE_TEAM_ID:
            return RED_TEAM_ID if RED_TEAM_ID in known_teams else None
        if owner == RED_TEAM_ID:
            return BLUE_TEAM_ID if BLUE_TEAM_ID in known_teams else None
        return None
    killer_id = _participant_id(event.get("killerId"))
    if killer_id:
        return team_by_participant.get(killer_id)
    return None


def _apply_champion_kill(
    delta: MinuteDelta, event: Mapping[str, Any], participant_id: int
) -> None:
    kill_gold = (event.get("bounty") or 0) + (event.get("shutdownBounty") or 0)
    assisting = {_participant_id(pid) for pid in event.get("assistingParticipantIds") or ()}
    if _participant_id(event.get("killerId")) == participant_id:
        delta.kills += 1
        delta.bounties_claimed.append(kill_gold)
    if _participant_id(event.get("victimId")) == participant_id:
        delta.deaths += 1
        delta.bounties_given.append(kill_gold)
    if participant_id in assisting:
        delta.assists += 1
        delta.bounties_helped_claim.append(kill_gold)


def _apply_objective(
    delta: MinuteDelta, event: Mapping[str, Any], team_id: int, killer_team_id: int
) -> None:
    killed = killer_team_id == team_id
    if event.get("type") == "ELITE_MONSTER_KILL":
        counters = MONSTER_COUNTERS.get(event.get("monsterType") or "")
        if counters:
            killed_field, given_field = counters
            field_name = killed_field if killed else given_field
            setattr(delta, field_name, getattr(delta, field_name) + 1)

    bounty = event.get("bounty")
    if bounty:
        if killed:
            delta.objective_bounties_gold_gained += bounty
            delta.objective_bounties_claimed.append(bounty)
        else:
            delta.objective_bounties_gold_given += bounty
            delta.objective_bounties_given.append(bounty)


def diff_frame(
    participant: TimelineParticipant,
    frame: Mapping[str, Any],
    baseline: CumulativeStats,
    team_by_participant: Mapping[int, int],
) -> Tuple[MinuteDelta, CumulativeStats]:
    """Build one minute delta; return it with the baseline for the next frame."""
    current = CumulativeStats.from_participant_frame(
        _participant_frame(frame, participant.participant_id)
    )
    gained = current - baseline
    timestamp_begin, timestamp_end = frame_window(frame)
    delta = MinuteDelta(
        timestamp_begin=timestamp_begin,
        timestamp_end=timestamp_end,
        damage_dealt_to_champions=gained.damage_dealt_to_champions,
        damage_taken=gained.damage_taken,
        net_damage_traded=gained.damage_dealt_to_champions - gained.damage_taken,
        creeps_killed=gained.creeps_killed,
        gold_gained=gained.total_gold,
        xp_gained=gained.xp,
    )

    for event in frame.get("events") or ():
        event_type = event.get("type")
        if event_type == "CHAMPION_KILL":
            _apply_champion_kill(delta, event, participant.participant_id)
        elif event_type in OBJECTIVE_EVENT_TYPES:
            killer_team_id = _killer_team_id(event, team_by_participant)
            if killer_team_id is None:
                logger.debug(
                    f"Unattributed {event_type} at {event.get('timestamp')}ms skipped"
                )
                continue
            _apply_objective(delta, event, participant.team_id, killer_team_id)

    return delta, current


def player_key_set(player_keys: Optional[Iterable[str]]) -> Optional[Set[str]]:
    if player_keys is None:
        return None
    if isinstance(player_keys, (str, bytes)):
        raise TypeError("player keys must be a collection of keys, not a single string")
    return {str(key) for key in player_keys}


def diff_timeline(
    timeline: Mapping[str, Any],
    participant_filter: Optional[Iterable[str]] = None,
) -> Dict[str, List[MinuteDelta]]:
    """Turn one match timeline into per-minute deltas keyed by player key.

    The last frame is a partial minute and is never differenced, so each
    player gets ``len(frames) - 1`` deltas in frame order.
    """
    participants = timeline_participants(timeline)
    frames = timeline_frames(timeline)
    complete_frames = frames[:-1]
    allowed = player_key_set(participant_filter)
    team_by_participant = {p.participant_id: p.team_id for p in participants}

    players: Dict[str, List[MinuteDelta]] = {}
    for participant in participants:
        if allowed is not None and participant.player_key not in allowed:
            continue
        baseline = CumulativeStats()
        deltas: List[MinuteDelta] = []
        for frame in complete_frames:
            delta, baseline = diff_frame(participant, frame, baseline, team_by_participant)
            deltas.append(delta)
        players[participant.player_key] = deltas
    return players
