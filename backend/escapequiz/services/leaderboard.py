import math
import time
from typing import Any, Iterable, List, Optional


def _as_time(value: Any) -> Optional[float]:
    # bool is an int subclass; a flag is never a timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return float(value)


def finish_duration(team) -> float:
    """Seconds from start to finish; ``inf`` when either end is missing or invalid."""
    start = _as_time(team.start_time)
    end = _as_time(team.end_time)
    if start is None or end is None or end < start:
        return math.inf
    return end - start


def _is_finished(team) -> bool:
    return team.end_time is not None


def rank_key(team):
    """Sort key producing a strict total order over teams.

    Finished teams first, fastest first; then unfinished teams by most parts
    solved, earliest start first (no start sorts last). Team id breaks any
    remaining tie.
    """
    if _is_finished(team):
        return (0, finish_duration(team), 0, 0.0, team.id)
    start = _as_time(team.start_time)
    return (1, 0.0, -len(team.parts_solved or {}), math.inf if start is None else start, team.id)


def rank(teams: Iterable) -> List:
    return sorted(teams, key=rank_key)


def rank_of(teams: Iterable, team_id) -> Optional[int]:
    for idx, team in enumerate(rank(teams)):
        if team.id == team_id:
            return idx + 1
    return None


def format_duration(seconds: float) -> str:
    total = max(0, int(math.floor(seconds)))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def display_time(team, now: Optional[float] = None) -> str:
    start = _as_time(team.start_time)
    if start is None:
        return format_duration(0)
    if _is_finished(team):
        duration = finish_duration(team)
        return f"FINISHED: {format_duration(0 if math.isinf(duration) else duration)}"
    now = time.time() if now is None else now
    return format_duration(now - start)


def leaderboard_snapshot(teams: Iterable, now: Optional[float] = None) -> List[dict]:
    """Ranked public views of the given teams, each with ``rank`` and ``display_time``."""
    rows = []
    for idx, team in enumerate(rank(teams)):
        row = team.to_public_dict()
        row['rank'] = idx + 1
        row['parts_solved_count'] = len(team.parts_solved or {})
        row['display_time'] = display_time(team, now)
        rows.append(row)
    return rows
