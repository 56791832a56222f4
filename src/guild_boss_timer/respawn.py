"""Resolve next respawn instants and time-derived display status."""
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from .manila_time import add_hours, format_time_label, parse_instant, to_manila
from .models import (
    Boss, BossStatus, DailySpawn, DisplayStatus, FixedSpawn, WeeklySpawn, WEEKDAYS,
)
from .occurrence import next_occurrences

# A dead boss this close to its respawn is shown as respawning
RESPAWNING_WINDOW = timedelta(minutes=10)


def next_respawn_instant(boss: Boss, now: datetime) -> Optional[datetime]:
    """
    The single next respawn instant of a boss.

    - Unknown status: None (nothing to show).
    - Fixed rule: killed_at + interval_hours, None when either is missing.
    - Scheduled rule, dead: soonest occurrence after killed_at, falling back
      to "now" when killed_at is missing or unparseable.
    - Scheduled rule, alive: soonest occurrence after now.
    """
    if boss.status == BossStatus.UNKNOWN:
        return None

    killed_at = parse_instant(boss.killed_at)

    if isinstance(boss.spawn, FixedSpawn):
        if killed_at is None or boss.spawn.interval_hours is None:
            return None
        return add_hours(killed_at, boss.spawn.interval_hours)

    reference = now
    if boss.status == BossStatus.DEAD and killed_at is not None:
        reference = killed_at
    occurrences = next_occurrences(boss, reference)
    return occurrences[0] if occurrences else None


def display_status(boss: Boss, now: datetime) -> DisplayStatus:
    """Derive the status to show from persisted status and wall-clock time."""
    if boss.status == BossStatus.UNKNOWN:
        return DisplayStatus.UNKNOWN
    if boss.status == BossStatus.ALIVE:
        return DisplayStatus.ALIVE

    next_respawn = next_respawn_instant(boss, now)
    if next_respawn is None:
        return DisplayStatus.DEAD

    remaining = next_respawn - to_manila(now)
    if remaining <= timedelta(0):
        # Stored record is stale; the promoter will persist this
        return DisplayStatus.ALIVE
    if remaining <= RESPAWNING_WINDOW:
        return DisplayStatus.RESPAWNING
    return DisplayStatus.DEAD


def respawn_sort_key(boss: Boss, now: datetime) -> Tuple[bool, float, int]:
    """Ascending next respawn, bosses without one last, then ascending level."""
    next_respawn = next_respawn_instant(boss, now)
    if next_respawn is None:
        return (True, 0.0, boss.level)
    return (False, next_respawn.timestamp(), boss.level)


def sort_by_next_respawn(bosses: Iterable[Boss], now: datetime) -> List[Boss]:
    return sorted(bosses, key=lambda b: respawn_sort_key(b, now))


def group_by_display_status(bosses: Iterable[Boss], now: datetime) -> Dict[DisplayStatus, List[Boss]]:
    """Bucket bosses by display status, each bucket in respawn order."""
    groups: Dict[DisplayStatus, List[Boss]] = {status: [] for status in DisplayStatus}
    for boss in sort_by_next_respawn(bosses, now):
        groups[display_status(boss, now)].append(boss)
    return groups


def format_countdown(boss: Boss, now: datetime) -> str:
    """Time left until respawn as HH:MM:SS, clamped at zero, or N/A."""
    next_respawn = next_respawn_instant(boss, now)
    if next_respawn is None:
        return 'N/A'
    total_seconds = max(0, int((next_respawn - to_manila(now)).total_seconds()))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def schedule_lines(boss: Boss) -> Optional[List[str]]:
    """Human readable schedule, e.g. ["Daily 14:30"] or ["Monday 10:00", "Thursday 21:00"]."""
    spawn = boss.spawn
    if isinstance(spawn, DailySpawn):
        lines = [
            f"Daily {format_time_label(t)}"
            for t in (spawn.start_time, spawn.end_time) if format_time_label(t)
        ]
    elif isinstance(spawn, WeeklySpawn):
        lines = []
        for day, time_of_day in ((spawn.start_day, spawn.start_time), (spawn.end_day, spawn.end_time)):
            label = format_time_label(time_of_day)
            if day in WEEKDAYS and label:
                lines.append(f"{day} {label}")
    else:
        return None

    unique = list(dict.fromkeys(lines))
    return unique or None
