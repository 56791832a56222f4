"""Test respawn resolution, display status and list ordering."""
import sys
import io
from pathlib import Path
from datetime import timedelta

# Fix Windows console encoding (only if not already wrapped)
if sys.platform == 'win32':
    if not isinstance(sys.stdout, io.TextIOWrapper) or (hasattr(sys.stdout, 'encoding') and sys.stdout.encoding != 'utf-8'):
        sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')
    if not isinstance(sys.stderr, io.TextIOWrapper) or (hasattr(sys.stderr, 'encoding') and sys.stderr.encoding != 'utf-8'):
        sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8', errors='replace')

# Add project root and src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from guild_boss_timer.models import (
    Boss, BossStatus, BossType, DailySpawn, DisplayStatus, FixedSpawn, WeeklySpawn,
)
from guild_boss_timer import respawn
from manual_clock import manila


def _fixed(name, hours, status=BossStatus.DEAD, killed_at="2026-02-13T19:00:00+08:00", level=1):
    return Boss(name=name, boss_type=BossType.FIELD_BOSS, spawn=FixedSpawn(hours),
                status=status, killed_at=killed_at, level=level, id=name.lower())


def test_fixed_interval_respawn():
    """Killed 2026-02-13 19:00 with an 18 hour interval respawns 2026-02-14 13:00."""
    print("Testing fixed interval respawn...")
    print("=" * 60)

    boss = _fixed("Venatus", 18)
    now = manila(2026, 2, 14, 8, 0)
    assert respawn.next_respawn_instant(boss, now) == manila(2026, 2, 14, 13, 0)
    print("[OK] killed_at + interval")

    assert respawn.next_respawn_instant(_fixed("NoKill", 18, killed_at=""), now) is None
    assert respawn.next_respawn_instant(_fixed("BadKill", 18, killed_at="yesterday"), now) is None
    assert respawn.next_respawn_instant(_fixed("NoInterval", None), now) is None
    print("[OK] Missing kill time or interval gives None")

    unknown = _fixed("Unknown", 18, status=BossStatus.UNKNOWN)
    assert respawn.next_respawn_instant(unknown, now) is None
    assert respawn.display_status(unknown, now) == DisplayStatus.UNKNOWN
    print("[OK] Unknown status has no respawn")

    # Alive fixed bosses still report killed_at + interval but stay alive
    alive = _fixed("Alive", 18, status=BossStatus.ALIVE)
    assert respawn.next_respawn_instant(alive, now) == manila(2026, 2, 14, 13, 0)
    assert respawn.display_status(alive, manila(2026, 2, 15)) == DisplayStatus.ALIVE
    print("[OK] Alive fixed boss")


def test_scheduled_respawn_anchors_to_kill():
    """Dead scheduled bosses anchor to killed_at, alive ones to now."""
    print("Testing scheduled respawn anchoring...")
    print("=" * 60)

    destroyer = Boss(name="Destroyer", boss_type=BossType.DESTROYER,
                     spawn=DailySpawn("12:00", "18:00"), status=BossStatus.DEAD,
                     killed_at="2026-02-16T12:05:00+08:00", id="d1")
    now = manila(2026, 2, 16, 19, 0)
    # Window after the kill, not the one nearest to now
    assert respawn.next_respawn_instant(destroyer, now) == manila(2026, 2, 16, 18, 0)
    assert respawn.display_status(destroyer, now) == DisplayStatus.ALIVE
    print("[OK] Dead scheduled boss uses kill time as reference")

    destroyer.killed_at = ""
    assert respawn.next_respawn_instant(destroyer, now) == manila(2026, 2, 17, 12, 0)
    print("[OK] Missing kill time falls back to now")

    destroyer.status = BossStatus.ALIVE
    destroyer.killed_at = "2026-02-10T12:05:00+08:00"
    assert respawn.next_respawn_instant(destroyer, now) == manila(2026, 2, 17, 12, 0)
    print("[OK] Alive scheduled boss shows the next window from now")

    weekly = Boss(name="Guild", boss_type=BossType.GUILD_BOSS,
                  spawn=WeeklySpawn("Monday", "20:00", "Thursday", "21:00"), status=BossStatus.DEAD,
                  killed_at="2026-02-16T20:30:00+08:00", id="g1")
    assert respawn.next_respawn_instant(weekly, manila(2026, 2, 17)) == manila(2026, 2, 19, 21, 0)
    print("[OK] Weekly pair after kill")


def test_respawning_window_boundary():
    """Exactly 10 minutes out is respawning, one second more is dead, at respawn is alive."""
    print("Testing respawning window...")
    print("=" * 60)

    boss = _fixed("Venatus", 18)
    respawn_at = manila(2026, 2, 14, 13, 0)

    assert respawn.display_status(boss, respawn_at - timedelta(minutes=10)) == DisplayStatus.RESPAWNING
    assert respawn.display_status(boss, respawn_at - timedelta(minutes=10, seconds=1)) == DisplayStatus.DEAD
    assert respawn.display_status(boss, respawn_at - timedelta(seconds=1)) == DisplayStatus.RESPAWNING
    assert respawn.display_status(boss, respawn_at) == DisplayStatus.ALIVE
    assert respawn.display_status(boss, respawn_at + timedelta(hours=3)) == DisplayStatus.ALIVE
    print("[OK] Window boundaries")

    assert respawn.display_status(_fixed("NoKill", 18, killed_at=""), respawn_at) == DisplayStatus.DEAD
    print("[OK] Dead without a computable respawn stays dead")


def test_sorting_grouping_and_countdown():
    """Ordering by next respawn then level, grouping, countdown and schedule lines."""
    print("Testing ordering helpers...")
    print("=" * 60)

    now = manila(2026, 2, 14, 8, 0)
    soon_high = _fixed("SoonHigh", 6, level=90)             # 2026-02-14 01:00, already due
    soon_low = _fixed("SoonLow", 6, level=40)
    later = _fixed("Later", 18)                                # 13:00
    within_window = _fixed("Window", 13, killed_at="2026-02-13T19:05:00+08:00")  # 08:05
    unknown = _fixed("Unknown", 18, status=BossStatus.UNKNOWN, level=1)

    ordered = respawn.sort_by_next_respawn([unknown, later, soon_high, within_window, soon_low], now)
    assert [b.name for b in ordered] == ["SoonLow", "SoonHigh", "Window", "Later", "Unknown"]
    print("[OK] Sorted by next respawn, then level, unknown last")

    groups = respawn.group_by_display_status(ordered, now)
    assert [b.name for b in groups[DisplayStatus.ALIVE]] == ["SoonLow", "SoonHigh"]
    assert [b.name for b in groups[DisplayStatus.RESPAWNING]] == ["Window"]
    assert [b.name for b in groups[DisplayStatus.DEAD]] == ["Later"]
    assert [b.name for b in groups[DisplayStatus.UNKNOWN]] == ["Unknown"]
    print("[OK] Grouped by display status")

    assert respawn.format_countdown(later, now) == "05:00:00"
    assert respawn.format_countdown(soon_low, now) == "00:00:00"
    assert respawn.format_countdown(unknown, now) == "N/A"
    print("[OK] Countdown")

    destroyer = Boss(name="D", boss_type=BossType.DESTROYER, spawn=DailySpawn("14:30", "14:30"), id="d")
    assert respawn.schedule_lines(destroyer) == ["Daily 14:30"]
    weekly = Boss(name="G", boss_type=BossType.GUILD_BOSS, spawn=WeeklySpawn("Monday", "10:00", "Thursday", "9:5"), id="g")
    assert respawn.schedule_lines(weekly) == ["Monday 10:00", "Thursday 09:05"]
    assert respawn.schedule_lines(later) is None
    print("[OK] Schedule lines")


if __name__ == "__main__":
    test_fixed_interval_respawn()
    test_scheduled_respawn_anchors_to_kill()
    test_respawning_window_boundary()
    test_sorting_grouping_and_countdown()
    print("\n" + "=" * 60)
    print("All tests passed!")
