"""Test Manila time parsing and formatting."""
import sys
import io
from pathlib import Path
from datetime import datetime

import pytz

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

from guild_boss_timer import manila_time
from manual_clock import ManualClock, manila


def test_manila_time():
    """Test Manila time helpers."""
    print("Testing Manila Time...")
    print("=" * 60)

    # Time of day parsing
    assert manila_time.parse_time_of_day("09:00") == (9, 0)
    assert manila_time.parse_time_of_day("9:5") == (9, 5)
    assert manila_time.parse_time_of_day(" 23:59 ") == (23, 59)
    for bad in ("24:00", "12:60", "noon", "", None, "12-30", "1:2:3"):
        assert manila_time.parse_time_of_day(bad) is None, f"{bad!r} should not parse"
    print("[OK] Time of day parsing")

    # Instants: offsets, Z suffix and garbage
    parsed = manila_time.parse_instant("2026-02-13T19:00:00+08:00")
    assert parsed == manila(2026, 2, 13, 19, 0)
    assert manila_time.parse_instant("2026-02-13T11:00:00Z") == manila(2026, 2, 13, 19, 0)
    assert manila_time.parse_instant("2026-02-13T19:00:00") == manila(2026, 2, 13, 19, 0), "Naive means Manila"
    assert manila_time.parse_instant("not a date") is None
    assert manila_time.parse_instant("") is None
    assert manila_time.parse_instant(None) is None
    print("[OK] Instant parsing")

    # Everything is reported in +08:00 regardless of input zone
    utc_instant = pytz.utc.localize(datetime(2026, 2, 15, 20, 0))
    assert manila_time.date_key(utc_instant) == "2026-02-16", "Manila is already on the next day"
    assert manila_time.to_iso(utc_instant) == "2026-02-16T04:00:00+08:00"
    assert manila_time.minutes_of_day(utc_instant) == 4 * 60
    print("[OK] Manila date rollover")

    assert manila_time.add_hours(manila(2026, 2, 13, 19, 0), 18) == manila(2026, 2, 14, 13, 0)
    ms = manila_time.to_epoch_ms(manila(2026, 2, 16, 9, 0))
    assert manila_time.from_epoch_ms(ms) == manila(2026, 2, 16, 9, 0)
    print("[OK] Hour arithmetic and epoch milliseconds")

    # Formatters
    dt = manila(2026, 2, 16, 14, 30)
    assert manila_time.format_month_day_time_12(dt) == "02/16 - 02:30 PM"
    assert manila_time.format_month_day_time(dt) == "02/16 - 14:30"
    assert manila_time.format_display_datetime(dt) == "Feb. 16, 2026 - 14:30"
    assert manila_time.format_day_time(dt) == "Monday 14:30"
    assert manila_time.format_time_label("7:5") == "07:05"
    assert manila_time.format_time_label("bad") == ""
    print("[OK] Formatters")

    # Bare HH:MM kill times are anchored to today's Manila date
    clock = ManualClock(manila(2026, 2, 16, 9, 0))
    assert manila_time.anchor_time_to_today("14:30", clock) == "2026-02-16T14:30:00+08:00"
    assert manila_time.anchor_time_to_today("2026-02-10T01:00:00+08:00", clock) == "2026-02-10T01:00:00+08:00"
    assert manila_time.anchor_time_to_today("", clock) == ""
    assert clock.today_key() == "2026-02-16"
    assert clock.now_iso() == "2026-02-16T09:00:00+08:00"
    print("[OK] Kill time anchoring")

    # Real clock is in Manila and whole seconds
    now = manila_time.ManilaClock().now()
    assert now.utcoffset().total_seconds() == 8 * 3600
    assert now.microsecond == 0
    print("[OK] Real clock")

    print("\n" + "=" * 60)
    print("All tests passed!")


if __name__ == "__main__":
    test_manila_time()
