"""Manila civil time: the single time zone every schedule is anchored to."""
import re
from datetime import datetime, time, timedelta
from typing import Optional, Tuple, Union
import pytz

from .logger import get_logger

logger = get_logger(__name__)

MANILA = pytz.timezone('Asia/Manila')
MANILA_OFFSET = '+08:00'

_TIME_OF_DAY = re.compile(r'^\s*(\d{1,2}):(\d{1,2})\s*$')


class ManilaClock:
    """Produces "now" in Asia/Manila regardless of the host's local zone."""

    def now(self) -> datetime:
        """Current instant in Manila, truncated to whole seconds."""
        return datetime.now(pytz.utc).astimezone(MANILA).replace(microsecond=0)

    def now_ms(self) -> int:
        """Current instant as epoch milliseconds."""
        return to_epoch_ms(self.now())

    def now_iso(self) -> str:
        """Current instant as an ISO string with an explicit +08:00 offset."""
        return to_iso(self.now())

    def today_key(self) -> str:
        """Today's Manila date as YYYY-MM-DD."""
        return date_key(self.now())


def to_manila(dt: datetime) -> datetime:
    """
    Convert a datetime to Manila time.

    Naive datetimes are taken to already be Manila wall-clock time.
    """
    if dt.tzinfo is None:
        return MANILA.localize(dt)
    return dt.astimezone(MANILA)


def localize(day, hours: int, minutes: int) -> datetime:
    """Build the Manila instant for a calendar date and a time of day."""
    return MANILA.localize(datetime.combine(day, time(hours, minutes)))


def to_iso(dt: datetime) -> str:
    return to_manila(dt).isoformat(timespec='seconds')


def to_epoch_ms(dt: datetime) -> int:
    return int(to_manila(dt).timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=pytz.utc).astimezone(MANILA)


def date_key(dt: datetime) -> str:
    return to_manila(dt).strftime('%Y-%m-%d')


def minutes_of_day(dt: datetime) -> int:
    local = to_manila(dt)
    return local.hour * 60 + local.minute


def parse_instant(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse a stored instant.

    Accepts ISO 8601 strings (with or without offset, 'Z' allowed) and
    datetime objects. Returns None for empty or unparseable input.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return to_manila(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unparseable instant: {value!r}")
        return None
    return to_manila(parsed)


def parse_time_of_day(value: Optional[str]) -> Optional[Tuple[int, int]]:
    """
    Parse an HH:MM time of day.

    Returns (hours, minutes), or None for missing, malformed or out of range values.
    """
    if not value or not isinstance(value, str):
        return None
    match = _TIME_OF_DAY.match(value)
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours, minutes


def format_month_day_time_12(dt: datetime) -> str:
    """Format as "MM/DD - hh:mm AM" in Manila time."""
    return to_manila(dt).strftime('%m/%d - %I:%M %p')


def format_month_day_time(dt: datetime) -> str:
    """Format as "MM/DD - HH:MM" in Manila time."""
    return to_manila(dt).strftime('%m/%d - %H:%M')


def format_display_datetime(dt: datetime) -> str:
    """Format as "Feb. 13, 2026 - 19:00" in Manila time."""
    return to_manila(dt).strftime('%b. %d, %Y - %H:%M')


def format_day_time(dt: datetime) -> str:
    """Format as "Monday 10:00" in Manila time."""
    return to_manila(dt).strftime('%A %H:%M')


def format_time_label(value: Optional[str]) -> str:
    """Normalize an H:M string to HH:MM, or '' when it does not parse."""
    parsed = parse_time_of_day(value)
    if parsed is None:
        return ''
    return f"{parsed[0]:02d}:{parsed[1]:02d}"


def anchor_time_to_today(value: str, clock: ManilaClock) -> str:
    """
    Turn a bare HH:MM kill time into a full ISO instant on today's Manila date.
    Anything else is returned unchanged.
    """
    if not value:
        return ''
    if not re.match(r'^\d{2}:\d{2}$', value):
        return value
    return f"{clock.today_key()}T{value}:00{MANILA_OFFSET}"


def add_hours(dt: datetime, hours: float) -> datetime:
    return MANILA.normalize(to_manila(dt) + timedelta(hours=hours))
