"""Boss catalog and notifier settings records."""
import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class BossType(str, Enum):
    FIELD_BOSS = 'Field Boss'
    DESTROYER = 'Destroyer'
    GUILD_BOSS = 'Guild Boss'


class BossStatus(str, Enum):
    """Persisted status, as stored."""
    ALIVE = 'alive'
    DEAD = 'dead'
    UNKNOWN = 'unknown'


class DisplayStatus(str, Enum):
    """Status derived from persisted status and wall-clock time."""
    ALIVE = 'alive'
    RESPAWNING = 'respawning'
    DEAD = 'dead'
    UNKNOWN = 'unknown'


SPAWN_FIXED = 'fixed'
SPAWN_SCHEDULED = 'scheduled'

# Message groups are emitted in this order
BOSS_TYPE_ORDER = (BossType.FIELD_BOSS, BossType.DESTROYER, BossType.GUILD_BOSS)

WEEKDAYS = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')


@dataclass(frozen=True)
class FixedSpawn:
    """Respawns interval_hours after the recorded kill."""
    interval_hours: Optional[float]


@dataclass(frozen=True)
class DailySpawn:
    """Two daily times of day (Destroyer bosses)."""
    start_time: str = ''
    end_time: str = ''


@dataclass(frozen=True)
class WeeklySpawn:
    """Two weekly (weekday, time of day) occurrences."""
    start_day: str = ''
    start_time: str = ''
    end_day: str = ''
    end_time: str = ''


SpawnRule = Union[FixedSpawn, DailySpawn, WeeklySpawn]


def parse_interval_hours(value: Any) -> Optional[float]:
    """Parse a fixed spawn interval. Returns None when missing, non-numeric or negative."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(hours) or math.isinf(hours) or hours < 0:
        return None
    return hours


def normalize_status(value: Any) -> BossStatus:
    """Anything that is not explicitly alive or unknown is stored as dead."""
    if value == BossStatus.ALIVE.value:
        return BossStatus.ALIVE
    if value == BossStatus.UNKNOWN.value:
        return BossStatus.UNKNOWN
    return BossStatus.DEAD


def _parse_boss_type(value: Any) -> BossType:
    try:
        return BossType(value)
    except ValueError:
        return BossType.FIELD_BOSS


def _parse_level(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _text(data: Dict, key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ''


@dataclass
class Boss:
    """One boss definition with its spawn rule and last known state."""
    name: str
    boss_type: BossType
    spawn: SpawnRule
    status: BossStatus = BossStatus.ALIVE
    killed_at: str = ''
    level: int = 1
    spawn_region: str = ''
    image: str = ''
    id: Optional[str] = None

    @property
    def spawn_type(self) -> str:
        return SPAWN_FIXED if isinstance(self.spawn, FixedSpawn) else SPAWN_SCHEDULED

    @property
    def is_scheduled(self) -> bool:
        return not isinstance(self.spawn, FixedSpawn)

    @classmethod
    def from_document(cls, doc_id: Optional[str], data: Dict) -> 'Boss':
        """
        Build a Boss from a stored document.

        The stored spawn_type selects the rule; fields belonging to the other
        rule are ignored.
        """
        boss_type = _parse_boss_type(data.get('boss_type'))
        spawn: SpawnRule
        if data.get('spawn_type') == SPAWN_SCHEDULED:
            if boss_type == BossType.DESTROYER:
                spawn = DailySpawn(
                    start_time=_text(data, 'scheduled_start_time'),
                    end_time=_text(data, 'scheduled_end_time'),
                )
            else:
                spawn = WeeklySpawn(
                    start_day=_text(data, 'scheduled_start_day'),
                    start_time=_text(data, 'scheduled_start_time'),
                    end_day=_text(data, 'scheduled_end_day'),
                    end_time=_text(data, 'scheduled_end_time'),
                )
        else:
            spawn = FixedSpawn(parse_interval_hours(data.get('spawn_interval_hours')))

        return cls(
            id=doc_id,
            name=_text(data, 'name'),
            boss_type=boss_type,
            spawn=spawn,
            status=normalize_status(data.get('status')),
            killed_at=_text(data, 'killed_at'),
            level=_parse_level(data.get('level')),
            spawn_region=_text(data, 'spawn_region'),
            image=_text(data, 'image'),
        )

    def to_document(self) -> Dict[str, Any]:
        """Flatten to the stored shape; fields of the unused rule are blanked."""
        doc: Dict[str, Any] = {
            'name': self.name,
            'boss_type': self.boss_type.value,
            'level': self.level,
            'spawn_type': self.spawn_type,
            'spawn_interval_hours': None,
            'scheduled_start_day': '',
            'scheduled_start_time': '',
            'scheduled_end_day': '',
            'scheduled_end_time': '',
            'status': self.status.value,
            'killed_at': self.killed_at,
            'spawn_region': self.spawn_region,
            'image': self.image,
        }
        if isinstance(self.spawn, FixedSpawn):
            doc['spawn_interval_hours'] = self.spawn.interval_hours
        elif isinstance(self.spawn, DailySpawn):
            doc['scheduled_start_time'] = self.spawn.start_time
            doc['scheduled_end_time'] = self.spawn.end_time
        else:
            doc['scheduled_start_day'] = self.spawn.start_day
            doc['scheduled_start_time'] = self.spawn.start_time
            doc['scheduled_end_day'] = self.spawn.end_day
            doc['scheduled_end_time'] = self.spawn.end_time
        return doc


DEFAULT_NOTIFICATION_TIME = '09:00'

# Owned by the settings editor; never written by the scheduler
CONFIG_FIELDS = ('is_enabled', 'webhook_url', 'notification_time', 'enabled_boss_ids')

# Transient lock fields shared by every running scheduler
LOCK_FIELDS = ('send_lock_schedule_key', 'send_lock_id', 'send_lock_expires_at')


@dataclass
class NotifierSettings:
    """The single global notifier configuration document."""
    is_enabled: bool = False
    webhook_url: str = ''
    notification_time: str = DEFAULT_NOTIFICATION_TIME
    enabled_boss_ids: List[str] = field(default_factory=list)
    last_notified_date: str = ''
    last_notified_schedule_key: str = ''
    send_lock_schedule_key: str = ''
    send_lock_id: str = ''
    send_lock_expires_at: int = 0
    updated_at: str = ''

    @classmethod
    def from_document(cls, raw: Optional[Dict]) -> 'NotifierSettings':
        """Normalize a raw (possibly missing or partial) settings document."""
        raw = raw or {}
        notification_time = raw.get('notification_time')
        if not isinstance(notification_time, str):
            notification_time = DEFAULT_NOTIFICATION_TIME
        last_date = _text(raw, 'last_notified_date')

        schedule_key = raw.get('last_notified_schedule_key')
        if not isinstance(schedule_key, str):
            # Documents written before schedule keys existed only carry the date
            schedule_key = f"{last_date} {notification_time}" if last_date and notification_time else ''

        ids = raw.get('enabled_boss_ids')
        enabled_ids = [i for i in ids if isinstance(i, str)] if isinstance(ids, list) else []

        try:
            expires_at = int(raw.get('send_lock_expires_at') or 0)
        except (TypeError, ValueError):
            expires_at = 0

        return cls(
            is_enabled=raw.get('is_enabled') is True,
            webhook_url=_text(raw, 'webhook_url'),
            notification_time=notification_time,
            enabled_boss_ids=enabled_ids,
            last_notified_date=last_date,
            last_notified_schedule_key=schedule_key,
            send_lock_schedule_key=_text(raw, 'send_lock_schedule_key'),
            send_lock_id=_text(raw, 'send_lock_id'),
            send_lock_expires_at=expires_at,
            updated_at=_text(raw, 'updated_at'),
        )

    def to_document(self) -> Dict[str, Any]:
        return asdict(self)
