"""Repositories for the boss catalog and the notifier settings document."""
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from .document_store import DocumentSnapshot, DocumentStore, require_document
from .logger import get_logger
from .manila_time import ManilaClock, anchor_time_to_today
from .models import (
    Boss, BossStatus, DailySpawn, FixedSpawn, NotifierSettings,
    CONFIG_FIELDS, WEEKDAYS, normalize_status,
)

logger = get_logger(__name__)

BOSSES_COLLECTION = 'bosses'
NOTIFIER_SETTINGS_PATH = 'boss_notifier/settings'


def validate_boss(boss: Boss) -> str:
    """
    Check a boss before it is saved.

    Returns:
        The first problem found, or '' when the boss is valid
    """
    if not boss.name.strip():
        return 'Boss name is required.'
    if not boss.level or boss.level < 1:
        return 'Level is required and must be at least 1.'

    spawn = boss.spawn
    if isinstance(spawn, FixedSpawn):
        hours = spawn.interval_hours
        if hours is None or hours < 0 or hours > 23:
            return 'Spawn time is required and must be between 0 and 23 hours.'
    elif isinstance(spawn, DailySpawn):
        if not spawn.start_time:
            return 'Spawn Time 1 is required.'
        if not spawn.end_time:
            return 'Spawn Time 2 is required.'
    else:
        if spawn.start_day not in WEEKDAYS or not spawn.start_time:
            return 'Spawn Time 1 day and time are required.'
        if spawn.end_day not in WEEKDAYS or not spawn.end_time:
            return 'Spawn Time 2 day and time are required.'

    if not boss.image.strip():
        return 'Boss image is required.'
    if boss.status == BossStatus.DEAD and not boss.killed_at.strip():
        return 'Killed time is required when status is dead.'
    return ''


class BossRepository:
    """Reads and writes boss documents."""

    def __init__(self, store: DocumentStore, clock: Optional[ManilaClock] = None):
        self.store = store
        self.clock = clock or ManilaClock()

    @staticmethod
    def _path(boss_id: str) -> str:
        return f"{BOSSES_COLLECTION}/{boss_id}"

    @staticmethod
    def _to_bosses(snapshots: List[DocumentSnapshot]) -> List[Boss]:
        return [Boss.from_document(s.id, s.data) for s in snapshots if s.exists]

    def list_bosses(self) -> List[Boss]:
        return self._to_bosses(self.store.get_once(BOSSES_COLLECTION))

    def get(self, boss_id: str) -> Optional[Boss]:
        snapshot = require_document(self.store.get_once(self._path(boss_id)))
        return Boss.from_document(snapshot.id, snapshot.data) if snapshot.exists else None

    def subscribe(self, on_change: Callable[[List[Boss]], None]) -> Callable[[], None]:
        """Deliver the full catalog now and after every change."""
        return self.store.subscribe(
            BOSSES_COLLECTION, lambda snapshots: on_change(self._to_bosses(snapshots))
        )

    def update_boss(self, boss_id: str, updates: Dict[str, Any]) -> None:
        """Merge a partial update into an existing boss."""
        if 'status' in updates:
            updates = dict(updates, status=normalize_status(updates['status']).value)
        self.store.update(self._path(boss_id), updates)

    def add_boss(self, boss: Boss) -> str:
        boss_id = self.store.add(BOSSES_COLLECTION, self._normalize(boss).to_document())
        logger.info(f"Added boss '{boss.name}' ({boss_id})")
        return boss_id

    def save_boss(self, boss: Boss) -> str:
        """Insert or update a boss; returns its id."""
        if not boss.id:
            return self.add_boss(boss)
        self.store.update(self._path(boss.id), self._normalize(boss).to_document())
        logger.info(f"Saved boss '{boss.name}' ({boss.id})")
        return boss.id

    def delete_boss(self, boss_id: str) -> None:
        self.store.delete(self._path(boss_id))
        logger.info(f"Deleted boss {boss_id}")

    def record_kill(self, boss_id: str, killed_at: Optional[str] = None) -> None:
        """Mark a boss dead at killed_at (ISO instant or today's HH:MM), default now."""
        killed = anchor_time_to_today(killed_at or '', self.clock) or self.clock.now_iso()
        self.update_boss(boss_id, {'status': BossStatus.DEAD.value, 'killed_at': killed})
        logger.info(f"Recorded kill for boss {boss_id} at {killed}")

    def _normalize(self, boss: Boss) -> Boss:
        """Only dead bosses keep a kill time; a dead boss always has one."""
        if boss.status == BossStatus.DEAD:
            killed = anchor_time_to_today(boss.killed_at, self.clock) or self.clock.now_iso()
        else:
            killed = ''
        return replace(boss, killed_at=killed)


class NotifierSettingsRepository:
    """Reads and writes the single notifier settings document."""

    def __init__(self, store: DocumentStore, clock: Optional[ManilaClock] = None):
        self.store = store
        self.clock = clock or ManilaClock()

    def get(self) -> NotifierSettings:
        """Return the settings, creating the document with defaults on first read."""

        def create_if_missing(txn):
            raw = txn.get()
            if raw is None:
                defaults = NotifierSettings().to_document()
                defaults['updated_at'] = self.clock.now_iso()
                txn.set(defaults, merge=True)
                return defaults
            return raw

        raw = self.store.transaction(NOTIFIER_SETTINGS_PATH, create_if_missing)
        return NotifierSettings.from_document(raw)

    def subscribe(self, on_change: Callable[[NotifierSettings], None]) -> Callable[[], None]:
        return self.store.subscribe(
            NOTIFIER_SETTINGS_PATH,
            lambda snapshot: on_change(NotifierSettings.from_document(require_document(snapshot).data)),
        )

    def save_settings(self, updates: Dict[str, Any]) -> None:
        """Merge configuration updates; lock and watermark fields are never touched here."""
        ignored = [k for k in updates if k not in CONFIG_FIELDS]
        if ignored:
            logger.warning(f"[NOTIFIER] Ignoring non-configuration settings fields: {ignored}")
        fields = {k: v for k, v in updates.items() if k in CONFIG_FIELDS}
        fields['updated_at'] = self.clock.now_iso()
        self.store.merge_write(NOTIFIER_SETTINGS_PATH, fields)
        logger.info(f"[NOTIFIER] Settings saved: {sorted(k for k in fields if k != 'webhook_url')}")
