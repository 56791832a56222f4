"""Daily boss schedule notification, delivered at most once per occurrence.

Any number of engine instances may run this scheduler against the same
settings document. They coordinate through the send-lock fields of that
document, changed only inside store transactions:

    reserve -> send -> finalize   (watermark set, lock cleared)
    reserve -> send fails -> release   (lock cleared, local cooldown)

A lock left behind by a crashed instance expires after the lock TTL.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .document_store import DocumentStore
from .errors import StoreError, WebhookDeliveryError
from .logger import get_logger
from .manila_time import (
    ManilaClock, date_key, format_month_day_time_12, minutes_of_day,
    parse_time_of_day, to_epoch_ms, to_iso,
)
from .models import BOSS_TYPE_ORDER, Boss, NotifierSettings
from .repositories import NOTIFIER_SETTINGS_PATH
from .respawn import next_respawn_instant
from . import schedule_lock
from .schedule_lock import ScheduleLock
from .webhook_notifier import WebhookNotifier

logger = get_logger(__name__)

SEND_LOCK_TTL_MS = 2 * 60 * 1000
RETRY_AFTER_ERROR_MS = 5 * 60 * 1000


class NotificationOutcome(str, Enum):
    SKIPPED = 'skipped'
    LOCK_DENIED = 'lock_denied'
    SENT = 'sent'
    FAILED = 'failed'


def build_schedule_key(today: str, notification_time: str) -> str:
    return f"{today} {notification_time}"


def compose_schedule_message(bosses: List[Boss], now: datetime) -> str:
    """
    Build the notification text.

    Bosses are grouped by type (Field Boss, Destroyer, Guild Boss) and each
    group is ordered by ascending next respawn; bosses without one come last.
    """
    today = date_key(now)
    respawns = {id(b): next_respawn_instant(b, now) for b in bosses}
    ordered = sorted(
        bosses,
        key=lambda b: (respawns[id(b)] is None,
                       respawns[id(b)].timestamp() if respawns[id(b)] else 0.0),
    )

    lines: List[str] = []
    for boss_type in BOSS_TYPE_ORDER:
        group = [b for b in ordered if b.boss_type == boss_type]
        if not group:
            continue
        lines.append(f"**{boss_type.value} Schedule ({today})**")
        lines.append('')
        for boss in group:
            respawn = respawns[id(boss)]
            when = format_month_day_time_12(respawn) if respawn else '-'
            lines.append(f"• **{boss.name}** — {when}")
        lines.append('')

    return '\n'.join(lines).strip()


class NotificationScheduler:
    """
    Sends the daily schedule message once the configured time is reached.

    Feed it catalog and settings snapshots through on_catalog() and
    on_settings(), then call check_and_send() from a polling loop.
    """

    def __init__(self, store: DocumentStore, notifier: WebhookNotifier,
                 clock: Optional[ManilaClock] = None,
                 lock_ttl_ms: int = SEND_LOCK_TTL_MS,
                 retry_after_ms: int = RETRY_AFTER_ERROR_MS):
        self.store = store
        self.notifier = notifier
        self.clock = clock or ManilaClock()
        self.lock_ttl_ms = lock_ttl_ms
        self.retry_after_ms = retry_after_ms
        self.enabled = False
        self._bosses: Optional[List[Boss]] = None
        self._settings: Optional[NotifierSettings] = None
        self._in_flight = False
        self._retry_after = 0

    def on_catalog(self, bosses: List[Boss]) -> None:
        self._bosses = list(bosses)

    def on_settings(self, settings: NotifierSettings) -> None:
        self._settings = settings

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled

    def selected_bosses(self) -> List[Boss]:
        if not self._bosses or not self._settings:
            return []
        selected_ids = set(self._settings.enabled_boss_ids)
        return [b for b in self._bosses if b.id and b.id in selected_ids]

    # ── Trigger ──────────────────────────────────────────────────────

    def due_schedule_key(self, now: datetime) -> Optional[str]:
        """The schedule key to deliver right now, or None if nothing is due."""
        settings = self._settings
        if not self.enabled or self._bosses is None or settings is None:
            return None
        if not settings.is_enabled or not settings.webhook_url:
            return None
        if not self.selected_bosses():
            return None

        scheduled = parse_time_of_day(settings.notification_time)
        if scheduled is None:
            return None
        if minutes_of_day(now) < scheduled[0] * 60 + scheduled[1]:
            return None

        schedule_key = build_schedule_key(date_key(now), settings.notification_time)
        if settings.last_notified_schedule_key == schedule_key:
            return None
        return schedule_key

    def check_and_send(self) -> NotificationOutcome:
        """Evaluate the trigger once and, if due, run the locked send protocol."""
        now = self.clock.now()
        now_ms = to_epoch_ms(now)
        if self._in_flight or now_ms < self._retry_after:
            return NotificationOutcome.SKIPPED

        schedule_key = self.due_schedule_key(now)
        if schedule_key is None:
            return NotificationOutcome.SKIPPED

        self._in_flight = True
        try:
            return self._send_locked(schedule_key, now)
        finally:
            self._in_flight = False

    # ── Locked send ──────────────────────────────────────────────────

    def _send_locked(self, schedule_key: str, now: datetime) -> NotificationOutcome:
        try:
            token = self.reserve(schedule_key, to_epoch_ms(now))
        except StoreError as e:
            logger.warning(f"[LOCK] Could not reserve {schedule_key}: {e}")
            return NotificationOutcome.LOCK_DENIED
        if token is None:
            logger.debug(f"[LOCK] Send lock for {schedule_key} denied")
            return NotificationOutcome.LOCK_DENIED

        settings = self._settings
        content = compose_schedule_message(self.selected_bosses(), now)
        try:
            self.notifier.send(settings.webhook_url, content)
            self.finalize(schedule_key, token, date_key(now))
            logger.info(f"[NOTIFIER] Daily boss schedule sent for {schedule_key}")
            return NotificationOutcome.SENT
        except (WebhookDeliveryError, StoreError) as e:
            logger.error(f"[NOTIFIER] Daily boss notification failed: {e}")
            try:
                self.release(schedule_key, token)
            except StoreError as release_error:
                logger.error(f"[LOCK] Failed to release send lock: {release_error}")
            self._retry_after = to_epoch_ms(self.clock.now()) + self.retry_after_ms
            return NotificationOutcome.FAILED

    def reserve(self, schedule_key: str, now_ms: int) -> Optional[str]:
        """
        Atomically claim the send lock.

        Returns:
            The owner token, or None if the occurrence was already sent or
            another instance holds an unexpired lock for it
        """
        token = schedule_lock.new_owner_token(now_ms)

        def claim(txn):
            state = ScheduleLock.from_document(txn.get() or {})
            new_state, ok = schedule_lock.try_acquire(state, schedule_key, token, now_ms, self.lock_ttl_ms)
            if ok:
                fields = new_state.lock_fields()
                fields['updated_at'] = to_iso(self.clock.now())
                txn.set(fields, merge=True)
            return ok

        if self.store.transaction(NOTIFIER_SETTINGS_PATH, claim):
            logger.info(f"[LOCK] Acquired send lock for {schedule_key}")
            return token
        return None

    def finalize(self, schedule_key: str, token: str, today: str) -> bool:
        """Record the delivery and clear the lock if we still own it."""

        def commit(txn):
            state = ScheduleLock.from_document(txn.get() or {})
            new_state, ok = schedule_lock.finalize(state, schedule_key, token, today)
            if ok:
                fields = new_state.to_fields()
                fields['updated_at'] = to_iso(self.clock.now())
                txn.set(fields, merge=True)
            return ok

        ok = self.store.transaction(NOTIFIER_SETTINGS_PATH, commit)
        if not ok:
            logger.warning(f"[LOCK] Lock for {schedule_key} no longer ours, watermark not written")
        return ok

    def release(self, schedule_key: str, token: str) -> bool:
        """Clear the lock if we still own it."""

        def clear(txn):
            state = ScheduleLock.from_document(txn.get() or {})
            new_state, ok = schedule_lock.release(state, schedule_key, token)
            if ok:
                fields = new_state.lock_fields()
                fields['updated_at'] = to_iso(self.clock.now())
                txn.set(fields, merge=True)
            return ok

        ok = self.store.transaction(NOTIFIER_SETTINGS_PATH, clear)
        if ok:
            logger.info(f"[LOCK] Released send lock for {schedule_key}")
        return ok
