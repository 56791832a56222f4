"""Send-lock state transitions for the daily notification.

Every operation takes the current lock state read from the settings
document and returns (next_state, ok). They are pure: binding them to an
atomic read-modify-write is the caller's job.
"""
import uuid
from dataclasses import dataclass, replace
from typing import Any, Dict, Tuple

from .models import LOCK_FIELDS, NotifierSettings


@dataclass(frozen=True)
class ScheduleLock:
    """Lock fields plus the delivery watermark they protect."""
    schedule_key: str = ''
    owner_token: str = ''
    expires_at_ms: int = 0
    last_notified_schedule_key: str = ''
    last_notified_date: str = ''

    @classmethod
    def from_document(cls, raw: Dict[str, Any]) -> 'ScheduleLock':
        settings = NotifierSettings.from_document(raw)
        return cls(
            schedule_key=settings.send_lock_schedule_key,
            owner_token=settings.send_lock_id,
            expires_at_ms=settings.send_lock_expires_at,
            last_notified_schedule_key=settings.last_notified_schedule_key,
            last_notified_date=settings.last_notified_date,
        )

    def lock_fields(self) -> Dict[str, Any]:
        return dict(zip(LOCK_FIELDS, (self.schedule_key, self.owner_token, self.expires_at_ms)))

    def to_fields(self) -> Dict[str, Any]:
        fields = self.lock_fields()
        fields['last_notified_schedule_key'] = self.last_notified_schedule_key
        fields['last_notified_date'] = self.last_notified_date
        return fields

    def is_held_for(self, schedule_key: str, now_ms: int) -> bool:
        return self.schedule_key == schedule_key and self.expires_at_ms > now_ms

    def is_owned_by(self, schedule_key: str, token: str) -> bool:
        return self.schedule_key == schedule_key and self.owner_token == token


def new_owner_token(now_ms: int) -> str:
    """Fresh token per acquisition attempt."""
    return f"{now_ms}-{uuid.uuid4().hex[:8]}"


def try_acquire(state: ScheduleLock, schedule_key: str, token: str,
                now_ms: int, ttl_ms: int) -> Tuple[ScheduleLock, bool]:
    """
    Claim the send lock for schedule_key.

    Denied when the occurrence was already delivered or when an unexpired
    lock for the same occurrence exists.
    """
    if state.last_notified_schedule_key == schedule_key:
        return state, False
    if state.is_held_for(schedule_key, now_ms):
        return state, False
    return replace(state, schedule_key=schedule_key, owner_token=token,
                   expires_at_ms=now_ms + ttl_ms), True


def release(state: ScheduleLock, schedule_key: str, token: str) -> Tuple[ScheduleLock, bool]:
    """Clear the lock, only if it is still ours."""
    if not state.is_owned_by(schedule_key, token):
        return state, False
    return replace(state, schedule_key='', owner_token='', expires_at_ms=0), True


def finalize(state: ScheduleLock, schedule_key: str, token: str,
             today_key: str) -> Tuple[ScheduleLock, bool]:
    """Record delivery of schedule_key and clear the lock, only if it is still ours."""
    if not state.is_owned_by(schedule_key, token):
        return state, False
    return replace(state, schedule_key='', owner_token='', expires_at_ms=0,
                   last_notified_schedule_key=schedule_key,
                   last_notified_date=today_key), True
