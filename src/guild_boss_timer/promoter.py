"""Persist dead -> alive transitions once a boss's respawn time has passed."""
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .logger import get_logger
from .manila_time import ManilaClock, parse_instant, to_iso
from .models import Boss, BossStatus
from .repositories import BossRepository
from .respawn import next_respawn_instant

logger = get_logger(__name__)


@dataclass
class PromotionResult:
    """What one promotion pass wrote."""
    backfilled: List[str] = field(default_factory=list)
    promoted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def writes(self) -> int:
        return len(self.backfilled) + len(self.promoted)


def needs_killed_at_backfill(boss: Boss) -> bool:
    """Dead scheduled bosses need a kill time to anchor their next occurrence."""
    return (
        bool(boss.id)
        and boss.status == BossStatus.DEAD
        and boss.is_scheduled
        and parse_instant(boss.killed_at) is None
    )


def is_due_for_promotion(boss: Boss, now: datetime) -> bool:
    if not boss.id or boss.status != BossStatus.DEAD:
        return False
    next_respawn = next_respawn_instant(boss, now)
    return next_respawn is not None and next_respawn <= now


class DeadBossPromoter:
    """
    Reconciles the stored catalog with wall-clock time.

    Each pass backfills missing kill times of dead scheduled bosses and
    marks alive every dead boss whose next respawn has passed. Only one pass
    runs at a time; a pass requested while another is running is skipped.
    """

    def __init__(self, repository: BossRepository, clock: Optional[ManilaClock] = None,
                 max_workers: int = 8):
        self.repository = repository
        self.clock = clock or ManilaClock()
        self.max_workers = max_workers
        self._bosses: List[Boss] = []
        self._busy = threading.Lock()

    def on_catalog(self, bosses: List[Boss]) -> None:
        """Replace the working set with the latest catalog snapshot."""
        self._bosses = list(bosses)

    def run_once(self) -> Optional[PromotionResult]:
        """
        Run one promotion pass.

        Returns:
            PromotionResult, or None when skipped because a pass is in flight
        """
        if not self._busy.acquire(blocking=False):
            logger.debug("[PROMOTE] Previous pass still running, skipping tick")
            return None
        try:
            return self._promote(self.clock.now())
        finally:
            self._busy.release()

    def _promote(self, now: datetime) -> PromotionResult:
        bosses = self._bosses
        result = PromotionResult()

        now_iso = to_iso(now)
        backfill = {b.id: {'killed_at': now_iso} for b in bosses if needs_killed_at_backfill(b)}
        promote = {b.id: {'status': BossStatus.ALIVE.value} for b in bosses if is_due_for_promotion(b, now)}
        if not backfill and not promote:
            return result

        if backfill:
            logger.info(f"[PROMOTE] Backfilling kill time for {len(backfill)} boss(es)")
            result.backfilled, failed = self._apply(backfill)
            result.failed.extend(failed)
        if promote:
            names = [b.name for b in bosses if b.id in promote]
            logger.info(f"[PROMOTE] Marking {len(promote)} boss(es) alive: {names}")
            result.promoted, failed = self._apply(promote)
            result.failed.extend(failed)
        return result

    def _apply(self, updates: Dict[str, Dict]) -> Tuple[List[str], List[str]]:
        """Write each boss update concurrently; one failure does not stop the others."""
        done, failed = [], []
        workers = max(1, min(self.max_workers, len(updates)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='promote') as pool:
            futures = {
                boss_id: pool.submit(self.repository.update_boss, boss_id, fields)
                for boss_id, fields in updates.items()
            }
            for boss_id, future in futures.items():
                try:
                    future.result()
                    done.append(boss_id)
                except Exception as e:
                    logger.error(f"[PROMOTE] Failed to update boss {boss_id}: {e}")
                    failed.append(boss_id)
        return done, failed
