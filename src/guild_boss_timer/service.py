"""Hosts the promoter and the notification scheduler on background loops."""
import logging
from typing import Callable, List, Optional

from .config import EngineConfig
from .document_store import DocumentStore
from .logger import get_logger, setup_logging
from .manila_time import ManilaClock
from .models import Boss, NotifierSettings
from .notification_scheduler import NotificationScheduler
from .polling import PollingLoop
from .promoter import DeadBossPromoter
from .repositories import BossRepository, NotifierSettingsRepository
from .webhook_notifier import WebhookNotifier

logger = get_logger(__name__)


class BossTimerService:
    """
    Runs the engine against a document store.

    The promoter ticks every few seconds and the scheduler every minute;
    any catalog or settings change wakes the scheduler right away.
    """

    def __init__(self, store: DocumentStore, config: Optional[EngineConfig] = None,
                 notifier: Optional[WebhookNotifier] = None,
                 clock: Optional[ManilaClock] = None):
        self.store = store
        self.config = config or EngineConfig()
        self.clock = clock or ManilaClock()
        self.notifier = notifier or WebhookNotifier(
            timeout=self.config.webhook_timeout_seconds,
            beacon_fallback=self.config.beacon_fallback,
        )

        self.bosses = BossRepository(store, self.clock)
        self.settings = NotifierSettingsRepository(store, self.clock)
        self.promoter = DeadBossPromoter(self.bosses, self.clock, max_workers=self.config.promotion_workers)
        self.scheduler = NotificationScheduler(
            store, self.notifier, self.clock,
            lock_ttl_ms=int(self.config.send_lock_ttl_seconds * 1000),
            retry_after_ms=int(self.config.retry_after_error_seconds * 1000),
        )

        self.promotion_loop = PollingLoop('promoter', self.config.promotion_interval_seconds, self.promoter.run_once)
        self.notification_loop = PollingLoop(
            'notification-scheduler', self.config.notification_poll_seconds, self.scheduler.check_and_send
        )
        self._unsubscribers: List[Callable[[], None]] = []
        self.running = False

    @classmethod
    def from_config(cls, config: EngineConfig, notifier: Optional[WebhookNotifier] = None) -> 'BossTimerService':
        """Set up logging and open the persisted store described by config."""
        level = logging.getLevelName(config.log_level.upper())
        setup_logging(config.log_dir, level if isinstance(level, int) else logging.INFO)
        logger.info(f"[SERVICE] Data directory: {config.data_path}")
        return cls(DocumentStore(str(config.store_path)), config, notifier)

    def start(self, enabled: bool = False) -> None:
        """Subscribe to the store and start both loops."""
        if self.running:
            return
        logger.info(f"[SERVICE] Starting boss timer service (notifications enabled={enabled})")
        self.scheduler.set_enabled(enabled)
        self.settings.get()
        self._unsubscribers = [
            self.bosses.subscribe(self._on_catalog),
            self.settings.subscribe(self._on_settings),
        ]
        self.promotion_loop.start()
        self.notification_loop.start()
        self.running = True

    def stop(self) -> None:
        """Unsubscribe and stop the loops. A tick already running finishes on its own."""
        if not self.running:
            return
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.promotion_loop.stop()
        self.notification_loop.stop()
        self.running = False
        logger.info("[SERVICE] Boss timer service stopped")

    def set_enabled(self, enabled: bool) -> None:
        """Turn the daily notification on or off for this instance."""
        self.scheduler.set_enabled(enabled)
        logger.info(f"[SERVICE] Notifications {'enabled' if enabled else 'disabled'}")
        if enabled:
            self.notification_loop.trigger()

    def _on_catalog(self, bosses: List[Boss]) -> None:
        self.promoter.on_catalog(bosses)
        self.scheduler.on_catalog(bosses)
        self.notification_loop.trigger()

    def _on_settings(self, settings: NotifierSettings) -> None:
        self.scheduler.on_settings(settings)
        self.notification_loop.trigger()
