"""Boss respawn tracking and daily schedule notifications for a guild."""
from .config import EngineConfig, load_config, save_config, user_data_dir
from .document_store import DocumentStore
from .errors import (
    BossTimerError, ConfigError, DocumentNotFoundError, StoreError,
    TransactionConflictError, WebhookDeliveryError,
)
from .logger import get_logger, setup_logging
from .manila_time import ManilaClock
from .models import (
    Boss, BossStatus, BossType, DailySpawn, DisplayStatus, FixedSpawn,
    NotifierSettings, WeeklySpawn,
)
from .notification_scheduler import NotificationOutcome, NotificationScheduler, compose_schedule_message
from .occurrence import next_daily_occurrence, next_occurrences, next_weekly_occurrence
from .promoter import DeadBossPromoter, PromotionResult
from .repositories import BossRepository, NotifierSettingsRepository, validate_boss
from .respawn import (
    display_status, format_countdown, group_by_display_status,
    next_respawn_instant, schedule_lines, sort_by_next_respawn,
)
from .service import BossTimerService
from .webhook_notifier import WebhookNotifier

__version__ = "1.0.0"
