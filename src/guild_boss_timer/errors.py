"""Exceptions raised by the boss timer engine."""
from typing import Optional


class BossTimerError(Exception):
    """Base class for engine errors."""


class ConfigError(BossTimerError):
    """Engine configuration could not be read or is invalid."""


class StoreError(BossTimerError):
    """A document store operation failed."""


class DocumentNotFoundError(StoreError):
    """The addressed document does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Document not found: {path}")
        self.path = path


class TransactionConflictError(StoreError):
    """A transaction kept losing to concurrent writers and gave up."""

    def __init__(self, path: str, attempts: int):
        super().__init__(f"Transaction on {path} aborted after {attempts} conflicting attempts")
        self.path = path
        self.attempts = attempts


class WebhookDeliveryError(BossTimerError):
    """The outbound notification could not be delivered."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
